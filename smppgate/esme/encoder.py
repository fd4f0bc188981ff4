"""
Message encoder: OutboundMessage -> submit_sm parameters.

Pure functions with no session state. The transport applies the actual
character encoding; this module only selects data_coding and shapes the
payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .constants import ESM_CLASS_UDHI, DataCoding, RegisteredDelivery
from .message import DeliveryReport, Encoding, OutboundMessage
from .transports.protocol import ShortMessage
from .udh import encode_udh


def delivery_flags(report: DeliveryReport | None) -> int:
    """
    Build the registered_delivery bitmask.

    final, failure and success select the receipt type and are mutually
    exclusive on the wire; when several are set the last one in that order
    wins. ack, user_ack and intermediate are OR-ed on top.
    """
    if report is None:
        return RegisteredDelivery.NONE

    receipt = RegisteredDelivery.NONE
    if report.final:
        receipt = RegisteredDelivery.FINAL
    if report.failure:
        receipt = RegisteredDelivery.FAILURE
    if report.success:
        receipt = RegisteredDelivery.SUCCESS

    flags = int(receipt)
    if report.ack:
        flags |= RegisteredDelivery.DELIVERY_ACKNOWLEDGEMENT
    if report.user_ack:
        flags |= RegisteredDelivery.USER_ACKNOWLEDGEMENT
    if report.intermediate:
        flags |= RegisteredDelivery.INTERMEDIATE
    return flags


def encode(
    message: OutboundMessage,
    defaults: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Convert a message into submit_sm parameters.

    Args:
        message: Validated outbound message
        defaults: Default submit parameters (source address, TON/NPI);
            fields derived from the message take precedence

    Returns:
        Parameter dict for SmppTransport.submit_sm()
    """
    params: dict[str, Any] = dict(defaults or {})

    payload: str | bytes = message.content
    if message.encoding is Encoding.UCS2:
        params["data_coding"] = int(DataCoding.UCS2)
    elif message.encoding is Encoding.BINARY:
        params["data_coding"] = int(DataCoding.BINARY)
        payload = bytes.fromhex(message.content)

    if message.pid is not None:
        params["protocol_id"] = message.pid
    if message.dcs is not None:
        params["data_coding"] = message.dcs

    params["destination_addr"] = message.destination
    params["registered_delivery"] = delivery_flags(message.report)

    udh = None
    if message.udh is not None:
        udh = encode_udh(message.udh)
        params["esm_class"] = params.get("esm_class", 0) | ESM_CLASS_UDHI

    params["short_message"] = ShortMessage(message=payload, udh=udh)
    return params
