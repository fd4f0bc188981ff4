"""
Tests for the message encoder and user data header.
"""

import pytest

from smppgate.esme.constants import ESM_CLASS_UDHI, DataCoding
from smppgate.esme.encoder import delivery_flags, encode
from smppgate.esme.message import DeliveryReport, OutboundMessage
from smppgate.esme.transports.protocol import ShortMessage
from smppgate.esme.udh import (
    IEI_CONCAT_8BIT,
    IEI_CONCAT_16BIT,
    IEI_PORT_16BIT,
    decode_udh,
    encode_udh,
)


def message(**kwargs) -> OutboundMessage:
    kwargs.setdefault("destination", "4915112345678")
    kwargs.setdefault("content", "hello")
    return OutboundMessage(**kwargs)


# =============================================================================
# Encoding Tests
# =============================================================================


class TestEncode:
    """Tests for encode()."""

    def test_default_encoding(self):
        params = encode(message())

        assert params["destination_addr"] == "4915112345678"
        assert params["registered_delivery"] == 0
        assert "data_coding" not in params
        assert "esm_class" not in params
        assert params["short_message"] == ShortMessage(message="hello")

    def test_ucs2_sets_data_coding(self):
        params = encode(message(content="Grüße", encoding="UCS2"))

        assert params["data_coding"] == DataCoding.UCS2 == 0x08
        assert params["short_message"].message == "Grüße"

    def test_binary_decodes_hex(self):
        params = encode(message(content="68656c6c6f", encoding="binary"))

        assert params["data_coding"] == DataCoding.BINARY == 0x04
        assert params["short_message"].message == b"hello"

    def test_port_udh(self):
        params = encode(message(udh={"port": {"dst": 37273}}))

        udh = params["short_message"].udh
        assert udh == bytes([6, 0x05, 4, 0x91, 0x99, 0x00, 0x00])
        assert params["esm_class"] & ESM_CLASS_UDHI
        assert params["short_message"].message == "hello"

    def test_udhi_added_to_default_esm_class(self):
        params = encode(message(udh={"port": {"dst": 1}}), {"esm_class": 0x03})

        assert params["esm_class"] == 0x43

    def test_pid_and_dcs_override(self):
        params = encode(message(encoding="UCS2", pid=0x7F, dcs=0xF6))

        assert params["protocol_id"] == 0x7F
        assert params["data_coding"] == 0xF6

    def test_message_fields_win_over_defaults(self):
        defaults = {
            "source_addr": "12345",
            "destination_addr": "ignored",
            "registered_delivery": 0x01,
            "dest_addr_ton": 1,
        }

        params = encode(message(), defaults)

        assert params["source_addr"] == "12345"
        assert params["dest_addr_ton"] == 1
        assert params["destination_addr"] == "4915112345678"
        assert params["registered_delivery"] == 0
        assert defaults["destination_addr"] == "ignored"


# =============================================================================
# Delivery Flag Tests
# =============================================================================


class TestDeliveryFlags:
    """Tests for the registered_delivery bitmask."""

    def test_no_report(self):
        assert delivery_flags(None) == 0

    @pytest.mark.parametrize(
        "report,expected",
        [
            ({"final": True}, 0x01),
            ({"failure": True}, 0x02),
            ({"success": True}, 0x03),
            ({"ack": True}, 0x04),
            ({"user_ack": True}, 0x08),
            ({"intermediate": True}, 0x10),
            ({"final": True, "ack": True, "intermediate": True}, 0x15),
            ({"success": True, "user_ack": True}, 0x0B),
        ],
    )
    def test_flags(self, report, expected):
        assert delivery_flags(DeliveryReport(**report)) == expected

    def test_receipt_kinds_last_wins(self):
        assert delivery_flags(DeliveryReport(final=True, failure=True)) == 0x02
        assert delivery_flags(DeliveryReport(final=True, success=True)) == 0x03
        assert delivery_flags(DeliveryReport(final=True, failure=True, success=True)) == 0x03

    def test_report_in_params(self):
        params = encode(message(report={"receipt": "final", "ack": True}))

        assert params["registered_delivery"] == 0x05


# =============================================================================
# User Data Header Tests
# =============================================================================


class TestUserDataHeader:
    """Tests for UDH layout."""

    def test_port_element(self):
        udh = encode_udh(message(udh={"port": {"src": 0x1234, "dst": 0x5678}}).udh)

        assert udh == bytes([6, IEI_PORT_16BIT, 4, 0x56, 0x78, 0x12, 0x34])

    def test_concat_8bit_reference(self):
        udh = encode_udh(message(udh={"concat": {"ref": 0x42, "total": 3, "seq": 2}}).udh)

        assert udh == bytes([5, IEI_CONCAT_8BIT, 3, 0x42, 3, 2])

    def test_concat_16bit_reference(self):
        udh = encode_udh(message(udh={"concat": {"ref": 0x1234, "total": 2, "seq": 1}}).udh)

        assert udh == bytes([6, IEI_CONCAT_16BIT, 4, 0x12, 0x34, 2, 1])

    def test_concat_and_port(self):
        udh = encode_udh(
            message(udh={"concat": {"ref": 7, "total": 2, "seq": 1}, "port": {"dst": 2948}}).udh
        )

        elements = decode_udh(udh)
        assert udh[0] == len(udh) - 1
        assert elements[IEI_CONCAT_8BIT] == bytes([7, 2, 1])
        assert elements[IEI_PORT_16BIT] == bytes([0x0B, 0x84, 0x00, 0x00])

    def test_decode_port_37273(self):
        params = encode(message(udh={"port": {"dst": 37273}}))

        element = decode_udh(params["short_message"].udh)[IEI_PORT_16BIT]
        assert int.from_bytes(element[:2], "big") == 37273

    @pytest.mark.parametrize("data", [b"", bytes([5, 0x00, 3, 1]), bytes([3, 0x05, 4, 1])])
    def test_decode_truncated(self, data):
        with pytest.raises(ValueError):
            decode_udh(data)
