"""
User Data Header encoding (3GPP TS 23.040, section 9.2.3.24).

A UDH is one length octet (UDHL) followed by information elements, each
laid out as IEI, IEDL, data.
"""

from __future__ import annotations

import struct

from .message import Concatenation, PortAddressing, UserDataHeader

# Information element identifiers
IEI_CONCAT_8BIT = 0x00
IEI_PORT_8BIT = 0x04
IEI_PORT_16BIT = 0x05
IEI_CONCAT_16BIT = 0x08


def encode_port(port: PortAddressing) -> bytes:
    """Application port addressing, 16-bit ports: destination first."""
    return struct.pack(">BBHH", IEI_PORT_16BIT, 4, port.dst, port.src)


def encode_concat(concat: Concatenation) -> bytes:
    """Concatenation element; the 16-bit form is used when ref exceeds one octet."""
    if concat.ref <= 0xFF:
        return struct.pack(">BBBBB", IEI_CONCAT_8BIT, 3, concat.ref, concat.total, concat.seq)
    return struct.pack(">BBHBB", IEI_CONCAT_16BIT, 4, concat.ref, concat.total, concat.seq)


def encode_udh(udh: UserDataHeader) -> bytes:
    """Encode a header descriptor into UDHL + information elements."""
    elements = b""
    if udh.concat is not None:
        elements += encode_concat(udh.concat)
    if udh.port is not None:
        elements += encode_port(udh.port)
    return bytes([len(elements)]) + elements


def decode_udh(data: bytes) -> dict[int, bytes]:
    """
    Split an encoded UDH into {iei: element data}.

    Raises ValueError on an empty or truncated header.
    """
    if not data:
        raise ValueError("empty UDH")
    length = data[0]
    body = data[1 : 1 + length]
    if len(body) != length:
        raise ValueError("truncated UDH")
    elements: dict[int, bytes] = {}
    i = 0
    while i < len(body):
        if i + 2 > len(body):
            raise ValueError("truncated information element")
        iei, iedl = body[i], body[i + 1]
        value = body[i + 2 : i + 2 + iedl]
        if len(value) != iedl:
            raise ValueError("truncated information element")
        elements[iei] = value
        i += 2 + iedl
    return elements
