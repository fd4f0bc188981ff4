"""
SMPP protocol constants used by the session manager.

Only the values the session needs are listed here; PDU framing lives in
the transport.
"""

from __future__ import annotations

from enum import IntEnum

SMPP_VERSION_3_4 = 0x34


class CommandStatus(IntEnum):
    """Subset of SMPP command_status values (v3.4 and v5.0)."""

    ESME_ROK = 0x0000
    ESME_RINVMSGLEN = 0x0001
    ESME_RINVCMDLEN = 0x0002
    ESME_RINVCMDID = 0x0003
    ESME_RINVBNDSTS = 0x0004
    ESME_RALYBND = 0x0005
    ESME_RINVPRTFLG = 0x0006
    ESME_RINVREGDLVFLG = 0x0007
    ESME_RSYSERR = 0x0008
    ESME_RINVSRCADR = 0x000A
    ESME_RINVDSTADR = 0x000B
    ESME_RINVMSGID = 0x000C
    ESME_RBINDFAIL = 0x000D
    ESME_RINVPASWD = 0x000E
    ESME_RINVSYSID = 0x000F
    ESME_RMSGQFUL = 0x0014
    ESME_RINVSERTYP = 0x0015
    ESME_RINVESMCLASS = 0x0043
    ESME_RSUBMITFAIL = 0x0045
    ESME_RINVSRCTON = 0x0048
    ESME_RINVSRCNPI = 0x0049
    ESME_RINVDSTTON = 0x0050
    ESME_RINVDSTNPI = 0x0051
    ESME_RINVSYSTYP = 0x0053
    ESME_RTHROTTLED = 0x0058
    ESME_RINVSCHED = 0x0061
    ESME_RINVEXPIRY = 0x0062
    ESME_RX_T_APPN = 0x0064
    ESME_RX_P_APPN = 0x0065
    ESME_RX_R_APPN = 0x0066
    ESME_RUNKNOWNERR = 0x00FF
    ESME_RINVDCS = 0x0104
    ESME_RINVSRCADDRSUBUNIT = 0x0105
    ESME_RINVDSTADDRSUBUNIT = 0x0106


def status_name(status: int) -> str:
    """Symbolic name for a command_status, or its hex form when unknown."""
    try:
        return CommandStatus(status).name
    except ValueError:
        return f"0x{status:08X}"


class DataCoding(IntEnum):
    """data_coding values selected by the message encoding."""

    DEFAULT = 0x00
    BINARY = 0x04
    UCS2 = 0x08


class RegisteredDelivery(IntEnum):
    """registered_delivery bits (SMPP 5.0 section 4.7.21)."""

    NONE = 0x00
    FINAL = 0x01
    FAILURE = 0x02
    SUCCESS = 0x03
    DELIVERY_ACKNOWLEDGEMENT = 0x04
    USER_ACKNOWLEDGEMENT = 0x08
    INTERMEDIATE = 0x10


# esm_class bit telling the peer the short_message starts with a UDH
ESM_CLASS_UDHI = 0x40
