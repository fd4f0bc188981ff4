"""
Outbound message schema.

Pydantic models describing what a caller may submit. Validation happens
here, before any token is reserved or any transport call is made.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ErrorKind, SessionError


class Encoding(str, Enum):
    """Content encoding selector."""

    DEFAULT = "default"
    UCS2 = "ucs2"
    BINARY = "binary"


RECEIPT_KINDS = ("final", "failure", "success")


class DeliveryReport(BaseModel):
    """
    Delivery-report request flags.

    The receipt kinds (final, failure, success) share one selector; the
    remaining flags are independent bits. A single ``receipt`` key naming
    one of the kinds is accepted as shorthand.
    """

    model_config = ConfigDict(extra="forbid")

    final: bool = False
    failure: bool = False
    success: bool = False
    ack: bool = False
    user_ack: bool = False
    intermediate: bool = False

    @model_validator(mode="before")
    @classmethod
    def expand_receipt(cls, data: Any) -> Any:
        if isinstance(data, dict) and "receipt" in data:
            data = dict(data)
            receipt = data.pop("receipt")
            if receipt is not None:
                if receipt not in RECEIPT_KINDS:
                    raise ValueError(f"receipt must be one of {', '.join(RECEIPT_KINDS)}")
                data[receipt] = True
        return data


class PortAddressing(BaseModel):
    """16-bit application port addressing."""

    model_config = ConfigDict(extra="forbid")

    src: int = Field(0, ge=0, le=0xFFFF, description="Originator port")
    dst: int = Field(..., ge=0, le=0xFFFF, description="Destination port")


class Concatenation(BaseModel):
    """Concatenated (multipart) message descriptor."""

    model_config = ConfigDict(extra="forbid")

    ref: int = Field(..., ge=0, le=0xFFFF, description="Reference shared by all parts")
    total: int = Field(..., ge=1, le=255, description="Number of parts")
    seq: int = Field(..., ge=1, le=255, description="1-based index of this part")

    @model_validator(mode="after")
    def check_seq_within_total(self) -> Concatenation:
        if self.seq > self.total:
            raise ValueError("seq must not exceed total")
        return self


class UserDataHeader(BaseModel):
    """User data header descriptor; at least one element is required."""

    model_config = ConfigDict(extra="forbid")

    port: PortAddressing | None = None
    concat: Concatenation | None = None

    @model_validator(mode="after")
    def check_not_empty(self) -> UserDataHeader:
        if self.port is None and self.concat is None:
            raise ValueError("udh needs a port or concat element")
        return self


class OutboundMessage(BaseModel):
    """
    A message to submit to the SMSC.

    Example:
        OutboundMessage(
            destination="4915112345678",
            content="hello",
            encoding="UCS2",
            report={"ack": True},
            udh={"port": {"dst": 37273}},
        )
    """

    model_config = ConfigDict(extra="forbid")

    destination: str = Field(..., min_length=1, max_length=21)
    content: str = Field(..., min_length=1)
    encoding: Encoding = Encoding.DEFAULT
    report: DeliveryReport | None = None
    udh: UserDataHeader | None = None
    pid: int | None = Field(None, ge=0, le=255, description="protocol_id override")
    dcs: int | None = Field(None, ge=0, le=255, description="data_coding override")

    @field_validator("encoding", mode="before")
    @classmethod
    def lower_encoding(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value

    @model_validator(mode="after")
    def check_binary_is_hex(self) -> OutboundMessage:
        if self.encoding is Encoding.BINARY:
            try:
                bytes.fromhex(self.content)
            except ValueError:
                raise ValueError("binary content must be a hex string") from None
        return self


def parse_message(message: OutboundMessage | Mapping[str, Any]) -> OutboundMessage:
    """
    Coerce caller input into an OutboundMessage.

    Raises:
        SessionError: VALIDATION if the input does not match the schema
    """
    if isinstance(message, OutboundMessage):
        return message
    if not isinstance(message, Mapping):
        raise SessionError(ErrorKind.VALIDATION, "invalid request")
    try:
        return OutboundMessage.model_validate(dict(message))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'message'}: {err['msg']}"
            for err in e.errors()
        )
        raise SessionError(ErrorKind.VALIDATION, f"invalid request: {problems}") from e
