"""
Configuration Schemas for smppgate.

Pydantic models for the session and the HTTP gateway. SessionConfig and
its parts are frozen: the session reads them once and never mutates them.

Security:
    Passwords use SecretStr to prevent accidental logging.
    Access the value with `.get_secret_value()`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from smppgate.esme.constants import SMPP_VERSION_3_4

_FROZEN = ConfigDict(frozen=True, extra="forbid")


def _int_or_hex(value: Any) -> Any:
    """Accept 52, "52" or "0x34"."""
    if isinstance(value, str):
        return int(value, 0)
    return value


class ConnectionSettings(BaseModel):
    """SMSC address."""

    model_config = _FROZEN

    host: str = Field("127.0.0.1", description="SMSC host")
    port: int = Field(2775, ge=1, le=65535, description="SMSC port")

    @property
    def url(self) -> str:
        return f"smpp://{self.host}:{self.port}"


class BindSettings(BaseModel):
    """bind_transceiver credentials and addressing."""

    model_config = _FROZEN

    system_id: str = Field("", max_length=15)
    password: SecretStr = Field(default=SecretStr(""), description="Bind password")
    system_type: str = Field("", max_length=12)
    interface_version: int = Field(SMPP_VERSION_3_4, ge=0, le=0xFF)
    addr_ton: int = Field(0, ge=0, le=0xFF)
    addr_npi: int = Field(0, ge=0, le=0xFF)
    address_range: str = Field("", max_length=40)

    @field_validator("interface_version", "addr_ton", "addr_npi", mode="before")
    @classmethod
    def coerce_ints(cls, value: Any) -> Any:
        return _int_or_hex(value)

    def as_params(self) -> dict[str, Any]:
        """Parameters for bind_transceiver (password unwrapped)."""
        return {
            "system_id": self.system_id,
            "password": self.password.get_secret_value(),
            "system_type": self.system_type,
            "interface_version": self.interface_version,
            "addr_ton": self.addr_ton,
            "addr_npi": self.addr_npi,
            "address_range": self.address_range,
        }


class SubmitDefaults(BaseModel):
    """Default submit_sm parameters merged under every message."""

    model_config = _FROZEN

    source_addr: str = Field("", max_length=21)
    source_addr_ton: int = Field(1, ge=0, le=0xFF)
    source_addr_npi: int = Field(1, ge=0, le=0xFF)
    dest_addr_ton: int = Field(1, ge=0, le=0xFF)
    dest_addr_npi: int = Field(1, ge=0, le=0xFF)

    @field_validator(
        "source_addr_ton", "source_addr_npi", "dest_addr_ton", "dest_addr_npi", mode="before"
    )
    @classmethod
    def coerce_ints(cls, value: Any) -> Any:
        return _int_or_hex(value)

    def as_params(self) -> dict[str, Any]:
        params = self.model_dump()
        if not params["source_addr"]:
            del params["source_addr"]
        return params


class Timeouts(BaseModel):
    """Session timers, in milliseconds."""

    model_config = _FROZEN

    reconnect: int = Field(3000, ge=0, description="Delay before the first reconnect")
    reconnect_long: int = Field(5000, ge=0, description="Delay before later reconnects")
    ping: int = Field(3000, ge=1, description="enquire_link response deadline")
    activity: int = Field(60000, ge=1, description="Inactivity before enquire_link")
    unbind: int = Field(1000, ge=1, description="Best-effort unbind deadline on stop")
    throttle_cooldown: int = Field(60000, ge=1, description="Pause after ESME_RTHROTTLED")


class ThrottleSettings(BaseModel):
    """Client-side token bucket: `count` submissions per `period` ms."""

    model_config = _FROZEN

    count: int = Field(..., ge=1)
    period: int = Field(..., ge=1)


class SessionConfig(BaseModel):
    """
    Complete ESME session configuration.

    Example:
        config = SessionConfig(
            connection={"host": "smsc.example.net", "port": 2775},
            bind={"system_id": "login", "password": "secret"},
            submit={"source_addr": "1234567"},
            throttle={"count": 20, "period": 60000},
        )
    """

    model_config = _FROZEN

    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    bind: BindSettings = Field(default_factory=BindSettings)
    submit: SubmitDefaults = Field(default_factory=SubmitDefaults)
    timeouts: Timeouts = Field(default_factory=Timeouts)
    throttle: ThrottleSettings | None = None


class GatewaySettings(BaseModel):
    """
    Process-level settings for the HTTP gateway.

    Loaded from SMPPGATE_* environment variables by load_settings().
    """

    # HTTP
    http_host: str = "0.0.0.0"
    http_port: int = Field(8080, ge=1, le=65535)
    api_password: SecretStr | None = None
    log_level: str = "INFO"

    # SMSC
    smsc_host: str = "127.0.0.1"
    smsc_port: int = Field(2775, ge=1, le=65535)
    system_id: str = ""
    password: SecretStr = Field(default=SecretStr(""))
    system_type: str = ""
    interface_version: int = SMPP_VERSION_3_4

    # submit_sm defaults
    source_addr: str = ""
    source_addr_ton: int = 1
    source_addr_npi: int = 1

    # Timers (ms)
    reconnect_timeout: int = 3000
    reconnect_timeout_long: int = 5000
    ping_timeout: int = 8000
    activity_timeout: int = 60000

    # Throttle
    throttle_count: int = 2
    throttle_period: int = 60000

    @field_validator(
        "interface_version", "source_addr_ton", "source_addr_npi", mode="before"
    )
    @classmethod
    def coerce_ints(cls, value: Any) -> Any:
        return _int_or_hex(value)

    def session_config(self) -> SessionConfig:
        """Build the frozen session configuration."""
        return SessionConfig(
            connection=ConnectionSettings(host=self.smsc_host, port=self.smsc_port),
            bind=BindSettings(
                system_id=self.system_id,
                password=self.password,
                system_type=self.system_type,
                interface_version=self.interface_version,
            ),
            submit=SubmitDefaults(
                source_addr=self.source_addr,
                source_addr_ton=self.source_addr_ton,
                source_addr_npi=self.source_addr_npi,
            ),
            timeouts=Timeouts(
                reconnect=self.reconnect_timeout,
                reconnect_long=self.reconnect_timeout_long,
                ping=self.ping_timeout,
                activity=self.activity_timeout,
            ),
            throttle=(
                ThrottleSettings(count=self.throttle_count, period=self.throttle_period)
                if self.throttle_count > 0
                else None
            ),
        )
