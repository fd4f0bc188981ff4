"""
Configuration for smppgate.

Exports:
- SessionConfig and its parts (frozen pydantic models)
- GatewaySettings: process-level settings for the HTTP gateway
- load_settings: cached SMPPGATE_* environment loader
"""

from .schemas import (
    BindSettings,
    ConnectionSettings,
    GatewaySettings,
    SessionConfig,
    SubmitDefaults,
    ThrottleSettings,
    Timeouts,
)
from .settings import load_settings, settings_from_env

__all__ = [
    "BindSettings",
    "ConnectionSettings",
    "GatewaySettings",
    "SessionConfig",
    "SubmitDefaults",
    "ThrottleSettings",
    "Timeouts",
    "load_settings",
    "settings_from_env",
]
