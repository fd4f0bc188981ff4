"""
Environment loading for GatewaySettings.

Every setting has an SMPPGATE_* variable; unset variables keep the model
defaults.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from smppgate.config.schemas import GatewaySettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "SMPPGATE_"

# Setting name -> environment variable suffix
ENV_FIELDS = {
    "http_host": "HTTP_HOST",
    "http_port": "HTTP_PORT",
    "api_password": "API_PASSWORD",
    "log_level": "LOG_LEVEL",
    "smsc_host": "SMSC_HOST",
    "smsc_port": "SMSC_PORT",
    "system_id": "SYSTEM_ID",
    "password": "PASSWORD",
    "system_type": "SYSTEM_TYPE",
    "interface_version": "INTERFACE_VERSION",
    "source_addr": "SOURCE_ADDR",
    "source_addr_ton": "SOURCE_ADDR_TON",
    "source_addr_npi": "SOURCE_ADDR_NPI",
    "reconnect_timeout": "RECONNECT_TIMEOUT",
    "reconnect_timeout_long": "RECONNECT_TIMEOUT_LONG",
    "ping_timeout": "PING_TIMEOUT",
    "activity_timeout": "ACTIVITY_TIMEOUT",
    "throttle_count": "THROTTLE_COUNT",
    "throttle_period": "THROTTLE_PERIOD",
}


def settings_from_env(environ: dict[str, str] | None = None) -> GatewaySettings:
    """
    Build settings from an environment mapping (os.environ by default).

    Empty values count as unset.
    """
    env = os.environ if environ is None else environ
    values: dict[str, str] = {}
    for name, suffix in ENV_FIELDS.items():
        value = env.get(ENV_PREFIX + suffix)
        if value:
            values[name] = value
    return GatewaySettings(**values)


@lru_cache()
def load_settings() -> GatewaySettings:
    """
    Get gateway settings from the process environment.

    Uses lru_cache for singleton pattern.
    """
    settings = settings_from_env()
    logger.debug(
        f"Loaded settings: smsc={settings.smsc_host}:{settings.smsc_port} "
        f"system_id={settings.system_id!r}"
    )
    return settings
