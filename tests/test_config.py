"""
Tests for configuration models and environment loading.
"""

import pytest
from pydantic import ValidationError

from smppgate.config import GatewaySettings, SessionConfig, load_settings, settings_from_env


class TestSessionConfig:
    """Tests for SessionConfig."""

    def test_defaults(self):
        config = SessionConfig()

        assert config.connection.url == "smpp://127.0.0.1:2775"
        assert config.bind.interface_version == 0x34
        assert config.timeouts.reconnect == 3000
        assert config.timeouts.reconnect_long == 5000
        assert config.timeouts.throttle_cooldown == 60000
        assert config.throttle is None

    def test_frozen(self):
        config = SessionConfig()

        with pytest.raises(ValidationError):
            config.timeouts.ping = 1

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            SessionConfig(bind={"system_id": "x", "passwd": "typo"})

    def test_password_hidden(self):
        config = SessionConfig(bind={"system_id": "gw", "password": "s3cret"})

        assert "s3cret" not in repr(config)
        assert config.bind.as_params()["password"] == "s3cret"

    def test_hex_interface_version(self):
        assert SessionConfig(bind={"interface_version": "0x50"}).bind.interface_version == 0x50

    def test_submit_defaults_drop_empty_source(self):
        assert "source_addr" not in SessionConfig().submit.as_params()
        params = SessionConfig(submit={"source_addr": "INFO", "source_addr_ton": 5}).submit.as_params()
        assert params["source_addr"] == "INFO"
        assert params["source_addr_ton"] == 5


class TestGatewaySettings:
    """Tests for GatewaySettings and env loading."""

    def test_session_config(self):
        settings = GatewaySettings(
            smsc_host="smsc.example.net",
            system_id="gw",
            password="pw",
            source_addr="12345",
            reconnect_timeout=1000,
            throttle_count=10,
            throttle_period=1000,
        )

        config = settings.session_config()

        assert config.connection.host == "smsc.example.net"
        assert config.bind.as_params()["password"] == "pw"
        assert config.submit.source_addr == "12345"
        assert config.timeouts.reconnect == 1000
        assert config.timeouts.ping == 8000
        assert config.throttle.count == 10

    def test_throttle_disabled(self):
        assert GatewaySettings(throttle_count=0).session_config().throttle is None

    def test_from_env(self):
        settings = settings_from_env(
            {
                "SMPPGATE_SMSC_HOST": "10.0.0.5",
                "SMPPGATE_SMSC_PORT": "2776",
                "SMPPGATE_SYSTEM_ID": "gw",
                "SMPPGATE_INTERFACE_VERSION": "0x34",
                "SMPPGATE_API_PASSWORD": "letmein",
                "SMPPGATE_THROTTLE_COUNT": "5",
                "SMPPGATE_PING_TIMEOUT": "",
                "UNRELATED": "x",
            }
        )

        assert settings.smsc_host == "10.0.0.5"
        assert settings.smsc_port == 2776
        assert settings.system_id == "gw"
        assert settings.interface_version == 0x34
        assert settings.api_password.get_secret_value() == "letmein"
        assert settings.throttle_count == 5
        assert settings.ping_timeout == 8000

    def test_invalid_env_value(self):
        with pytest.raises(ValidationError):
            settings_from_env({"SMPPGATE_HTTP_PORT": "not-a-port"})

    def test_load_settings_cached(self, monkeypatch):
        monkeypatch.setenv("SMPPGATE_SYSTEM_ID", "cached")
        load_settings.cache_clear()

        first = load_settings()
        monkeypatch.setenv("SMPPGATE_SYSTEM_ID", "changed")

        assert load_settings() is first
        assert first.system_id == "cached"
        load_settings.cache_clear()
