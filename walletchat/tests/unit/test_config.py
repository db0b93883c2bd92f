"""
Tests for the configuration models.
"""

import pytest
from pydantic import ValidationError

from walletchat.config import AppConfig, get_config
from walletchat.config.models import AuthConfig, CORSConfig, LoggingConfig, ServerConfig


def test_get_config_reads_environment(monkeypatch):
    monkeypatch.setenv("SERVER_PORT", "12345")
    monkeypatch.setenv("AUTH_NONCE_TTL_SECONDS", "120")

    config = get_config()

    assert isinstance(config, AppConfig)
    assert config.server.port == 12345
    assert config.auth.nonce_ttl_seconds == 120


def test_auth_defaults():
    config = AuthConfig()

    assert config.nonce_ttl_seconds == 300
    assert config.app_version == "1"
    assert config.statement.startswith("Sign in to")


@pytest.mark.parametrize("port", ["80", "70000"])
def test_invalid_port(monkeypatch, port):
    monkeypatch.setenv("SERVER_PORT", port)

    with pytest.raises(ValidationError):
        ServerConfig()


def test_invalid_logging_environment():
    with pytest.raises(ValidationError):
        LoggingConfig(environment="staging")


def test_log_level_is_uppercased():
    assert LoggingConfig(level="debug").level == "DEBUG"


@pytest.mark.parametrize("field", ["nonce_ttl_seconds", "max_pending_nonces", "nonce_requests_per_minute"])
def test_auth_limits_must_be_positive(field):
    with pytest.raises(ValidationError):
        AuthConfig(**{field: 0})


def test_cors_origins_from_csv(monkeypatch):
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example")

    assert CORSConfig().allow_origins == ["https://a.example", "https://b.example"]


def test_cors_origins_from_json(monkeypatch):
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", '["https://a.example"]')

    assert CORSConfig().allow_origins == ["https://a.example"]


def test_to_legacy_dict_carries_logging_section():
    config = AppConfig()

    legacy = config.to_legacy_dict()

    assert legacy["port"] == config.server.port
    assert legacy["logging"]["environment"] == config.logging.environment
    assert legacy["logging"]["rotation"]["backup_count"] == config.logging.rotation_backup_count
