"""
Pydantic-based configuration models for walletchat.

Type-safe, validated configuration using pydantic-settings BaseSettings.
Each group reads its own environment prefix; AppConfig aggregates them and
also reads a local .env file.
"""

import json
import os
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a string from the environment as JSON list or CSV."""
    if candidate is None:
        return []
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


def _default_cors_origins() -> list[str]:
    """Derive default CORS origins with environment taking precedence."""
    raw = os.getenv("CORS_ALLOW_ORIGINS") or os.getenv("CORS_ORIGINS") or os.getenv("ALLOWED_ORIGINS")
    parsed = _parse_env_list(raw) if raw is not None else []
    if parsed:
        return parsed
    return ["http://localhost:5173", "http://127.0.0.1:5173"]


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=10000, description="Server port")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1024 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1024-65535")
            raise ValueError("Port must be between 1024 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    log_base: str = Field(default="logs", description="Base log directory")
    rotation_max_size: str = Field(default="100MB", description="Log rotation max size")
    rotation_backup_count: int = Field(default=5, description="Number of backup log files")
    disable_logging: bool = Field(default=False, description="Disable file logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "e2e_test", "production"]
        if v not in valid_environments:
            logger.error("Invalid logging environment", environment=v, valid_environments=valid_environments)
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to the dict format expected by setup_enhanced_logging."""
        return {
            "environment": self.environment,
            "level": self.level,
            "log_base": self.log_base,
            "rotation": {
                "max_size": self.rotation_max_size,
                "backup_count": self.rotation_backup_count,
            },
            "disable_logging": self.disable_logging,
        }


class AuthConfig(BaseSettings):
    """Wallet sign-in configuration."""

    app_name: str = Field(default="EVM Realtime Chat", description="EIP-712 domain name")
    app_version: str = Field(default="1", description="EIP-712 domain version")
    statement: str = Field(
        default="Sign in to EVM Realtime Chat. This request will not trigger a blockchain transaction.",
        description="Human-readable statement the wallet owner attests to",
    )
    domain: str = Field(default="localhost:5173", description="Domain the sign-in message is bound to")
    uri: str = Field(default="http://localhost:5173", description="URI the sign-in message is bound to")
    nonce_ttl_seconds: int = Field(default=300, description="Lifetime of an issued nonce")
    max_pending_nonces: int = Field(default=10000, description="Upper bound on stored challenges")
    nonce_sweep_interval_seconds: float = Field(default=60.0, description="Expired-nonce sweep period")
    nonce_requests_per_minute: int = Field(default=20, description="Nonce requests allowed per client per minute")

    @field_validator("nonce_ttl_seconds", "max_pending_nonces", "nonce_requests_per_minute")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate integer limits are positive."""
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator("nonce_sweep_interval_seconds")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        """Validate the sweep interval is positive."""
        if v <= 0:
            raise ValueError("Sweep interval must be positive")
        return v

    model_config = {"env_prefix": "AUTH_", "case_sensitive": False, "extra": "ignore"}


class RealtimeConfig(BaseSettings):
    """WebSocket relay limits."""

    max_messages_per_minute: int = Field(default=100, description="Frames allowed per connection per minute")
    max_message_size: int = Field(default=10 * 1024, description="Maximum inbound frame size in bytes")
    max_dm_body_length: int = Field(default=4096, description="Maximum direct message body length")

    @field_validator("max_messages_per_minute", "max_message_size", "max_dm_body_length")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate limits are positive."""
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    model_config = {"env_prefix": "REALTIME_", "case_sensitive": False, "extra": "ignore"}


class CORSConfig(BaseSettings):
    """Cross-origin resource sharing configuration."""

    allow_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=_default_cors_origins,
        description="Origins permitted to access the API",
    )
    allow_credentials: bool = Field(default=True, description="Whether credentialed requests are accepted")
    allow_methods: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["GET", "POST", "OPTIONS"],
        description="HTTP methods permitted by CORS responses",
    )
    allow_headers: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["Content-Type", "Authorization", "X-Requested-With", "X-Correlation-ID"],
        description="Request headers permitted by CORS responses",
    )
    max_age: int = Field(default=600, description="Seconds browsers may cache CORS preflight responses")

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def parse_list(cls, v: Any) -> Any:
        """Accept CSV strings as well as JSON lists."""
        if isinstance(v, str):
            return _parse_env_list(v)
        return v

    model_config = {"env_prefix": "CORS_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    This is the main configuration class that aggregates all other configs.
    Access via get_config() singleton function.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to the dict format consumed by the logging setup."""
        return {
            "host": self.server.host,
            "port": self.server.port,
            "logging": self.logging.to_legacy_dict(),
            "auth": {
                "app_name": self.auth.app_name,
                "app_version": self.auth.app_version,
                "domain": self.auth.domain,
                "nonce_ttl_seconds": self.auth.nonce_ttl_seconds,
                "max_pending_nonces": self.auth.max_pending_nonces,
            },
            "cors": {
                "allow_origins": self.cors.allow_origins,
                "allow_credentials": self.cors.allow_credentials,
                "allow_methods": self.cors.allow_methods,
                "allow_headers": self.cors.allow_headers,
                "max_age": self.cors.max_age,
            },
        }
