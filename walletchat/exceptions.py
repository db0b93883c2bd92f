"""
Exception hierarchy for walletchat.

Every error raised by the server derives from WalletChatError, which carries
structured context and logs itself on construction. Authentication failures
are logged at warning level: they are expected under normal operation and are
never reported to the client beyond closing the connection.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Contextual information for error reporting and debugging."""

    address: str | None = None
    connection_id: str | None = None
    chat_id: str | None = None
    request_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "address": self.address,
            "connection_id": self.connection_id,
            "chat_id": self.chat_id,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class WalletChatError(Exception):
    """
    Base exception for all walletchat errors.

    Provides structured error handling with context and metadata
    for proper error categorization and debugging.
    """

    log_level = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        """
        Initialize the error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
            user_friendly: User-friendly error message
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now(UTC)

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with structured context."""
        log_method = getattr(logger, self.log_level, logger.error)
        log_method(
            "walletchat error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class ValidationError(WalletChatError):
    """Data validation errors."""

    log_level = "warning"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        field: str | None = None,
        value: Any | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.field = field
        self.value = value
        if field:
            self.details["field"] = field


class BadRequestError(ValidationError):
    """Malformed nonce request parameters."""


class AuthenticationError(WalletChatError):
    """Base class for every wallet sign-in failure."""

    log_level = "warning"
    reason = "authentication_failed"

    def __init__(self, message: str, context: ErrorContext | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.details["reason"] = self.reason


class MissingCredentialsError(AuthenticationError):
    """Handshake metadata lacks the address, signature or nonce."""

    reason = "missing_credentials"


class InvalidAddressError(AuthenticationError):
    """The claimed address is not a well-formed EVM address."""

    reason = "invalid_address"


class NonceNotFoundError(AuthenticationError):
    """No challenge was issued for the presented nonce."""

    reason = "nonce_not_found"


class NonceExpiredError(AuthenticationError):
    """The challenge expired before it was redeemed."""

    reason = "nonce_expired"


class NonceAlreadyConsumedError(AuthenticationError):
    """The challenge was already used by a successful sign-in."""

    reason = "nonce_already_consumed"


class IdentityMismatchError(AuthenticationError):
    """The recovered or challenge-bound address differs from the claimed one."""

    reason = "identity_mismatch"


class InvalidSignatureError(AuthenticationError):
    """The signature is malformed or no signer could be recovered."""

    reason = "invalid_signature"


class RateLimitError(WalletChatError):
    """Rate limiting errors."""

    log_level = "warning"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        limit_type: str = "unknown",
        retry_after: int | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.limit_type = limit_type
        self.retry_after = retry_after
        self.details["limit_type"] = limit_type
        if retry_after:
            self.details["retry_after"] = retry_after


class NonceCapacityError(RateLimitError):
    """The challenge store is full of unexpired challenges."""

    def __init__(self, message: str, context: ErrorContext | None = None, **kwargs):
        super().__init__(message, context, limit_type="pending_nonces", **kwargs)


def create_error_context(**kwargs) -> ErrorContext:
    """
    Create an error context with the given parameters.

    Unknown keyword arguments are stored in the context metadata.
    """
    known = {"address", "connection_id", "chat_id", "request_id"}
    context = ErrorContext(**{k: v for k, v in kwargs.items() if k in known})
    context.metadata.update({k: v for k, v in kwargs.items() if k not in known})
    return context
