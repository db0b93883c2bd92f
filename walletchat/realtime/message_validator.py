"""
WebSocket message validation for walletchat.

Checks raw inbound frames before they reach a handler: size limit, JSON
parsing, nesting depth, string lengths and the top-level envelope shape.
"""

import json
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class MessageValidationError(Exception):
    """Raised when message validation fails."""

    def __init__(self, message: str, error_type: str = "validation_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(self.message)


class WebSocketMessageValidator:
    """
    Validates WebSocket messages for security and correctness.

    Implements:
    - Message size limits (DoS protection)
    - JSON depth limits (prevent stack overflow)
    - Envelope validation: a JSON object with a string "type"
    """

    MAX_MESSAGE_SIZE = 10 * 1024  # 10KB maximum message size
    MAX_JSON_DEPTH = 10  # Maximum JSON nesting depth
    MAX_JSON_STRING_LENGTH = 10000  # Maximum string length in JSON

    def __init__(self, max_message_size: int | None = None, max_json_depth: int | None = None):
        """
        Initialize the message validator.

        Args:
            max_message_size: Maximum message size in bytes (default: 10KB)
            max_json_depth: Maximum JSON nesting depth (default: 10)
        """
        self.max_message_size = max_message_size or self.MAX_MESSAGE_SIZE
        self.max_json_depth = max_json_depth or self.MAX_JSON_DEPTH

    def validate_size(self, data: str) -> bool:
        """
        Validate message size.

        Raises:
            MessageValidationError: If message exceeds size limit
        """
        size = len(data.encode("utf-8"))
        if size > self.max_message_size:
            logger.warning("Message size exceeds limit", size=size, max_size=self.max_message_size)
            raise MessageValidationError(
                f"Message size {size} bytes exceeds maximum {self.max_message_size} bytes",
                error_type="size_limit_exceeded",
            )
        return True

    def validate_json_structure(self, message: Any) -> bool:
        """
        Validate JSON structure including depth limits.

        Raises:
            MessageValidationError: If JSON structure is invalid
        """
        depth = self._calculate_depth(message)
        if depth > self.max_json_depth:
            logger.warning("JSON depth exceeds limit", depth=depth, max_depth=self.max_json_depth)
            raise MessageValidationError(
                f"JSON depth {depth} exceeds maximum {self.max_json_depth}",
                error_type="depth_limit_exceeded",
            )

        self._validate_string_lengths(message)
        return True

    def _calculate_depth(self, obj: Any, current_depth: int = 0) -> int:
        if current_depth > self.max_json_depth:
            return current_depth

        if isinstance(obj, dict):
            if not obj:
                return current_depth
            return max(self._calculate_depth(v, current_depth + 1) for v in obj.values())
        if isinstance(obj, list):
            if not obj:
                return current_depth
            return max(self._calculate_depth(item, current_depth + 1) for item in obj)
        return current_depth

    def _validate_string_lengths(self, obj: Any) -> None:
        if isinstance(obj, dict):
            for key, value in obj.items():
                if isinstance(key, str) and len(key) > self.MAX_JSON_STRING_LENGTH:
                    raise MessageValidationError(
                        f"String key length {len(key)} exceeds maximum {self.MAX_JSON_STRING_LENGTH}",
                        error_type="string_length_exceeded",
                    )
                self._validate_string_lengths(value)
        elif isinstance(obj, list):
            for item in obj:
                self._validate_string_lengths(item)
        elif isinstance(obj, str) and len(obj) > self.MAX_JSON_STRING_LENGTH:
            raise MessageValidationError(
                f"String length {len(obj)} exceeds maximum {self.MAX_JSON_STRING_LENGTH}",
                error_type="string_length_exceeded",
            )

    def validate_envelope(self, message: Any) -> bool:
        """
        Validate the top-level frame shape.

        Raises:
            MessageValidationError: If the frame is not an object with a string "type"
        """
        if not isinstance(message, dict):
            raise MessageValidationError("Message must be a JSON object", error_type="invalid_type")
        if not isinstance(message.get("type"), str) or not message["type"]:
            raise MessageValidationError("Message must contain a 'type' field", error_type="missing_required_field")
        return True

    def parse_and_validate(self, data: str, connection_id: str) -> dict[str, Any]:
        """
        Parse and validate a complete WebSocket frame.

        Args:
            data: Raw message data as string
            connection_id: Connection ID for logging context

        Returns:
            dict: Parsed and validated message

        Raises:
            MessageValidationError: If validation fails at any stage
        """
        self.validate_size(data)

        try:
            message = json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON in message", connection_id=connection_id, error=str(e))
            raise MessageValidationError(f"Invalid JSON: {e}", error_type="json_parse_error") from e

        self.validate_json_structure(message)
        self.validate_envelope(message)

        logger.debug("Message validation successful", connection_id=connection_id, message_type=message["type"])
        return message
