"""
Tests for inbound WebSocket frame validation.
"""

import json

import pytest

from walletchat.realtime.message_validator import MessageValidationError, WebSocketMessageValidator


@pytest.fixture
def validator():
    return WebSocketMessageValidator()


class TestParseAndValidate:
    """Test cases for full frame validation."""

    def test_valid_frame(self, validator):
        frame = {"type": "dm:send", "data": {"to": "0x" + "ab" * 20, "body": "hi"}}

        assert validator.parse_and_validate(json.dumps(frame), "conn") == frame

    def test_invalid_json(self, validator):
        with pytest.raises(MessageValidationError) as exc_info:
            validator.parse_and_validate("{not json", "conn")

        assert exc_info.value.error_type == "json_parse_error"

    @pytest.mark.parametrize("payload", ["[]", '"ping"', "42", "null"])
    def test_non_object_frame(self, validator, payload):
        with pytest.raises(MessageValidationError) as exc_info:
            validator.parse_and_validate(payload, "conn")

        assert exc_info.value.error_type == "invalid_type"

    @pytest.mark.parametrize("frame", [{}, {"type": ""}, {"type": 3}, {"data": {}}])
    def test_missing_type(self, validator, frame):
        with pytest.raises(MessageValidationError) as exc_info:
            validator.parse_and_validate(json.dumps(frame), "conn")

        assert exc_info.value.error_type == "missing_required_field"

    def test_oversized_frame(self):
        validator = WebSocketMessageValidator(max_message_size=64)
        frame = json.dumps({"type": "dm:send", "data": {"body": "x" * 100}})

        with pytest.raises(MessageValidationError) as exc_info:
            validator.parse_and_validate(frame, "conn")

        assert exc_info.value.error_type == "size_limit_exceeded"

    def test_excessive_nesting(self):
        validator = WebSocketMessageValidator(max_json_depth=3)
        nested: dict = {"leaf": 1}
        for _ in range(5):
            nested = {"child": nested}

        with pytest.raises(MessageValidationError) as exc_info:
            validator.parse_and_validate(json.dumps({"type": "ping", "data": nested}), "conn")

        assert exc_info.value.error_type == "depth_limit_exceeded"

    def test_excessive_string_length(self, validator):
        frame = {"type": "dm:send", "data": {"body": "x" * (WebSocketMessageValidator.MAX_JSON_STRING_LENGTH + 1)}}

        with pytest.raises(MessageValidationError) as exc_info:
            validator.validate_json_structure(frame)

        assert exc_info.value.error_type == "string_length_exceeded"


def test_default_limits():
    validator = WebSocketMessageValidator()

    assert validator.max_message_size == 10 * 1024
    assert validator.max_json_depth == 10
