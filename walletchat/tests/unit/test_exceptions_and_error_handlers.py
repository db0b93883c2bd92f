"""
Tests for the exception hierarchy and HTTP error rendering.
"""

import json
from unittest.mock import Mock

import pytest

from walletchat.error_handlers import (
    _get_status_code_for_error,
    general_exception_handler,
    walletchat_exception_handler,
)
from walletchat.exceptions import (
    AuthenticationError,
    BadRequestError,
    ErrorContext,
    InvalidSignatureError,
    NonceCapacityError,
    NonceExpiredError,
    RateLimitError,
    WalletChatError,
    create_error_context,
)


@pytest.fixture
def request_mock():
    request = Mock()
    request.url.path = "/auth/nonce"
    request.method = "POST"
    return request


def test_authentication_errors_carry_reason():
    error = NonceExpiredError("expired")

    assert isinstance(error, AuthenticationError)
    assert error.details["reason"] == "nonce_expired"


def test_capacity_error_is_rate_limit():
    error = NonceCapacityError("full", retry_after=5)

    assert error.limit_type == "pending_nonces"
    assert error.details == {"limit_type": "pending_nonces", "retry_after": 5}


def test_validation_error_records_field():
    error = BadRequestError("bad chain", field="chainId", value=0)

    assert error.details["field"] == "chainId"
    assert error.value == 0


def test_to_dict():
    error = WalletChatError("boom", details={"k": "v"}, user_friendly="Something failed")

    result = error.to_dict()

    assert result["error_type"] == "WalletChatError"
    assert result["user_friendly"] == "Something failed"
    assert result["details"] == {"k": "v"}


def test_create_error_context_splits_metadata():
    context = create_error_context(address="0xabc", chat_id="room", attempt=2)

    assert isinstance(context, ErrorContext)
    assert context.address == "0xabc"
    assert context.chat_id == "room"
    assert context.metadata == {"attempt": 2}


@pytest.mark.parametrize(
    "error,status",
    [
        (InvalidSignatureError("bad"), 401),
        (BadRequestError("bad"), 400),
        (RateLimitError("slow down"), 429),
        (WalletChatError("boom"), 500),
    ],
)
def test_status_codes(error, status):
    assert _get_status_code_for_error(error) == status


@pytest.mark.asyncio
async def test_rate_limit_response_sets_retry_after(request_mock):
    response = await walletchat_exception_handler(
        request_mock, RateLimitError("slow down", limit_type="nonce_requests", retry_after=30)
    )

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "30"
    body = json.loads(response.body)
    assert body["error"]["type"] == "rate_limit_exceeded"
    assert body["error"]["details"]["limit_type"] == "nonce_requests"


@pytest.mark.asyncio
async def test_bad_request_response(request_mock):
    response = await walletchat_exception_handler(request_mock, BadRequestError("bad chain", field="chainId"))

    assert response.status_code == 400
    assert "Retry-After" not in response.headers
    assert json.loads(response.body)["error"]["type"] == "validation_error"


@pytest.mark.asyncio
async def test_general_exception_hides_details(request_mock):
    response = await general_exception_handler(request_mock, KeyError("secret"))

    assert response.status_code == 500
    body = json.loads(response.body)
    assert body["error"]["type"] == "internal_error"
    assert "secret" not in body["error"]["message"]
