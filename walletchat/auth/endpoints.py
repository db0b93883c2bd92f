"""
Sign-in challenge endpoint for walletchat.

Issues a nonce bound to an address and chain, and returns the complete
EIP-712 document the wallet has to sign. The client needs nothing else from
the server before opening the WebSocket.
"""

import time
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..container import ApplicationContainer
from ..dependencies import get_container
from ..exceptions import BadRequestError, ErrorContext, RateLimitError
from ..structured_logging.enhanced_logging_config import get_logger
from .address import try_normalize_address
from .nonce_store import format_timestamp
from .typed_data import MAX_CHAIN_ID

logger = get_logger("auth.endpoints")

auth_router = APIRouter(prefix="/auth", tags=["auth"])


class NonceRequest(BaseModel):
    """Schema for nonce requests."""

    address: str
    chain_id: int = Field(alias="chainId", gt=0)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Canonicalize the address, rejecting malformed input."""
        canonical = try_normalize_address(v)
        if canonical is None:
            raise ValueError("Malformed wallet address")
        return canonical


class NonceResponse(BaseModel):
    """Schema for nonce responses."""

    nonce: str
    issued_at: str = Field(alias="issuedAt")
    expiration_time: str = Field(alias="expirationTime")
    typed_data: dict[str, Any] = Field(alias="typedData")

    model_config = ConfigDict(populate_by_name=True)


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@auth_router.post("/nonce", response_model=NonceResponse)
async def issue_nonce(
    nonce_request: NonceRequest,
    request: Request,
    container: ApplicationContainer = Depends(get_container),
) -> NonceResponse:
    """
    Issue a sign-in challenge for an address.

    Returns 400 for a malformed body and 429 when the client is over its
    request rate or the challenge store is full.
    """
    if nonce_request.chain_id > MAX_CHAIN_ID:
        raise BadRequestError(
            "chainId does not fit in uint256",
            context=ErrorContext(address=nonce_request.address),
            field="chainId",
            user_friendly="Unsupported chain id",
        )

    client_key = _client_key(request)
    if not container.rate_limiter.check_nonce_rate_limit(client_key):
        info = container.rate_limiter.get_nonce_rate_limit_info(client_key)
        raise RateLimitError(
            "Too many nonce requests",
            context=ErrorContext(address=nonce_request.address),
            limit_type="nonce_requests",
            retry_after=max(1, int(info["reset_time"] - time.time())),
        )

    auth_config = container.config.auth
    challenge = container.nonce_store.issue(
        nonce_request.address,
        nonce_request.chain_id,
        domain=auth_config.domain,
        uri=auth_config.uri,
    )

    logger.info("Issued nonce", address=challenge.address, chain_id=challenge.chain_id)
    return NonceResponse(
        nonce=challenge.nonce,
        issued_at=format_timestamp(challenge.issued_at),
        expiration_time=format_timestamp(challenge.expiration_time),
        typed_data=container.verifier.build_message(challenge),
    )
