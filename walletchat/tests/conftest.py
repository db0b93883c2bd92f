"""
Test configuration and fixtures for the walletchat test suite.

Environment defaults are set before any walletchat module reads configuration.
"""

import os

os.environ.setdefault("SERVER_HOST", "127.0.0.1")
os.environ.setdefault("SERVER_PORT", "54731")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_DISABLE_LOGGING", "true")

from collections.abc import Callable, Generator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402
from typing import Any  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
from eth_account import Account  # noqa: E402
from eth_account.messages import encode_typed_data  # noqa: E402
from eth_account.signers.local import LocalAccount  # noqa: E402

from walletchat.auth.nonce_store import NonceChallengeStore  # noqa: E402
from walletchat.auth.typed_data import TypedDataVerifier  # noqa: E402
from walletchat.config import reset_config  # noqa: E402
from walletchat.realtime.connection_manager import ConnectionManager  # noqa: E402
from walletchat.realtime.connection_models import HandshakeCredentials  # noqa: E402

TEST_DOMAIN = "localhost:5173"
TEST_URI = "http://localhost:5173"
TEST_STATEMENT = "Sign in to EVM Realtime Chat. This request will not trigger a blockchain transaction."


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def sign_typed_data(account: LocalAccount, full_message: dict[str, Any]) -> str:
    """Sign an EIP-712 message the way a browser wallet would, returning 0x-prefixed hex."""
    signed = account.sign_message(encode_typed_data(full_message=full_message))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture(autouse=True)
def fresh_config() -> Generator[None, None, None]:
    """Reset the configuration singleton around every test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def nonce_store(clock: FakeClock) -> NonceChallengeStore:
    return NonceChallengeStore(ttl_seconds=300, max_pending=100, clock=clock)


@pytest.fixture
def verifier() -> TypedDataVerifier:
    return TypedDataVerifier(app_name="EVM Realtime Chat", app_version="1", statement=TEST_STATEMENT)


@pytest.fixture
def make_account() -> Callable[[], LocalAccount]:
    return Account.create


@pytest.fixture
def connection_manager(nonce_store: NonceChallengeStore, verifier: TypedDataVerifier) -> ConnectionManager:
    return ConnectionManager(nonce_store=nonce_store, verifier=verifier)


@pytest.fixture
def make_credentials(
    nonce_store: NonceChallengeStore, verifier: TypedDataVerifier
) -> Callable[..., HandshakeCredentials]:
    """Issue a challenge for an account and return a correctly signed handshake."""

    def _make(account: LocalAccount, chain_id: int = 1) -> HandshakeCredentials:
        challenge = nonce_store.issue(account.address.lower(), chain_id, TEST_DOMAIN, TEST_URI)
        signature = sign_typed_data(account, verifier.build_message(challenge))
        return HandshakeCredentials(address=account.address, signature=signature, nonce=challenge.nonce)

    return _make


@pytest.fixture
def mock_websocket_factory() -> Callable[[], AsyncMock]:
    def _make() -> AsyncMock:
        websocket = AsyncMock()
        websocket.sent_events = lambda: [call.args[0] for call in websocket.send_json.call_args_list]
        return websocket

    return _make
