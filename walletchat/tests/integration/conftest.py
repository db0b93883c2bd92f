"""
Fixtures for end-to-end tests against the ASGI application.
"""

from collections.abc import Callable, Generator
from urllib.parse import urlencode

import pytest
from eth_account.signers.local import LocalAccount
from fastapi.testclient import TestClient

from walletchat.app.factory import create_app
from walletchat.config.models import AppConfig
from walletchat.tests.conftest import sign_typed_data


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def client(app_config: AppConfig) -> Generator[TestClient, None, None]:
    """Client with the lifespan running; every WebSocket shares its event loop."""
    with TestClient(create_app(app_config)) as test_client:
        yield test_client


@pytest.fixture
def signed_ws_url(client: TestClient) -> Callable[[LocalAccount], str]:
    """Fetch a nonce for an account, sign its typed data and build the handshake URL."""

    def _url(account: LocalAccount) -> str:
        response = client.post("/auth/nonce", json={"address": account.address, "chainId": 1})
        assert response.status_code == 200
        body = response.json()
        signature = sign_typed_data(account, body["typedData"])
        query = urlencode({"address": account.address, "signature": signature, "nonce": body["nonce"]})
        return f"/ws?{query}"

    return _url
