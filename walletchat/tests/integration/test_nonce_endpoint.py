"""
Tests for the HTTP surface: nonce issuance and health.
"""

import pytest
from eth_account import Account
from fastapi.testclient import TestClient

from walletchat.app.factory import create_app
from walletchat.config.models import AppConfig, AuthConfig


def test_issue_nonce_returns_signable_document(client):
    account = Account.create()

    response = client.post("/auth/nonce", json={"address": account.address, "chainId": 8453})

    assert response.status_code == 200
    body = response.json()
    assert len(body["nonce"]) == 32
    assert body["issuedAt"].endswith("Z")
    assert body["expirationTime"].endswith("Z")
    typed_data = body["typedData"]
    assert typed_data["primaryType"] == "SignIn"
    assert typed_data["domain"]["chainId"] == 8453
    assert typed_data["message"]["address"] == account.address.lower()
    assert typed_data["message"]["nonce"] == body["nonce"]
    assert typed_data["message"]["issuedAt"] == body["issuedAt"]


def test_each_request_gets_a_fresh_nonce(client):
    address = Account.create().address

    first = client.post("/auth/nonce", json={"address": address, "chainId": 1}).json()["nonce"]
    second = client.post("/auth/nonce", json={"address": address, "chainId": 1}).json()["nonce"]

    assert first != second


@pytest.mark.parametrize(
    "payload",
    [
        {"address": "0x1234", "chainId": 1},
        {"address": "not-an-address", "chainId": 1},
        {"address": "0x" + "ab" * 20, "chainId": 0},
        {"address": "0x" + "ab" * 20, "chainId": -1},
        {"address": "0x" + "ab" * 20},
        {"chainId": 1},
    ],
)
def test_malformed_requests_are_rejected(client, payload):
    response = client.post("/auth/nonce", json=payload)

    assert response.status_code == 400
    assert response.json()["error"]["type"] == "invalid_input"


def test_nonce_requests_are_rate_limited():
    config = AppConfig(auth=AuthConfig(nonce_requests_per_minute=2))
    address = Account.create().address

    with TestClient(create_app(config)) as client:
        statuses = [client.post("/auth/nonce", json={"address": address, "chainId": 1}).status_code for _ in range(3)]
        response = client.post("/auth/nonce", json={"address": address, "chainId": 1})

    assert statuses == [200, 200, 429]
    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) >= 1
    assert response.json()["error"]["details"]["limit_type"] == "nonce_requests"


def test_correlation_id_is_echoed(client):
    response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})

    assert response.headers["X-Correlation-ID"] == "abc-123"


def test_health_reports_stats(client):
    client.post("/auth/nonce", json={"address": Account.create().address, "chainId": 1})

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["stats"]["connections"] == 0
    assert body["stats"]["pending_nonces"] == 1


def test_chain_id_beyond_uint256_is_rejected(client):
    response = client.post("/auth/nonce", json={"address": Account.create().address, "chainId": 2**256})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["type"] == "validation_error"
    assert error["details"]["field"] == "chainId"
    assert client.get("/health").json()["stats"]["pending_nonces"] == 0
