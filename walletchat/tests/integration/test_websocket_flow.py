"""
End-to-end WebSocket tests: sign-in handshake, presence and direct messages.
"""

from urllib.parse import urlencode

import pytest
from eth_account import Account
from starlette.websockets import WebSocketDisconnect

from walletchat.realtime.connection_manager import POLICY_VIOLATION_CLOSE_CODE
from walletchat.tests.conftest import sign_typed_data

OFFLINE_ADDRESS = "0x" + "ef01" * 10


def receive_event(websocket, event_type):
    """Receive frames until one of the given type arrives."""
    for _ in range(10):
        frame = websocket.receive_json()
        if frame.get("event_type") == event_type or frame.get("type") == event_type:
            return frame
    raise AssertionError(f"{event_type} not received")


class TestHandshake:
    """Test cases for accepting and rejecting connections."""

    def test_signed_handshake_receives_snapshot(self, client, signed_ws_url):
        account = Account.create()

        with client.websocket_connect(signed_ws_url(account)) as websocket:
            snapshot = websocket.receive_json()

        assert snapshot["event_type"] == "presence:snapshot"
        assert snapshot["data"]["users"] == [{"address": account.address.lower(), "online": True}]

    def test_missing_credentials_are_rejected(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws"):
                pass

        assert exc_info.value.code == POLICY_VIOLATION_CLOSE_CODE

    def test_wrong_signer_is_rejected(self, client):
        owner, intruder = Account.create(), Account.create()
        body = client.post("/auth/nonce", json={"address": owner.address, "chainId": 1}).json()
        query = urlencode(
            {
                "address": owner.address,
                "signature": sign_typed_data(intruder, body["typedData"]),
                "nonce": body["nonce"],
            }
        )

        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(f"/ws?{query}"):
                pass

        assert exc_info.value.code == POLICY_VIOLATION_CLOSE_CODE

    def test_tampered_typed_data_is_rejected(self, client):
        account = Account.create()
        body = client.post("/auth/nonce", json={"address": account.address, "chainId": 1}).json()
        typed_data = body["typedData"]
        typed_data["message"]["uri"] = "https://evil.example"
        query = urlencode(
            {"address": account.address, "signature": sign_typed_data(account, typed_data), "nonce": body["nonce"]}
        )

        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(f"/ws?{query}"):
                pass

        assert exc_info.value.code == POLICY_VIOLATION_CLOSE_CODE

    def test_nonce_cannot_be_replayed(self, client, signed_ws_url):
        url = signed_ws_url(Account.create())

        with client.websocket_connect(url) as websocket:
            websocket.receive_json()

        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(url):
                pass

        assert exc_info.value.code == POLICY_VIOLATION_CLOSE_CODE


class TestPresenceAndMessages:
    """Test cases for presence broadcasts and direct messages."""

    def test_presence_and_direct_message_flow(self, client, signed_ws_url):
        alice, bob = Account.create(), Account.create()

        with client.websocket_connect(signed_ws_url(alice)) as alice_ws:
            receive_event(alice_ws, "presence:snapshot")

            with client.websocket_connect(signed_ws_url(bob)) as bob_ws:
                bob_snapshot = receive_event(bob_ws, "presence:snapshot")
                assert {user["address"] for user in bob_snapshot["data"]["users"]} == {
                    alice.address.lower(),
                    bob.address.lower(),
                }

                online = receive_event(alice_ws, "presence:online")
                assert online["data"] == {"address": bob.address.lower()}

                alice_ws.send_json({"type": "dm:send", "data": {"to": bob.address, "body": "gm"}})
                received = receive_event(bob_ws, "dm:receive")
                sent = receive_event(alice_ws, "dm:sent")
                assert received["data"]["from"] == alice.address.lower()
                assert received["data"]["body"] == "gm"
                assert sent["data"] == received["data"]

            offline = receive_event(alice_ws, "presence:offline")
            assert offline["data"] == {"address": bob.address.lower()}

    def test_message_to_offline_identity_is_echoed_only(self, client, signed_ws_url):
        with client.websocket_connect(signed_ws_url(Account.create())) as websocket:
            receive_event(websocket, "presence:snapshot")

            websocket.send_json({"type": "dm:send", "data": {"to": OFFLINE_ADDRESS, "body": "anyone?"}})
            sent = websocket.receive_json()
            websocket.send_json({"type": "ping"})
            pong = websocket.receive_json()

        assert sent["event_type"] == "dm:sent"
        assert sent["data"]["to"] == OFFLINE_ADDRESS
        assert pong["event_type"] == "pong"

    def test_second_device_does_not_duplicate_presence(self, client, signed_ws_url):
        observer, roamer = Account.create(), Account.create()

        with client.websocket_connect(signed_ws_url(observer)) as observer_ws:
            receive_event(observer_ws, "presence:snapshot")

            with client.websocket_connect(signed_ws_url(roamer)) as phone:
                receive_event(phone, "presence:snapshot")
                assert receive_event(observer_ws, "presence:online")["data"]["address"] == roamer.address.lower()

                with client.websocket_connect(signed_ws_url(roamer)) as laptop:
                    receive_event(laptop, "presence:snapshot")

                # Laptop gone, phone still connected: the next frame the
                # observer sees must be its own pong, not an offline event
                observer_ws.send_json({"type": "ping"})
                assert observer_ws.receive_json()["event_type"] == "pong"

            offline = observer_ws.receive_json()
            assert offline["event_type"] == "presence:offline"
            assert offline["data"] == {"address": roamer.address.lower()}

    def test_direct_message_reaches_every_device(self, client, signed_ws_url):
        sender, recipient = Account.create(), Account.create()

        with client.websocket_connect(signed_ws_url(recipient)) as phone:
            receive_event(phone, "presence:snapshot")
            with client.websocket_connect(signed_ws_url(recipient)) as laptop:
                receive_event(laptop, "presence:snapshot")
                with client.websocket_connect(signed_ws_url(sender)) as sender_ws:
                    receive_event(sender_ws, "presence:snapshot")

                    sender_ws.send_json({"type": "dm:send", "data": {"to": recipient.address, "body": "hello"}})

                    assert receive_event(phone, "dm:receive")["data"]["body"] == "hello"
                    assert receive_event(laptop, "dm:receive")["data"]["body"] == "hello"
                    assert receive_event(sender_ws, "dm:sent")["data"]["body"] == "hello"


class TestMalformedFrames:
    """Test cases for frames the server cannot process."""

    def test_invalid_json_gets_error_frame(self, client, signed_ws_url):
        with client.websocket_connect(signed_ws_url(Account.create())) as websocket:
            receive_event(websocket, "presence:snapshot")

            websocket.send_text("{not json")
            error = websocket.receive_json()

            websocket.send_json({"type": "ping"})
            pong = websocket.receive_json()

        assert error["type"] == "error"
        assert error["error_type"] == "invalid_format"
        assert error["details"] == {"error_type": "json_parse_error"}
        assert pong["event_type"] == "pong"

    def test_unknown_type_gets_error_frame(self, client, signed_ws_url):
        with client.websocket_connect(signed_ws_url(Account.create())) as websocket:
            receive_event(websocket, "presence:snapshot")

            websocket.send_json({"type": "teleport", "data": {}})
            error = websocket.receive_json()

        assert error["type"] == "error"
        assert error["error_type"] == "invalid_command"
