"""Integration tests for the websocket endpoint: MessagePack framing, routing and fan-out."""

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from bingo.logic.events import EventType
from bingo.messaging.types import SessionErrorCode, SessionMessageType
from bingo.server import websocket as ws_module
from bingo.tests.helpers.session import TERMS
from bingo.tests.helpers.websocket import operator_headers, recv_until, recv_ws, send_ws

CARD = ["term-00", "term-01", "term-02", "term-03"]


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def _register(ws, name: str) -> dict:
    """Register and submit the fixed card. Return the registered ack."""
    recv_until(ws, SessionMessageType.INITIAL_DATA)
    send_ws(ws, {"type": "register", "name": name})
    registered, _ = recv_until(ws, EventType.REGISTERED)
    send_ws(ws, {"type": "submit_card", "card": CARD})
    recv_until(ws, EventType.CARD_ASSIGNED)
    return registered


class TestConnect:
    def test_initial_data_on_connect(self, client):
        with client.websocket_connect("/ws") as ws:
            msg = recv_ws(ws)
            assert msg["type"] == SessionMessageType.INITIAL_DATA
            assert msg["terms"] == TERMS
            assert msg["announced_terms"] == []

    def test_ping_pong(self, client):
        with client.websocket_connect("/ws") as ws:
            recv_ws(ws)
            send_ws(ws, {"type": "ping"})
            assert recv_ws(ws) == {"type": "pong"}


class TestPlayerFlow:
    def test_register_and_generate_card(self, client):
        with client.websocket_connect("/ws") as ws:
            recv_ws(ws)
            send_ws(ws, {"type": "register", "name": "Alice"})
            registered, _ = recv_until(ws, EventType.REGISTERED)
            assert registered["name"] == "Alice"

            send_ws(ws, {"type": "generate_card"})
            assigned, _ = recv_until(ws, EventType.CARD_ASSIGNED)
            assert len(assigned["card"]) == 4

    def test_confirmed_mark_and_win(self, client):
        headers = operator_headers(client)
        with client.websocket_connect("/ws") as ws:
            _register(ws, "Alice")
            client.post("/api/admin/announce", json={"term": "term-02"}, headers=headers)
            announced, _ = recv_until(ws, EventType.TERM_ANNOUNCED)
            assert announced["announced_terms"] == ["term-02"]

            send_ws(ws, {"type": "mark", "term": "term-02"})
            update, _ = recv_until(ws, EventType.MARK_UPDATED)
            assert (update["cell"], update["state"], update["valid_clicks"]) == (2, "confirmed", 1)

            send_ws(ws, {"type": "declare_win"})
            win, _ = recv_until(ws, EventType.WIN_CONFIRMED)
            assert win["position"] == 1

            send_ws(ws, {"type": "mark", "term": "term-03"})
            error, _ = recv_until(ws, SessionMessageType.ERROR)
            assert error["code"] == "already_won"

    def test_invalid_win_rejected_to_sender(self, client):
        with client.websocket_connect("/ws") as ws:
            _register(ws, "Alice")
            send_ws(ws, {"type": "declare_win"})
            error, _ = recv_until(ws, SessionMessageType.ERROR)
            assert error["message"] == "Not a valid win"

    def test_win_notification_not_broadcast(self, client):
        headers = operator_headers(client)
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            _register(alice, "Alice")
            _register(bob, "Bob")
            client.post("/api/admin/announce", json={"term": "term-00"}, headers=headers)
            send_ws(alice, {"type": "mark", "term": "term-00"})
            recv_until(alice, EventType.MARK_UPDATED)
            send_ws(alice, {"type": "declare_win"})
            recv_until(alice, EventType.WIN_CONFIRMED)

            # bob sees the leaderboard with alice ranked first, never the private notice
            send_ws(bob, {"type": "ping"})
            _, seen = recv_until(bob, SessionMessageType.PONG)
            assert EventType.WIN_CONFIRMED not in [m["type"] for m in seen]
            boards = [m for m in seen if m["type"] == EventType.LEADERBOARD_UPDATED]
            assert boards[-1]["leaderboard"][0]["name"] == "Alice"
            assert boards[-1]["leaderboard"][0]["rank"] == 1

    def test_disconnected_player_stays_on_leaderboard(self, client):
        with client.websocket_connect("/ws") as alice:
            _register(alice, "Alice")

        rows = client.get("/api/leaderboard").json()["leaderboard"]
        assert [(row["name"], row["disconnected"]) for row in rows] == [("Alice", True)]
        assert client.get("/api/game-state").json()["player_count"] == 0


class TestMalformedInput:
    def test_invalid_message_type(self, client):
        with client.websocket_connect("/ws") as ws:
            recv_ws(ws)
            send_ws(ws, {"type": "teleport"})
            msg = recv_ws(ws)
            assert msg["type"] == SessionMessageType.ERROR
            assert msg["code"] == SessionErrorCode.INVALID_MESSAGE

    def test_undecodable_frame_answered(self, client):
        with client.websocket_connect("/ws") as ws:
            recv_ws(ws)
            ws.send_bytes(b"\xc1")
            msg = recv_ws(ws)
            assert msg["code"] == SessionErrorCode.INVALID_MESSAGE

    def test_repeated_decode_errors_disconnect(self, client):
        with client.websocket_connect("/ws") as ws:
            recv_ws(ws)
            for _ in range(ws_module._MAX_DECODE_ERRORS):
                ws.send_bytes(b"\xc1")
                recv_ws(ws)
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_bytes()
            assert exc_info.value.code == 4004

    def test_valid_frame_resets_strike_counter(self, client):
        with client.websocket_connect("/ws") as ws:
            recv_ws(ws)
            for _ in range(ws_module._MAX_DECODE_ERRORS - 1):
                ws.send_bytes(b"\xc1")
                recv_ws(ws)
            send_ws(ws, {"type": "ping"})
            assert recv_ws(ws) == {"type": "pong"}
            ws.send_bytes(b"\xc1")
            assert recv_ws(ws)["code"] == SessionErrorCode.INVALID_MESSAGE


class TestShutdown:
    def test_shutdown_cancels_pending_reverts(self, app, session_manager):
        with TestClient(app) as client, client.websocket_connect("/ws") as ws:
            _register(ws, "Alice")
            send_ws(ws, {"type": "mark", "term": "term-01"})
            update, _ = recv_until(ws, EventType.MARK_UPDATED)
            assert update["state"] == "provisional"
            assert session_manager.pending_revert_count == 1

        assert session_manager.pending_revert_count == 0
