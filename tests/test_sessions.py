import pytest
from fastapi.testclient import TestClient

import config
from main import app
from stores import StoreUnavailable


@pytest.fixture()
def client(monkeypatch):
    monkeypatch.setattr(config, "STORE_BACKEND", "memory")
    with TestClient(app) as c:
        yield c


def _join(session, name):
    session.send_json({"type": "name", "name": name})
    assert session.receive_json() == {"type": "welcome", "name": name}
    state = session.receive_json()
    assert state["type"] == "state"
    return state


def test_welcome_then_state(client):
    with client.websocket_connect("/ws") as session:
        state = _join(session, "Alice")
    assert set(state["positions"]) == {"Alice"}
    assert state["scores"] == [["Alice", 0]]
    assert len(state["coins"]) == 100
    x, y = (int(v) for v in state["positions"]["Alice"].split(","))
    assert 0 <= x < 64 and 0 <= y < 64


def test_rejected_names_allow_another_try(client):
    with client.websocket_connect("/ws") as alice:
        _join(alice, "Alice")
        with client.websocket_connect("/ws") as other:
            other.send_json({"type": "name", "name": "Alice"})
            assert other.receive_json() == {"type": "badname", "name": "Alice", "reason": "NameTaken"}

            other.send_json({"type": "name", "name": "   "})
            assert other.receive_json() == {"type": "badname", "name": "", "reason": "InvalidName"}

            other.send_json({"type": "name", "name": "x" * 33})
            assert other.receive_json()["reason"] == "InvalidName"

            state = _join(other, "Bob")
            assert set(state["positions"]) == {"Alice", "Bob"}

            # Alice sees Bob arrive.
            assert alice.receive_json() == state


def test_moves_before_a_name_are_ignored(client):
    with client.websocket_connect("/ws") as session:
        session.send_json({"type": "move", "direction": "U"})
        _join(session, "Early")


def test_second_name_after_welcome_is_ignored(client):
    with client.websocket_connect("/ws") as session:
        _join(session, "Once")
        session.send_json({"type": "name", "name": "Twice"})
        session.send_json({"type": "move", "direction": "L"})
        state = session.receive_json()
    assert state["type"] == "state"
    assert set(state["positions"]) == {"Once"}


def test_move_broadcasts_new_position(client):
    with client.websocket_connect("/ws") as session:
        before = _join(session, "Mover")
        session.send_json({"type": "move", "direction": "D"})
        after = session.receive_json()
    assert after["type"] == "state"
    x0, y0 = (int(v) for v in before["positions"]["Mover"].split(","))
    x1, y1 = (int(v) for v in after["positions"]["Mover"].split(","))
    assert x1 == x0
    assert y1 == min(y0 + 1, 63)


def test_invalid_direction_gets_an_error_frame(client):
    with client.websocket_connect("/ws") as session:
        _join(session, "Lost")
        session.send_json({"type": "move", "direction": "north"})
        frame = session.receive_json()
    assert frame["type"] == "error"
    assert frame["reason"] == "InvalidDirection"


@pytest.mark.parametrize(
    "raw",
    ["not json", '{"type": "jump"}', '{"type": "move"}', '{"name": "x"}'],
)
def test_malformed_messages_get_an_error_frame(client, raw):
    with client.websocket_connect("/ws") as session:
        session.send_text(raw)
        assert session.receive_json() == {"type": "error", "reason": "BadMessage", "message": None}
        # The session stays usable.
        session.send_json({"type": "name", "name": "Recovered"})
        assert session.receive_json()["type"] == "welcome"


def test_state_endpoint(client):
    res = client.get("/api/state")
    assert res.status_code == 200
    body = res.json()
    assert body["positions"] == {}
    assert body["scores"] == []
    assert len(body["coins"]) == 100
    assert sorted(body["coins"].values()).count(10) == 5


async def _store_down(*args, **kwargs):
    raise StoreUnavailable("world store offline")


def test_store_outage_during_move_gets_an_error_frame(client, monkeypatch):
    with client.websocket_connect("/ws") as session:
        _join(session, "Stranded")
        monkeypatch.setattr(app.state.engine.store, "get_position", _store_down)
        session.send_json({"type": "move", "direction": "U"})
        frame = session.receive_json()
    assert frame["type"] == "error"
    assert frame["reason"] == "StoreUnavailable"


def test_store_outage_during_admission_gets_an_error_frame(client, monkeypatch):
    monkeypatch.setattr(app.state.engine.store, "admit_player", _store_down)
    with client.websocket_connect("/ws") as session:
        session.send_json({"type": "name", "name": "Early"})
        frame = session.receive_json()
    assert frame["type"] == "error"
    assert frame["reason"] == "StoreUnavailable"


def test_state_endpoint_reports_store_outage(client, monkeypatch):
    monkeypatch.setattr(app.state.engine.store, "all_player_positions", _store_down)
    res = client.get("/api/state")
    assert res.status_code == 503
    assert res.json() == {"detail": "World store unavailable"}
