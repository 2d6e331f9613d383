import asyncio
import json
import logging

import pytest

from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

import reversi.server as server
from reversi.board import Piece
from reversi.game import Game
from reversi.server import ConnectionManager, app


class ScriptedWebSocket:
    """Fake websocket replaying ``actions`` and recording sent frames."""

    def __init__(self, actions=()):
        self.query_params = {}
        self.actions = list(actions)
        self.sent = []
        self.closed = False

    async def accept(self):
        pass

    async def close(self):
        self.closed = True

    async def send_text(self, text):
        self.sent.append(json.loads(text))

    async def receive_text(self):
        if self.actions:
            action = self.actions.pop(0)
            return action if isinstance(action, str) else json.dumps(action)
        raise WebSocketDisconnect()


def test_create_room_endpoint_rejects_get_and_returns_unique_ids():
    client = TestClient(app)

    first = client.post("/create")
    second = client.post("/create")

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["id"] != second.json()["id"]

    disallowed = client.get("/create")
    assert disallowed.status_code == 405


def test_create_room_with_invalid_size():
    client = TestClient(app)
    response = client.post("/create", params={"size": 5})
    assert response.status_code == 400


def test_get_game_state():
    client = TestClient(app)
    gid = client.post("/create", params={"size": 4}).json()["id"]
    response = client.get(f"/games/{gid}")
    assert response.status_code == 200
    data = response.json()
    assert data["board"] == ["....", ".WB.", ".BW.", "...."]
    assert data["current"] == "white"
    assert data["outcome"] is None
    assert {"x": 2, "y": 0, "flips": 1} in data["hints"]
    assert any(room["id"] == gid for room in client.get("/rooms").json()["rooms"])

    assert client.get("/games/does-not-exist").status_code == 404


def test_bot_moves(monkeypatch):
    async def run_test():
        manager = ConnectionManager()
        gid = manager.create_game()

        # Capture broadcast messages
        messages = []

        async def fake_broadcast(game_id, message):
            messages.append(message)

        monkeypatch.setattr(manager, "broadcast", fake_broadcast)

        # Seat the first-move bot as white and let it move (white starts)
        assert manager.add_bot(gid, "white", "First")
        await manager.bot_move(gid)

        game = manager.games[gid]
        assert game.board.get(4, 2) is Piece.WHITE
        assert game.current_turn() is Piece.BLACK
        assert messages and messages[0]["type"] == "update"
        assert messages[0]["last"] == [4, 2]

    asyncio.run(run_test())


def test_bots_play_each_other_to_the_end(monkeypatch):
    async def run_test():
        manager = ConnectionManager()
        gid = manager.create_game(4)

        async def fake_broadcast(game_id, message):
            pass

        monkeypatch.setattr(manager, "broadcast", fake_broadcast)
        assert manager.add_bot(gid, "black", "Random")
        assert manager.add_bot(gid, "white", "Random")
        await manager.bot_move(gid)
        assert manager.games[gid].is_over()

    asyncio.run(run_test())


def test_add_bot_rejects_taken_seat_and_unknown_bot():
    manager = ConnectionManager()
    gid = manager.create_game()
    assert not manager.add_bot(gid, "white", "Nobody")
    assert not manager.add_bot(gid, "green", "Random")
    assert not manager.add_bot("missing", "white", "Random")
    assert manager.add_bot(gid, "white", "Random")
    assert not manager.add_bot(gid, "white", "First")


def test_websocket_moves(monkeypatch):
    async def run_test():
        manager = ConnectionManager()
        gid = manager.create_game()
        monkeypatch.setattr(server, "manager", manager)

        ws = ScriptedWebSocket([
            {"action": "move", "x": 2, "y": 4, "color": "white"},
            {"action": "move", "x": 2, "y": 5, "color": "white"},
            {"action": "move", "x": 0, "y": 0, "color": "black"},
            {"action": "dance"},
        ])
        await server.websocket_endpoint(ws, gid)

        kinds = [frame["type"] for frame in ws.sent]
        assert kinds == ["init", "update", "error", "error", "error"]
        assert ws.sent[0]["available_bots"] == ["Random", "First"]
        assert ws.sent[1]["current"] == "black"
        assert ws.sent[2]["message"] == "Not your turn"
        assert ws.sent[3]["message"] == "Invalid move"
        assert ws not in manager.connections[gid]

    asyncio.run(run_test())


def test_websocket_unknown_game(monkeypatch):
    async def run_test():
        manager = ConnectionManager()
        monkeypatch.setattr(server, "manager", manager)
        ws = ScriptedWebSocket()
        await server.websocket_endpoint(ws, "404")
        assert ws.sent == [{"type": "error", "message": "Unknown game"}]
        assert ws.closed

    asyncio.run(run_test())


def test_websocket_load_and_restart(monkeypatch):
    async def run_test():
        manager = ConnectionManager()
        gid = manager.create_game(4)
        monkeypatch.setattr(server, "manager", manager)

        ws = ScriptedWebSocket([
            {"action": "load", "data": {"board": [".WWW", "WWWW", "WWWW", "WWWW"], "current": "black"}},
            {"action": "move", "x": 0, "y": 0, "color": "black"},
            {"action": "move", "x": 0, "y": 0, "color": "black"},
            {"action": "load", "data": {"board": ["..."]}},
            {"action": "restart"},
        ])
        await server.websocket_endpoint(ws, gid)

        frames = ws.sent
        assert frames[1]["type"] == "update" and frames[1]["current"] == "black"
        # The last empty cell is playable even though nothing is flipped.
        assert frames[2]["outcome"] == "white"
        assert frames[3] == {"type": "error", "message": "Game over"}
        assert frames[4] == {"type": "error", "message": "Cannot load"}
        assert frames[5]["board"] == ["....", ".WB.", ".BW.", "...."]
        assert frames[5]["outcome"] is None

    asyncio.run(run_test())


def test_restart_game_resets_board():
    manager = ConnectionManager()
    gid = manager.create_game()
    game = manager.games[gid]
    game.place(2, 4)
    assert manager.restart_game(gid)
    assert manager.games[gid].board == Game().board
    assert manager.games[gid].last_move is None
    assert manager.games[gid].current_turn() is Piece.WHITE
    assert not manager.restart_game("missing")


def test_websocket_malformed_frames(monkeypatch):
    async def run_test():
        manager = ConnectionManager()
        gid = manager.create_game(4)
        monkeypatch.setattr(server, "manager", manager)

        ws = ScriptedWebSocket([
            "not json",
            "[1, 2]",
            {"action": "load", "data": {"board": ["....", ".WB.", ".BW.", "...."], "turns": "x"}},
            {"action": "load", "data": "...."},
            {"action": "move", "x": 2, "y": 0, "color": "white"},
        ])
        await server.websocket_endpoint(ws, gid)

        assert ws.sent[1] == {"type": "error", "message": "Malformed message"}
        assert ws.sent[2] == {"type": "error", "message": "Malformed message"}
        assert ws.sent[3] == {"type": "error", "message": "Cannot load"}
        assert ws.sent[4] == {"type": "error", "message": "Cannot load"}
        assert ws.sent[5]["type"] == "update"
        assert ws.sent[5]["current"] == "black"
        assert ws not in manager.connections[gid]

    asyncio.run(run_test())


def test_websocket_removed_after_unexpected_error(monkeypatch):
    async def run_test():
        manager = ConnectionManager()
        gid = manager.create_game()
        monkeypatch.setattr(server, "manager", manager)

        def broken_place(x, y):
            raise RuntimeError("boom")

        monkeypatch.setattr(manager.games[gid], "place", broken_place)
        ws = ScriptedWebSocket([{"action": "move", "x": 2, "y": 4, "color": "white"}])
        with pytest.raises(RuntimeError):
            await server.websocket_endpoint(ws, gid)
        assert ws not in manager.connections[gid]

    asyncio.run(run_test())


def test_bots_follow_a_loaded_game(monkeypatch):
    async def run_test():
        manager = ConnectionManager()
        gid = manager.create_game(4)
        old = manager.games[gid]
        loaded = []

        async def load_on_first_broadcast(game_id, message):
            if not loaded:
                loaded.append(manager.load_game(game_id, Game(4).to_dict()))

        monkeypatch.setattr(manager, "broadcast", load_on_first_broadcast)
        assert manager.add_bot(gid, "black", "Random")
        assert manager.add_bot(gid, "white", "Random")
        await manager.bot_move(gid)

        assert loaded == [True]
        assert old.turns == 1
        assert not old.is_over()
        assert manager.games[gid] is not old
        assert manager.games[gid].is_over()

    asyncio.run(run_test())


def test_failing_bot_is_logged(monkeypatch, caplog):
    def broken_bot(game, rng):
        raise RuntimeError("bot crashed")

    monkeypatch.setitem(server.BOTS, "Broken", broken_bot)

    async def run_test():
        manager = ConnectionManager()
        gid = manager.create_game()
        assert manager.add_bot(gid, "white", "Broken")
        task = manager.schedule_bot_move(gid)
        assert manager.schedule_bot_move(gid) is task
        await task
        assert manager.bot_tasks[gid] is None

    with caplog.at_level(logging.ERROR, logger="reversi.server"):
        asyncio.run(run_test())
    assert "bot move failed in game" in caplog.text
