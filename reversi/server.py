"""FastAPI WebSocket server for Reversi games."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Dict, Optional, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect

from .board import DEFAULT_SIZE
from .bots import BOTS
from .errors import InvalidConfigurationError, ReversiError
from .game import Game

logger = logging.getLogger(__name__)

app = FastAPI()


class ConnectionManager:
    """In-memory store of games, their connections and seated bots."""

    def __init__(self) -> None:
        self.games: Dict[str, Game] = {}
        # Every connection watching a game, players and spectators alike.
        self.connections: Dict[str, Set[WebSocket]] = {}
        # Bot seated per colour ("black"/"white"). Values are bot names.
        self.bots: Dict[str, Dict[str, Optional[str]]] = {}
        # Background bot loop per game, cleared when it finishes.
        self.bot_tasks: Dict[str, Optional[asyncio.Task]] = {}
        self._counter = 1

    def create_game(self, size: int = DEFAULT_SIZE) -> str:
        """Create a new game and return its id.

        Raises :class:`InvalidConfigurationError` for an unusable size.
        """
        game = Game(size)
        game_id = str(self._counter)
        self._counter += 1
        self.games[game_id] = game
        self.connections[game_id] = set()
        self.bots[game_id] = {"black": None, "white": None}
        logger.info("created game %s (%dx%d)", game_id, size, size)
        return game_id

    async def connect(self, game_id: str, websocket: WebSocket) -> bool:
        """Accept ``websocket`` and attach it to ``game_id`` if it exists."""
        await websocket.accept()
        if game_id not in self.games:
            return False
        self.connections[game_id].add(websocket)
        return True

    def disconnect(self, game_id: str, websocket: WebSocket) -> None:
        self.connections.get(game_id, set()).discard(websocket)

    async def broadcast(self, game_id: str, message: dict) -> None:
        for connection in list(self.connections.get(game_id, ())):
            await connection.send_text(json.dumps(message))

    def state_message(self, game_id: str) -> dict:
        game = self.games[game_id]
        message = {"type": "update", **game.to_dict()}
        message["hints"] = [
            {"x": x, "y": y, "flips": flips}
            for (x, y), flips in game.capture_counts().items()
        ]
        message["bots"] = self.bots[game_id]
        return message

    def add_bot(self, game_id: str, color: str, bot_name: str) -> bool:
        """Seat ``bot_name`` in the given ``color`` if the seat is free."""
        bots = self.bots.get(game_id)
        if bots is None or color not in bots or bot_name not in BOTS:
            return False
        if bots[color] is not None:
            return False
        bots[color] = bot_name
        return True

    def schedule_bot_move(self, game_id: str) -> Optional[asyncio.Task]:
        """Start :meth:`bot_move` in the background unless it is already running."""
        existing = self.bot_tasks.get(game_id)
        if existing and not existing.done():
            # The running loop re-checks the turn after every await.
            return existing
        task = asyncio.create_task(self.bot_move(game_id))
        self.bot_tasks[game_id] = task
        return task

    async def bot_move(self, game_id: str) -> None:
        """Have any seated bots play their moves until it's a human turn."""
        try:
            while True:
                # Re-read every time: a load may replace the game while we await.
                game = self.games.get(game_id)
                if game is None:
                    break
                current = game.current_turn()
                if current is None:
                    break
                bot_name = self.bots.get(game_id, {}).get(current.value)
                if bot_name is None:
                    break
                move = BOTS[bot_name](game, None)
                if move is None:
                    break
                game.place(*move)
                await self.broadcast(game_id, self.state_message(game_id))
                # Yield so clients can render each bot move separately.
                await asyncio.sleep(0)
        except Exception:
            logger.exception("bot move failed in game %s", game_id)
        finally:
            if self.bot_tasks.get(game_id) is asyncio.current_task():
                self.bot_tasks[game_id] = None

    def restart_game(self, game_id: str) -> bool:
        """Reset the board for ``game_id`` while keeping seated bots."""
        game = self.games.get(game_id)
        if game is None:
            return False
        game.reset()
        return True

    def load_game(self, game_id: str, data: Dict) -> bool:
        """Replace the game with a saved state. Returns ``False`` if invalid."""
        if game_id not in self.games:
            return False
        try:
            self.games[game_id] = Game.from_dict(data)
        except InvalidConfigurationError as exc:
            logger.warning("rejected saved state for game %s: %s", game_id, exc)
            return False
        return True


manager = ConnectionManager()


@app.get("/rooms")
async def list_rooms() -> dict:
    return {
        "rooms": [
            {
                "id": gid,
                "size": game.size,
                "current": game.current_turn().value if game.current_turn() else None,
            }
            for gid, game in manager.games.items()
        ]
    }


@app.post("/create")
async def create_room(size: int = DEFAULT_SIZE) -> dict:
    try:
        gid = manager.create_game(size)
    except InvalidConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"id": gid, "size": size}


@app.get("/games/{game_id}")
async def get_game(game_id: str) -> dict:
    if game_id not in manager.games:
        raise HTTPException(status_code=404, detail="Unknown game")
    return manager.state_message(game_id)


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_text(json.dumps({"type": "error", "message": message}))


@app.websocket("/ws/{game_id}")
async def websocket_endpoint(websocket: WebSocket, game_id: str):
    if not await manager.connect(game_id, websocket):
        await _send_error(websocket, "Unknown game")
        await websocket.close()
        return
    try:
        init = manager.state_message(game_id)
        init["type"] = "init"
        init["available_bots"] = list(BOTS.keys())
        await websocket.send_text(json.dumps(init))
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                await _send_error(websocket, "Malformed message")
                continue
            if not isinstance(msg, dict):
                await _send_error(websocket, "Malformed message")
                continue
            action = msg.get("action")
            game = manager.games[game_id]
            if action == "move":
                current = game.current_turn()
                if current is None:
                    await _send_error(websocket, "Game over")
                    continue
                if msg.get("color") != current.value:
                    await _send_error(websocket, "Not your turn")
                    continue
                try:
                    game.place(int(msg["x"]), int(msg["y"]))
                except (ReversiError, KeyError, TypeError, ValueError) as exc:
                    logger.warning("rejected move in game %s: %s", game_id, exc)
                    await _send_error(websocket, "Invalid move")
                    continue
                await manager.broadcast(game_id, manager.state_message(game_id))
                # Let the player see their move before the bot responds.
                manager.schedule_bot_move(game_id)
            elif action == "bot":
                if manager.add_bot(game_id, msg.get("color", ""), msg.get("bot", "")):
                    await manager.broadcast(game_id, manager.state_message(game_id))
                    manager.schedule_bot_move(game_id)
                else:
                    await _send_error(websocket, "Seat taken")
            elif action == "restart":
                manager.restart_game(game_id)
                await manager.broadcast(game_id, manager.state_message(game_id))
                manager.schedule_bot_move(game_id)
            elif action == "load":
                if manager.load_game(game_id, msg.get("data", {})):
                    await manager.broadcast(game_id, manager.state_message(game_id))
                    manager.schedule_bot_move(game_id)
                else:
                    await _send_error(websocket, "Cannot load")
            else:
                await _send_error(websocket, f"Unknown action {action!r}")
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(game_id, websocket)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
