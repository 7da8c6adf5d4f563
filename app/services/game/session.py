"""Game session controller: load, validate, resolve, persist, broadcast."""

import asyncio
import logging
import weakref
from collections.abc import Callable
from dataclasses import dataclass

from app.schemas.game import GameInstance, GameMove, GameStatus, GameType
from app.schemas.ws import GameErrorPayload, GameUpdatePayload, MessageType, WSServerMessage
from app.services.broadcast import Broadcaster, game_topic, user_topic

from .engine import (
    LastObjectRule,
    ProcessResult,
    add_player,
    new_game,
    process_move,
    remove_player,
)
from .store import GameStore, GameStoreError

logger = logging.getLogger(__name__)


@dataclass
class SessionResult:
    """Result of a controller operation."""

    success: bool
    game: GameInstance | None = None
    error_code: str | None = None
    error_message: str | None = None
    # True when a failure was already published to the affected player
    notified: bool = False

    @classmethod
    def ok(cls, game: GameInstance) -> "SessionResult":
        return cls(success=True, game=game)

    @classmethod
    def failure(cls, code: str, message: str, notified: bool = False) -> "SessionResult":
        return cls(success=False, error_code=code, error_message=message, notified=notified)


def _not_found(game_id: str) -> SessionResult:
    return SessionResult.failure("GAME_NOT_FOUND", f"Game {game_id} not found")


def _persistence_failure() -> SessionResult:
    return SessionResult.failure("PERSISTENCE_ERROR", "Game storage is unavailable")


class GameSessionController:
    """Orchestrates game sessions over an injected store and broadcaster.

    Every operation that changes a game runs load-change-persist inside a lock
    keyed by game id, so two moves for the same game are applied one after the
    other and the second one is validated against the first one's result.
    Operations on different games never wait for each other.
    """

    def __init__(
        self,
        store: GameStore,
        broadcaster: Broadcaster,
        initial_objects: int = 21,
        last_object_rule: LastObjectRule = LastObjectRule.TAKER_WINS,
    ):
        self._store = store
        self._broadcaster = broadcaster
        self._initial_objects = initial_objects
        self._rule = LastObjectRule(last_object_rule)
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

        logger.info(
            "GameSessionController initialized: initial_objects=%d, rule=%s",
            initial_objects,
            self._rule.value,
        )

    def _lock_for(self, game_id: str) -> asyncio.Lock:
        lock = self._locks.get(game_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[game_id] = lock
        return lock

    async def _broadcast_update(self, game: GameInstance) -> None:
        message = WSServerMessage(
            type=MessageType.GAME_UPDATE,
            payload=GameUpdatePayload(game_state=game.to_wire()).model_dump(by_alias=True),
        )
        sent = await self._broadcaster.publish(game_topic(game.game_id), message)
        logger.debug("Game update for %s delivered to %d connections", game.game_id, sent)

    async def _broadcast_error(self, player_id: str, code: str, message: str) -> None:
        await self._broadcaster.publish(
            user_topic(player_id),
            WSServerMessage(
                type=MessageType.GAME_ERROR,
                payload=GameErrorPayload(player=player_id, error=message, error_code=code).model_dump(),
            ),
        )

    async def create_game(self, game_type: GameType) -> SessionResult:
        try:
            game = new_game(game_type, self._initial_objects)
        except ValueError as e:
            return SessionResult.failure("INVALID_GAME_TYPE", str(e))

        try:
            await self._store.put(game)
        except GameStoreError:
            return _persistence_failure()
        return SessionResult.ok(game)

    async def get_game(self, game_id: str) -> SessionResult:
        try:
            game = await self._store.get(game_id)
        except GameStoreError:
            return _persistence_failure()
        if game is None:
            return _not_found(game_id)
        return SessionResult.ok(game)

    async def list_games(
        self,
        game_type: GameType | None = None,
        status: GameStatus | None = None,
    ) -> list[GameInstance]:
        """List stored games, optionally filtered. Raises GameStoreError."""
        games: list[GameInstance] = []
        for game in await self._store.get_many(await self._store.list_ids()):
            if game_type is not None and game.game_type != game_type:
                continue
            if status is not None and game.state.status != status:
                continue
            games.append(game)
        return games

    async def _transition(
        self,
        game_id: str,
        change: Callable[[GameInstance], ProcessResult],
        description: str,
    ) -> SessionResult:
        """Apply a pure transition to a stored game under its lock."""
        async with self._lock_for(game_id):
            try:
                game = await self._store.get(game_id)
            except GameStoreError:
                return _persistence_failure()
            if game is None:
                logger.warning("%s: game %s not found", description, game_id)
                return _not_found(game_id)

            result: ProcessResult = change(game)
            if not result.success or result.game is None:
                return SessionResult.failure(
                    result.error_code or "PROCESSING_ERROR",
                    result.error_message or "Failed to update game",
                )

            if result.game == game:
                return SessionResult.ok(game)

            try:
                await self._store.put(result.game)
            except GameStoreError:
                return _persistence_failure()

        await self._broadcast_update(result.game)
        return SessionResult.ok(result.game)

    async def join_game(self, game_id: str, player_id: str) -> SessionResult:
        return await self._transition(
            game_id, lambda game: add_player(game, player_id), f"join by {player_id}"
        )

    async def leave_game(self, game_id: str, player_id: str) -> SessionResult:
        return await self._transition(
            game_id, lambda game: remove_player(game, player_id), f"leave by {player_id}"
        )

    async def submit_move(self, game_id: str, move: GameMove) -> SessionResult:
        """Apply one move to a game.

        Flow:
        1. Load the game (missing -> GAME_NOT_FOUND)
        2. Validate and resolve the move
        3. On rejection, tell only the submitting player; nothing is written
        4. On acceptance, persist the new game, then send it to the game topic
        """
        if move.game_id != game_id:
            return SessionResult.failure("GAME_MISMATCH", "Move is addressed to a different game")

        async with self._lock_for(game_id):
            try:
                game = await self._store.get(game_id)
            except GameStoreError:
                return _persistence_failure()
            if game is None:
                logger.warning("Move for unknown game %s from %s", game_id, move.player_id)
                return _not_found(game_id)

            result = process_move(game, move, self._rule)
            if result.success and result.game is not None:
                try:
                    await self._store.put(result.game)
                except GameStoreError:
                    return _persistence_failure()

        if not result.success or result.game is None:
            code = result.error_code or "INVALID_MOVE"
            message = result.error_message or "Invalid move"
            logger.info(
                "Move rejected: game=%s, player=%s, code=%s",
                game_id,
                move.player_id,
                code,
            )
            await self._broadcast_error(move.player_id, code, message)
            return SessionResult.failure(code, message, notified=True)

        await self._broadcast_update(result.game)
        return SessionResult.ok(result.game)


# Global controller instance (constructed in lifespan)
_game_controller: GameSessionController | None = None


def get_game_controller() -> GameSessionController:
    """Get the controller built at startup.

    Raises:
        RuntimeError: If the application has not set one up.
    """
    if _game_controller is None:
        raise RuntimeError("GameSessionController not initialized. Call set_game_controller first.")
    return _game_controller


def set_game_controller(controller: GameSessionController | None) -> None:
    """Install (or clear) the global controller."""
    global _game_controller
    _game_controller = controller
