"""Game persistence backed by Upstash Redis."""

import logging
from typing import Protocol

from pydantic import ValidationError
from upstash_redis.asyncio import Redis

from app.schemas.game import GameInstance

logger = logging.getLogger(__name__)


class GameStoreError(Exception):
    """The game backend could not be read or written."""


class GameStore(Protocol):
    async def get(self, game_id: str) -> GameInstance | None: ...

    async def get_many(self, game_ids: list[str]) -> list[GameInstance]: ...

    async def put(self, game: GameInstance) -> None: ...

    async def list_ids(self) -> list[str]: ...


class RedisGameStore:
    """Stores each game as one JSON document.

    Redis keys:
        - game:{game_id} (String) - the full game document, replaced on every write
        - games:index (Set) - ids of all known games
    """

    INDEX_KEY = "games:index"

    def __init__(self, redis_client: Redis):
        self._redis = redis_client

    def _redis_game_key(self, game_id: str) -> str:
        return f"game:{game_id}"

    async def get(self, game_id: str) -> GameInstance | None:
        try:
            raw = await self._redis.get(self._redis_game_key(game_id))
        except Exception as e:
            logger.error("Failed to read game %s from Redis: %s", game_id, e)
            raise GameStoreError(f"Failed to load game {game_id}") from e

        if raw is None:
            logger.debug("Game %s not found in Redis", game_id)
            return None

        try:
            return GameInstance.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Corrupted game document for %s: %s", game_id, e)
            raise GameStoreError(f"Game {game_id} is corrupted") from e

    async def get_many(self, game_ids: list[str]) -> list[GameInstance]:
        """Load several games with one MGET, in the order given.

        Ids whose document is gone are dropped from the index.
        """
        if not game_ids:
            return []
        try:
            raws = await self._redis.mget(*[self._redis_game_key(game_id) for game_id in game_ids])
        except Exception as e:
            logger.error("Failed to read %d games from Redis: %s", len(game_ids), e)
            raise GameStoreError("Failed to load games") from e

        games: list[GameInstance] = []
        dangling: list[str] = []
        for game_id, raw in zip(game_ids, raws):
            if raw is None:
                dangling.append(game_id)
                continue
            try:
                games.append(GameInstance.model_validate_json(raw))
            except ValidationError as e:
                logger.error("Corrupted game document for %s: %s", game_id, e)
                raise GameStoreError(f"Game {game_id} is corrupted") from e

        if dangling:
            logger.warning("Pruning %d games without documents from the index", len(dangling))
            try:
                await self._redis.srem(self.INDEX_KEY, *dangling)
            except Exception as e:
                logger.error("Failed to prune game index: %s", e)
                raise GameStoreError("Failed to prune game index") from e
        return games

    async def put(self, game: GameInstance) -> None:
        document = game.model_dump_json(by_alias=True)
        try:
            await self._redis.set(self._redis_game_key(game.game_id), document)
            await self._redis.sadd(self.INDEX_KEY, game.game_id)
        except Exception as e:
            logger.error("Failed to write game %s to Redis: %s", game.game_id, e)
            raise GameStoreError(f"Failed to save game {game.game_id}") from e
        logger.debug("Game %s saved (%d bytes)", game.game_id, len(document))

    async def list_ids(self) -> list[str]:
        try:
            members = await self._redis.smembers(self.INDEX_KEY)
        except Exception as e:
            logger.error("Failed to read game index from Redis: %s", e)
            raise GameStoreError("Failed to list games") from e
        return sorted(members or [])
