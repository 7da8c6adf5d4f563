"""Shared fixtures: in-test fakes for Redis, the user directory and the broadcaster."""

import os

# Settings are read at import time by app.main and the connection manager
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_API_KEY", "test-key")
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://example.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test-token")

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.routers import chat, games, ws  # noqa: E402
from app.schemas.game import (  # noqa: E402
    GameInstance,
    GameMove,
    GameStatus,
    NimGameState,
    NimMove,
)
from app.schemas.ws import WSServerMessage  # noqa: E402
from app.services.chat import ChatService, set_chat_service  # noqa: E402
from app.services.game import (  # noqa: E402
    GameSessionController,
    RedisGameStore,
    set_game_controller,
)
from app.services.websocket.manager import ConnectionManager, set_connection_manager  # noqa: E402

ALICE = "alice"
BOB = "bob"
CAROL = "carol"
GAME_ID = "game-1"


class FakeRedis:
    """Just enough of the async Upstash client for the stores under test."""

    def __init__(self):
        self.strings: dict[str, str] = {}
        self.sets: dict[str, set[str]] = {}
        self.lists: dict[str, list[str]] = {}
        self.fail = False
        self.writes = 0

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("redis unavailable")

    async def get(self, key: str) -> str | None:
        self._check()
        return self.strings.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._check()
        self.writes += 1
        self.strings[key] = value
        return True

    async def mget(self, *keys: str) -> list[str | None]:
        self._check()
        return [self.strings.get(key) for key in keys]

    async def sadd(self, key: str, *members: str) -> int:
        self._check()
        bucket = self.sets.setdefault(key, set())
        before = len(bucket)
        bucket.update(members)
        return len(bucket) - before

    async def smembers(self, key: str) -> list[str]:
        self._check()
        return list(self.sets.get(key, set()))

    async def srem(self, key: str, *members: str) -> int:
        self._check()
        bucket = self.sets.get(key, set())
        removed = bucket & set(members)
        bucket -= removed
        return len(removed)

    async def rpush(self, key: str, *elements: str) -> int:
        self._check()
        items = self.lists.setdefault(key, [])
        items.extend(elements)
        return len(items)

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        self._check()
        items = self.lists.get(key, [])
        return items[start:] if stop == -1 else items[start : stop + 1]


class FakeUserDirectory:
    def __init__(self, usernames: set[str]):
        self.usernames = usernames

    async def get_user(self, username: str) -> dict | None:
        if username not in self.usernames:
            return None
        return {"id": f"id-{username}", "username": username}

    async def user_exists(self, username: str) -> bool:
        return username in self.usernames


class RecordingBroadcaster:
    def __init__(self):
        self.published: list[tuple[str, WSServerMessage]] = []

    async def publish(self, topic: str, message: WSServerMessage) -> int:
        self.published.append((topic, message))
        return 1

    def topics(self) -> list[str]:
        return [topic for topic, _ in self.published]


def make_move(player_id: str, count: object, game_id: str = GAME_ID) -> GameMove:
    return GameMove(player_id=player_id, game_id=game_id, move=NimMove(num_objects=count))


def make_game(
    remaining: int = 21,
    players: list[str] | None = None,
    status: GameStatus = GameStatus.IN_PROGRESS,
    moves: list[GameMove] | None = None,
    game_id: str = GAME_ID,
) -> GameInstance:
    """Build a game; defaults to alice vs bob, alice to move."""
    if players is None:
        players = [ALICE, BOB]
    return GameInstance(
        game_id=game_id,
        players=players,
        state=NimGameState(
            status=status,
            player1=players[0] if players else None,
            player2=players[1] if len(players) > 1 else None,
            moves=moves or [],
            remaining_objects=remaining,
        ),
    )


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def game_store(fake_redis: FakeRedis) -> RedisGameStore:
    return RedisGameStore(fake_redis)


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def controller(game_store: RedisGameStore, broadcaster: RecordingBroadcaster) -> GameSessionController:
    return GameSessionController(store=game_store, broadcaster=broadcaster, initial_objects=21)


@pytest.fixture
def users() -> FakeUserDirectory:
    return FakeUserDirectory({ALICE, BOB, CAROL})


@pytest.fixture
def chat_service(fake_redis: FakeRedis, users: FakeUserDirectory) -> ChatService:
    return ChatService(fake_redis, users)


@pytest.fixture
def client(fake_redis: FakeRedis, users: FakeUserDirectory):
    """TestClient over the real routers with fakes behind the services.

    One client context keeps HTTP requests and WebSocket sessions on the same
    event loop, so publishes from a request reach open sockets.
    """
    manager = ConnectionManager(server_id="test")
    set_connection_manager(manager)
    set_game_controller(
        GameSessionController(store=RedisGameStore(fake_redis), broadcaster=manager, initial_objects=5)
    )
    set_chat_service(ChatService(fake_redis, users))

    api = FastAPI()
    api.include_router(games.router, prefix="/api/v1")
    api.include_router(chat.router, prefix="/api/v1")
    api.include_router(ws.router, prefix="/api/v1")

    with TestClient(api) as test_client:
        yield test_client

    set_chat_service(None)
    set_game_controller(None)
    set_connection_manager(None)
