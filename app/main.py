import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.dependencies.redis import close_redis_client, get_redis_client
from app.dependencies.supabase import close_async_supabase, init_async_supabase
from app.routers import chat, games, ws
from app.services.chat import ChatService, set_chat_service
from app.services.game import (
    GameSessionController,
    LastObjectRule,
    RedisGameStore,
    set_game_controller,
)
from app.services.users import UserDirectory
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting FakeStackOverflow realtime API")
    logger.debug("Debug mode: %s", settings.DEBUG)

    redis_client = get_redis_client()
    supabase = await init_async_supabase()

    # WebSocket connections double as the broadcaster for games and chats
    connection_manager = get_connection_manager()
    await connection_manager.start_cleanup_task()
    logger.info("WebSocket connection manager initialized")

    set_game_controller(
        GameSessionController(
            store=RedisGameStore(redis_client),
            broadcaster=connection_manager,
            initial_objects=settings.NIM_INITIAL_OBJECTS,
            last_object_rule=LastObjectRule(settings.NIM_LAST_OBJECT_RULE),
        )
    )
    set_chat_service(ChatService(redis_client, UserDirectory(supabase)))
    logger.info("Game and chat services initialized")

    yield

    logger.info("Shutting down FakeStackOverflow realtime API")
    set_chat_service(None)
    set_game_controller(None)
    await connection_manager.stop_cleanup_task()
    await connection_manager.close_all_connections()
    await close_async_supabase()
    await close_redis_client()
    logger.info("WebSocket, Supabase, and Redis cleanup complete")


app = FastAPI(
    title="FakeStackOverflow Realtime API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.debug("CORS configured with origins: %s", settings.CORS_ORIGINS)

app.include_router(games.router, prefix="/api/v1")
app.include_router(chat.router, prefix="/api/v1")
app.include_router(ws.router, prefix="/api/v1")
logger.debug("Routers registered: /api/v1/games, /api/v1/chat, /api/v1/ws")


@app.get("/")
def root():
    return {"message": "FakeStackOverflow Realtime API"}


@app.get("/health")
def health():
    return {"status": "healthy"}
