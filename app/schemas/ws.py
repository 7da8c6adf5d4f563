from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.game import GameMove


class MessageType(str, Enum):
    """WebSocket message types."""

    # Core
    PING = "ping"
    PONG = "pong"
    CONNECTED = "connected"
    ERROR = "error"

    # Game
    JOIN_GAME = "join_game"
    LEAVE_GAME = "leave_game"
    MAKE_MOVE = "make_move"
    GAME_STATE = "game_state"
    GAME_UPDATE = "game_update"
    GAME_ERROR = "game_error"

    # Chat
    JOIN_CHAT = "join_chat"
    LEAVE_CHAT = "leave_chat"
    CHAT_UPDATE = "chat_update"


class WSCloseCode:
    """WebSocket close codes (RFC 6455 + custom)."""

    NORMAL = 1000
    GOING_AWAY = 1001
    POLICY_VIOLATION = 1008
    INTERNAL_ERROR = 1011

    # Custom application codes (4000-4999)
    INVALID_USERNAME = 4001


class WSClientMessage(BaseModel):
    """Message sent from client to server."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


class WSServerMessage(BaseModel):
    """Message sent from server to client."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


# --- Payload schemas ---


class ConnectedPayload(BaseModel):
    """Payload for the 'connected' message."""

    connection_id: str
    user_id: str
    server_id: str


class PongPayload(BaseModel):
    """Payload for the 'pong' message."""

    server_time: datetime = Field(default_factory=lambda: datetime.now())


class ErrorPayload(BaseModel):
    """Payload for ERROR messages."""

    error_code: str
    message: str


class GameRefPayload(BaseModel):
    """Payload for join_game / leave_game from client."""

    model_config = ConfigDict(populate_by_name=True)

    game_id: str = Field(..., alias="gameID", min_length=1)


class MakeMovePayload(BaseModel):
    """Payload for make_move from client."""

    model_config = ConfigDict(populate_by_name=True)

    game_id: str = Field(..., alias="gameID", min_length=1)
    move: GameMove


class ChatRefPayload(BaseModel):
    """Payload for join_chat / leave_chat from client."""

    model_config = ConfigDict(populate_by_name=True)

    chat_id: str = Field(..., alias="chatID", min_length=1)


class GameUpdatePayload(BaseModel):
    """Full game document, sent to everyone watching the game."""

    model_config = ConfigDict(populate_by_name=True)

    game_state: dict[str, Any] = Field(..., alias="gameState")


class GameErrorPayload(BaseModel):
    """Move rejection, sent only to the player who submitted it."""

    player: str
    error: str
    error_code: str
