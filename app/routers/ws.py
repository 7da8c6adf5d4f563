import json
import logging
import time
from collections import deque

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from app.schemas.ws import (
    ErrorPayload,
    MessageType,
    WSClientMessage,
    WSCloseCode,
    WSServerMessage,
)
from app.services.websocket.handlers import HandlerContext, dispatch
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

MAX_FRAME_BYTES = 64 * 1024
FRAMES_PER_WINDOW = 10
WINDOW_SECONDS = 1.0


class FrameRateLimiter:
    """Allows at most ``limit`` frames per connection in any ``window`` seconds."""

    def __init__(self, limit: int = FRAMES_PER_WINDOW, window: float = WINDOW_SECONDS):
        self.limit = limit
        self.window = window
        self._seen: dict[str, deque[float]] = {}

    def allow(self, connection_id: str) -> bool:
        now = time.monotonic()
        stamps = self._seen.setdefault(connection_id, deque())
        while stamps and stamps[0] <= now - self.window:
            stamps.popleft()
        if len(stamps) >= self.limit:
            return False
        stamps.append(now)
        return True

    def forget(self, connection_id: str) -> None:
        self._seen.pop(connection_id, None)


_limiter = FrameRateLimiter()


def _error(error_code: str, message: str) -> WSServerMessage:
    return WSServerMessage(
        type=MessageType.ERROR,
        payload=ErrorPayload(error_code=error_code, message=message).model_dump(),
    )


def _decode_frame(
    frame: dict, connection_id: str
) -> tuple[WSClientMessage | None, WSServerMessage | None]:
    """Turn a raw ASGI receive event into a client message.

    Returns (message, None) on success, (None, error) for a frame the client
    should hear about, and (None, None) for frames that are silently skipped.
    """
    text = frame.get("text")
    data = frame.get("bytes")
    size = len(text.encode("utf-8")) if text else len(data or b"")
    if size == 0:
        return None, None

    if size > MAX_FRAME_BYTES:
        logger.warning("Frame of %d bytes from %s exceeds %d", size, connection_id, MAX_FRAME_BYTES)
        return None, _error("MESSAGE_TOO_LARGE", f"Message exceeds maximum size of {MAX_FRAME_BYTES} bytes")

    if not _limiter.allow(connection_id):
        logger.warning("Rate limit exceeded for connection %s", connection_id)
        return None, _error("RATE_LIMITED", "Too many messages, please slow down")

    # Binary frames are accepted but carry nothing we understand
    if not text:
        return None, None

    try:
        return WSClientMessage.model_validate(json.loads(text)), None
    except json.JSONDecodeError:
        logger.warning("Invalid JSON from connection %s", connection_id)
        return None, _error("INVALID_JSON", "Invalid JSON format")
    except ValidationError as e:
        logger.warning("Invalid envelope from connection %s: %s", connection_id, e)
        return None, _error("INVALID_MESSAGE", "Invalid message format")


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    username: str = Query(..., description="Username the client acts as"),
):
    """WebSocket endpoint for real-time game and chat updates.

    Clients connect with: ws://host/api/v1/ws?username=alice

    On connection the server sends a 'connected' message. Clients then
    join_game / join_chat to receive updates for specific games and chats;
    game errors and chat invitations arrive on the user's own channel.
    """
    username = username.strip()
    if not username:
        logger.warning("WS connection rejected: empty username")
        await websocket.close(code=WSCloseCode.INVALID_USERNAME)
        return

    await websocket.accept()
    manager = get_connection_manager()
    connection = await manager.connect(websocket, username)
    conn_id = connection.connection_id
    logger.info("WS session %s opened for %s", conn_id, username)

    try:
        while websocket.client_state == WebSocketState.CONNECTED:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break

            message, error = _decode_frame(frame, conn_id)
            if error is not None:
                await manager.send_to_connection(conn_id, error)
            if message is None:
                continue

            result = await dispatch(
                HandlerContext(connection_id=conn_id, user_id=username, message=message, manager=manager)
            )
            if result is None:
                logger.debug("No handler for %s from %s", message.type.value, conn_id)
            elif result.response is not None:
                await manager.send_to_connection(conn_id, result.response)

    except WebSocketDisconnect as e:
        logger.info("WS session %s closed by client (code %s)", conn_id, e.code)
    except Exception as e:
        logger.error("WS session %s failed: %s", conn_id, e)
    finally:
        _limiter.forget(conn_id)
        await manager.disconnect(conn_id)
