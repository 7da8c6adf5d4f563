import asyncio
import contextlib
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import WebSocket

from app.config import get_settings
from app.schemas.ws import ConnectedPayload, MessageType, WSCloseCode, WSServerMessage
from app.services.broadcast import user_topic

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Connection:
    """One accepted socket and the topics it listens to."""

    connection_id: str
    websocket: WebSocket
    user_id: str
    connected_at: datetime = field(default_factory=_utcnow)
    last_heartbeat: datetime = field(default_factory=_utcnow)
    topics: set[str] = field(default_factory=set)

    def idle_seconds(self, now: datetime) -> float:
        return (now - self.last_heartbeat).total_seconds()


class ConnectionManager:
    """In-process topic broker over the WebSocket connections of this server.

    Implements the Broadcaster protocol used by the game and chat services.
    Every connection listens to ``user:{username}`` from the moment it is
    registered; game and chat topics are added on request.

    Delivery is best-effort and at most once: a socket that fails a send is
    dropped along with its subscriptions.
    """

    def __init__(self, server_id: str | None = None):
        self._server_id = server_id or os.getenv("HOSTNAME") or uuid.uuid4().hex[:8]
        self._settings = get_settings()
        self._connections: dict[str, Connection] = {}
        self._subscribers: dict[str, set[str]] = {}
        self._reaper: asyncio.Task | None = None
        logger.info("ConnectionManager ready on server %s", self._server_id)

    @property
    def server_id(self) -> str:
        return self._server_id

    # --- connection lifecycle ---

    async def connect(self, websocket: WebSocket, user_id: str) -> Connection:
        """Register an accepted socket and greet it with a 'connected' message."""
        connection = Connection(connection_id=str(uuid.uuid4()), websocket=websocket, user_id=user_id)
        self._connections[connection.connection_id] = connection
        await self.subscribe(connection.connection_id, user_topic(user_id))

        greeting = ConnectedPayload(
            connection_id=connection.connection_id,
            user_id=user_id,
            server_id=self._server_id,
        )
        await self.send_to_connection(
            connection.connection_id,
            WSServerMessage(type=MessageType.CONNECTED, payload=greeting.model_dump()),
        )
        logger.info("User %s connected as %s", user_id, connection.connection_id)
        return connection

    async def disconnect(self, connection_id: str) -> None:
        """Forget a connection and drop it from every topic. Unknown ids are ignored."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return
        for topic in connection.topics:
            self._remove_from_topic(connection_id, topic)
        connection.topics.clear()
        logger.info("User %s disconnected (%s)", connection.user_id, connection_id)

    async def heartbeat(self, connection_id: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is not None:
            connection.last_heartbeat = _utcnow()

    async def _close(self, connection: Connection) -> None:
        try:
            await connection.websocket.close(code=WSCloseCode.GOING_AWAY)
        except Exception as e:
            logger.debug("Closing %s raised: %s", connection.connection_id, e)
        await self.disconnect(connection.connection_id)

    async def cleanup_stale_connections(self) -> int:
        """Close connections silent for longer than WS_CONNECTION_TIMEOUT.

        Returns:
            Number of connections closed.
        """
        now = _utcnow()
        limit = self._settings.WS_CONNECTION_TIMEOUT
        stale = [c for c in self._connections.values() if c.idle_seconds(now) > limit]
        for connection in stale:
            logger.warning(
                "Reaping %s (%s): idle for %.1fs",
                connection.connection_id,
                connection.user_id,
                connection.idle_seconds(now),
            )
            await self._close(connection)
        return len(stale)

    async def start_cleanup_task(self) -> None:
        """Run cleanup_stale_connections every WS_HEARTBEAT_INTERVAL seconds."""
        if self._reaper is not None:
            return

        async def reap_forever() -> None:
            interval = self._settings.WS_HEARTBEAT_INTERVAL
            while True:
                await asyncio.sleep(interval)
                try:
                    await self.cleanup_stale_connections()
                except Exception as e:
                    logger.error("Stale connection sweep failed: %s", e)

        self._reaper = asyncio.create_task(reap_forever())
        logger.info("Stale connection sweep scheduled")

    async def stop_cleanup_task(self) -> None:
        if self._reaper is None:
            return
        self._reaper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._reaper
        self._reaper = None
        logger.info("Stale connection sweep stopped")

    async def close_all_connections(self) -> None:
        logger.info("Closing %d open connections", len(self._connections))
        for connection in list(self._connections.values()):
            await self._close(connection)

    # --- delivery ---

    async def send_to_connection(self, connection_id: str, message: WSServerMessage) -> bool:
        """Send to one connection; a failed send drops the connection.

        Returns:
            Whether the message was handed to the socket.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        try:
            await connection.websocket.send_json(message.model_dump(mode="json", exclude_none=True))
        except Exception as e:
            logger.warning("Dropping %s after failed send: %s", connection_id, e)
            await self.disconnect(connection_id)
            return False
        return True

    async def subscribe(self, connection_id: str, topic: str) -> bool:
        """Add a topic to a connection. Returns False for an unknown connection."""
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.warning("Cannot subscribe unknown connection %s to %s", connection_id, topic)
            return False
        connection.topics.add(topic)
        self._subscribers.setdefault(topic, set()).add(connection_id)
        logger.debug("%s subscribed to %s", connection_id, topic)
        return True

    async def unsubscribe(self, connection_id: str, topic: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is None:
            return
        connection.topics.discard(topic)
        self._remove_from_topic(connection_id, topic)

    def _remove_from_topic(self, connection_id: str, topic: str) -> None:
        subscribers = self._subscribers.get(topic)
        if subscribers is None:
            return
        subscribers.discard(connection_id)
        if not subscribers:
            del self._subscribers[topic]

    async def publish(self, topic: str, message: WSServerMessage) -> int:
        """Send a message to every connection subscribed to a topic.

        Returns:
            Number of connections that received it.
        """
        delivered = 0
        for connection_id in list(self._subscribers.get(topic, ())):
            delivered += await self.send_to_connection(connection_id, message)
        logger.debug("%s on %s reached %d connections", message.type.value, topic, delivered)
        return delivered

    # --- introspection ---

    def get_connection(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def get_topic_subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    def get_total_connection_count(self) -> int:
        return len(self._connections)


# Process-wide manager; the lifespan and the tests install their own
_connection_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Return the installed manager, creating a default one on first use."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager


def set_connection_manager(manager: ConnectionManager | None) -> None:
    global _connection_manager
    _connection_manager = manager
