"""Chat service for direct messages between users."""

import asyncio
import json
import logging
import uuid
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import ValidationError
from upstash_redis.asyncio import Redis

from app.schemas.chat import Chat, Message, MessageBody, MessageSender
from app.services.users import UserDirectory

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    """Result of a chat operation."""

    success: bool
    chat: Chat | None = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass
class MessageResult:
    """Result of create_message."""

    success: bool
    message: Message | None = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass
class _ChatMeta:
    chat_id: str
    participants: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def dumps(self) -> str:
        return json.dumps(
            {
                "chatID": self.chat_id,
                "participants": self.participants,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )

    @classmethod
    def loads(cls, raw: str) -> "_ChatMeta":
        data = json.loads(raw)
        return cls(
            chat_id=data["chatID"],
            participants=list(data.get("participants", [])),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _internal_error(message: str) -> ChatResult:
    return ChatResult(success=False, error_code="INTERNAL_ERROR", error_message=message)


class ChatService:
    """Service for managing direct-message chats.

    Redis keys:
        - chat:{chat_id} (String) - chat metadata: participants and timestamps
        - chat:{chat_id}:messages (List) - message ids in send order
        - message:{message_id} (String) - message document
        - chats:by_user:{username} (Set) - ids of the chats a user takes part in
    """

    def __init__(self, redis_client: Redis, users: UserDirectory):
        self._redis = redis_client
        self._users = users
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _redis_chat_key(self, chat_id: str) -> str:
        return f"chat:{chat_id}"

    def _redis_chat_messages_key(self, chat_id: str) -> str:
        return f"chat:{chat_id}:messages"

    def _redis_message_key(self, message_id: str) -> str:
        return f"message:{message_id}"

    def _redis_user_chats_key(self, username: str) -> str:
        return f"chats:by_user:{username}"

    def _lock_for(self, chat_id: str) -> asyncio.Lock:
        lock = self._locks.get(chat_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[chat_id] = lock
        return lock

    async def _store_message(self, body: MessageBody) -> Message:
        message = Message(
            message_id=uuid.uuid4().hex,
            msg=body.msg,
            msg_from=body.msg_from,
            msg_date_time=body.msg_date_time,
        )
        await self._redis.set(
            self._redis_message_key(message.message_id),
            message.model_dump_json(by_alias=True, exclude={"user"}),
        )
        return message

    async def _load_meta(self, chat_id: str) -> _ChatMeta | None:
        raw = await self._redis.get(self._redis_chat_key(chat_id))
        if raw is None:
            return None
        return _ChatMeta.loads(raw)

    async def _sender(self, username: str, cache: dict[str, MessageSender | None]) -> MessageSender | None:
        if username not in cache:
            row = await self._users.get_user(username)
            cache[username] = (
                MessageSender(user_id=str(row["id"]), username=row.get("username") or username)
                if row
                else None
            )
        return cache[username]

    async def _populate(self, meta: _ChatMeta) -> Chat:
        """Build a Chat with full message documents, and their authors, in send order."""
        message_ids = await self._redis.lrange(self._redis_chat_messages_key(meta.chat_id), 0, -1)
        messages: list[Message] = []
        senders: dict[str, MessageSender | None] = {}
        for message_id in message_ids or []:
            raw = await self._redis.get(self._redis_message_key(message_id))
            if raw is None:
                logger.warning("Message %s of chat %s is missing", message_id, meta.chat_id)
                continue
            try:
                message = Message.model_validate_json(raw)
            except ValidationError as e:
                logger.warning("Skipping corrupted message %s: %s", message_id, e)
                continue
            messages.append(
                message.model_copy(update={"user": await self._sender(message.msg_from, senders)})
            )

        return Chat(
            chat_id=meta.chat_id,
            participants=meta.participants,
            messages=messages,
            created_at=meta.created_at,
            updated_at=meta.updated_at,
        )

    async def save_chat(self, participants: list[str], messages: list[MessageBody]) -> ChatResult:
        """Create a chat, storing its opening messages as direct messages."""
        try:
            unique_participants = list(dict.fromkeys(participants))
            chat_id = uuid.uuid4().hex
            now = _now_iso()

            stored = [await self._store_message(body) for body in messages]
            if stored:
                await self._redis.rpush(
                    self._redis_chat_messages_key(chat_id),
                    *[m.message_id for m in stored],
                )

            meta = _ChatMeta(
                chat_id=chat_id,
                participants=unique_participants,
                created_at=now,
                updated_at=now,
            )
            await self._redis.set(self._redis_chat_key(chat_id), meta.dumps())
            for username in unique_participants:
                await self._redis.sadd(self._redis_user_chats_key(username), chat_id)

            logger.info(
                "Chat created: chat_id=%s, participants=%s, messages=%d",
                chat_id,
                unique_participants,
                len(stored),
            )
            return ChatResult(success=True, chat=await self._populate(meta))

        except Exception as e:
            logger.exception("Error saving chat for %s: %s", participants, e)
            return _internal_error("Error saving chat")

    async def create_message(self, body: MessageBody) -> MessageResult:
        """Store a direct message from a registered user."""
        if not await self._users.user_exists(body.msg_from):
            logger.warning("Message rejected: unknown sender %s", body.msg_from)
            return MessageResult(
                success=False,
                error_code="USER_NOT_FOUND",
                error_message="User not found",
            )

        try:
            message = await self._store_message(body)
        except Exception as e:
            logger.exception("Error creating message from %s: %s", body.msg_from, e)
            return MessageResult(
                success=False,
                error_code="INTERNAL_ERROR",
                error_message="Error creating message",
            )

        logger.debug("Message %s created by %s", message.message_id, body.msg_from)
        return MessageResult(success=True, message=message)

    async def add_message_to_chat(self, chat_id: str, message_id: str) -> ChatResult:
        """Append an existing message to a chat."""
        try:
            async with self._lock_for(chat_id):
                meta = await self._load_meta(chat_id)
                if meta is None:
                    return ChatResult(
                        success=False,
                        error_code="CHAT_NOT_FOUND",
                        error_message="Chat not found",
                    )

                await self._redis.rpush(self._redis_chat_messages_key(chat_id), message_id)
                meta.updated_at = _now_iso()
                await self._redis.set(self._redis_chat_key(chat_id), meta.dumps())

            logger.info("Message %s added to chat %s", message_id, chat_id)
            return ChatResult(success=True, chat=await self._populate(meta))

        except Exception as e:
            logger.exception("Error adding message %s to chat %s: %s", message_id, chat_id, e)
            return _internal_error("Error adding message to chat")

    async def get_chat(self, chat_id: str) -> ChatResult:
        try:
            meta = await self._load_meta(chat_id)
            if meta is None:
                return ChatResult(
                    success=False,
                    error_code="CHAT_NOT_FOUND",
                    error_message="Chat not found",
                )
            return ChatResult(success=True, chat=await self._populate(meta))

        except Exception as e:
            logger.exception("Error retrieving chat %s: %s", chat_id, e)
            return _internal_error("Error retrieving chat")

    async def get_chats_by_participants(self, usernames: list[str]) -> list[Chat]:
        """Return every chat that includes all of the given users.

        Any failure yields an empty list.
        """
        if not usernames:
            return []

        try:
            chat_ids: set[str] | None = None
            for username in usernames:
                members = set(await self._redis.smembers(self._redis_user_chats_key(username)) or [])
                chat_ids = members if chat_ids is None else chat_ids & members

            chats: list[Chat] = []
            for chat_id in sorted(chat_ids or set()):
                meta = await self._load_meta(chat_id)
                if meta is None or not set(usernames) <= set(meta.participants):
                    continue
                chats.append(await self._populate(meta))

            chats.sort(key=lambda c: c.updated_at, reverse=True)
            return chats

        except Exception as e:
            logger.warning("Error listing chats for %s: %s", usernames, e)
            return []

    async def add_participant_to_chat(self, chat_id: str, username: str) -> ChatResult:
        """Add a registered user to a chat they are not already in."""
        if not await self._users.user_exists(username):
            return ChatResult(
                success=False,
                error_code="USER_NOT_FOUND",
                error_message="User does not exist.",
            )

        try:
            async with self._lock_for(chat_id):
                meta = await self._load_meta(chat_id)
                if meta is None or username in meta.participants:
                    return ChatResult(
                        success=False,
                        error_code="CHAT_NOT_FOUND" if meta is None else "ALREADY_PARTICIPANT",
                        error_message="Chat not found or user already a participant.",
                    )

                meta.participants.append(username)
                meta.updated_at = _now_iso()
                await self._redis.set(self._redis_chat_key(chat_id), meta.dumps())
                await self._redis.sadd(self._redis_user_chats_key(username), chat_id)

            logger.info("User %s added to chat %s", username, chat_id)
            return ChatResult(success=True, chat=await self._populate(meta))

        except Exception as e:
            logger.exception("Error adding %s to chat %s: %s", username, chat_id, e)
            return _internal_error("Error adding participant to chat")


# Global service instance (constructed in lifespan)
_chat_service: ChatService | None = None


def get_chat_service() -> ChatService:
    """Get the ChatService built at startup.

    Raises:
        RuntimeError: If the application has not set one up.
    """
    if _chat_service is None:
        raise RuntimeError("ChatService not initialized. Call set_chat_service first.")
    return _chat_service


def set_chat_service(service: ChatService | None) -> None:
    """Install (or clear) the global ChatService."""
    global _chat_service
    _chat_service = service
