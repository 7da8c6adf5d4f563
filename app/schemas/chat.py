"""Pydantic schemas for direct-message chats."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MessageBody(ChatModel):
    """A message as sent by a client (no id, no type)."""

    msg: str = Field(..., min_length=1)
    msg_from: str = Field(..., alias="msgFrom", min_length=1)
    msg_date_time: datetime = Field(default_factory=_utcnow, alias="msgDateTime")


class MessageSender(ChatModel):
    """Profile of a message author, attached when a chat is read."""

    user_id: str = Field(..., alias="_id")
    username: str


class Message(MessageBody):
    message_id: str = Field(..., alias="messageID")
    type: Literal["direct"] = "direct"
    # None when the author no longer has a profile
    user: MessageSender | None = None


class Chat(ChatModel):
    chat_id: str = Field(..., alias="chatID")
    participants: list[str]
    messages: list[Message] = []
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=_utcnow, alias="updatedAt")

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class CreateChatRequest(ChatModel):
    participants: list[str] = Field(..., min_length=1)
    messages: list[MessageBody] = []


class AddParticipantRequest(ChatModel):
    username: str = Field(..., min_length=1)


class ChatUpdatePayload(ChatModel):
    chat: dict
    type: Literal["created", "newMessage"]
