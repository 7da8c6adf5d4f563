"""REST endpoints for direct-message chats."""

import logging

from fastapi import APIRouter, HTTPException, status

from app.schemas.chat import (
    AddParticipantRequest,
    Chat,
    ChatUpdatePayload,
    CreateChatRequest,
    MessageBody,
)
from app.schemas.ws import MessageType, WSServerMessage
from app.services.broadcast import chat_topic, user_topic
from app.services.chat import ChatResult, get_chat_service
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

ERROR_STATUS_MAP = {
    "CHAT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ALREADY_PARTICIPANT": status.HTTP_400_BAD_REQUEST,
    "INTERNAL_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _raise_for(error_code: str | None, detail: str) -> None:
    raise HTTPException(
        status_code=ERROR_STATUS_MAP.get(error_code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=detail,
    )


def _unwrap(result: ChatResult, context: str) -> Chat:
    if result.success and result.chat is not None:
        return result.chat
    _raise_for(result.error_code, f"{context}: {result.error_message or 'unknown error'}")


async def _publish_chat_update(topic: str, chat: Chat, update_type: str) -> None:
    await get_connection_manager().publish(
        topic,
        WSServerMessage(
            type=MessageType.CHAT_UPDATE,
            payload=ChatUpdatePayload(chat=chat.to_wire(), type=update_type).model_dump(),
        ),
    )


@router.post("/createChat", response_model=Chat)
async def create_chat(request: CreateChatRequest):
    """Create a chat and notify every participant."""
    logger.info("POST /chat/createChat - participants: %s", request.participants)

    result = await get_chat_service().save_chat(request.participants, request.messages)
    chat = _unwrap(result, "Error creating a chat")

    for username in chat.participants:
        await _publish_chat_update(user_topic(username), chat, "created")
    return chat


@router.post("/{chat_id}/addMessage", response_model=Chat)
async def add_message(chat_id: str, body: MessageBody):
    """Send a message to a chat; everyone with the chat open sees it."""
    logger.info("POST /chat/%s/addMessage - from: %s", chat_id, body.msg_from)
    service = get_chat_service()

    # Look the chat up first so a bad chat id stores no message
    _unwrap(await service.get_chat(chat_id), "Error adding a message")

    created = await service.create_message(body)
    if not created.success or created.message is None:
        _raise_for(created.error_code, f"Error adding a message: {created.error_message}")

    chat = _unwrap(
        await service.add_message_to_chat(chat_id, created.message.message_id),
        "Error adding a message",
    )
    await _publish_chat_update(chat_topic(chat_id), chat, "newMessage")
    return chat


@router.get("/getChatsByUser/{username}", response_model=list[Chat])
async def get_chats_by_user(username: str):
    logger.debug("GET /chat/getChatsByUser/%s", username)
    return await get_chat_service().get_chats_by_participants([username])


@router.get("/{chat_id}", response_model=Chat)
async def get_chat(chat_id: str):
    return _unwrap(await get_chat_service().get_chat(chat_id), "Error retrieving chat")


@router.post("/{chat_id}/addParticipant", response_model=Chat)
async def add_participant(chat_id: str, request: AddParticipantRequest):
    """Add a user to a chat; the new participant is told about it."""
    logger.info("POST /chat/%s/addParticipant - user: %s", chat_id, request.username)
    chat = _unwrap(
        await get_chat_service().add_participant_to_chat(chat_id, request.username),
        "Error adding participant",
    )
    await _publish_chat_update(user_topic(request.username), chat, "created")
    return chat
