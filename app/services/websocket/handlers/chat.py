"""Handlers for JOIN_CHAT and LEAVE_CHAT messages."""

import logging

from app.schemas.ws import ChatRefPayload, MessageType
from app.services.broadcast import chat_topic
from app.services.chat import get_chat_service

from . import handler
from .base import HandlerContext, HandlerResult, error_response, validate_payload

logger = logging.getLogger(__name__)


@handler(MessageType.JOIN_CHAT)
async def handle_join_chat(ctx: HandlerContext) -> HandlerResult:
    """Subscribe to new-message updates of a chat the user takes part in."""
    payload, error = validate_payload(
        ctx.message.payload,
        ChatRefPayload,
        ctx.message.request_id,
        MessageType.ERROR,
    )
    if error:
        return error

    result = await get_chat_service().get_chat(payload.chat_id)
    if not result.success or result.chat is None:
        return error_response(
            error_code=result.error_code or "CHAT_NOT_FOUND",
            message=result.error_message or "Chat not found",
            error_type=MessageType.ERROR,
            request_id=ctx.message.request_id,
        )

    if ctx.user_id not in result.chat.participants:
        return error_response(
            error_code="NOT_A_PARTICIPANT",
            message="You are not a participant of this chat",
            error_type=MessageType.ERROR,
            request_id=ctx.message.request_id,
        )

    await ctx.manager.subscribe(ctx.connection_id, chat_topic(payload.chat_id))
    logger.info("Connection %s (%s) joined chat %s", ctx.connection_id, ctx.user_id, payload.chat_id)
    return HandlerResult(success=True)


@handler(MessageType.LEAVE_CHAT)
async def handle_leave_chat(ctx: HandlerContext) -> HandlerResult:
    payload, error = validate_payload(
        ctx.message.payload,
        ChatRefPayload,
        ctx.message.request_id,
        MessageType.ERROR,
    )
    if error:
        return error

    await ctx.manager.unsubscribe(ctx.connection_id, chat_topic(payload.chat_id))
    logger.debug("Connection %s left chat %s", ctx.connection_id, payload.chat_id)
    return HandlerResult(success=True)
