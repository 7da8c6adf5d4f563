"""Handler for PING messages."""

import logging

from app.schemas.ws import MessageType, PongPayload, WSServerMessage

from . import handler
from .base import HandlerContext, HandlerResult

logger = logging.getLogger(__name__)


@handler(MessageType.PING)
async def handle_ping(ctx: HandlerContext) -> HandlerResult:
    """Keep the connection alive; the cleanup task reaps silent ones."""
    await ctx.manager.heartbeat(ctx.connection_id)
    logger.debug("Heartbeat from %s (%s)", ctx.connection_id, ctx.user_id)

    pong = WSServerMessage(
        type=MessageType.PONG,
        request_id=ctx.message.request_id,
        payload=PongPayload().model_dump(),
    )
    return HandlerResult(success=True, response=pong)
