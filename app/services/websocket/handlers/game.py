"""Handlers for JOIN_GAME, LEAVE_GAME and MAKE_MOVE messages."""

import logging

from app.schemas.ws import (
    GameErrorPayload,
    GameRefPayload,
    GameUpdatePayload,
    MakeMovePayload,
    MessageType,
    WSServerMessage,
)
from app.services.broadcast import game_topic
from app.services.game import get_game_controller

from . import handler
from .base import HandlerContext, HandlerResult, validate_payload

logger = logging.getLogger(__name__)


def game_error(ctx: HandlerContext, error_code: str, message: str) -> HandlerResult:
    """GAME_ERROR addressed to the requesting connection only."""
    return HandlerResult(
        success=False,
        response=WSServerMessage(
            type=MessageType.GAME_ERROR,
            request_id=ctx.message.request_id,
            payload=GameErrorPayload(
                player=ctx.user_id,
                error=message,
                error_code=error_code,
            ).model_dump(),
        ),
    )


@handler(MessageType.JOIN_GAME)
async def handle_join_game(ctx: HandlerContext) -> HandlerResult:
    """Subscribe the connection to a game's updates and send the current state.

    Taking a seat is a separate REST call; any connection may watch.
    """
    payload, error = validate_payload(
        ctx.message.payload,
        GameRefPayload,
        ctx.message.request_id,
        MessageType.ERROR,
    )
    if error:
        return error

    result = await get_game_controller().get_game(payload.game_id)
    if not result.success or result.game is None:
        return game_error(ctx, result.error_code or "GAME_NOT_FOUND", result.error_message or "Game not found")

    await ctx.manager.subscribe(ctx.connection_id, game_topic(payload.game_id))
    logger.info("Connection %s (%s) watching game %s", ctx.connection_id, ctx.user_id, payload.game_id)

    return HandlerResult(
        success=True,
        response=WSServerMessage(
            type=MessageType.GAME_STATE,
            request_id=ctx.message.request_id,
            payload=GameUpdatePayload(game_state=result.game.to_wire()).model_dump(by_alias=True),
        ),
    )


@handler(MessageType.LEAVE_GAME)
async def handle_leave_game(ctx: HandlerContext) -> HandlerResult:
    """Stop receiving a game's updates."""
    payload, error = validate_payload(
        ctx.message.payload,
        GameRefPayload,
        ctx.message.request_id,
        MessageType.ERROR,
    )
    if error:
        return error

    await ctx.manager.unsubscribe(ctx.connection_id, game_topic(payload.game_id))
    logger.info("Connection %s stopped watching game %s", ctx.connection_id, payload.game_id)
    return HandlerResult(success=True)


@handler(MessageType.MAKE_MOVE)
async def handle_make_move(ctx: HandlerContext) -> HandlerResult:
    """Submit a move through the session controller.

    The controller publishes the new state to the game topic, or the
    rejection to the player, so a processed move needs no direct response.
    """
    payload, error = validate_payload(
        ctx.message.payload,
        MakeMovePayload,
        ctx.message.request_id,
        MessageType.ERROR,
    )
    if error:
        return error

    if payload.move.player_id != ctx.user_id:
        logger.warning(
            "Connection %s (%s) tried to move as %s",
            ctx.connection_id,
            ctx.user_id,
            payload.move.player_id,
        )
        return game_error(ctx, "PLAYER_MISMATCH", "You can only move as yourself")

    result = await get_game_controller().submit_move(payload.game_id, payload.move)

    if not result.success and not result.notified:
        return game_error(
            ctx,
            result.error_code or "PROCESSING_ERROR",
            result.error_message or "Failed to process move",
        )

    return HandlerResult(success=result.success)
