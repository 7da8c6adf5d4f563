"""REST endpoints for games."""

import logging

from fastapi import APIRouter, HTTPException, Query, status

from app.schemas.game import (
    CreateGameRequest,
    GameInstance,
    GameMove,
    GameParticipationRequest,
    GameStatus,
    GameType,
)
from app.services.game import GameStoreError, SessionResult, get_game_controller

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])

ERROR_STATUS_MAP = {
    "GAME_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_GAME_TYPE": status.HTTP_400_BAD_REQUEST,
    "GAME_NOT_JOINABLE": status.HTTP_400_BAD_REQUEST,
    "NOT_IN_GAME": status.HTTP_400_BAD_REQUEST,
    "GAME_MISMATCH": status.HTTP_400_BAD_REQUEST,
    "GAME_NOT_ACTIVE": status.HTTP_400_BAD_REQUEST,
    "NOT_YOUR_TURN": status.HTTP_400_BAD_REQUEST,
    "INVALID_MOVE_COUNT": status.HTTP_400_BAD_REQUEST,
    "INSUFFICIENT_OBJECTS": status.HTTP_400_BAD_REQUEST,
    "PERSISTENCE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _unwrap(result: SessionResult) -> GameInstance:
    """Return the game or raise the HTTP error matching the failure."""
    if result.success and result.game is not None:
        return result.game

    http_status = ERROR_STATUS_MAP.get(result.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    raise HTTPException(
        status_code=http_status,
        detail=result.error_message or "Game operation failed",
    )


@router.post("/create", response_model=GameInstance, status_code=status.HTTP_201_CREATED)
async def create_game(request: CreateGameRequest):
    """Create a new game waiting for two players."""
    logger.info("POST /games/create - type: %s", request.game_type.value)
    return _unwrap(await get_game_controller().create_game(request.game_type))


@router.get("", response_model=list[GameInstance])
async def list_games(
    game_type: GameType | None = Query(None, alias="gameType"),
    game_status: GameStatus | None = Query(None, alias="status"),
):
    """List games, optionally filtered by type and status."""
    logger.debug("GET /games - type: %s, status: %s", game_type, game_status)
    try:
        return await get_game_controller().list_games(game_type=game_type, status=game_status)
    except GameStoreError as e:
        logger.error("Listing games failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Game storage is unavailable",
        )


@router.get("/{game_id}", response_model=GameInstance)
async def get_game(game_id: str):
    return _unwrap(await get_game_controller().get_game(game_id))


@router.post("/join", response_model=GameInstance)
async def join_game(request: GameParticipationRequest):
    """Take a seat in a waiting game. Rejoining your own game is a no-op."""
    logger.info("POST /games/join - player: %s, game: %s", request.player_id, request.game_id)
    return _unwrap(await get_game_controller().join_game(request.game_id, request.player_id))


@router.post("/leave", response_model=GameInstance)
async def leave_game(request: GameParticipationRequest):
    """Give up a seat in a waiting game; a started game is left unchanged."""
    logger.info("POST /games/leave - player: %s, game: %s", request.player_id, request.game_id)
    return _unwrap(await get_game_controller().leave_game(request.game_id, request.player_id))


@router.post("/{game_id}/move", response_model=GameInstance)
async def make_move(game_id: str, move: GameMove):
    """Submit a move over HTTP.

    Same path as the WebSocket make_move message: the update or the rejection
    is also published to subscribers.
    """
    logger.info("POST /games/%s/move - player: %s", game_id, move.player_id)
    return _unwrap(await get_game_controller().submit_move(game_id, move))
