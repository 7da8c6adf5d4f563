"""Validation layer for game moves and the ProcessResult pattern.

Separates validation from state transitions:
- validate_move() decides whether a move is legal for the current game
- ProcessResult replaces exceptions for control flow
"""

import logging
from dataclasses import dataclass

from app.schemas.game import GameInstance, GameMove, GameStatus

from .turns import player_to_move

logger = logging.getLogger(__name__)

MIN_OBJECTS_PER_MOVE = 1
MAX_OBJECTS_PER_MOVE = 3


@dataclass
class ProcessResult:
    """Result of processing a game transition.

    Gives explicit success/failure with error codes suitable for client
    localization.
    """

    game: GameInstance | None = None
    success: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, game: GameInstance) -> "ProcessResult":
        """Create a successful result carrying the new game."""
        return cls(game=game, success=True)

    @classmethod
    def failure(cls, code: str, message: str) -> "ProcessResult":
        """Create a failure result with error details."""
        return cls(
            game=None,
            success=False,
            error_code=code,
            error_message=message,
        )


@dataclass
class ValidationResult:
    """Result of validating a move before resolving it."""

    is_valid: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def error(cls, code: str, message: str) -> "ValidationResult":
        return cls(
            is_valid=False,
            error_code=code,
            error_message=message,
        )


def is_valid_count(count: object) -> bool:
    """True for an int (not a bool) between the per-move bounds."""
    if isinstance(count, bool) or not isinstance(count, int):
        return False
    return MIN_OBJECTS_PER_MOVE <= count <= MAX_OBJECTS_PER_MOVE


def validate_move(game: GameInstance, move: GameMove) -> ValidationResult:
    """Validate a move against the current game.

    Checks, in order (the first failure wins):
    - The game is in progress
    - It is the submitting player's turn
    - The object count is an integer between 1 and 3
    - The pile holds at least that many objects

    Args:
        game: Current game.
        move: The move to validate.

    Returns:
        ValidationResult indicating success or failure with error details.
    """
    state = game.state
    count = move.move.num_objects
    logger.debug(
        "Validating move: game=%s, player=%s, count=%s, status=%s",
        game.game_id,
        move.player_id,
        count,
        state.status.value,
    )

    if state.status != GameStatus.IN_PROGRESS:
        logger.warning(
            "Validation failed: GAME_NOT_ACTIVE, game=%s, status=%s",
            game.game_id,
            state.status.value,
        )
        return ValidationResult.error("GAME_NOT_ACTIVE", "game not active")

    expected = player_to_move(game)
    if move.player_id != expected:
        logger.warning(
            "Validation failed: NOT_YOUR_TURN, current=%s, attempted=%s",
            expected,
            move.player_id,
        )
        return ValidationResult.error("NOT_YOUR_TURN", "not your turn")

    if not is_valid_count(count):
        logger.warning("Validation failed: INVALID_MOVE_COUNT, requested=%r", count)
        return ValidationResult.error("INVALID_MOVE_COUNT", "invalid move count")

    if count > state.remaining_objects:
        logger.warning(
            "Validation failed: INSUFFICIENT_OBJECTS, requested=%d, remaining=%d",
            count,
            state.remaining_objects,
        )
        return ValidationResult.error("INSUFFICIENT_OBJECTS", "insufficient objects")

    logger.debug("Move validated: game=%s, player=%s", game.game_id, move.player_id)
    return ValidationResult.ok()
