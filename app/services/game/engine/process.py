"""Main entry point for game move processing.

- process_move(): validates a move and, if legal, resolves it
- Returns ProcessResult with the new game or the rejection
"""

import logging

from app.schemas.game import GameInstance, GameMove

from .resolution import LastObjectRule, resolve_move
from .validation import ProcessResult, validate_move

logger = logging.getLogger(__name__)


def process_move(
    game: GameInstance,
    move: GameMove,
    rule: LastObjectRule = LastObjectRule.TAKER_WINS,
) -> ProcessResult:
    """Validate and resolve a move.

    Pure: nothing is persisted or broadcast here, so a rejected move leaves
    no trace and resubmitting it against the same game yields the same error.

    Args:
        game: Current game.
        move: The submitted move.
        rule: Winner attribution when the pile is emptied.

    Returns:
        ProcessResult containing:
        - success: Whether the move was accepted
        - game: The new game (if accepted)
        - error_code/error_message: Rejection details (if not)

    Example:
        >>> result = process_move(game, move)
        >>> if result.success:
        ...     await store.put(result.game)
        ... else:
        ...     send_error(result.error_code, result.error_message)
    """
    logger.info(
        "Processing move: game=%s, player=%s, count=%s",
        game.game_id,
        move.player_id,
        move.move.num_objects,
    )

    validation = validate_move(game, move)
    if not validation.is_valid:
        return ProcessResult.failure(
            validation.error_code or "VALIDATION_ERROR",
            validation.error_message or "Invalid move",
        )

    new_game = resolve_move(game, move, rule)
    logger.info(
        "Move processed: game=%s, remaining=%d, status=%s",
        new_game.game_id,
        new_game.state.remaining_objects,
        new_game.state.status.value,
    )
    return ProcessResult.ok(new_game)
