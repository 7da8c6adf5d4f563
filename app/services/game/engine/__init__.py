"""Game engine module - pure functional Nim logic.

This module provides:
- Move validation with ordered, first-failure-wins checks
- Turn resolution (pile update, game completion, winner attribution)
- Join/leave transitions for the waiting room
- ProcessResult pattern for error handling

Usage:
    from app.services.game.engine import process_move

    result = process_move(game, move)

    if result.success:
        new_game = result.game  # persist, then broadcast
    else:
        print(f"Error: {result.error_code} - {result.error_message}")
"""

from .lobby import add_player, new_game, remove_player
from .process import process_move
from .resolution import LastObjectRule, resolve_move
from .turns import PLAYERS_PER_GAME, opponent_of, player_to_move
from .validation import (
    MAX_OBJECTS_PER_MOVE,
    MIN_OBJECTS_PER_MOVE,
    ProcessResult,
    ValidationResult,
    validate_move,
)

__all__ = [
    # Lobby
    "new_game",
    "add_player",
    "remove_player",
    # Processing
    "process_move",
    "resolve_move",
    "LastObjectRule",
    # Turns
    "PLAYERS_PER_GAME",
    "player_to_move",
    "opponent_of",
    # Validation
    "ProcessResult",
    "ValidationResult",
    "validate_move",
    "MIN_OBJECTS_PER_MOVE",
    "MAX_OBJECTS_PER_MOVE",
]
