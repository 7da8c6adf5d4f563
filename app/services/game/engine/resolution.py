"""Turn resolution: apply an already-validated move."""

import logging
from enum import Enum

from app.schemas.game import GameInstance, GameMove, GameStatus

from .turns import opponent_of

logger = logging.getLogger(__name__)


class LastObjectRule(str, Enum):
    """Who wins when the pile is emptied."""

    TAKER_WINS = "taker_wins"
    TAKER_LOSES = "taker_loses"


def resolve_move(
    game: GameInstance,
    move: GameMove,
    rule: LastObjectRule = LastObjectRule.TAKER_WINS,
) -> GameInstance:
    """Compute the game that results from a validated move.

    Appends the move and shrinks the pile. Emptying the pile ends the game and
    records a single winner according to ``rule``. The next player is never
    stored; it follows from the length of the move history.

    The input game is left untouched.
    """
    state = game.state
    remaining = state.remaining_objects - move.move.num_objects
    update: dict = {
        "moves": [*state.moves, move],
        "remaining_objects": remaining,
    }

    if remaining == 0:
        if rule == LastObjectRule.TAKER_WINS:
            winner = move.player_id
        else:
            winner = opponent_of(game, move.player_id) or move.player_id
        update["status"] = GameStatus.OVER
        update["winners"] = [winner]
        logger.info(
            "Game over: game=%s, last_mover=%s, winner=%s, rule=%s",
            game.game_id,
            move.player_id,
            winner,
            rule.value,
        )
    else:
        logger.debug(
            "Move applied: game=%s, player=%s, removed=%d, remaining=%d",
            game.game_id,
            move.player_id,
            move.move.num_objects,
            remaining,
        )

    new_state = state.model_copy(update=update)
    return game.model_copy(update={"state": new_state})
