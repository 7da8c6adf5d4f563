"""Game creation and the join/leave transitions that precede play."""

import logging
import uuid

from app.schemas.game import GameInstance, GameStatus, GameType, NimGameState

from .turns import PLAYERS_PER_GAME
from .validation import ProcessResult

logger = logging.getLogger(__name__)


def new_game(game_type: GameType, initial_objects: int) -> GameInstance:
    """Create an empty game waiting for players."""
    if game_type != GameType.NIM:
        raise ValueError(f"Unsupported game type: {game_type}")
    if initial_objects < 1:
        raise ValueError("A game needs at least one object in the pile")

    game = GameInstance(
        game_id=uuid.uuid4().hex,
        game_type=game_type,
        players=[],
        state=NimGameState(remaining_objects=initial_objects),
    )
    logger.info("Created %s game %s with %d objects", game_type.value, game.game_id, initial_objects)
    return game


def _with_players(game: GameInstance, players: list[str], status: GameStatus) -> GameInstance:
    state = game.state.model_copy(
        update={
            "player1": players[0] if len(players) > 0 else None,
            "player2": players[1] if len(players) > 1 else None,
            "status": status,
        }
    )
    return game.model_copy(update={"players": players, "state": state})


def add_player(game: GameInstance, player_id: str) -> ProcessResult:
    """Seat a player in a waiting game.

    Rejoining by a seated player returns the game unchanged. The game starts
    as soon as both seats are filled.
    """
    if player_id in game.players:
        logger.debug("Player %s already seated in game %s", player_id, game.game_id)
        return ProcessResult.ok(game)

    if game.state.status != GameStatus.WAITING or len(game.players) >= PLAYERS_PER_GAME:
        logger.warning(
            "Join rejected: game=%s, status=%s, players=%d",
            game.game_id,
            game.state.status.value,
            len(game.players),
        )
        return ProcessResult.failure("GAME_NOT_JOINABLE", "Game is not accepting players")

    players = [*game.players, player_id]
    status = GameStatus.IN_PROGRESS if len(players) == PLAYERS_PER_GAME else GameStatus.WAITING
    logger.info("Player %s joined game %s (status=%s)", player_id, game.game_id, status.value)
    return ProcessResult.ok(_with_players(game, players, status))


def remove_player(game: GameInstance, player_id: str) -> ProcessResult:
    """Release a player's seat.

    Only a waiting game gives the seat back. Once play has started leaving is
    a session teardown and the game itself does not change.
    """
    if player_id not in game.players:
        return ProcessResult.failure("NOT_IN_GAME", "Player is not in this game")

    if game.state.status != GameStatus.WAITING:
        logger.info(
            "Player %s left game %s while %s; state kept",
            player_id,
            game.game_id,
            game.state.status.value,
        )
        return ProcessResult.ok(game)

    players = [p for p in game.players if p != player_id]
    logger.info("Player %s left waiting game %s", player_id, game.game_id)
    return ProcessResult.ok(_with_players(game, players, GameStatus.WAITING))
