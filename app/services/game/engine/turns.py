"""Turn ownership, derived from move-history parity."""

from app.schemas.game import GameInstance

PLAYERS_PER_GAME = 2


def player_to_move(game: GameInstance) -> str | None:
    """Return the participant whose turn it is, or None if the seat is empty."""
    index = len(game.state.moves) % PLAYERS_PER_GAME
    if index >= len(game.players):
        return None
    return game.players[index]


def opponent_of(game: GameInstance, player_id: str) -> str | None:
    for participant in game.players:
        if participant != player_id:
            return participant
    return None
