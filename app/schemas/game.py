"""Game models shared by the engine, the store and the wire.

Field names follow the client's camelCase payloads through aliases; models
accept either form on input and are dumped with ``by_alias=True``.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GameType(str, Enum):
    NIM = "Nim"


class GameStatus(str, Enum):
    WAITING = "WAITING"
    IN_PROGRESS = "IN_PROGRESS"
    OVER = "OVER"


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class NimMove(WireModel):
    # Any JSON value; the move validator rejects anything but an int in range
    num_objects: Any = Field(..., alias="numObjects")


class GameMove(WireModel):
    """A move as submitted by a player."""

    player_id: str = Field(..., alias="playerID", min_length=1)
    game_id: str = Field(..., alias="gameID", min_length=1)
    move: NimMove


class NimGameState(WireModel):
    status: GameStatus = GameStatus.WAITING
    player1: str | None = None
    player2: str | None = None
    moves: list[GameMove] = []
    remaining_objects: int = Field(..., alias="remainingObjects", ge=0)
    winners: list[str] = []


class GameInstance(WireModel):
    """Full game document: persisted as-is and broadcast on every update."""

    game_id: str = Field(..., alias="gameID")
    game_type: GameType = Field(GameType.NIM, alias="gameType")
    players: list[str] = []
    state: NimGameState

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# --- REST request bodies ---


class CreateGameRequest(WireModel):
    game_type: GameType = Field(..., alias="gameType")


class GameParticipationRequest(WireModel):
    """Body for joining or leaving a game."""

    game_id: str = Field(..., alias="gameID", min_length=1)
    player_id: str = Field(..., alias="playerID", min_length=1)
