"""Game service module.

Provides:
- Pure Nim rules (engine/)
- Redis-backed game persistence (store.py)
- The session controller tying rules, storage and broadcasts together (session.py)
"""

from .engine import LastObjectRule, ProcessResult, process_move
from .session import (
    GameSessionController,
    SessionResult,
    get_game_controller,
    set_game_controller,
)
from .store import GameStore, GameStoreError, RedisGameStore

__all__ = [
    # Engine
    "LastObjectRule",
    "ProcessResult",
    "process_move",
    # Storage
    "GameStore",
    "GameStoreError",
    "RedisGameStore",
    # Sessions
    "GameSessionController",
    "SessionResult",
    "get_game_controller",
    "set_game_controller",
]
