"""Publish/subscribe capability used by the game and chat services.

Topics are plain strings:
    - user:{username} - every connection of one user
    - game:{game_id}  - everyone watching a game
    - chat:{chat_id}  - everyone with a chat open
"""

from typing import Protocol

from app.schemas.ws import WSServerMessage


class Broadcaster(Protocol):
    async def publish(self, topic: str, message: WSServerMessage) -> int:
        """Deliver a message to the topic's subscribers; return how many got it."""
        ...


def user_topic(username: str) -> str:
    return f"user:{username}"


def game_topic(game_id: str) -> str:
    return f"game:{game_id}"


def chat_topic(chat_id: str) -> str:
    return f"chat:{chat_id}"
