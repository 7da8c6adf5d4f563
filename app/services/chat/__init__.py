from .service import (
    ChatResult,
    ChatService,
    MessageResult,
    get_chat_service,
    set_chat_service,
)

__all__ = [
    "ChatResult",
    "ChatService",
    "MessageResult",
    "get_chat_service",
    "set_chat_service",
]
