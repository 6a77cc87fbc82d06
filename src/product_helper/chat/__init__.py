# Client-side conversation state: working context, draft handling, chat session.

from product_helper.chat.handler import DraftHandler
from product_helper.chat.session import (
    ChatSession,
    DoubleTap,
    Transcript,
    TurnResult,
    TurnStatus,
)
from product_helper.chat.state import WorkingContext

__all__ = [
    "ChatSession",
    "DoubleTap",
    "DraftHandler",
    "Transcript",
    "TurnResult",
    "TurnStatus",
    "WorkingContext",
]
