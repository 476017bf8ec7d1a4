"""Service layer for the order desk."""

from .checklist import ChecklistTracker
from .notices import Notice, NoticeBoard, NoticeLevel
from .order_cache import OrderCache, window_start
from .projection import Board, NextAction, build_board, get_next_status_action
from .side_effects import EffectContext, SideEffectDispatcher
from .transitions import DeleteResult, TransitionEngine, TransitionResult

__all__ = [
    "Board",
    "ChecklistTracker",
    "DeleteResult",
    "EffectContext",
    "NextAction",
    "Notice",
    "NoticeBoard",
    "NoticeLevel",
    "OrderCache",
    "SideEffectDispatcher",
    "TransitionEngine",
    "TransitionResult",
    "build_board",
    "get_next_status_action",
    "window_start",
]
