"""Domain models and helpers."""

from .errors import (
    CounterIncrementError,
    InvalidItemIndexError,
    InvalidStatusError,
    InvalidTransitionContextError,
    MissingReasonError,
    NotFoundError,
    NotificationError,
    OrderDeskError,
    RefundError,
    SessionCascadeError,
    SideEffectError,
    StoreWriteError,
    UpdateFailedError,
)
from .models import Actor, Business, LineItem, Order, OutboxEntry, UnavailableItem, UnavailableLine
from .order_status import (
    NEXT_ACTIONS,
    TRANSITIONS,
    ChecklistState,
    FulfillmentType,
    OrderStatus,
    SideEffect,
    parse_status,
    view_status,
)

__all__ = [
    "Actor",
    "Business",
    "ChecklistState",
    "CounterIncrementError",
    "FulfillmentType",
    "InvalidItemIndexError",
    "InvalidStatusError",
    "InvalidTransitionContextError",
    "LineItem",
    "MissingReasonError",
    "NEXT_ACTIONS",
    "NotFoundError",
    "NotificationError",
    "Order",
    "OrderDeskError",
    "OrderStatus",
    "OutboxEntry",
    "RefundError",
    "SessionCascadeError",
    "SideEffect",
    "SideEffectError",
    "StoreWriteError",
    "TRANSITIONS",
    "UnavailableItem",
    "UnavailableLine",
    "UpdateFailedError",
    "parse_status",
    "view_status",
]
