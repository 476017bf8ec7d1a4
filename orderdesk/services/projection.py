"""Read-side views over the live order set.

Everything here is a pure function of the orders passed in; nothing is
written back and an empty list is a valid input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from ..domain.checklist import checklist_state, count_checked
from ..domain.models import Order
from ..domain.order_status import (
    NEXT_ACTIONS,
    FulfillmentType,
    OrderStatus,
    view_status,
)

BUCKETS: Dict[str, tuple[OrderStatus, ...]] = {
    "pending": (OrderStatus.PENDING, OrderStatus.ACCEPTED),
    "preparing": (OrderStatus.PREPARING,),
    "ready": (OrderStatus.READY,),
    "onTheWay": (OrderStatus.ON_THE_WAY,),
    "completed": (OrderStatus.DELIVERED, OrderStatus.SERVED),
}


@dataclass
class NextAction:
    action: str
    target: OrderStatus
    has_unavailable: bool = False


@dataclass
class BoardStats:
    total: int = 0
    pending: int = 0
    preparing: int = 0
    ready: int = 0
    on_the_way: int = 0
    completed: int = 0
    cancelled: int = 0
    revenue: float = 0.0
    average_order_value: float = 0.0


@dataclass
class Board:
    buckets: Dict[str, List[Order]] = field(
        default_factory=lambda: {name: [] for name in BUCKETS}
    )
    stats: BoardStats = field(default_factory=BoardStats)


def _bucket_of(status: OrderStatus | str) -> str | None:
    for name, members in BUCKETS.items():
        if status in [m.value for m in members]:
            return name
    return None


def filter_orders(
    orders: Iterable[Order],
    *,
    status: str | None = None,
    fulfillment: str | None = None,
    business_id: str | None = None,
) -> List[Order]:
    """Apply the board filters; ``status`` matches on the merged view status."""

    wanted_status = view_status(status) if status else None
    if fulfillment == "dineIn":
        fulfillment = FulfillmentType.DINE_IN.value
    rows = []
    for order in orders:
        if wanted_status and view_status(order.status) != wanted_status:
            continue
        kind = getattr(order.fulfillment, "value", order.fulfillment)
        if fulfillment and kind != fulfillment:
            continue
        if business_id and order.business_id != business_id:
            continue
        rows.append(order)
    return rows


def build_board(
    orders: Iterable[Order],
    *,
    status: str | None = None,
    fulfillment: str | None = None,
    business_id: str | None = None,
) -> Board:
    """Group ``orders`` into kanban buckets and compute the header stats."""

    rows = filter_orders(
        orders, status=status, fulfillment=fulfillment, business_id=business_id
    )
    board = Board()
    stats = board.stats
    stats.total = len(rows)
    for order in rows:
        status_value = getattr(order.status, "value", order.status)
        if status_value == OrderStatus.CANCELLED.value:
            stats.cancelled += 1
        # Revenue only counts orders stored as delivered.
        if status_value == OrderStatus.DELIVERED.value:
            stats.revenue += order.total
        bucket = _bucket_of(status_value)
        if bucket is not None:
            board.buckets[bucket].append(order)

    stats.pending = len(board.buckets["pending"])
    stats.preparing = len(board.buckets["preparing"])
    stats.ready = len(board.buckets["ready"])
    stats.on_the_way = len(board.buckets["onTheWay"])
    stats.completed = len(board.buckets["completed"])
    stats.revenue = round(stats.revenue, 2)
    if stats.completed:
        stats.average_order_value = round(stats.revenue / stats.completed, 2)
    return board


def get_next_status_action(order: Order) -> NextAction | None:
    """Return the primary action offered for ``order``, if any."""

    state = checklist_state(order.checked_items, len(order.items))
    for rule in NEXT_ACTIONS:
        if order.status != rule.status:
            continue
        if rule.fulfillment is not None and order.fulfillment != rule.fulfillment:
            continue
        if rule.checklist is not None and state is not rule.checklist:
            continue
        return NextAction(
            action=rule.action, target=rule.target, has_unavailable=rule.has_unavailable
        )
    return None


def checklist_summary(order: Order) -> Dict[str, object]:
    total = len(order.items)
    return {
        "checked": count_checked(order.checked_items, total),
        "total": total,
        "state": checklist_state(order.checked_items, total).value,
    }


__all__ = [
    "BUCKETS",
    "Board",
    "BoardStats",
    "NextAction",
    "build_board",
    "checklist_summary",
    "filter_orders",
    "get_next_status_action",
]
