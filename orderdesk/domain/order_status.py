"""Order status enumeration, transition rules and next-action table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OrderStatus(str, Enum):
    """Enumerate the lifecycle states for an order."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    ON_THE_WAY = "onTheWay"
    # Deprecated: legacy dine-in records still carry it. Views merge it
    # with DELIVERED; stored data is left untouched.
    SERVED = "served"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class FulfillmentType(str, Enum):
    """How the customer receives the order."""

    PICKUP = "pickup"
    DELIVERY = "delivery"
    DINE_IN = "dine_in"


class SideEffect(str, Enum):
    """Best-effort actions fired after a successful status write."""

    SESSION_CASCADE = "session_cascade"
    NOTIFY_CANCELLED = "notify_cancelled"
    PARTIAL_REFUND = "partial_refund"
    NOTIFY_SHORTAGE = "notify_shortage"
    FULFILLMENT_ISSUE = "fulfillment_issue"
    NOTIFY_READY = "notify_ready"


# Shortage side effects only run when the caller supplied unavailable items.
SHORTAGE_EFFECTS = frozenset(
    {SideEffect.PARTIAL_REFUND, SideEffect.NOTIFY_SHORTAGE, SideEffect.FULFILLMENT_ISSUE}
)

COURIER_FIELDS = ("courierId", "courierName", "courierPhone", "claimedAt")


@dataclass(frozen=True)
class TransitionRule:
    """What writing ``status = target`` entails."""

    requires_reason: bool = False
    allows_unavailable: bool = False
    clears_courier: bool = False
    stamps_served: bool = False
    side_effects: tuple[SideEffect, ...] = ()


TRANSITIONS: dict[OrderStatus, TransitionRule] = {
    OrderStatus.PENDING: TransitionRule(clears_courier=True),
    OrderStatus.ACCEPTED: TransitionRule(
        allows_unavailable=True,
        side_effects=(
            SideEffect.PARTIAL_REFUND,
            SideEffect.NOTIFY_SHORTAGE,
            SideEffect.FULFILLMENT_ISSUE,
        ),
    ),
    OrderStatus.PREPARING: TransitionRule(clears_courier=True),
    OrderStatus.READY: TransitionRule(
        clears_courier=True, side_effects=(SideEffect.NOTIFY_READY,)
    ),
    OrderStatus.ON_THE_WAY: TransitionRule(),
    OrderStatus.SERVED: TransitionRule(stamps_served=True),
    OrderStatus.DELIVERED: TransitionRule(stamps_served=True),
    OrderStatus.COMPLETED: TransitionRule(),
    OrderStatus.CANCELLED: TransitionRule(
        requires_reason=True,
        side_effects=(SideEffect.SESSION_CASCADE, SideEffect.NOTIFY_CANCELLED),
    ),
}

TERMINAL = frozenset(
    {
        OrderStatus.SERVED,
        OrderStatus.DELIVERED,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
    }
)


class ChecklistState(str, Enum):
    """Summary of an order's availability checklist."""

    NONE = "none"
    PARTIAL = "partial"
    COMPLETE = "complete"


@dataclass(frozen=True)
class NextActionRule:
    """One row of the next-action table.

    A rule matches when ``status`` equals the order status and the optional
    ``fulfillment`` and ``checklist`` conditions hold.
    """

    status: OrderStatus
    action: str
    target: OrderStatus
    fulfillment: FulfillmentType | None = None
    checklist: ChecklistState | None = None
    has_unavailable: bool = False


NEXT_ACTIONS: tuple[NextActionRule, ...] = (
    NextActionRule(
        OrderStatus.PENDING,
        "accept",
        OrderStatus.ACCEPTED,
        checklist=ChecklistState.COMPLETE,
    ),
    NextActionRule(
        OrderStatus.PENDING,
        "accept_with_shortages",
        OrderStatus.ACCEPTED,
        checklist=ChecklistState.PARTIAL,
        has_unavailable=True,
    ),
    NextActionRule(OrderStatus.ACCEPTED, "start_preparing", OrderStatus.PREPARING),
    NextActionRule(OrderStatus.PREPARING, "mark_ready", OrderStatus.READY),
    # Dine-in orders are closed as DELIVERED; SERVED is no longer written here.
    NextActionRule(
        OrderStatus.READY,
        "mark_served",
        OrderStatus.DELIVERED,
        fulfillment=FulfillmentType.DINE_IN,
    ),
)


def parse_status(value: str | OrderStatus) -> OrderStatus:
    """Return ``value`` as an :class:`OrderStatus` or raise ``ValueError``."""

    if isinstance(value, OrderStatus):
        return value
    return OrderStatus(value)


def view_status(status: str | OrderStatus) -> str:
    """Collapse the deprecated ``served`` value into ``delivered`` for views."""

    if status == OrderStatus.SERVED:
        return OrderStatus.DELIVERED.value
    return status.value if isinstance(status, OrderStatus) else status


def is_terminal(status: str | OrderStatus) -> bool:
    """Return ``True`` for fulfilled or cancelled orders."""

    try:
        return parse_status(status) in TERMINAL
    except ValueError:
        return False
