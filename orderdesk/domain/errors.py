"""Error taxonomy for order operations."""

from __future__ import annotations


class OrderDeskError(Exception):
    """Base class for all order lifecycle errors."""

    code = "ORDER_ERROR"


class MissingReasonError(OrderDeskError):
    """Cancellation requested without a reason; nothing was written."""

    code = "MISSING_REASON"

    def __init__(self, order_id: str) -> None:
        super().__init__(f"cancelling order {order_id!r} requires a reason")
        self.order_id = order_id


class InvalidStatusError(OrderDeskError):
    code = "INVALID_STATUS"

    def __init__(self, status: object) -> None:
        super().__init__(f"unknown order status {status!r}")
        self.status = status


class InvalidTransitionContextError(OrderDeskError):
    """Context supplied that the target status does not accept."""

    code = "INVALID_CONTEXT"


class InvalidItemIndexError(OrderDeskError):
    code = "INVALID_ITEM_INDEX"

    def __init__(self, order_id: str, index: int, total: int) -> None:
        super().__init__(
            f"item index {index} out of range for order {order_id!r} ({total} items)"
        )
        self.order_id = order_id
        self.index = index


class NotFoundError(OrderDeskError):
    code = "NOT_FOUND"

    def __init__(self, kind: str, ident: str) -> None:
        super().__init__(f"{kind} {ident!r} not found")
        self.kind = kind
        self.ident = ident


class StoreWriteError(OrderDeskError):
    """The underlying document write failed."""

    code = "STORE_WRITE_FAILED"


class UpdateFailedError(StoreWriteError):
    """Status write rejected by the store; the order is unchanged."""

    code = "UPDATE_FAILED"


class SideEffectError(OrderDeskError):
    """A best-effort action failed after the status was committed.

    Raised by providers and directories; always caught by the dispatcher.
    """

    code = "SIDE_EFFECT_FAILED"
    kind = "side_effect"


class RefundError(SideEffectError):
    code = "REFUND_FAILED"
    kind = "refund"


class NotificationError(SideEffectError):
    code = "NOTIFICATION_FAILED"
    kind = "notification"


class SessionCascadeError(SideEffectError):
    code = "SESSION_CASCADE_FAILED"
    kind = "session_cascade"


class CounterIncrementError(SideEffectError):
    code = "COUNTER_INCREMENT_FAILED"
    kind = "fulfillment_counter"
