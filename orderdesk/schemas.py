# schemas.py

"""Pydantic models for API payloads and responses."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from .domain.models import Order, OutboxEntry, UnavailableLine
from .domain.order_status import is_terminal, view_status
from .services.notices import Notice
from .services.projection import BoardStats, NextAction


class UnavailableItemIn(BaseModel):
    """An item the operator could not supply, by zero-based item index."""

    index: int
    name: str
    quantity: int = 1
    price: float = 0.0

    def to_line(self) -> UnavailableLine:
        return UnavailableLine(
            index=self.index, name=self.name, quantity=self.quantity, price=self.price
        )


class StatusChangeIn(BaseModel):
    """Input schema for a status change."""

    status: str
    cancellation_reason: Optional[str] = None
    unavailable_items: List[UnavailableItemIn] = Field(default_factory=list)
    background: bool = False


class NoticeOut(BaseModel):
    kind: str
    level: str
    message: str
    order_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_notice(cls, notice: Notice) -> "NoticeOut":
        return cls(
            kind=notice.kind,
            level=notice.level.value,
            message=notice.message,
            order_id=notice.order_id,
            created_at=notice.created_at,
        )


class LineItemOut(BaseModel):
    product_id: Optional[str] = None
    name: str
    quantity: int
    price: float
    note: Optional[str] = None
    options: List[str] = Field(default_factory=list)


class OrderOut(BaseModel):
    """Order representation returned from the API.

    ``status`` is the view status, so legacy ``served`` records read as
    ``delivered``.
    """

    id: str
    order_number: str
    status: str
    terminal: bool = False
    fulfillment: str
    business_id: str = ""
    business_name: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    items: List[LineItemOut] = Field(default_factory=list)
    total: float = 0.0
    currency: Optional[str] = None
    payment_method: Optional[str] = None
    payment_status: str = "unpaid"
    courier_name: Optional[str] = None
    table_number: Optional[Union[int, str]] = None
    group_session_id: Optional[str] = None
    checked_items: Dict[int, bool] = Field(default_factory=dict)
    cancellation_reason: Optional[str] = None
    served_by_name: Optional[str] = None
    status_history: Dict[str, datetime] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderOut":
        return cls(
            id=order.id,
            order_number=order.order_number,
            status=view_status(order.status),
            terminal=is_terminal(order.status),
            fulfillment=getattr(order.fulfillment, "value", order.fulfillment),
            business_id=order.business_id,
            business_name=order.business_name,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            items=[
                LineItemOut(
                    product_id=item.product_id,
                    name=item.name,
                    quantity=item.quantity,
                    price=item.price,
                    note=item.note,
                    options=[opt.name for opt in item.options],
                )
                for item in order.items
            ],
            total=order.total,
            currency=order.currency,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            courier_name=order.courier_name,
            table_number=order.table_number,
            group_session_id=order.group_session_id,
            checked_items=order.checked_items,
            cancellation_reason=order.cancellation_reason,
            served_by_name=order.served_by_name,
            status_history=order.status_history,
            created_at=order.created_at,
        )


class NextActionOut(BaseModel):
    action: str
    target: str
    has_unavailable: bool = False

    @classmethod
    def from_action(cls, action: NextAction | None) -> Optional["NextActionOut"]:
        if action is None:
            return None
        return cls(
            action=action.action,
            target=action.target.value,
            has_unavailable=action.has_unavailable,
        )


class BoardStatsOut(BaseModel):
    total: int
    pending: int
    preparing: int
    ready: int
    on_the_way: int
    completed: int
    cancelled: int
    revenue: float
    average_order_value: float

    @classmethod
    def from_stats(cls, stats: BoardStats) -> "BoardStatsOut":
        return cls(**vars(stats))


class OutboxEntryOut(BaseModel):
    id: str
    kind: str
    order_id: str
    error: str
    attempts: int
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry: OutboxEntry) -> "OutboxEntryOut":
        return cls(
            id=entry.id,
            kind=entry.kind,
            order_id=entry.order_id,
            error=entry.error,
            attempts=entry.attempts,
            status=entry.status,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )
