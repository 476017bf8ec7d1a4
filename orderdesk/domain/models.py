"""Domain objects built from order store documents.

Documents written by the mobile apps and older dashboards use several
spellings for the same field (``butcherId`` versus ``businessId``,
``dineIn`` versus ``dine_in`` and so on). :meth:`Order.from_document`
normalizes them once so the rest of the package sees a single shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from .order_status import FulfillmentType, OrderStatus


def as_datetime(value: Any) -> datetime | None:
    """Coerce a stored timestamp into an aware ``datetime``."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _first(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


def _number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _table_number(value: Any) -> int | str | None:
    """Numeric table numbers become ints; labels such as ``"T3"`` stay text."""

    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return str(value)


def _status(value: Any) -> OrderStatus | str:
    if not value:
        return OrderStatus.PENDING
    try:
        return OrderStatus(value)
    except ValueError:
        return str(value)


def _fulfillment(data: Mapping[str, Any]) -> FulfillmentType | str:
    raw = _first(
        data, "orderType", "deliveryMethod", "deliveryType", "fulfillmentType",
        default="pickup",
    )
    if raw == "dineIn":
        raw = "dine_in"
    try:
        return FulfillmentType(raw)
    except ValueError:
        return str(raw)


@dataclass
class Actor:
    """Admin identity performing an action."""

    uid: str | None = None
    display_name: str | None = None
    email: str | None = None

    def label(self, fallback: str = "Admin") -> str:
        return self.display_name or self.email or fallback


@dataclass
class ModifierOption:
    name: str
    price_delta: float = 0.0


@dataclass
class LineItem:
    product_id: str | None
    name: str
    quantity: int
    price: float
    note: str | None = None
    options: list[ModifierOption] = field(default_factory=list)

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "LineItem":
        raw_options = _first(data, "selectedOptions", "options", default=[]) or []
        options = [
            ModifierOption(
                name=str(_first(opt, "name", "optionName", default="")),
                price_delta=_number(_first(opt, "priceDelta", "price", default=0)),
            )
            for opt in raw_options
            if isinstance(opt, Mapping)
        ]
        return cls(
            product_id=data.get("productId"),
            name=str(_first(data, "productName", "name", default="")),
            quantity=int(_number(data.get("quantity", 1))),
            price=_number(data.get("price")),
            note=_first(data, "note", "itemNote"),
            options=options,
        )


@dataclass
class UnavailableLine:
    """An item the operator confirmed as out of stock at acceptance time.

    ``index`` is the zero-based position in the order's item list.
    """

    index: int
    name: str
    quantity: int
    price: float

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


@dataclass
class UnavailableItem:
    """Stored form of an unavailable line on the order document."""

    position_number: int
    product_name: str
    quantity: int
    price: float

    @classmethod
    def from_line(cls, line: UnavailableLine) -> "UnavailableItem":
        return cls(
            position_number=line.index + 1,
            product_name=line.name,
            quantity=line.quantity,
            price=line.price or 0,
        )

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "UnavailableItem":
        return cls(
            position_number=int(_number(data.get("positionNumber"))),
            product_name=str(data.get("productName", "")),
            quantity=int(_number(data.get("quantity"))),
            price=_number(data.get("price")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "positionNumber": self.position_number,
            "productName": self.product_name,
            "quantity": self.quantity,
            "price": self.price,
        }


@dataclass
class Order:
    """Normalized view of an order document."""

    id: str
    order_number: str
    status: OrderStatus | str = OrderStatus.PENDING
    fulfillment: FulfillmentType | str = FulfillmentType.PICKUP
    business_id: str = ""
    business_name: str = ""
    customer_id: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    items: list[LineItem] = field(default_factory=list)
    subtotal: float = 0.0
    delivery_fee: float = 0.0
    total: float = 0.0
    currency: str | None = None
    status_history: dict[str, datetime] = field(default_factory=dict)
    payment_method: str | None = None
    payment_status: str = "unpaid"
    payment_intent_id: str | None = None
    courier_id: str | None = None
    courier_name: str | None = None
    courier_phone: str | None = None
    claimed_at: datetime | None = None
    checked_items: dict[int, bool] = field(default_factory=dict)
    cancellation_reason: str | None = None
    unavailable_items: list[UnavailableItem] = field(default_factory=list)
    served_by_name: str | None = None
    served_by_id: str | None = None
    served_at: datetime | None = None
    table_number: int | str | None = None
    waiter_name: str | None = None
    group_session_id: str | None = None
    is_group_order: bool = False
    group_participant_count: int = 0
    notes: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_dine_in(self) -> bool:
        return self.fulfillment == FulfillmentType.DINE_IN

    @property
    def has_courier(self) -> bool:
        return any(
            v is not None
            for v in (self.courier_id, self.courier_name, self.courier_phone, self.claimed_at)
        )

    @classmethod
    def from_document(cls, order_id: str, data: Mapping[str, Any]) -> "Order":
        """Build an :class:`Order` from a raw store document."""

        history = {
            str(k): ts
            for k, v in (data.get("statusHistory") or {}).items()
            if (ts := as_datetime(v)) is not None
        }
        checks: dict[int, bool] = {}
        for key, value in (data.get("checkedItems") or {}).items():
            try:
                checks[int(key)] = bool(value)
            except (TypeError, ValueError):
                continue
        courier = data.get("courier") or {}
        return cls(
            id=order_id,
            order_number=str(
                data.get("orderNumber") or order_id[:6].upper()
            ),
            status=_status(data.get("status")),
            fulfillment=_fulfillment(data),
            business_id=_first(data, "businessId", "butcherId", default=""),
            business_name=_first(data, "businessName", "butcherName", default=""),
            customer_id=_first(data, "userId", "customerId", default=""),
            customer_name=_first(
                data, "customerName", "userDisplayName", "userName", default=""
            ),
            customer_phone=_first(data, "customerPhone", "userPhone", default=""),
            items=[
                LineItem.from_document(item)
                for item in data.get("items") or []
                if isinstance(item, Mapping)
            ],
            subtotal=_number(_first(data, "subtotal", "totalPrice", "totalAmount")),
            delivery_fee=_number(data.get("deliveryFee")),
            total=_number(_first(data, "totalPrice", "totalAmount", "total")),
            currency=data.get("currency"),
            status_history=history,
            payment_method=data.get("paymentMethod"),
            payment_status=data.get("paymentStatus") or "unpaid",
            payment_intent_id=_first(
                data, "stripePaymentIntentId", "paymentIntentId"
            ),
            courier_id=_first(data, "courierId") or courier.get("id"),
            courier_name=_first(data, "courierName") or courier.get("name"),
            courier_phone=_first(data, "courierPhone") or courier.get("phone"),
            claimed_at=as_datetime(data.get("claimedAt")),
            checked_items=checks,
            cancellation_reason=data.get("cancellationReason"),
            unavailable_items=[
                UnavailableItem.from_document(item)
                for item in data.get("unavailableItems") or []
                if isinstance(item, Mapping)
            ],
            served_by_name=data.get("servedByName"),
            served_by_id=data.get("servedById"),
            served_at=as_datetime(data.get("servedAt")),
            table_number=_table_number(data.get("tableNumber")),
            waiter_name=data.get("waiterName"),
            group_session_id=data.get("groupSessionId") or None,
            is_group_order=bool(data.get("isGroupOrder")),
            group_participant_count=int(_number(data.get("groupParticipantCount"))),
            notes=_first(data, "notes", "orderNote", "customerNote", default=""),
            created_at=as_datetime(data.get("createdAt")),
            updated_at=as_datetime(data.get("updatedAt")),
        )


@dataclass
class Business:
    id: str
    name: str = ""
    has_table_service: bool = False
    fulfillment_issues: int = 0
    last_fulfillment_issue: datetime | None = None


@dataclass
class OutboxEntry:
    """A failed side effect kept for manual or scheduled replay."""

    kind: str
    order_id: str
    payload: dict[str, Any]
    error: str
    id: str = ""
    attempts: int = 1
    status: str = "queued"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "orderId": self.order_id,
            "payload": self.payload,
            "error": self.error,
            "attempts": self.attempts,
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "OutboxEntry":
        return cls(
            id=data.get("id", ""),
            kind=data["kind"],
            order_id=data.get("orderId", ""),
            payload=dict(data.get("payload") or {}),
            error=data.get("error", ""),
            attempts=int(data.get("attempts", 1)),
            status=data.get("status", "queued"),
            created_at=as_datetime(data.get("createdAt")),
            updated_at=as_datetime(data.get("updatedAt")),
        )
