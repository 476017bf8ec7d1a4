"""Base interfaces for outbound notification and refund providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol

from ..domain.models import UnavailableItem


@dataclass
class NotificationRequest:
    """A customer push notification about an order.

    ``payload`` carries the type-specific fields (reason, refund amount,
    table-service flag and so on).
    """

    order_id: str
    type: str
    recipient_token: str
    business_name: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "type": self.type,
            "recipientToken": self.recipient_token,
            "businessName": self.business_name,
            **self.payload,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "NotificationRequest":
        extra = {
            k: v
            for k, v in data.items()
            if k not in {"orderId", "type", "recipientToken", "businessName"}
        }
        return cls(
            order_id=data["orderId"],
            type=data["type"],
            recipient_token=data["recipientToken"],
            business_name=data.get("businessName", ""),
            payload=extra,
        )


@dataclass
class NotificationResult:
    delivered: bool


@dataclass
class RefundRequest:
    """Partial refund for items that could not be supplied.

    ``amount`` is the sum of ``price * quantity`` over ``unavailable_items``;
    ``idempotency_key`` stays the same across retries of one refund.
    """

    order_id: str
    unavailable_items: List[UnavailableItem]
    amount: float
    idempotency_key: str

    def to_json(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "unavailableItems": [i.to_document() for i in self.unavailable_items],
            "refundAmount": self.amount,
            "idempotencyKey": self.idempotency_key,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "RefundRequest":
        return cls(
            order_id=data["orderId"],
            unavailable_items=[
                UnavailableItem.from_document(i) for i in data["unavailableItems"]
            ],
            amount=float(data["refundAmount"]),
            idempotency_key=data["idempotencyKey"],
        )


@dataclass
class RefundResult:
    refunded: bool
    refund_amount: float = 0.0
    refund_id: str | None = None


class NotificationSender(Protocol):
    async def send(self, request: NotificationRequest) -> NotificationResult:
        """Deliver ``request``; raise ``NotificationError`` on transport failure."""


class RefundGateway(Protocol):
    async def request_partial_refund(self, request: RefundRequest) -> RefundResult:
        """Issue a partial refund; raise ``RefundError`` on failure."""
