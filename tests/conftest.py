from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from orderdesk.domain.errors import NotificationError, RefundError
from orderdesk.domain.models import Business
from orderdesk.providers.base import (
    NotificationRequest,
    NotificationResult,
    RefundRequest,
    RefundResult,
)
from orderdesk.repos.memory import (
    MemoryBusinessDirectory,
    MemoryCustomerDirectory,
    MemoryGroupSessionStore,
    MemoryOrderStore,
    MemoryOutboxStore,
)
from orderdesk.services.checklist import ChecklistTracker
from orderdesk.services.notices import NoticeBoard
from orderdesk.services.side_effects import SideEffectDispatcher
from orderdesk.services.transitions import TransitionEngine

NOW = datetime(2024, 5, 4, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class Clock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def tick(self, seconds: float = 1.0) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[NotificationRequest] = []
        self.fail = False
        self.delivered = True

    async def send(self, request: NotificationRequest) -> NotificationResult:
        self.sent.append(request)
        if self.fail:
            raise NotificationError("push relay unavailable")
        return NotificationResult(delivered=self.delivered)


class RecordingRefunds:
    def __init__(self) -> None:
        self.requests: list[RefundRequest] = []
        self.fail = False
        self.refunded = True

    async def request_partial_refund(self, request: RefundRequest) -> RefundResult:
        self.requests.append(request)
        if self.fail:
            raise RefundError("payment service timed out")
        if not self.refunded:
            return RefundResult(refunded=False)
        return RefundResult(
            refunded=True, refund_amount=request.amount, refund_id="re_1"
        )


@dataclass
class Desk:
    store: MemoryOrderStore
    businesses: MemoryBusinessDirectory
    sessions: MemoryGroupSessionStore
    customers: MemoryCustomerDirectory
    outbox: MemoryOutboxStore
    notices: NoticeBoard
    notifier: RecordingNotifier
    refunds: RecordingRefunds
    dispatcher: SideEffectDispatcher
    engine: TransitionEngine
    checklist: ChecklistTracker
    clock: Clock
    extra: dict[str, Any] = field(default_factory=dict)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def desk(clock: Clock) -> Desk:
    store = MemoryOrderStore()
    businesses = MemoryBusinessDirectory()
    businesses.add(Business(id="b1", name="Kasap Ali", has_table_service=True))
    sessions = MemoryGroupSessionStore()
    customers = MemoryCustomerDirectory({"u1": "tok-u1"})
    outbox = MemoryOutboxStore()
    notices = NoticeBoard(ttl=60)
    notifier = RecordingNotifier()
    refunds = RecordingRefunds()
    dispatcher = SideEffectDispatcher(
        notifier=notifier,
        refunds=refunds,
        businesses=businesses,
        sessions=sessions,
        customers=customers,
        notices=notices,
        outbox=outbox,
        max_attempts=3,
        clock=clock,
    )
    engine = TransitionEngine(store, dispatcher, notices, clock=clock)
    return Desk(
        store=store,
        businesses=businesses,
        sessions=sessions,
        customers=customers,
        outbox=outbox,
        notices=notices,
        notifier=notifier,
        refunds=refunds,
        dispatcher=dispatcher,
        engine=engine,
        checklist=ChecklistTracker(store),
        clock=clock,
    )


def order_doc(**overrides: Any) -> dict[str, Any]:
    """A three-item pickup order for customer ``u1`` at business ``b1``."""

    doc: dict[str, Any] = {
        "orderNumber": "A1B2C3",
        "status": "pending",
        "orderType": "pickup",
        "businessId": "b1",
        "businessName": "Kasap Ali",
        "userId": "u1",
        "customerName": "Ayse",
        "items": [
            {"productId": "p1", "productName": "Lamb chops", "quantity": 2, "price": 10.0},
            {"productId": "p2", "productName": "Minced beef", "quantity": 1, "price": 8.5},
            {"productId": "p3", "productName": "Sucuk", "quantity": 3, "price": 4.0},
        ],
        "totalPrice": 40.5,
        "currency": "EUR",
        "paymentMethod": "card",
        "paymentStatus": "paid",
        "statusHistory": {"pending": NOW - timedelta(minutes=5)},
        "createdAt": NOW - timedelta(minutes=5),
    }
    doc.update(overrides)
    return doc
