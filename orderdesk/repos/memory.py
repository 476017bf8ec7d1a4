"""In-process repository implementations.

Subscribers are fanned out through :class:`asyncio.Queue` instances, one per
live query, the same way the event bus dispatches to consumers.
"""

from __future__ import annotations

import asyncio
import copy
import uuid
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Mapping

from ..domain.errors import NotFoundError
from ..domain.models import Business, Order, OutboxEntry, as_datetime
from ..domain.updates import apply_updates
from .orders_repo import (
    BusinessDirectory,
    CustomerDirectory,
    GroupSessionStore,
    OrderStore,
    OutboxStore,
)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class MemoryOrderStore(OrderStore):
    """Keep order documents in a dict and notify subscribers on change."""

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        self._subs: list[asyncio.Queue] = []
        self.writes: list[tuple[str, dict[str, Any]]] = []

    def document(self, order_id: str) -> dict[str, Any]:
        """Return a copy of the raw document for introspection."""

        if order_id not in self._docs:
            raise NotFoundError("order", order_id)
        return copy.deepcopy(self._docs[order_id])

    async def _publish(self, order_id: str) -> None:
        for queue in list(self._subs):
            await queue.put(order_id)

    async def put_order(self, order_id: str, document: Mapping[str, Any]) -> None:
        doc = copy.deepcopy(dict(document))
        doc.setdefault("createdAt", datetime.now(timezone.utc))
        self._docs[order_id] = doc
        await self._publish(order_id)

    async def get_order(self, order_id: str) -> Order:
        doc = self._docs.get(order_id)
        if doc is None:
            raise NotFoundError("order", order_id)
        return Order.from_document(order_id, doc)

    async def update_order_fields(
        self, order_id: str, updates: Mapping[str, Any]
    ) -> None:
        doc = self._docs.get(order_id)
        if doc is None:
            raise NotFoundError("order", order_id)
        self._docs[order_id] = apply_updates(doc, updates)
        self.writes.append((order_id, dict(updates)))
        await self._publish(order_id)

    async def delete_order(self, order_id: str) -> None:
        if self._docs.pop(order_id, None) is None:
            raise NotFoundError("order", order_id)
        await self._publish(order_id)

    async def list_orders(self, since: datetime | None = None) -> list[Order]:
        rows = []
        for order_id, doc in self._docs.items():
            created = as_datetime(doc.get("createdAt")) or _EPOCH
            if since is not None and created < since:
                continue
            rows.append((created, order_id, doc))
        rows.sort(key=lambda row: row[0], reverse=True)
        return [Order.from_document(order_id, doc) for _, order_id, doc in rows]

    async def subscribe_orders(
        self, since: datetime | None = None
    ) -> AsyncIterator[list[Order]]:
        queue: asyncio.Queue = asyncio.Queue()
        self._subs.append(queue)
        try:
            yield await self.list_orders(since)
            while True:
                await queue.get()
                yield await self.list_orders(since)
        finally:
            self._subs.remove(queue)


class MemoryBusinessDirectory(BusinessDirectory):
    def __init__(self) -> None:
        self.businesses: dict[str, Business] = {}

    def add(self, business: Business) -> None:
        self.businesses[business.id] = business

    async def get_business(self, business_id: str) -> Business:
        business = self.businesses.get(business_id)
        if business is None:
            raise NotFoundError("business", business_id)
        return business

    async def increment_fulfillment_issues(
        self, business_id: str, by: int, at: datetime
    ) -> None:
        business = await self.get_business(business_id)
        business.fulfillment_issues += by
        business.last_fulfillment_issue = at


class MemoryGroupSessionStore(GroupSessionStore):
    def __init__(self) -> None:
        self.sessions: dict[str, dict[str, Any]] = {}
        self.calls: list[str] = []

    def add(self, session_id: str, **fields: Any) -> None:
        self.sessions[session_id] = {"status": "active", **fields}

    async def cancel_session(
        self, session_id: str, reason: str, cancelled_by: str, at: datetime
    ) -> None:
        self.calls.append(session_id)
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundError("group session", session_id)
        session.update(
            status="cancelled", closedAt=at, cancelledBy=cancelled_by, cancelReason=reason
        )


class MemoryCustomerDirectory(CustomerDirectory):
    def __init__(self, tokens: Mapping[str, str] | None = None) -> None:
        self.tokens: dict[str, str] = dict(tokens or {})

    async def get_push_token(self, customer_id: str) -> str | None:
        return self.tokens.get(customer_id)


class MemoryOutboxStore(OutboxStore):
    def __init__(self) -> None:
        self.entries: dict[str, OutboxEntry] = {}

    async def add(self, entry: OutboxEntry) -> OutboxEntry:
        entry.id = entry.id or uuid.uuid4().hex
        self.entries[entry.id] = entry
        return entry

    async def save(self, entry: OutboxEntry) -> None:
        self.entries[entry.id] = entry

    async def list(self, status: str | None = None) -> list[OutboxEntry]:
        return [
            entry
            for entry in self.entries.values()
            if status is None or entry.status == status
        ]
