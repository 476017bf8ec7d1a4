"""Repository interfaces for orders and the collaborators around them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, AsyncIterator, Mapping

from ..domain.models import Business, Order, OutboxEntry


class OrderStore(ABC):
    """Contract for order document persistence and live queries."""

    @abstractmethod
    async def put_order(self, order_id: str, document: Mapping[str, Any]) -> None:
        """Create or replace an order document (used by seeding and tests)."""
        raise NotImplementedError

    @abstractmethod
    async def get_order(self, order_id: str) -> Order:
        """Return the order or raise ``NotFoundError``."""
        raise NotImplementedError

    @abstractmethod
    async def update_order_fields(
        self, order_id: str, updates: Mapping[str, Any]
    ) -> None:
        """Apply dotted-path ``updates`` to one order as a single write.

        Raises ``NotFoundError`` when the order is gone and
        ``StoreWriteError`` when the write itself fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete_order(self, order_id: str) -> None:
        """Delete an order or raise ``NotFoundError``."""
        raise NotImplementedError

    @abstractmethod
    async def list_orders(self, since: datetime | None = None) -> list[Order]:
        """Orders created at or after ``since``, newest first."""
        raise NotImplementedError

    @abstractmethod
    def subscribe_orders(
        self, since: datetime | None = None
    ) -> AsyncIterator[list[Order]]:
        """Yield the current window, then a fresh window after every change."""
        raise NotImplementedError


class BusinessDirectory(ABC):
    """Read model for businesses plus the fulfillment-issue counter."""

    @abstractmethod
    async def get_business(self, business_id: str) -> Business:
        raise NotImplementedError

    @abstractmethod
    async def increment_fulfillment_issues(
        self, business_id: str, by: int, at: datetime
    ) -> None:
        """Atomically add ``by`` to the counter and stamp the last issue."""
        raise NotImplementedError


class GroupSessionStore(ABC):
    """Dine-in group sessions; only cancellation is performed here."""

    @abstractmethod
    async def cancel_session(
        self, session_id: str, reason: str, cancelled_by: str, at: datetime
    ) -> None:
        raise NotImplementedError


class CustomerDirectory(ABC):
    @abstractmethod
    async def get_push_token(self, customer_id: str) -> str | None:
        """Return the customer's push token if one is on file."""
        raise NotImplementedError


class OutboxStore(ABC):
    """Durable record of failed side effects."""

    @abstractmethod
    async def add(self, entry: OutboxEntry) -> OutboxEntry:
        raise NotImplementedError

    @abstractmethod
    async def save(self, entry: OutboxEntry) -> None:
        raise NotImplementedError

    @abstractmethod
    async def list(self, status: str | None = None) -> list[OutboxEntry]:
        raise NotImplementedError
