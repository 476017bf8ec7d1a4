"""In-process cache of the live order window.

The cache is fed by a single long-lived subscription to the order store.
Each snapshot from the store replaces the cached set wholesale, so readers
always see one consistent window.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Callable, Dict, List

from ..config import OrdersWindow
from ..domain.models import Order
from ..repos.orders_repo import OrderStore

logger = logging.getLogger("orders")

ALL_TIME_START = datetime(2020, 1, 1, tzinfo=timezone.utc)


def window_start(window: OrdersWindow | str, now: datetime) -> datetime:
    """Return the ``createdAt`` lower bound for ``window``."""

    window = OrdersWindow(window)
    if window is OrdersWindow.ALL:
        return ALL_TIME_START
    midnight = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo or timezone.utc)
    if window is OrdersWindow.WEEK:
        return midnight - timedelta(days=7)
    if window is OrdersWindow.MONTH:
        return midnight - timedelta(days=30)
    return midnight


class OrderCache:
    def __init__(
        self,
        store: OrderStore,
        window: OrdersWindow | str = OrdersWindow.ALL,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self.window = OrdersWindow(window)
        self.clock = clock
        self._orders: Dict[str, Order] = {}
        self._ordered: List[Order] = []
        self._ready = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def get(self, order_id: str) -> Order | None:
        return self._orders.get(order_id)

    def orders(self) -> List[Order]:
        """Cached orders, newest first."""

        return list(self._ordered)

    def replace(self, orders: List[Order]) -> None:
        self._ordered = list(orders)
        self._orders = {order.id: order for order in orders}
        self._ready.set()

    async def wait_ready(self, timeout: float | None = None) -> None:
        await asyncio.wait_for(self._ready.wait(), timeout)

    async def run(self) -> None:
        """Consume the store subscription until cancelled."""

        since = window_start(self.window, self.clock())
        async for snapshot in self.store.subscribe_orders(since):
            self.replace(snapshot)
            logger.debug("order cache refreshed: %d orders", len(snapshot))

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
