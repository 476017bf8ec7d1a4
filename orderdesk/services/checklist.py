"""Per-order availability checklist kept on the order document."""

from __future__ import annotations

import logging

from ..domain import checklist as rules
from ..domain.errors import InvalidItemIndexError
from ..domain.models import Order, UnavailableLine
from ..repos.orders_repo import OrderStore
from ..routes_metrics import checklist_toggles_total
from .order_cache import OrderCache

logger = logging.getLogger("checklist")


class ChecklistTracker:
    """Toggle and summarize which items an operator confirmed in stock."""

    def __init__(self, store: OrderStore, cache: OrderCache | None = None) -> None:
        self.store = store
        self.cache = cache

    async def _order(self, order_id: str) -> Order:
        if self.cache is not None:
            order = self.cache.get(order_id)
            if order is not None:
                return order
        return await self.store.get_order(order_id)

    async def toggle(self, order_id: str, index: int) -> bool:
        """Flip item ``index`` and return its new checked state.

        Only ``checkedItems.<index>`` is written; the rest of the checklist
        is left alone so concurrent toggles on other items do not clash.
        """

        order = await self.store.get_order(order_id)
        if not 0 <= index < len(order.items):
            raise InvalidItemIndexError(order_id, index, len(order.items))
        checked = not order.checked_items.get(index, False)
        await self.store.update_order_fields(order_id, {f"checkedItems.{index}": checked})
        checklist_toggles_total.inc()
        logger.info(
            "item %d marked %s", index, "available" if checked else "unchecked",
            extra={"order_id": order_id},
        )
        return checked

    async def count_checked(self, order_id: str) -> int:
        order = await self._order(order_id)
        return rules.count_checked(order.checked_items, len(order.items))

    async def all_checked(self, order_id: str, total_items: int | None = None) -> bool:
        order = await self._order(order_id)
        total = len(order.items) if total_items is None else total_items
        return rules.all_checked(order.checked_items, total)

    async def unchecked_items(self, order_id: str) -> list[UnavailableLine]:
        order = await self._order(order_id)
        return rules.unchecked_items(order.checked_items, order.items)
