"""Order status transitions.

A transition is one targeted field write against the order document
followed by the side effects listed for the target status in
:data:`~orderdesk.domain.order_status.TRANSITIONS`. The write either lands
completely or raises :class:`UpdateFailedError`; side effects never change
that outcome.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine, Dict, List, Sequence

from ..domain.errors import (
    InvalidItemIndexError,
    InvalidStatusError,
    InvalidTransitionContextError,
    MissingReasonError,
    StoreWriteError,
    UpdateFailedError,
)
from ..domain.models import Actor, Order, UnavailableItem, UnavailableLine
from ..domain.order_status import (
    COURIER_FIELDS,
    TRANSITIONS,
    OrderStatus,
    SideEffect,
    TransitionRule,
    parse_status,
)
from ..domain.updates import DELETE
from ..repos.orders_repo import OrderStore
from ..routes_metrics import (
    order_transitions_total,
    order_update_failures_total,
    orders_deleted_total,
)
from .notices import Notice, NoticeBoard, NoticeLevel
from .order_cache import OrderCache
from .side_effects import EffectContext, SideEffectDispatcher

logger = logging.getLogger("orders")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TransitionResult:
    order_id: str
    status: OrderStatus
    previous_status: OrderStatus | str
    unavailable_items: List[UnavailableItem] = field(default_factory=list)
    side_effects: List[SideEffect] = field(default_factory=list)
    notices: List[Notice] = field(default_factory=list)


@dataclass
class DeleteResult:
    order_id: str
    session_cascade: bool
    notices: List[Notice] = field(default_factory=list)


def build_status_update(
    target: OrderStatus,
    *,
    now: datetime,
    rule: TransitionRule | None = None,
    cancellation_reason: str | None = None,
    unavailable: Sequence[UnavailableLine] = (),
    actor: Actor | None = None,
    fallback_actor: str = "Admin",
) -> Dict[str, Any]:
    """Return the field updates that move an order to ``target``."""

    rule = rule or TRANSITIONS[target]
    updates: Dict[str, Any] = {
        "status": target.value,
        f"statusHistory.{target.value}": now,
        "updatedAt": now,
    }
    if rule.clears_courier:
        for name in COURIER_FIELDS:
            updates[name] = DELETE
    if rule.stamps_served:
        updates["servedByName"] = actor.label(fallback_actor) if actor else fallback_actor
        if actor is not None and actor.uid:
            updates["servedById"] = actor.uid
        updates["servedAt"] = now
    if rule.requires_reason and cancellation_reason:
        updates["cancellationReason"] = cancellation_reason
    if rule.allows_unavailable and unavailable:
        updates["unavailableItems"] = [
            UnavailableItem.from_line(line).to_document() for line in unavailable
        ]
    return updates


def match_shortages(
    order: Order, lines: Sequence[UnavailableLine]
) -> List[UnavailableLine]:
    """Check shortage lines against the order's items.

    Each line must name a distinct item index and repeat that item's
    quantity and unit price. Names are taken from the order.
    """

    seen = set()
    matched = []
    for line in lines:
        if not 0 <= line.index < len(order.items):
            raise InvalidItemIndexError(order.id, line.index, len(order.items))
        if line.index in seen:
            raise InvalidTransitionContextError(
                f"item {line.index} listed twice as unavailable"
            )
        seen.add(line.index)
        item = order.items[line.index]
        if line.quantity != item.quantity or round(line.price, 2) != round(item.price, 2):
            raise InvalidTransitionContextError(
                f"unavailable item {line.index} does not match the order "
                f"({line.quantity} x {line.price} vs {item.quantity} x {item.price})"
            )
        matched.append(
            UnavailableLine(
                index=line.index, name=item.name, quantity=item.quantity, price=item.price
            )
        )
    return matched


class TransitionEngine:
    """Validate and execute status changes and explicit deletions."""

    def __init__(
        self,
        store: OrderStore,
        dispatcher: SideEffectDispatcher,
        notices: NoticeBoard,
        cache: OrderCache | None = None,
        *,
        fallback_actor: str = "Admin",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.notices = notices
        self.cache = cache
        self.fallback_actor = fallback_actor
        self.clock = clock
        self._tasks: set[asyncio.Task] = set()

    async def snapshot(self, order_id: str) -> Order:
        """Return the order as currently known, preferring the live cache."""

        if self.cache is not None:
            order = self.cache.get(order_id)
            if order is not None:
                return order
        return await self.store.get_order(order_id)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for side effects scheduled in the background."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def request_transition(
        self,
        order_id: str,
        target: str | OrderStatus,
        *,
        cancellation_reason: str | None = None,
        unavailable_items: Sequence[UnavailableLine] | None = None,
        actor: Actor | None = None,
        background: bool = False,
    ) -> TransitionResult:
        """Move ``order_id`` to ``target`` and run its side effects.

        Side effects are awaited unless ``background`` is set, in which case
        they are scheduled on the running loop and their notices only reach
        the notice board.
        """

        try:
            status = parse_status(target)
        except ValueError:
            raise InvalidStatusError(target) from None
        rule = TRANSITIONS[status]
        reason = (cancellation_reason or "").strip() or None
        shortages = list(unavailable_items or [])
        if shortages and not rule.allows_unavailable:
            raise InvalidTransitionContextError(
                f"unavailable items are only accepted when moving to "
                f"{OrderStatus.ACCEPTED.value!r}, not {status.value!r}"
            )

        if rule.requires_reason and not reason:
            raise MissingReasonError(order_id)

        order = await self.snapshot(order_id)
        repeat = order.status == status
        if repeat and self.cache is not None:
            # side effects are only skipped when the store agrees
            repeat = (await self.store.get_order(order_id)).status == status
        shortages = match_shortages(order, shortages)

        updates = build_status_update(
            status,
            now=self.clock(),
            rule=rule,
            cancellation_reason=reason,
            unavailable=shortages,
            actor=actor,
            fallback_actor=self.fallback_actor,
        )
        try:
            await self.store.update_order_fields(order_id, updates)
        except StoreWriteError as exc:
            order_update_failures_total.inc()
            logger.error(
                "status update to %s failed: %s", status.value, exc,
                extra={"order_id": order_id},
            )
            self.notices.push(
                "update_failed",
                NoticeLevel.ERROR,
                "Order status could not be updated",
                order_id,
            )
            raise UpdateFailedError(str(exc)) from exc

        order_transitions_total.labels(status=status.value).inc()
        logger.info(
            "order status %s -> %s", getattr(order.status, "value", order.status), status.value,
            extra={"order_id": order_id},
        )
        notices = [
            self.notices.push(
                "status_updated", NoticeLevel.SUCCESS, "Order status updated", order_id
            )
        ]
        # Re-writing the current status only refreshes its timestamp.
        effects = [] if repeat else list(rule.side_effects)
        if effects:
            ctx = EffectContext(
                order=order,
                actor=actor,
                cancellation_reason=reason,
                unavailable=shortages,
            )
            if background:
                self._spawn(self.dispatcher.dispatch(effects, ctx))
            else:
                notices.extend(await self.dispatcher.dispatch(effects, ctx))

        return TransitionResult(
            order_id=order_id,
            status=status,
            previous_status=order.status,
            unavailable_items=[UnavailableItem.from_line(line) for line in shortages],
            side_effects=effects,
            notices=notices,
        )

    async def delete_order(
        self,
        order_id: str,
        *,
        actor: Actor | None = None,
        background: bool = False,
    ) -> DeleteResult:
        """Delete an order, then cancel its group session if it had one."""

        order = await self.snapshot(order_id)
        try:
            await self.store.delete_order(order_id)
        except StoreWriteError as exc:
            logger.error("order delete failed: %s", exc, extra={"order_id": order_id})
            self.notices.push(
                "delete_failed", NoticeLevel.ERROR, "Order could not be deleted", order_id
            )
            raise
        orders_deleted_total.inc()
        logger.info("order deleted", extra={"order_id": order_id})
        notices = [
            self.notices.push(
                "order_deleted", NoticeLevel.SUCCESS, "Order deleted", order_id
            )
        ]
        cascade = bool(order.group_session_id)
        if cascade:
            if background:
                self._spawn(self.dispatcher.after_delete(order, actor))
            else:
                notices.extend(await self.dispatcher.after_delete(order, actor))
        return DeleteResult(order_id=order_id, session_cascade=cascade, notices=notices)
