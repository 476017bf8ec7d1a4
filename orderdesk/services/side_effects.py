"""Best-effort actions fired after an order status write has committed.

Every action runs in isolation: a failure is logged, counted, surfaced as a
notice of its own kind and recorded in the outbox, and the remaining
actions still run. Nothing here ever undoes or blocks the status change.
Group-session cascade failures are the exception to the notice rule; they
only produce a warning log because the order itself is already correct.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List

from ..domain.checklist import refund_total
from ..domain.errors import NotificationError, RefundError
from ..domain.models import (
    Actor,
    Order,
    OutboxEntry,
    UnavailableItem,
    UnavailableLine,
    as_datetime,
)
from ..domain.order_status import SHORTAGE_EFFECTS, SideEffect
from ..providers.base import (
    NotificationRequest,
    NotificationSender,
    RefundGateway,
    RefundRequest,
)
from ..repos.orders_repo import (
    BusinessDirectory,
    CustomerDirectory,
    GroupSessionStore,
    OutboxStore,
)
from ..routes_metrics import refunds_issued_total, side_effect_failures_total
from .notices import Notice, NoticeBoard, NoticeLevel

logger = logging.getLogger("side_effects")

ORDER_CANCELLED = "order_cancelled"
ORDER_ACCEPTED_WITH_UNAVAILABLE = "order_accepted_with_unavailable"
ORDER_READY = "order_ready"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def refund_idempotency_key(order_id: str, items: Iterable[UnavailableItem]) -> str:
    """Stable key for one partial refund of ``order_id``."""

    body = json.dumps([i.to_document() for i in items], sort_keys=True)
    digest = hashlib.sha256(body.encode()).hexdigest()[:16]
    return f"refund:{order_id}:{digest}"


@dataclass
class EffectContext:
    """Inputs for one dispatch, taken from the request-time order snapshot."""

    order: Order
    actor: Actor | None = None
    cancellation_reason: str | None = None
    unavailable: List[UnavailableLine] = field(default_factory=list)
    refund_amount: float = 0.0


class SideEffectDispatcher:
    """Run the side effects attached to a transition, one at a time."""

    def __init__(
        self,
        *,
        notifier: NotificationSender,
        refunds: RefundGateway,
        businesses: BusinessDirectory,
        sessions: GroupSessionStore,
        customers: CustomerDirectory,
        notices: NoticeBoard,
        outbox: OutboxStore,
        fallback_actor: str = "Admin",
        session_cancel_reason: str = "Order cancelled from the admin panel",
        session_delete_reason: str = "Order deleted from the admin panel",
        max_attempts: int = 5,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.notifier = notifier
        self.refunds = refunds
        self.businesses = businesses
        self.sessions = sessions
        self.customers = customers
        self.notices = notices
        self.outbox = outbox
        self.fallback_actor = fallback_actor
        self.session_cancel_reason = session_cancel_reason
        self.session_delete_reason = session_delete_reason
        self.max_attempts = max_attempts
        self.clock = clock
        self._handlers: Dict[
            SideEffect, Callable[[EffectContext, List[Notice]], Awaitable[None]]
        ] = {
            SideEffect.SESSION_CASCADE: self._cascade_on_cancel,
            SideEffect.NOTIFY_CANCELLED: self._notify_cancelled,
            SideEffect.PARTIAL_REFUND: self._partial_refund,
            SideEffect.NOTIFY_SHORTAGE: self._notify_shortage,
            SideEffect.FULFILLMENT_ISSUE: self._record_fulfillment_issue,
            SideEffect.NOTIFY_READY: self._notify_ready,
        }

    async def dispatch(
        self, effects: Iterable[SideEffect], ctx: EffectContext
    ) -> List[Notice]:
        """Run ``effects`` in order and return the notices they produced."""

        notices: List[Notice] = []
        for effect in effects:
            if effect in SHORTAGE_EFFECTS and not ctx.unavailable:
                continue
            await self._handlers[effect](ctx, notices)
        return notices

    async def after_delete(self, order: Order, actor: Actor | None = None) -> List[Notice]:
        """Cascade an explicit order deletion to its group session."""

        await self._cascade_session(order, self.session_delete_reason, actor)
        return []

    # -- failure bookkeeping -------------------------------------------------

    async def _record_failure(
        self,
        kind: str,
        order_id: str,
        payload: Dict[str, Any],
        exc: BaseException,
        message: str,
        notices: List[Notice],
    ) -> None:
        side_effect_failures_total.labels(kind=kind).inc()
        logger.error(
            "%s failed for order %s: %s", kind, order_id, exc,
            extra={"order_id": order_id, "kind": kind},
        )
        notices.append(
            self.notices.push(f"{kind}_failed", NoticeLevel.ERROR, message, order_id)
        )
        now = self.clock()
        try:
            await self.outbox.add(
                OutboxEntry(
                    kind=kind,
                    order_id=order_id,
                    payload=payload,
                    error=str(exc),
                    created_at=now,
                    updated_at=now,
                )
            )
        except Exception:  # pragma: no cover - outbox is best effort too
            logger.exception("could not record %s failure in outbox", kind)

    # -- group session -------------------------------------------------------

    async def _cascade_session(
        self, order: Order, reason: str, actor: Actor | None
    ) -> None:
        session_id = order.group_session_id
        if not session_id:
            return
        cancelled_by = (actor.uid if actor and actor.uid else None) or self.fallback_actor
        try:
            await self.sessions.cancel_session(session_id, reason, cancelled_by, self.clock())
        except Exception as exc:
            side_effect_failures_total.labels(kind="session_cascade").inc()
            logger.warning(
                "could not cancel group session %s: %s", session_id, exc,
                extra={"order_id": order.id, "kind": "session_cascade"},
            )
            return
        logger.info(
            "group session %s cancelled", session_id, extra={"order_id": order.id}
        )

    async def _cascade_on_cancel(self, ctx: EffectContext, notices: List[Notice]) -> None:
        reason = ctx.cancellation_reason or self.session_cancel_reason
        await self._cascade_session(ctx.order, reason, ctx.actor)

    # -- notifications -------------------------------------------------------

    async def _push_token(self, order: Order, notices: List[Notice]) -> str | None:
        if not order.customer_id:
            return None
        try:
            return await self.customers.get_push_token(order.customer_id)
        except Exception as exc:
            side_effect_failures_total.labels(kind="notification").inc()
            logger.error(
                "push token lookup failed for order %s: %s", order.id, exc,
                extra={"order_id": order.id, "kind": "notification"},
            )
            notices.append(
                self.notices.push(
                    "notification_failed",
                    NoticeLevel.ERROR,
                    "Customer could not be notified",
                    order.id,
                )
            )
            return None

    async def _business_name(self, order: Order) -> str:
        if order.business_name or not order.business_id:
            return order.business_name
        try:
            return (await self.businesses.get_business(order.business_id)).name
        except Exception as exc:
            logger.warning(
                "business name lookup failed for business %s: %s",
                order.business_id, exc,
                extra={"order_id": order.id},
            )
            return ""

    async def _send(
        self,
        order: Order,
        token: str,
        type_: str,
        payload: Dict[str, Any],
        notices: List[Notice],
    ) -> None:
        request = NotificationRequest(
            order_id=order.id,
            type=type_,
            recipient_token=token,
            business_name=await self._business_name(order),
            payload=payload,
        )
        try:
            result = await self.notifier.send(request)
            if not result.delivered:
                raise NotificationError(f"{type_} was not delivered")
        except Exception as exc:
            await self._record_failure(
                "notification",
                order.id,
                request.to_json(),
                exc,
                "Customer could not be notified",
                notices,
            )

    async def _notify_cancelled(self, ctx: EffectContext, notices: List[Notice]) -> None:
        token = await self._push_token(ctx.order, notices)
        if not token:
            return
        payload = {"cancellationReason": ctx.cancellation_reason or ""}
        await self._send(ctx.order, token, ORDER_CANCELLED, payload, notices)

    async def _notify_shortage(self, ctx: EffectContext, notices: List[Notice]) -> None:
        token = await self._push_token(ctx.order, notices)
        if not token:
            return
        payload = {
            "unavailableItems": ", ".join(line.name for line in ctx.unavailable),
            "refundAmount": ctx.refund_amount,
        }
        await self._send(ctx.order, token, ORDER_ACCEPTED_WITH_UNAVAILABLE, payload, notices)

    async def _notify_ready(self, ctx: EffectContext, notices: List[Notice]) -> None:
        order = ctx.order
        token = await self._push_token(order, notices)
        if not token:
            return
        has_table_service = False
        if order.business_id:
            try:
                business = await self.businesses.get_business(order.business_id)
                has_table_service = business.has_table_service
            except Exception as exc:
                logger.warning(
                    "table service lookup failed for business %s: %s",
                    order.business_id, exc,
                    extra={"order_id": order.id},
                )
        payload = {"hasTableService": has_table_service, "isDineIn": order.is_dine_in}
        await self._send(order, token, ORDER_READY, payload, notices)

    # -- refunds and fulfillment score ---------------------------------------

    async def _partial_refund(self, ctx: EffectContext, notices: List[Notice]) -> None:
        order = ctx.order
        if order.payment_method != "card" or order.payment_status != "paid":
            return
        items = [UnavailableItem.from_line(line) for line in ctx.unavailable]
        request = RefundRequest(
            order_id=order.id,
            unavailable_items=items,
            amount=refund_total(ctx.unavailable),
            idempotency_key=refund_idempotency_key(order.id, items),
        )
        try:
            result = await self.refunds.request_partial_refund(request)
        except Exception as exc:
            await self._record_failure(
                "refund",
                order.id,
                request.to_json(),
                exc,
                "Partial refund could not be processed, manual check required",
                notices,
            )
            return
        if not result.refunded:
            logger.info("no partial refund issued", extra={"order_id": order.id})
            return
        ctx.refund_amount = result.refund_amount
        refunds_issued_total.inc()
        currency = f" {order.currency}" if order.currency else ""
        notices.append(
            self.notices.push(
                "refund_issued",
                NoticeLevel.SUCCESS,
                f"{result.refund_amount:.2f}{currency} partial refund processed",
                order.id,
            )
        )

    async def _record_fulfillment_issue(
        self, ctx: EffectContext, notices: List[Notice]
    ) -> None:
        order = ctx.order
        if not order.business_id:
            return
        by = len(ctx.unavailable)
        at = self.clock()
        try:
            await self.businesses.increment_fulfillment_issues(order.business_id, by, at)
        except Exception as exc:
            await self._record_failure(
                "fulfillment_counter",
                order.id,
                {"businessId": order.business_id, "by": by, "at": at.isoformat()},
                exc,
                "Fulfillment score could not be updated",
                notices,
            )

    # -- outbox replay -------------------------------------------------------

    async def _replay(self, entry: OutboxEntry) -> None:
        payload = entry.payload
        if entry.kind == "notification":
            result = await self.notifier.send(NotificationRequest.from_json(payload))
            if not result.delivered:
                raise NotificationError(f"{payload.get('type')} was not delivered")
        elif entry.kind == "refund":
            refund = await self.refunds.request_partial_refund(
                RefundRequest.from_json(payload)
            )
            if not refund.refunded:
                raise RefundError("gateway did not refund")
            refunds_issued_total.inc()
        elif entry.kind == "fulfillment_counter":
            await self.businesses.increment_fulfillment_issues(
                payload["businessId"],
                int(payload["by"]),
                as_datetime(payload["at"]) or self.clock(),
            )
        else:
            raise ValueError(f"unknown outbox entry kind {entry.kind!r}")

    async def retry_outbox(self) -> Dict[str, int]:
        """Replay queued outbox entries once.

        Entries that keep failing are marked ``dead`` after
        ``max_attempts`` attempts.
        """

        summary = {"delivered": 0, "failed": 0, "dead": 0}
        for entry in await self.outbox.list(status="queued"):
            try:
                await self._replay(entry)
            except Exception as exc:
                entry.attempts += 1
                entry.error = str(exc)
                if entry.attempts >= self.max_attempts:
                    entry.status = "dead"
                    summary["dead"] += 1
                else:
                    summary["failed"] += 1
                logger.warning(
                    "outbox replay of %s failed: %s", entry.kind, exc,
                    extra={"order_id": entry.order_id, "kind": entry.kind},
                )
            else:
                entry.status = "delivered"
                summary["delivered"] += 1
            entry.updated_at = self.clock()
            await self.outbox.save(entry)
        return summary
