# routes_orders.py

"""Admin order board routes.

Status changes, checklist toggles and deletes go through the service layer;
reads are served from the live order cache unless a different window is
requested.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from .config import OrdersWindow
from .deps import Services, get_actor, get_services
from .domain.models import Actor
from .schemas import (
    BoardStatsOut,
    NextActionOut,
    NoticeOut,
    OrderOut,
    OutboxEntryOut,
    StatusChangeIn,
)
from .services.order_cache import window_start
from .services.projection import build_board, checklist_summary, get_next_status_action
from .utils.responses import ok

router = APIRouter(prefix="/api/admin/orders", tags=["orders"])


@router.get("")
async def list_board(
    status: Optional[str] = None,
    order_type: Optional[str] = Query(None, alias="type"),
    business_id: Optional[str] = None,
    window: Optional[OrdersWindow] = None,
    services: Services = Depends(get_services),
) -> dict:
    """Return the kanban board and header stats."""
    cache = services.cache
    if cache.ready and (window is None or window is cache.window):
        orders = cache.orders()
    else:
        since = window_start(window or cache.window, datetime.now(timezone.utc))
        orders = await services.store.list_orders(since)
    board = build_board(orders, status=status, fulfillment=order_type, business_id=business_id)
    return ok(
        {
            "buckets": {
                name: [OrderOut.from_order(o).model_dump(mode="json") for o in rows]
                for name, rows in board.buckets.items()
            },
            "stats": BoardStatsOut.from_stats(board.stats).model_dump(),
        }
    )


@router.get("/notices")
async def list_notices(services: Services = Depends(get_services)) -> dict:
    return ok(
        [NoticeOut.from_notice(n).model_dump(mode="json") for n in services.notices.active()]
    )


@router.get("/outbox")
async def list_outbox(
    status: Optional[str] = Query("queued"),
    services: Services = Depends(get_services),
) -> dict:
    entries = await services.outbox.list(status=status or None)
    return ok([OutboxEntryOut.from_entry(e).model_dump(mode="json") for e in entries])


@router.post("/outbox/retry")
async def retry_outbox(services: Services = Depends(get_services)) -> dict:
    """Replay queued side effects once."""
    return ok(await services.dispatcher.retry_outbox())


@router.get("/{order_id}")
async def get_order(order_id: str, services: Services = Depends(get_services)) -> dict:
    order = await services.engine.snapshot(order_id)
    action = NextActionOut.from_action(get_next_status_action(order))
    return ok(
        {
            "order": OrderOut.from_order(order).model_dump(mode="json"),
            "next_action": action.model_dump(mode="json") if action else None,
            "checklist": checklist_summary(order),
        }
    )


@router.post("/{order_id}/status")
async def change_status(
    order_id: str,
    body: StatusChangeIn,
    services: Services = Depends(get_services),
    actor: Optional[Actor] = Depends(get_actor),
) -> dict:
    result = await services.engine.request_transition(
        order_id,
        body.status,
        cancellation_reason=body.cancellation_reason,
        unavailable_items=[item.to_line() for item in body.unavailable_items],
        actor=actor,
        background=body.background,
    )
    return ok(
        {
            "order_id": result.order_id,
            "status": result.status.value,
            "previous_status": getattr(
                result.previous_status, "value", result.previous_status
            ),
            "unavailable_items": [i.to_document() for i in result.unavailable_items],
            "side_effects": [e.value for e in result.side_effects],
            "notices": [NoticeOut.from_notice(n).model_dump(mode="json") for n in result.notices],
        }
    )


@router.post("/{order_id}/items/{index}/toggle")
async def toggle_item(
    order_id: str, index: int, services: Services = Depends(get_services)
) -> dict:
    checked = await services.checklist.toggle(order_id, index)
    return ok({"index": index, "checked": checked})


@router.delete("/{order_id}")
async def delete_order(
    order_id: str,
    background: bool = False,
    services: Services = Depends(get_services),
    actor: Optional[Actor] = Depends(get_actor),
) -> dict:
    result = await services.engine.delete_order(
        order_id, actor=actor, background=background
    )
    return ok(
        {
            "order_id": result.order_id,
            "session_cascade": result.session_cascade,
            "notices": [NoticeOut.from_notice(n).model_dump(mode="json") for n in result.notices],
        }
    )
