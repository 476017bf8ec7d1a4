# routes_metrics.py

"""Prometheus metrics and /metrics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest

order_transitions_total = Counter(
    "order_transitions_total", "Total committed order status writes", ["status"]
)

order_update_failures_total = Counter(
    "order_update_failures_total", "Total status writes rejected by the store"
)
order_update_failures_total.inc(0)

orders_deleted_total = Counter("orders_deleted_total", "Total orders deleted by admins")
orders_deleted_total.inc(0)

checklist_toggles_total = Counter(
    "checklist_toggles_total", "Total availability checklist toggles"
)
checklist_toggles_total.inc(0)

side_effect_failures_total = Counter(
    "side_effect_failures_total", "Total failed best-effort side effects", ["kind"]
)
side_effect_failures_total.labels(kind="refund").inc(0)

refunds_issued_total = Counter("refunds_issued_total", "Total partial refunds issued")
refunds_issued_total.inc(0)

outbox_queued = Gauge("side_effect_outbox_queued", "Side effects waiting for replay")

live_orders = Gauge("live_orders", "Orders currently held by the live cache")

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint(request: Request) -> Response:
    """Expose Prometheus metrics."""
    services = getattr(request.app.state, "services", None)
    if services is not None:
        live_orders.set(len(services.cache.orders()))
        outbox_queued.set(len(await services.outbox.list(status="queued")))
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
