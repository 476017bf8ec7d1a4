"""Failed side effects are kept in the outbox and replayed."""

import pytest

from orderdesk.domain.models import (
    Actor,
    Business,
    Order,
    UnavailableItem,
    UnavailableLine,
)
from orderdesk.domain.order_status import SideEffect
from orderdesk.services.side_effects import EffectContext, refund_idempotency_key

from conftest import order_doc


def _ctx(**overrides) -> EffectContext:
    order = Order.from_document("o1", order_doc(**overrides))
    return EffectContext(
        order=order,
        unavailable=[UnavailableLine(index=0, name="Lamb chops", quantity=2, price=10.0)],
    )


def test_idempotency_key_is_stable_per_item_set():
    items = [UnavailableItem(position_number=1, product_name="Lamb", quantity=2, price=10.0)]
    key = refund_idempotency_key("o1", items)
    assert key == refund_idempotency_key("o1", list(items))
    assert key.startswith("refund:o1:")
    assert len(key.rsplit(":", 1)[1]) == 16
    other = [UnavailableItem(position_number=2, product_name="Lamb", quantity=2, price=10.0)]
    assert refund_idempotency_key("o1", other) != key


@pytest.mark.anyio
async def test_refund_replay_reuses_idempotency_key(desk):
    desk.refunds.fail = True
    await desk.dispatcher.dispatch([SideEffect.PARTIAL_REFUND], _ctx())
    [entry] = await desk.outbox.list(status="queued")
    first_key = desk.refunds.requests[0].idempotency_key

    desk.refunds.fail = False
    summary = await desk.dispatcher.retry_outbox()

    assert summary == {"delivered": 1, "failed": 0, "dead": 0}
    assert desk.refunds.requests[-1].idempotency_key == first_key
    assert desk.refunds.requests[-1].amount == 20.0
    assert entry.status == "delivered"
    assert await desk.outbox.list(status="queued") == []


@pytest.mark.anyio
async def test_entries_die_after_max_attempts(desk, clock):
    desk.notifier.fail = True
    await desk.dispatcher.dispatch([SideEffect.NOTIFY_SHORTAGE], _ctx())

    assert (await desk.dispatcher.retry_outbox())["failed"] == 1
    clock.tick()
    assert (await desk.dispatcher.retry_outbox())["dead"] == 1

    [entry] = await desk.outbox.list()
    assert entry.status == "dead"
    assert entry.attempts == 3
    assert entry.updated_at == clock.now
    assert "push relay unavailable" in entry.error
    assert await desk.dispatcher.retry_outbox() == {"delivered": 0, "failed": 0, "dead": 0}


@pytest.mark.anyio
async def test_counter_failure_is_recorded_and_replayed(desk):
    await desk.dispatcher.dispatch([SideEffect.FULFILLMENT_ISSUE], _ctx(businessId="b2"))
    [entry] = await desk.outbox.list()
    assert entry.kind == "fulfillment_counter"
    assert entry.payload["businessId"] == "b2"
    assert [n.kind for n in desk.notices.active()] == ["fulfillment_counter_failed"]

    desk.businesses.add(Business(id="b2", name="Late Butcher"))
    await desk.dispatcher.retry_outbox()
    assert desk.businesses.businesses["b2"].fulfillment_issues == 1


@pytest.mark.anyio
async def test_shortage_effects_skip_without_items(desk):
    ctx = EffectContext(order=Order.from_document("o1", order_doc()))
    notices = await desk.dispatcher.dispatch(
        [SideEffect.PARTIAL_REFUND, SideEffect.NOTIFY_SHORTAGE, SideEffect.FULFILLMENT_ISSUE],
        ctx,
    )
    assert notices == []
    assert desk.refunds.requests == []
    assert desk.notifier.sent == []


@pytest.mark.anyio
async def test_gateway_declining_refund_is_not_a_failure(desk):
    desk.refunds.refunded = False
    ctx = _ctx()
    notices = await desk.dispatcher.dispatch([SideEffect.PARTIAL_REFUND], ctx)
    assert notices == []
    assert ctx.refund_amount == 0.0
    assert await desk.outbox.list() == []


@pytest.mark.anyio
async def test_unpaid_orders_are_not_refunded(desk):
    await desk.dispatcher.dispatch(
        [SideEffect.PARTIAL_REFUND], _ctx(paymentStatus="unpaid")
    )
    assert desk.refunds.requests == []


@pytest.mark.anyio
async def test_business_name_falls_back_to_directory(desk):
    order = Order.from_document("o1", order_doc(businessName=None, status="cancelled"))
    await desk.dispatcher.dispatch(
        [SideEffect.NOTIFY_CANCELLED],
        EffectContext(order=order, actor=Actor(uid="a1"), cancellation_reason="Closed early"),
    )
    [sent] = desk.notifier.sent
    assert sent.business_name == "Kasap Ali"
    assert sent.payload == {"cancellationReason": "Closed early"}
    assert sent.to_json()["orderId"] == "o1"


@pytest.mark.anyio
async def test_unknown_business_name_is_logged(desk, caplog):
    order = Order.from_document(
        "o1", order_doc(businessId="b404", businessName=None, status="cancelled")
    )
    with caplog.at_level("WARNING", logger="side_effects"):
        await desk.dispatcher.dispatch(
            [SideEffect.NOTIFY_CANCELLED],
            EffectContext(order=order, actor=None, cancellation_reason="Closed early"),
        )
    [sent] = desk.notifier.sent
    assert sent.business_name == ""
    assert any(
        "business name lookup failed for business b404" in r.getMessage()
        for r in caplog.records
    )
