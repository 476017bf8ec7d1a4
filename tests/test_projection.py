import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from orderdesk.config import OrdersWindow
from orderdesk.domain.models import Order
from orderdesk.services.order_cache import ALL_TIME_START, OrderCache, window_start
from orderdesk.services.projection import build_board, checklist_summary

from conftest import NOW, order_doc


def _orders(*specs) -> list[Order]:
    return [
        Order.from_document(f"o{i}", order_doc(**spec)) for i, spec in enumerate(specs)
    ]


def test_empty_board_has_zero_average():
    board = build_board([])
    assert board.stats.total == 0
    assert board.stats.completed == 0
    assert board.stats.average_order_value == 0
    assert all(rows == [] for rows in board.buckets.values())


def test_buckets_and_stats():
    orders = _orders(
        {"status": "pending"},
        {"status": "accepted"},
        {"status": "preparing"},
        {"status": "onTheWay", "orderType": "delivery"},
        {"status": "delivered", "totalPrice": 30.0},
        {"status": "served", "totalPrice": 12.0, "orderType": "dineIn"},
        {"status": "cancelled"},
    )

    board = build_board(orders)
    stats = board.stats

    assert [o.id for o in board.buckets["pending"]] == ["o0", "o1"]
    assert [o.id for o in board.buckets["completed"]] == ["o4", "o5"]
    assert (stats.total, stats.pending, stats.preparing, stats.ready) == (7, 2, 1, 0)
    assert (stats.on_the_way, stats.completed, stats.cancelled) == (1, 2, 1)
    # legacy served orders are completed but not counted as revenue
    assert stats.revenue == 30.0
    assert stats.average_order_value == 15.0


def test_filters():
    orders = _orders(
        {"status": "served", "orderType": "dineIn"},
        {"status": "delivered", "businessId": "b2"},
        {"status": "ready", "orderType": "delivery"},
    )

    assert [o.id for o in build_board(orders, status="delivered").buckets["completed"]] == [
        "o0",
        "o1",
    ]
    assert build_board(orders, fulfillment="dineIn").stats.total == 1
    assert build_board(orders, fulfillment="delivery").stats.ready == 1
    assert build_board(orders, business_id="b2").stats.total == 1


def test_checklist_summary():
    [order] = _orders({"checkedItems": {"0": True, "5": True}})
    assert checklist_summary(order) == {"checked": 1, "total": 3, "state": "partial"}


@pytest.mark.parametrize(
    "window, expected",
    [
        ("today", datetime(2024, 5, 4, tzinfo=timezone.utc)),
        ("week", datetime(2024, 4, 27, tzinfo=timezone.utc)),
        ("month", datetime(2024, 4, 4, tzinfo=timezone.utc)),
        ("all", ALL_TIME_START),
    ],
)
def test_window_start(window, expected):
    assert window_start(window, NOW) == expected


@pytest.mark.anyio
async def test_cache_follows_store(desk):
    await desk.store.put_order("old", order_doc(createdAt=NOW - timedelta(days=2)))
    cache = OrderCache(desk.store, OrdersWindow.TODAY, clock=lambda: NOW)
    cache.start()
    await cache.wait_ready(timeout=1)
    assert cache.orders() == []

    await desk.store.put_order("o1", order_doc(createdAt=NOW))
    await desk.store.update_order_fields("o1", {"status": "accepted"})
    for _ in range(20):
        order = cache.get("o1")
        if order is not None and order.status == "accepted":
            break
        await asyncio.sleep(0.01)
    assert cache.get("o1").status == "accepted"

    await cache.stop()
    assert desk.store._subs == []
