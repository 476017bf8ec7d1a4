import pytest

from orderdesk.domain.checklist import (
    all_checked,
    count_checked,
    refund_total,
    unchecked_items,
)
from orderdesk.domain.errors import InvalidItemIndexError, NotFoundError
from orderdesk.domain.models import LineItem, UnavailableLine

from conftest import order_doc


def test_all_checked_law():
    assert not all_checked({}, 0)
    assert not all_checked({0: True}, 0)
    assert all_checked({0: True, 1: True}, 2)
    assert not all_checked({0: True, 1: False}, 2)
    assert not all_checked({0: True}, 2)


def test_count_ignores_out_of_range_keys():
    checks = {0: True, 1: False, 2: True, 7: True}
    assert count_checked(checks) == 3
    assert count_checked(checks, 3) == 2


def test_unchecked_items_keep_index_and_price():
    items = [
        LineItem(product_id="p1", name="Lamb", quantity=2, price=10.0),
        LineItem(product_id="p2", name="Beef", quantity=1, price=8.5),
    ]
    assert unchecked_items({0: True}, items) == [
        UnavailableLine(index=1, name="Beef", quantity=1, price=8.5)
    ]


def test_refund_total_is_sum_of_supplied_lines():
    lines = [
        UnavailableLine(index=0, name="Lamb", quantity=2, price=10.0),
        UnavailableLine(index=2, name="Sucuk", quantity=3, price=4.0),
    ]
    assert refund_total(lines) == 32.0
    assert refund_total([]) == 0


@pytest.mark.anyio
async def test_toggle_flips_and_writes_single_key(desk):
    await desk.store.put_order("o1", order_doc())

    assert await desk.checklist.toggle("o1", 1) is True
    assert desk.store.writes[-1] == ("o1", {"checkedItems.1": True})
    assert await desk.checklist.toggle("o1", 1) is False
    assert desk.store.document("o1")["checkedItems"] == {"1": False}


@pytest.mark.anyio
async def test_tracker_summaries(desk):
    await desk.store.put_order("o1", order_doc())
    await desk.checklist.toggle("o1", 0)
    await desk.checklist.toggle("o1", 2)

    assert await desk.checklist.count_checked("o1") == 2
    assert not await desk.checklist.all_checked("o1")
    missing = await desk.checklist.unchecked_items("o1")
    assert [(m.index, m.name) for m in missing] == [(1, "Minced beef")]


@pytest.mark.anyio
@pytest.mark.parametrize("index", [-1, 3])
async def test_toggle_rejects_bad_index(desk, index):
    await desk.store.put_order("o1", order_doc())
    with pytest.raises(InvalidItemIndexError):
        await desk.checklist.toggle("o1", index)
    assert desk.store.writes == []


@pytest.mark.anyio
async def test_toggle_missing_order(desk):
    with pytest.raises(NotFoundError):
        await desk.checklist.toggle("nope", 0)
