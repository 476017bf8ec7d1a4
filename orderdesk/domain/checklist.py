"""Pure helpers over an order's availability checklist."""

from __future__ import annotations

from typing import Mapping, Sequence

from .models import LineItem, UnavailableLine
from .order_status import ChecklistState


def count_checked(checks: Mapping[int, bool], total_items: int | None = None) -> int:
    """Return how many items are confirmed available.

    When ``total_items`` is given, keys outside ``[0, total_items)`` are
    ignored so the count never exceeds the item count.
    """

    return sum(
        1
        for idx, checked in checks.items()
        if checked and (total_items is None or 0 <= idx < total_items)
    )


def all_checked(checks: Mapping[int, bool], total_items: int) -> bool:
    """Return ``True`` when every item index in ``[0, total_items)`` is checked.

    An order without items is never fully checked.
    """

    if total_items == 0:
        return False
    return all(checks.get(idx, False) for idx in range(total_items))


def unchecked_items(
    checks: Mapping[int, bool], items: Sequence[LineItem]
) -> list[UnavailableLine]:
    """Return every line not marked available, in item order."""

    return [
        UnavailableLine(
            index=idx, name=item.name, quantity=item.quantity, price=item.price or 0
        )
        for idx, item in enumerate(items)
        if not checks.get(idx, False)
    ]


def checklist_state(checks: Mapping[int, bool], total_items: int) -> ChecklistState:
    if total_items == 0 or count_checked(checks, total_items) == 0:
        return ChecklistState.NONE
    if all_checked(checks, total_items):
        return ChecklistState.COMPLETE
    return ChecklistState.PARTIAL


def refund_total(lines: Sequence[UnavailableLine]) -> float:
    """Sum ``price * quantity`` over exactly the supplied lines."""

    return round(sum(line.line_total for line in lines), 2)
