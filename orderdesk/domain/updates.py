"""Tagged field updates applied to order documents.

Store adapters accept a mapping of dotted field paths to update operations.
A plain value (or :class:`Set`) writes the value, :data:`DELETE` removes the
field entirely and :class:`Increment` adds to a numeric field. Removing a
field is not the same as writing ``None``: downstream consumers check for
field presence.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class Set:
    value: Any


class _Delete:
    _instance: "_Delete | None" = None

    def __new__(cls) -> "_Delete":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE"


DELETE = _Delete()


@dataclass(frozen=True)
class Increment:
    amount: int | float = 1


def _walk(document: dict, path: str, create: bool) -> tuple[dict | None, str]:
    """Return the parent mapping of ``path`` and the final key."""

    parts = path.split(".")
    node: Any = document
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            if not create:
                return None, parts[-1]
            child = {}
            node[part] = child
        node = child
    return node, parts[-1]


def apply_updates(document: Mapping[str, Any], updates: Mapping[str, Any]) -> dict:
    """Return a copy of ``document`` with ``updates`` applied.

    Keys in ``updates`` are dotted paths (``statusHistory.ready``,
    ``checkedItems.2``); intermediate maps are created as needed. Sibling
    keys of a nested map are preserved.
    """

    result = copy.deepcopy(dict(document))
    for path, op in updates.items():
        if op is DELETE:
            parent, key = _walk(result, path, create=False)
            if parent is not None:
                parent.pop(key, None)
            continue
        parent, key = _walk(result, path, create=True)
        if isinstance(op, Increment):
            current = parent.get(key)
            if not isinstance(current, (int, float)) or isinstance(current, bool):
                current = 0
            parent[key] = current + op.amount
        elif isinstance(op, Set):
            parent[key] = op.value
        else:
            parent[key] = op
    return result


__all__ = ["DELETE", "Increment", "Set", "apply_updates"]
