"""Short-lived operator notices (the dashboard's toasts).

Every committed transition and every failed side effect leaves one notice
here. Notices expire after ``ttl`` seconds; the feed is bounded so a burst
of failures cannot grow it without limit.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Deque, List


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notice:
    kind: str
    level: NoticeLevel
    message: str
    order_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: float = 0.0


class NoticeBoard:
    """Bounded, time-limited feed of :class:`Notice` objects."""

    def __init__(
        self,
        ttl: float = 3.0,
        maxlen: int = 200,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._monotonic = monotonic
        self._items: Deque[Notice] = deque(maxlen=maxlen)

    def push(
        self,
        kind: str,
        level: NoticeLevel,
        message: str,
        order_id: str | None = None,
    ) -> Notice:
        notice = Notice(
            kind=kind,
            level=level,
            message=message,
            order_id=order_id,
            expires_at=self._monotonic() + self.ttl,
        )
        self._items.append(notice)
        return notice

    def active(self) -> List[Notice]:
        """Return unexpired notices, oldest first."""

        now = self._monotonic()
        while self._items and self._items[0].expires_at <= now:
            self._items.popleft()
        return [n for n in self._items if n.expires_at > now]
