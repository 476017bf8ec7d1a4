from __future__ import annotations

"""Stub push provider that logs delivery."""

import logging

from .base import NotificationRequest, NotificationResult

logger = logging.getLogger("push")


class LogNotificationSender:
    """Log a push delivery stub and report it as delivered."""

    def __init__(self) -> None:
        self.sent: list[NotificationRequest] = []

    @classmethod
    def from_settings(cls, settings) -> "LogNotificationSender":
        return cls()

    async def send(self, request: NotificationRequest) -> NotificationResult:
        self.sent.append(request)
        logger.info("push dispatched: %s", request.type, extra={"order_id": request.order_id})
        return NotificationResult(delivered=True)
