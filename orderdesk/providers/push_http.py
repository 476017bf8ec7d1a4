from __future__ import annotations

"""Push notifications relayed through the dashboard's notify endpoint."""

import logging

import httpx

from ..domain.errors import NotificationError
from .base import NotificationRequest, NotificationResult

logger = logging.getLogger("push")


class HttpNotificationSender:
    """POST notification requests as JSON to ``url``."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings) -> "HttpNotificationSender":
        if not settings.notify_url:
            raise ValueError("notify_url must be set for the http notify provider")
        return cls(settings.notify_url, timeout=settings.http_timeout_secs)

    async def send(self, request: NotificationRequest) -> NotificationResult:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                resp = await client.post(self.url, json=request.to_json())
            except httpx.HTTPError as exc:
                raise NotificationError(f"{request.type}: {exc}") from exc
        if resp.status_code >= 400:
            raise NotificationError(f"{request.type}: HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError:
            data = {}
        delivered = bool(data.get("delivered", data.get("success", False)))
        logger.info("push sent", extra={"order_id": request.order_id})
        return NotificationResult(delivered=delivered)
