from __future__ import annotations

"""Partial refunds requested from the payment service over HTTP."""

import logging

import httpx

from ..domain.errors import RefundError
from .base import RefundRequest, RefundResult

logger = logging.getLogger("refund")


class HttpRefundGateway:
    """POST refund requests to ``url`` with an ``Idempotency-Key`` header.

    The payment service caches the outcome per key, so replaying a failed
    request from the outbox cannot refund twice.
    """

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
    def from_settings(cls, settings) -> "HttpRefundGateway":
        if not settings.refund_url:
            raise ValueError("refund_url must be set for the http refund provider")
        return cls(settings.refund_url, timeout=settings.http_timeout_secs)

    async def request_partial_refund(self, request: RefundRequest) -> RefundResult:
        headers = {"Idempotency-Key": request.idempotency_key}
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                resp = await client.post(
                    self.url, json=request.to_json(), headers=headers
                )
            except httpx.HTTPError as exc:
                raise RefundError(f"order {request.order_id}: {exc}") from exc
        if resp.status_code >= 400:
            raise RefundError(f"order {request.order_id}: HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise RefundError(f"order {request.order_id}: malformed response") from exc
        result = RefundResult(
            refunded=bool(data.get("refunded")),
            refund_amount=float(data.get("refundAmount") or 0),
            refund_id=data.get("refundId"),
        )
        logger.info(
            "partial refund requested",
            extra={"order_id": request.order_id, "refunded": result.refunded},
        )
        return result
