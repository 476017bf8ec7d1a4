from __future__ import annotations

"""Stub refund provider for environments without a payment service."""

import logging

from .base import RefundRequest, RefundResult

logger = logging.getLogger("refund")


class LogRefundGateway:
    """Log the request and report that nothing was refunded."""

    @classmethod
    def from_settings(cls, settings) -> "LogRefundGateway":
        return cls()

    async def request_partial_refund(self, request: RefundRequest) -> RefundResult:
        logger.info(
            "refund skipped: no gateway configured", extra={"order_id": request.order_id}
        )
        return RefundResult(refunded=False)
