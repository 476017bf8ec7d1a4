"""Outbound providers for push notifications and refunds.

Providers are resolved by name through :data:`PROVIDER_REGISTRY`; a value
that is not a registered name is treated as a ``module:Class`` path so
deployments can plug in their own implementation.
"""

from __future__ import annotations

import importlib

from .base import (
    NotificationRequest,
    NotificationResult,
    NotificationSender,
    RefundGateway,
    RefundRequest,
    RefundResult,
)

PROVIDER_REGISTRY = {
    "notify": {
        "http": "orderdesk.providers.push_http:HttpNotificationSender",
        "log": "orderdesk.providers.push_log:LogNotificationSender",
    },
    "refund": {
        "http": "orderdesk.providers.refund_http:HttpRefundGateway",
        "log": "orderdesk.providers.refund_log:LogRefundGateway",
    },
}


def load_provider(kind: str, name: str, settings):
    """Instantiate the ``kind`` provider registered as ``name``."""

    path = PROVIDER_REGISTRY.get(kind, {}).get(name, name)
    module_name, _, attr = path.partition(":")
    if not attr:
        raise ValueError(f"unknown {kind} provider {name!r}")
    cls = getattr(importlib.import_module(module_name), attr)
    return cls.from_settings(settings)


__all__ = [
    "NotificationRequest",
    "NotificationResult",
    "NotificationSender",
    "PROVIDER_REGISTRY",
    "RefundGateway",
    "RefundRequest",
    "RefundResult",
    "load_provider",
]
