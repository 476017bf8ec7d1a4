"""HTTP middlewares."""

from .request_id import RequestIdMiddleware, actor_ctx, request_id_ctx

__all__ = ["RequestIdMiddleware", "actor_ctx", "request_id_ctx"]
