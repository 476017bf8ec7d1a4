"""Request correlation: request id and acting admin in context variables."""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# Context variables read by the log filter
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
actor_ctx: ContextVar[str | None] = ContextVar("actor", default=None)
logger = logging.getLogger("api")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Ensure every request carries a request id and record the actor."""

    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        actor = request.headers.get("X-User-Id")
        token = request_id_ctx.set(req_id)
        actor_token = actor_ctx.set(actor)
        request.state.request_id = req_id
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
            actor_ctx.reset(actor_token)
        response.headers["X-Request-ID"] = req_id
        return response
