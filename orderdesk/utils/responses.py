"""Response envelopes shared by the API routes."""

from typing import Any, Dict

from ..domain.errors import OrderDeskError


def ok(data: Any) -> Dict[str, Any]:
    """Return a success envelope."""
    return {"ok": True, "data": data}


def err(
    code: int | str,
    message: str,
    details: Dict[str, Any] | None = None,
    hint: str | None = None,
) -> Dict[str, Any]:
    """Return an error envelope."""
    from ..middlewares.request_id import request_id_ctx

    error: Dict[str, Any] = {"code": code, "message": message}
    if hint:
        error["hint"] = hint
    if details:
        error["details"] = details

    return {"ok": False, "request_id": request_id_ctx.get(None), "error": error}


def from_error(exc: OrderDeskError, details: Dict[str, Any] | None = None) -> Dict[str, Any]:
    """Return an error envelope for a domain error."""
    return err(exc.code, str(exc), details=details)
