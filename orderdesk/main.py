# main.py

"""FastAPI application for the order desk admin API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings, get_settings
from .deps import Services, build_services
from .domain.errors import NotFoundError, OrderDeskError, StoreWriteError
from .middlewares import RequestIdMiddleware
from .obs import capture_exception, configure_logging, init_sentry
from .routes_metrics import router as metrics_router
from .routes_orders import router as orders_router
from .utils.responses import err, from_error

logger = logging.getLogger("api")


def create_app(
    services: Services | None = None, settings: Settings | None = None
) -> FastAPI:
    """Build the application; ``services`` may be injected by tests."""

    settings = settings or (services.settings if services else get_settings())
    app = FastAPI(title="Order Desk API", version=__version__)
    app.state.services = services or build_services(settings)
    app.add_middleware(RequestIdMiddleware)
    app.include_router(orders_router)
    app.include_router(metrics_router)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(from_error(exc), status_code=404)

    @app.exception_handler(StoreWriteError)
    async def store_error_handler(request: Request, exc: StoreWriteError):
        logger.error(
            "store write failed: %s", exc,
            extra={"status": 502, "route": request.url.path},
        )
        return JSONResponse(from_error(exc), status_code=502)

    @app.exception_handler(OrderDeskError)
    async def order_error_handler(request: Request, exc: OrderDeskError):
        logger.warning(
            "rejected: %s", exc, extra={"status": 400, "route": request.url.path}
        )
        return JSONResponse(from_error(exc), status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(err(exc.status_code, exc.detail), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.exception(
            "unhandled_error", extra={"status": 500, "route": request.url.path}
        )
        capture_exception(exc)
        return JSONResponse(err(500, "Internal Server Error"), status_code=500)

    @app.on_event("startup")
    async def start_order_cache() -> None:
        configure_logging(getattr(logging, settings.log_level.upper(), logging.INFO))
        init_sentry(settings.error_dsn)
        app.state.services.cache.start()

    @app.on_event("shutdown")
    async def stop_services() -> None:
        await app.state.services.aclose()

    return app
