"""Service wiring and FastAPI dependency helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Header, Request
from redis.asyncio import Redis, from_url

from .config import Settings, StoreBackend
from .domain.models import Actor
from .providers import load_provider
from .providers.base import NotificationSender, RefundGateway
from .repos.memory import (
    MemoryBusinessDirectory,
    MemoryCustomerDirectory,
    MemoryGroupSessionStore,
    MemoryOrderStore,
    MemoryOutboxStore,
)
from .repos.orders_repo import (
    BusinessDirectory,
    CustomerDirectory,
    GroupSessionStore,
    OrderStore,
    OutboxStore,
)
from .repos.redis_store import (
    RedisBusinessDirectory,
    RedisCustomerDirectory,
    RedisGroupSessionStore,
    RedisOrderStore,
    RedisOutboxStore,
)
from .services.checklist import ChecklistTracker
from .services.notices import NoticeBoard
from .services.order_cache import OrderCache
from .services.side_effects import SideEffectDispatcher
from .services.transitions import TransitionEngine

logger = logging.getLogger("api")


@dataclass
class Services:
    """Everything the routes need, built once per application."""

    settings: Settings
    store: OrderStore
    businesses: BusinessDirectory
    sessions: GroupSessionStore
    customers: CustomerDirectory
    outbox: OutboxStore
    notices: NoticeBoard
    cache: OrderCache
    dispatcher: SideEffectDispatcher
    engine: TransitionEngine
    checklist: ChecklistTracker
    notifier: NotificationSender
    refunds: RefundGateway
    redis: Redis | None = None

    async def aclose(self) -> None:
        await self.cache.stop()
        await self.engine.drain()
        if self.redis is not None:
            await self.redis.aclose()


def build_services(
    settings: Settings,
    *,
    store: OrderStore | None = None,
    businesses: BusinessDirectory | None = None,
    sessions: GroupSessionStore | None = None,
    customers: CustomerDirectory | None = None,
    outbox: OutboxStore | None = None,
    notifier: NotificationSender | None = None,
    refunds: RefundGateway | None = None,
) -> Services:
    """Assemble repositories, providers and services for ``settings``.

    Any collaborator passed explicitly wins over the configured backend.
    """

    redis = None
    if settings.store_backend is StoreBackend.REDIS:
        redis = from_url(settings.redis_url, decode_responses=True)
        store = store or RedisOrderStore(redis)
        businesses = businesses or RedisBusinessDirectory(redis)
        sessions = sessions or RedisGroupSessionStore(redis)
        customers = customers or RedisCustomerDirectory(redis)
        outbox = outbox or RedisOutboxStore(redis)
    else:
        store = store or MemoryOrderStore()
        businesses = businesses or MemoryBusinessDirectory()
        sessions = sessions or MemoryGroupSessionStore()
        customers = customers or MemoryCustomerDirectory()
        outbox = outbox or MemoryOutboxStore()

    notifier = notifier or load_provider("notify", settings.notify_provider, settings)
    refunds = refunds or load_provider("refund", settings.refund_provider, settings)
    logger.info(
        "order desk wired: store=%s notify=%s refund=%s",
        settings.store_backend.value,
        type(notifier).__name__,
        type(refunds).__name__,
    )

    notices = NoticeBoard(ttl=settings.notice_ttl_secs)
    cache = OrderCache(store, settings.orders_window)
    dispatcher = SideEffectDispatcher(
        notifier=notifier,
        refunds=refunds,
        businesses=businesses,
        sessions=sessions,
        customers=customers,
        notices=notices,
        outbox=outbox,
        fallback_actor=settings.fallback_actor_label,
        session_cancel_reason=settings.session_cancel_reason,
        session_delete_reason=settings.session_delete_reason,
        max_attempts=settings.outbox_max_attempts,
    )
    engine = TransitionEngine(
        store,
        dispatcher,
        notices,
        cache,
        fallback_actor=settings.fallback_actor_label,
    )
    return Services(
        settings=settings,
        store=store,
        businesses=businesses,
        sessions=sessions,
        customers=customers,
        outbox=outbox,
        notices=notices,
        cache=cache,
        dispatcher=dispatcher,
        engine=engine,
        checklist=ChecklistTracker(store, cache),
        notifier=notifier,
        refunds=refunds,
        redis=redis,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> Actor | None:
    """Return the acting admin from the identity headers, if any were sent."""

    if not (x_user_id or x_user_name or x_user_email):
        return None
    return Actor(uid=x_user_id, display_name=x_user_name, email=x_user_email)
