"""Redis-backed repository implementations.

Order documents are stored as JSON strings under ``order:<id>`` and indexed
by creation time in the ``orders:created`` sorted set. Every write is a
``WATCH``/``MULTI`` transaction on a single key, so a status change and its
sibling fields land together or not at all. Changes are announced on the
``rt:orders`` channel for live queries.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Mapping

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from ..domain.errors import (
    CounterIncrementError,
    NotFoundError,
    SessionCascadeError,
    StoreWriteError,
)
from ..domain.models import Business, Order, OutboxEntry, as_datetime
from ..domain.updates import apply_updates
from .orders_repo import (
    BusinessDirectory,
    CustomerDirectory,
    GroupSessionStore,
    OrderStore,
    OutboxStore,
)

ORDER_KEY = "order:{}"
CREATED_INDEX = "orders:created"
ORDERS_CHANNEL = "rt:orders"
BUSINESS_KEY = "business:{}"
SESSION_KEY = "group_session:{}"
USER_KEY = "user:{}"
OUTBOX_KEY = "outbox:side_effects"

logger = logging.getLogger("orders")


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"cannot encode {type(value).__name__}")


def _dumps(document: Mapping[str, Any]) -> str:
    return json.dumps(document, default=_encode)


def _text(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


def _decode_hash(raw: Mapping[Any, Any]) -> dict[str, str]:
    return {_text(k): _text(v) for k, v in raw.items()}


class RedisOrderStore(OrderStore):
    """Persist orders in Redis with pub/sub change notification."""

    def __init__(self, redis: Redis, max_retries: int = 5) -> None:
        self.redis = redis
        self.max_retries = max_retries

    async def _publish(self, order_id: str) -> None:
        try:
            await self.redis.publish(ORDERS_CHANNEL, order_id)
        except RedisError:  # pragma: no cover - listeners resync on next change
            logger.warning("order change publish failed", extra={"order_id": order_id})

    async def put_order(self, order_id: str, document: Mapping[str, Any]) -> None:
        doc = dict(document)
        created = as_datetime(doc.get("createdAt")) or datetime.now(timezone.utc)
        doc["createdAt"] = created
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.set(ORDER_KEY.format(order_id), _dumps(doc))
                pipe.zadd(CREATED_INDEX, {order_id: created.timestamp()})
                await pipe.execute()
        except RedisError as exc:
            raise StoreWriteError(str(exc)) from exc
        await self._publish(order_id)

    async def get_order(self, order_id: str) -> Order:
        raw = await self.redis.get(ORDER_KEY.format(order_id))
        if raw is None:
            raise NotFoundError("order", order_id)
        return Order.from_document(order_id, json.loads(raw))

    async def update_order_fields(
        self, order_id: str, updates: Mapping[str, Any]
    ) -> None:
        key = ORDER_KEY.format(order_id)
        try:
            for _ in range(self.max_retries):
                async with self.redis.pipeline(transaction=True) as pipe:
                    try:
                        await pipe.watch(key)
                        raw = await pipe.get(key)
                        if raw is None:
                            raise NotFoundError("order", order_id)
                        doc = apply_updates(json.loads(raw), updates)
                        pipe.multi()
                        pipe.set(key, _dumps(doc))
                        await pipe.execute()
                        break
                    except WatchError:
                        continue
            else:
                raise StoreWriteError(f"order {order_id!r} kept changing during update")
        except RedisError as exc:
            raise StoreWriteError(str(exc)) from exc
        await self._publish(order_id)

    async def delete_order(self, order_id: str) -> None:
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.delete(ORDER_KEY.format(order_id))
                pipe.zrem(CREATED_INDEX, order_id)
                deleted, _ = await pipe.execute()
        except RedisError as exc:
            raise StoreWriteError(str(exc)) from exc
        if not deleted:
            raise NotFoundError("order", order_id)
        await self._publish(order_id)

    async def list_orders(self, since: datetime | None = None) -> list[Order]:
        low: float | str = since.timestamp() if since is not None else "-inf"
        ids = [
            _text(i) for i in await self.redis.zrevrangebyscore(CREATED_INDEX, "+inf", low)
        ]
        if not ids:
            return []
        raws = await self.redis.mget([ORDER_KEY.format(i) for i in ids])
        return [
            Order.from_document(order_id, json.loads(raw))
            for order_id, raw in zip(ids, raws)
            if raw is not None
        ]

    async def subscribe_orders(
        self, since: datetime | None = None
    ) -> AsyncIterator[list[Order]]:
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(ORDERS_CHANNEL)
        try:
            yield await self.list_orders(since)
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                yield await self.list_orders(since)
        finally:
            await pubsub.unsubscribe(ORDERS_CHANNEL)
            await pubsub.aclose()


class RedisBusinessDirectory(BusinessDirectory):
    def __init__(self, redis: Redis) -> None:
        self.redis = redis

    async def get_business(self, business_id: str) -> Business:
        raw = _decode_hash(await self.redis.hgetall(BUSINESS_KEY.format(business_id)))
        if not raw:
            raise NotFoundError("business", business_id)
        return Business(
            id=business_id,
            name=raw.get("companyName") or raw.get("name", ""),
            has_table_service=raw.get("hasTableService", "").lower() in {"1", "true"},
            fulfillment_issues=int(raw.get("fulfillmentIssues") or 0),
            last_fulfillment_issue=as_datetime(raw.get("lastFulfillmentIssue")),
        )

    async def increment_fulfillment_issues(
        self, business_id: str, by: int, at: datetime
    ) -> None:
        key = BUSINESS_KEY.format(business_id)
        if not await self.redis.exists(key):
            raise NotFoundError("business", business_id)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.hincrby(key, "fulfillmentIssues", by)
                pipe.hset(key, "lastFulfillmentIssue", at.isoformat())
                await pipe.execute()
        except RedisError as exc:
            raise CounterIncrementError(str(exc)) from exc


class RedisGroupSessionStore(GroupSessionStore):
    def __init__(self, redis: Redis) -> None:
        self.redis = redis

    async def cancel_session(
        self, session_id: str, reason: str, cancelled_by: str, at: datetime
    ) -> None:
        key = SESSION_KEY.format(session_id)
        if not await self.redis.exists(key):
            raise NotFoundError("group session", session_id)
        try:
            await self.redis.hset(
                key,
                mapping={
                    "status": "cancelled",
                    "closedAt": at.isoformat(),
                    "cancelledBy": cancelled_by,
                    "cancelReason": reason,
                },
            )
        except RedisError as exc:
            raise SessionCascadeError(str(exc)) from exc


class RedisCustomerDirectory(CustomerDirectory):
    def __init__(self, redis: Redis) -> None:
        self.redis = redis

    async def get_push_token(self, customer_id: str) -> str | None:
        token = await self.redis.hget(USER_KEY.format(customer_id), "fcmToken")
        return _text(token) if token else None


class RedisOutboxStore(OutboxStore):
    """Outbox entries kept in a single hash keyed by entry id."""

    def __init__(self, redis: Redis) -> None:
        self.redis = redis

    async def add(self, entry: OutboxEntry) -> OutboxEntry:
        if not entry.id:
            entry.id = str(await self.redis.incr(f"{OUTBOX_KEY}:seq"))
        await self.save(entry)
        return entry

    async def save(self, entry: OutboxEntry) -> None:
        await self.redis.hset(OUTBOX_KEY, entry.id, json.dumps(entry.to_document()))

    async def list(self, status: str | None = None) -> list[OutboxEntry]:
        raw = await self.redis.hgetall(OUTBOX_KEY)
        entries = [OutboxEntry.from_document(json.loads(v)) for v in raw.values()]
        entries.sort(key=lambda e: int(e.id) if e.id.isdigit() else 0)
        return [e for e in entries if status is None or e.status == status]
