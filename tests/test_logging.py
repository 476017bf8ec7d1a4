import json
import logging

from orderdesk.middlewares.request_id import actor_ctx, request_id_ctx
from orderdesk.obs.logging import JsonFormatter, RequestIdFilter


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("orders", logging.INFO, __file__, 0, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_logger_redaction():
    record = _record("courier +90 555 123 4567 wrote from mert@example.com")
    data = json.loads(JsonFormatter().format(record))
    assert "mert@example.com" not in data["msg"]
    assert "555 123 4567" not in data["msg"]
    assert data["msg"].count("***") == 2


def test_order_fields_are_carried():
    record = _record("order status pending -> accepted", order_id="o1", kind="refund")
    data = json.loads(JsonFormatter().format(record))
    assert data["logger"] == "orders"
    assert data["order_id"] == "o1"
    assert data["kind"] == "refund"
    assert data["level"] == "INFO"


def test_filter_stamps_request_and_actor():
    rid = request_id_ctx.set("req-9")
    who = actor_ctx.set("admin-1")
    try:
        record = _record("order deleted")
        assert RequestIdFilter().filter(record)
    finally:
        request_id_ctx.reset(rid)
        actor_ctx.reset(who)
    data = json.loads(JsonFormatter().format(record))
    assert data["req_id"] == "req-9"
    assert data["actor"] == "admin-1"
