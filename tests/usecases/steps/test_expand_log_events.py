from __future__ import annotations

from log_lander.domain.messages import LogRecord
from log_lander.kernel.context import ContextFactory
from log_lander.usecases.messages import FramedLine, ShardRecord
from log_lander.usecases.steps.expand_log_events import ExpandLogEvents


def _line(payload: dict[str, object]) -> FramedLine:
    return FramedLine(shard_id="s-1", payload=payload, line=b"")


def test_envelope_fans_out_with_parent_fields() -> None:
    payload = {
        "messageType": "DATA_MESSAGE",
        "owner": "123",
        "logGroup": "/svc/a",
        "logStream": "i-1",
        "subscriptionFilters": ["f"],
        "logEvents": [
            {"id": "1", "timestamp": 1700000000000, "message": "ERROR boom"},
            {"id": "2", "timestamp": 1700000000001, "message": "ok"},
        ],
    }
    out = ExpandLogEvents()(_line(payload), None)
    assert out == [
        ShardRecord("s-1", LogRecord("1", 1700000000000, "ERROR boom", "/svc/a", "i-1", "123")),
        ShardRecord("s-1", LogRecord("2", 1700000000001, "ok", "/svc/a", "i-1", "123")),
    ]


def test_flat_record_passes_through() -> None:
    out = ExpandLogEvents()(_line({"id": "9", "timestamp": 5, "message": "flat", "extra": True}), None)
    assert out == [ShardRecord("s-1", LogRecord(id="9", timestamp=5, message="flat"))]


def test_control_message_is_skipped_and_counted() -> None:
    ctx = ContextFactory("run", "test").new()
    out = ExpandLogEvents()(_line({"messageType": "CONTROL_MESSAGE", "logEvents": []}), ctx)
    assert out == []
    assert ctx.metrics["control_messages"] == 1


def test_shape_violation_is_recorded_not_raised() -> None:
    ctx = ContextFactory("run", "test").new()
    out = ExpandLogEvents()(_line({"messageType": "DATA_MESSAGE", "logEvents": "nope"}), ctx)
    assert out == []
    (error,) = ctx.errors
    assert error.code == "SHAPE_VIOLATION"
    assert error.step == "expand_log_events"
    assert error.details["kind"] == "envelope"


def test_object_of_neither_shape_is_a_violation() -> None:
    ctx = ContextFactory("run", "test").new()
    assert ExpandLogEvents()(_line({"a": 1}), ctx) == []
    assert ctx.errors[0].code == "SHAPE_VIOLATION"
