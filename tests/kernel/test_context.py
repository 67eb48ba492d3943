from __future__ import annotations

from datetime import UTC, datetime

import pytest

from log_lander.kernel.context import ContextFactory


def test_context_factory_sets_required_fields() -> None:
    # Factory populates ids and initializes empty containers.
    ctx = ContextFactory(run_id="run1", scenario_id="land_logs").new(shard_id="s-1")
    assert ctx.trace_id
    assert ctx.run_id == "run1"
    assert ctx.scenario_id == "land_logs"
    assert ctx.shard_id == "s-1"
    assert isinstance(ctx.received_at, datetime)
    assert ctx.received_at.tzinfo is UTC
    assert ctx.metrics == {}
    assert ctx.errors == []
    assert ctx.deferred == []


def test_context_is_unique_per_batch() -> None:
    factory = ContextFactory(run_id="run1", scenario_id="land_logs")
    assert factory.new().trace_id != factory.new().trace_id


def test_metric_add_accumulates_and_rejects_non_numbers() -> None:
    ctx = ContextFactory(run_id="run1", scenario_id="land_logs").new()
    ctx.metric_add("records_framed", 2)
    ctx.metric_add("records_framed")
    assert ctx.metrics["records_framed"] == 3.0
    with pytest.raises(TypeError):
        ctx.metric_add("bad", "1")  # type: ignore[arg-type]


def test_error_adds_structured_record() -> None:
    ctx = ContextFactory(run_id="run1", scenario_id="land_logs").new()
    ctx.error("TRAILING_FRAGMENT", "cut off", step="frame_records", details={"offset": 7})
    err = ctx.errors[0]
    assert (err.code, err.message, err.step, err.details) == (
        "TRAILING_FRAGMENT",
        "cut off",
        "frame_records",
        {"offset": 7},
    )


def test_defer_keeps_exceptions_in_order() -> None:
    ctx = ContextFactory(run_id="run1", scenario_id="land_logs").new()
    first, second = RuntimeError("first"), RuntimeError("second")
    ctx.defer(first)
    ctx.defer(second)
    assert ctx.deferred == [first, second]
