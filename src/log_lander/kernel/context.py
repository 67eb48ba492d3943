from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True, slots=True)
class CtxError:
    # Structured record of something dropped while processing one batch.
    code: str
    message: str
    step: str | None = None
    details: dict[str, object] = field(default_factory=dict)


@dataclass(slots=True)
class Context:
    # Per-batch runtime metadata; domain data travels in messages, not here.
    trace_id: str
    run_id: str
    scenario_id: str
    received_at: datetime
    shard_id: str | None = None
    metrics: dict[str, float] = field(default_factory=dict)
    errors: list[CtxError] = field(default_factory=list)
    deferred: list[Exception] = field(default_factory=list)

    def metric_add(self, key: str, value: float | int = 1) -> None:
        if not isinstance(value, (float, int)):
            raise TypeError("Context.metric_add value must be numeric")
        self.metrics[key] = self.metrics.get(key, 0.0) + float(value)

    def defer(self, exc: Exception) -> None:
        # Raised by the caller once the whole batch has been processed.
        self.deferred.append(exc)

    def error(
        self,
        code: str,
        message: str,
        *,
        step: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        self.errors.append(
            CtxError(code=code, message=message, step=step, details={} if details is None else details)
        )


@dataclass(frozen=True, slots=True)
class ContextFactory:
    run_id: str
    scenario_id: str

    def new(self, *, shard_id: str | None = None) -> Context:
        return Context(
            trace_id=uuid.uuid4().hex,
            run_id=self.run_id,
            scenario_id=self.scenario_id,
            received_at=datetime.now(tz=UTC),
            shard_id=shard_id,
        )
