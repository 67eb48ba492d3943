from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from log_lander.kernel.context import Context, ContextFactory
from log_lander.kernel.scenario import Scenario


@dataclass(frozen=True, slots=True)
class Runner:
    """Runs a Scenario over one input, depth-first, keeping fan-out order.

    A step exception aborts the current input only when on_error is set; the
    handler decides whether it was recoverable by returning normally or by
    re-raising.
    """

    scenario: Scenario
    context_factory: ContextFactory
    on_error: Callable[[Context, Exception], None] | None = None

    def run_one(self, raw: object, *, shard_id: str | None = None) -> tuple[list[object], Context]:
        ctx = self.context_factory.new(shard_id=shard_id)
        work: list[object] = [raw]
        try:
            for step_spec in self.scenario.steps:
                next_work: list[object] = []
                for msg in work:
                    next_work.extend(step_spec.step(msg, ctx))
                work = next_work
                if not work:
                    break
        except Exception as exc:
            if self.on_error is None:
                raise
            self.on_error(ctx, exc)
            return [], ctx
        return work, ctx
