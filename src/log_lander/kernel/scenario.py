from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from log_lander.kernel.context import Context


@dataclass(frozen=True, slots=True)
class StepSpec:
    name: str
    step: Callable[[object, Context | None], Iterable[object]]


@dataclass(frozen=True, slots=True)
class Scenario:
    # Immutable ordered list of bound steps.
    scenario_id: str
    steps: Sequence[StepSpec]
