from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from log_lander.kernel.step import Step


class UnknownStepError(KeyError):
    pass


# Factories take (step config, wiring) and return a ready step.
StepFactory = Callable[[dict[str, object], dict[str, object]], Step[Any, Any]]


@dataclass
class StepRegistry:
    _factories: dict[str, StepFactory] = field(default_factory=dict)

    def register(self, name: str, factory: StepFactory) -> None:
        # Later registration overrides an earlier one.
        self._factories[name] = factory

    def get(self, name: str) -> StepFactory:
        if name not in self._factories:
            raise UnknownStepError(name)
        return self._factories[name]
