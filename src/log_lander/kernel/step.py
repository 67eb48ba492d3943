from __future__ import annotations

from collections.abc import Iterable
from typing import Generic, Protocol, TypeVar

from log_lander.kernel.context import Context

# Protocol variance: inputs are contravariant, outputs are covariant (mypy requirement).
TIn = TypeVar("TIn", contravariant=True)
TOut = TypeVar("TOut", covariant=True)


class Step(Protocol, Generic[TIn, TOut]):
    # Step contract is (msg, ctx) -> Iterable[out]: drop, map or fan out.
    def __call__(self, msg: TIn, ctx: Context | None) -> Iterable[TOut]:
        raise NotImplementedError("Step protocol has no implementation")
