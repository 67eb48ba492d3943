from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

from log_lander.domain.errors import QueryError
from log_lander.domain.projection import PARTITION_FIELDS, ProjectionSpec
from log_lander.services.projection_engine import FieldConstraint

Scalar = int | str

ROW_FIELDS: tuple[str, ...] = (
    "id",
    "timestamp",
    "message",
    "logGroup",
    "logStream",
    "owner",
    *PARTITION_FIELDS,
    "dedup_key",
    "path",
)

OPERATORS: frozenset[str] = frozenset({"=", "!=", "<", "<=", ">", ">=", "LIKE", "NOT LIKE", "IN", "BETWEEN"})

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Operators that narrow a partition field to a value set or a range.
_PRUNABLE = frozenset({"=", "IN", "BETWEEN", "<", "<=", ">", ">="})


@dataclass(frozen=True, slots=True)
class Comparison:
    field: str
    op: str
    value: Scalar | tuple[Scalar, ...]

    def __post_init__(self) -> None:
        if self.field not in ROW_FIELDS:
            raise QueryError(f"Unknown field: {self.field}")
        if self.op not in OPERATORS:
            raise QueryError(f"Unsupported operator: {self.op}")
        if self.op in ("IN", "BETWEEN") and not isinstance(self.value, tuple):
            raise QueryError(f"{self.op} needs a tuple of values")
        if self.op == "BETWEEN" and len(self.value) != 2:  # type: ignore[arg-type]
            raise QueryError("BETWEEN needs exactly two values")
        if self.field == "timestamp" and self.op not in ("LIKE", "NOT LIKE"):
            value = self.value
            normalized = tuple(epoch_ms(item) for item in value) if isinstance(value, tuple) else epoch_ms(value)
            object.__setattr__(self, "value", normalized)

    def matches(self, row: Mapping[str, Any]) -> bool:
        actual = row.get(self.field)
        if actual is None:
            return False
        if self.op == "LIKE":
            return like_pattern(str(self.value)).fullmatch(str(actual)) is not None
        if self.op == "NOT LIKE":
            return like_pattern(str(self.value)).fullmatch(str(actual)) is None
        if self.op == "IN":
            return any(_compare(actual, "=", item) for item in self.value)  # type: ignore[union-attr]
        if self.op == "BETWEEN":
            lo, hi = self.value  # type: ignore[misc]
            return _compare(actual, ">=", lo) and _compare(actual, "<=", hi)
        return _compare(actual, self.op, self.value)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class OrderBy:
    field: str
    descending: bool = False

    def __post_init__(self) -> None:
        if self.field not in ROW_FIELDS:
            raise QueryError(f"Unknown field: {self.field}")


@dataclass(frozen=True, slots=True)
class Query:
    """Conjunction of comparisons plus ordering and limit."""

    terms: tuple[Comparison, ...] = ()
    order_by: tuple[OrderBy, ...] = ()
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise QueryError("LIMIT must be non-negative")


@dataclass(frozen=True, slots=True)
class SplitPredicate:
    partition: dict[str, FieldConstraint] = field(default_factory=dict)
    residual: tuple[Comparison, ...] = ()


def split_predicate(terms: tuple[Comparison, ...], spec: ProjectionSpec) -> SplitPredicate:
    # Partition terms prune addresses; every other term is checked per row.
    partition: dict[str, FieldConstraint] = {}
    residual: list[Comparison] = []
    for term in terms:
        if term.field not in PARTITION_FIELDS or term.op not in _PRUNABLE:
            residual.append(term)
            continue
        constraint = _to_constraint(term, spec)
        existing = partition.get(term.field)
        partition[term.field] = constraint if existing is None else existing.merge(constraint)
    return SplitPredicate(partition=partition, residual=tuple(residual))


def _to_constraint(term: Comparison, spec: ProjectionSpec) -> FieldConstraint:
    string_typed = spec.field(term.field).type == "string"

    def coerce(value: Scalar) -> int | str:
        if string_typed and isinstance(value, str):
            return value
        try:
            return int(value)
        except ValueError as exc:
            raise QueryError(f"{term.field} expects an integer, got {value!r}") from exc

    def bound(value: Scalar) -> int:
        # Ranges need integers even on string-typed fields.
        try:
            return int(value)
        except ValueError as exc:
            raise QueryError(f"{term.op} on {term.field} needs integer bounds, got {value!r}") from exc

    if term.op == "=":
        return FieldConstraint.equals(coerce(term.value))  # type: ignore[arg-type]
    if term.op == "IN":
        return FieldConstraint(values=frozenset(coerce(item) for item in term.value))  # type: ignore[union-attr]
    if term.op == "BETWEEN":
        lo, hi = term.value  # type: ignore[misc]
        return FieldConstraint.between(bound(lo), bound(hi))
    limit = bound(term.value)  # type: ignore[arg-type]
    if term.op == "<":
        return FieldConstraint.between(None, limit - 1)
    if term.op == "<=":
        return FieldConstraint.between(None, limit)
    if term.op == ">":
        return FieldConstraint.between(limit + 1, None)
    return FieldConstraint.between(limit, None)


def epoch_ms(value: Scalar) -> int:
    """Event-time literal as epoch milliseconds: an integer or an ISO-8601 string.

    A string without an offset is read as UTC.
    """
    if isinstance(value, int):
        return value
    text = value.strip()
    if text.lstrip("-").isdigit():
        return int(text)
    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise QueryError(f"timestamp expects epoch milliseconds or an ISO-8601 time, got {value!r}") from exc
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return (moment - _EPOCH) // timedelta(milliseconds=1)


@lru_cache(maxsize=256)
def like_pattern(pattern: str) -> re.Pattern[str]:
    # SQL LIKE: % is any run, _ is one character, everything else is literal.
    parts: list[str] = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


def _compare(actual: Any, op: str, expected: Scalar) -> bool:
    left, right = _align(actual, expected)
    if op == "=":
        return left == right
    if op == "!=":
        return left != right
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    if op == ">=":
        return left >= right
    raise QueryError(f"Unsupported operator: {op}")


def _align(actual: Any, expected: Scalar) -> tuple[Any, Any]:
    # Numbers compare numerically when both sides allow it, otherwise as text.
    if isinstance(actual, int) and isinstance(expected, str):
        try:
            return actual, int(expected)
        except ValueError:
            return str(actual), expected
    if isinstance(actual, str) and isinstance(expected, int):
        return actual, str(expected)
    return actual, expected
