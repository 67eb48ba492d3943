"""Partition projection: storage addresses computed from a predicate.

No catalog and no storage listing are involved in choosing partitions. For each
partition field the engine derives the candidate values (equality/IN set, range
intersection, or the field's full configured range when unconstrained),
renders them with the same PartitionField.render the writer uses, and
substitutes them into the path template.

When the ProjectionSpec handed to the engine differs from the writer's (other digit
widths, shifted ranges, another template) the engine still succeeds and
returns addresses nothing was ever written to. It cannot tell "no data yet"
from "misconfigured", so the result is silently empty rather than an error.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from log_lander.domain.messages import PartitionKey
from log_lander.domain.projection import PARTITION_FIELDS, PartitionField, ProjectionSpec


@dataclass(frozen=True, slots=True)
class FieldConstraint:
    # values is an equality/IN set; lo/hi are inclusive bounds. All parts intersect.
    values: frozenset[int | str] | None = None
    lo: int | None = None
    hi: int | None = None

    @classmethod
    def equals(cls, value: int | str) -> FieldConstraint:
        return cls(values=frozenset({value}))

    @classmethod
    def between(cls, lo: int | None, hi: int | None) -> FieldConstraint:
        return cls(lo=lo, hi=hi)

    def merge(self, other: FieldConstraint) -> FieldConstraint:
        # AND of two constraints on the same field.
        if self.values is None:
            values = other.values
        elif other.values is None:
            values = self.values
        else:
            values = self.values & other.values
        lo = _pick(self.lo, other.lo, max)
        hi = _pick(self.hi, other.hi, min)
        return FieldConstraint(values=values, lo=lo, hi=hi)


Predicate = Mapping[str, FieldConstraint]


@dataclass(frozen=True, slots=True)
class Candidate:
    key: PartitionKey
    path: str


def candidate_values(item: PartitionField, constraint: FieldConstraint | None) -> list[str]:
    """Rendered values of one field admitted by its constraint, ascending."""
    lo, hi = item.lo, item.hi
    if constraint is not None:
        lo = max(lo, constraint.lo) if constraint.lo is not None else lo
        hi = min(hi, constraint.hi) if constraint.hi is not None else hi

    if constraint is None or constraint.values is None:
        return [item.render(value) for value in range(lo, hi + 1)]

    rendered: set[str] = set()
    for value in constraint.values:
        if item.type == "string" and isinstance(value, str):
            # String partitions compare the literal verbatim.
            rendered.add(value)
            continue
        number = int(value)
        if lo <= number <= hi:
            rendered.add(item.render(number))
    return sorted(rendered)


def iter_candidates(predicate: Predicate, spec: ProjectionSpec) -> Iterator[Candidate]:
    # Lazy: the full cross product is only walked as far as the consumer reads.
    unknown = set(predicate) - set(PARTITION_FIELDS)
    if unknown:
        raise ValueError(f"Unknown partition fields: {sorted(unknown)}")
    per_field = [candidate_values(spec.field(name), predicate.get(name)) for name in PARTITION_FIELDS]
    for combo in itertools.product(*per_field):
        rendered = dict(zip(PARTITION_FIELDS, combo))
        yield Candidate(key=PartitionKey(**rendered), path=spec.path_for(rendered))


def enumerate_paths(predicate: Predicate, spec: ProjectionSpec) -> tuple[str, ...]:
    return tuple(candidate.path for candidate in iter_candidates(predicate, spec))


def candidate_count(predicate: Predicate, spec: ProjectionSpec) -> int:
    total = 1
    for name in PARTITION_FIELDS:
        total *= len(candidate_values(spec.field(name), predicate.get(name)))
    return total


@dataclass(frozen=True, slots=True)
class PartitionProjectionEngine:
    spec: ProjectionSpec

    def enumerate(self, predicate: Predicate) -> tuple[str, ...]:
        return enumerate_paths(predicate, self.spec)

    def candidates(self, predicate: Predicate) -> Iterator[Candidate]:
        return iter_candidates(predicate, self.spec)

    def count(self, predicate: Predicate) -> int:
        return candidate_count(predicate, self.spec)


def _pick(a: int | None, b: int | None, choose) -> int | None:
    if a is None:
        return b
    if b is None:
        return a
    return choose(a, b)
