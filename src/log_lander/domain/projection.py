from __future__ import annotations

import string
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Literal

PARTITION_FIELDS: tuple[str, ...] = ("year", "month", "day", "hour")


@dataclass(frozen=True, slots=True)
class PartitionField:
    # One projected partition column: type, inclusive range, rendering width.
    name: str
    lo: int
    hi: int
    digits: int
    type: Literal["integer", "string"] = "integer"

    def __post_init__(self) -> None:
        if self.lo > self.hi:
            raise ValueError(f"{self.name}: range lower bound exceeds upper bound")
        if self.digits < 1:
            raise ValueError(f"{self.name}: digits must be positive")
        if len(str(self.hi)) > self.digits:
            raise ValueError(f"{self.name}: {self.digits} digits cannot hold {self.hi}")

    def render(self, value: int) -> str:
        # The only place a partition value becomes text; writer and query both call it.
        return str(value).zfill(self.digits)

    def contains(self, value: int) -> bool:
        return self.lo <= value <= self.hi

    def values(self) -> Iterator[int]:
        return iter(range(self.lo, self.hi + 1))


@dataclass(frozen=True, slots=True)
class ProjectionSpec:
    """Shared, read-only layout description.

    A single instance is built from configuration and handed to both the
    object writer and the projection engine; neither side re-derives it.
    """

    prefix: str
    template: str
    fields: tuple[PartitionField, ...]

    def __post_init__(self) -> None:
        names = tuple(f.name for f in self.fields)
        if names != PARTITION_FIELDS:
            raise ValueError(f"projection fields must be {PARTITION_FIELDS}, got {names}")
        referenced = {
            name for _, name, _, _ in string.Formatter().parse(self.template) if name
        }
        missing = set(PARTITION_FIELDS) - referenced
        if missing:
            raise ValueError(f"path template does not reference {sorted(missing)}")
        unknown = referenced - set(PARTITION_FIELDS) - {"prefix"}
        if unknown:
            raise ValueError(f"path template references unknown fields {sorted(unknown)}")

    def field(self, name: str) -> PartitionField:
        for item in self.fields:
            if item.name == name:
                return item
        raise KeyError(name)

    def path_for(self, rendered: Mapping[str, str]) -> str:
        return self.template.format(prefix=self.prefix, **rendered)


def default_projection_spec(prefix: str = "") -> ProjectionSpec:
    # Defaults mirror the config model defaults.
    return ProjectionSpec(
        prefix=prefix,
        template="{prefix}year={year}/month={month}/day={day}/hour={hour}/",
        fields=(
            PartitionField(name="year", lo=2020, hi=2035, digits=4),
            PartitionField(name="month", lo=1, hi=12, digits=2),
            PartitionField(name="day", lo=1, hi=31, digits=2),
            PartitionField(name="hour", lo=0, hi=23, digits=2),
        ),
    )
