from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from log_lander.domain.messages import PartitionKey
from log_lander.domain.projection import ProjectionSpec


def resolve(moment: datetime | int, spec: ProjectionSpec) -> PartitionKey:
    # Pure: UTC components of the arrival/flush time rendered at the projection's widths.
    # Event time is never used; client clocks would scatter records across partitions.
    ts = _as_utc(moment)
    components = {"year": ts.year, "month": ts.month, "day": ts.day, "hour": ts.hour}
    rendered: dict[str, str] = {}
    for name, value in components.items():
        item = spec.field(name)
        if not item.contains(value):
            raise ValueError(f"{name}={value} is outside the projected range [{item.lo}, {item.hi}]")
        rendered[name] = item.render(value)
    return PartitionKey(**rendered)


def partition_path(key: PartitionKey, spec: ProjectionSpec) -> str:
    return spec.path_for(key.as_dict())


@dataclass(frozen=True, slots=True)
class PartitionPathResolver:
    # Bound form used by the writer; holds the shared spec, nothing else.
    spec: ProjectionSpec

    def resolve(self, moment: datetime | int) -> PartitionKey:
        return resolve(moment, self.spec)

    def path(self, moment: datetime | int) -> tuple[PartitionKey, str]:
        key = self.resolve(moment)
        return key, partition_path(key, self.spec)


def _as_utc(moment: datetime | int) -> datetime:
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")
        return moment.astimezone(UTC)
    # Integers are epoch milliseconds.
    return datetime.fromtimestamp(moment / 1000, tz=UTC)
