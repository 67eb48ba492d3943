from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from log_lander.domain.messages import PartitionKey
from log_lander.domain.projection import default_projection_spec
from log_lander.services.partition_resolver import PartitionPathResolver, partition_path, resolve


def test_resolve_zero_pads_components() -> None:
    key = resolve(datetime(2024, 1, 5, 3, 59, tzinfo=UTC), default_projection_spec())
    assert key == PartitionKey(year="2024", month="01", day="05", hour="03")


def test_resolve_is_idempotent() -> None:
    # Same moment and projection always give the same key.
    spec = default_projection_spec()
    moment = datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
    assert resolve(moment, spec) == resolve(moment, spec) == resolve(moment, spec)


def test_resolve_converts_to_utc() -> None:
    # 01:30 at +02:00 is 23:30 UTC on the previous day.
    moment = datetime(2024, 3, 1, 1, 30, tzinfo=timezone(timedelta(hours=2)))
    key = resolve(moment, default_projection_spec())
    assert (key.month, key.day, key.hour) == ("02", "29", "23")


def test_resolve_accepts_epoch_milliseconds() -> None:
    key = resolve(1700000000000, default_projection_spec())
    assert key == PartitionKey(year="2023", month="11", day="14", hour="22")


def test_resolve_rejects_naive_datetimes() -> None:
    with pytest.raises(ValueError, match="timezone-aware"):
        resolve(datetime(2024, 1, 15, 10), default_projection_spec())


def test_resolve_rejects_values_outside_the_projected_range() -> None:
    with pytest.raises(ValueError, match="year=2040"):
        resolve(datetime(2040, 1, 1, tzinfo=UTC), default_projection_spec())


def test_resolver_path_uses_template_and_prefix() -> None:
    resolver = PartitionPathResolver(default_projection_spec(prefix="logs/"))
    key, path = resolver.path(datetime(2024, 1, 15, 10, tzinfo=UTC))
    assert path == "logs/year=2024/month=01/day=15/hour=10/"
    assert partition_path(key, resolver.spec) == path
