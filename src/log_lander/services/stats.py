from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock

COUNTERS: tuple[str, ...] = (
    "batches_received",
    "batches_malformed",
    "control_messages",
    "records_framed",
    "fragments_dropped",
    "objects_written",
    "write_retries",
    "delivery_failures",
)


@dataclass
class IngestStats:
    # Shared across shard actors, so every update takes the lock.
    _counters: dict[str, int] = field(default_factory=lambda: {name: 0 for name in COUNTERS})
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    def increment(self, name: str, delta: int = 1) -> None:
        if name not in self._counters:
            raise KeyError(f"Unknown counter: {name}")
        with self._lock:
            self._counters[name] += delta

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters[name]

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counters)
