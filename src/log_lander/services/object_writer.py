"""Per-shard buffering and durable flushes.

Each shard owns one BufferShard. Records are appended as newline-terminated
JSON lines; a flush seals the current generation, compresses it once, resolves
the partition path from the flush time and writes one new object. Sealing
hands the lines to the in-flight delivery, so records arriving meanwhile land
in the next generation.

Delivery is at-least-once. A WriteTimeout is ambiguous (the store may have
stored the object anyway), so the retry writes a new object name and may leave
a duplicate behind. When the retry budget is spent the sealed generation is
kept for redrive and DeliveryFailed is raised to the caller.
"""

from __future__ import annotations

import re
import time
import uuid
from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime

from log_lander.domain.errors import DeliveryFailed, WriteTimeout
from log_lander.domain.messages import Codec, LogRecord, PartitionKey, StorageObject
from log_lander.observability.logging import StructuredLogger
from log_lander.ports.object_store import ObjectStore
from log_lander.services import codecs
from log_lander.services.partition_resolver import PartitionPathResolver
from log_lander.services.stats import IngestStats

Clock = Callable[[], datetime]

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]")


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class FlushThresholds:
    # Whichever fires first wins; defaults favor latency over object count.
    size_bytes: int = 1024 * 1024
    interval_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.size_bytes <= 0 or self.interval_seconds <= 0:
            raise ValueError("flush thresholds must be positive")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_ms: int = 200
    multiplier: float = 2.0
    max_backoff_ms: int = 5000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delays(self) -> Iterator[float]:
        # Seconds to wait before attempt 2..max_attempts.
        delay = float(self.backoff_ms)
        for _ in range(self.max_attempts - 1):
            yield min(delay, float(self.max_backoff_ms)) / 1000.0
            delay *= self.multiplier


@dataclass(slots=True)
class BufferShard:
    shard_id: str
    generation: int = 0
    lines: list[bytes] = field(default_factory=list)
    size_bytes: int = 0
    opened_at: datetime | None = None

    def add(self, line: bytes, now: datetime) -> None:
        if self.opened_at is None:
            self.opened_at = now
        self.lines.append(line)
        self.size_bytes += len(line)

    def is_empty(self) -> bool:
        return not self.lines

    def age_seconds(self, now: datetime) -> float:
        if self.opened_at is None:
            return 0.0
        return (now - self.opened_at).total_seconds()

    def seal(self) -> SealedGeneration:
        sealed = SealedGeneration(
            shard_id=self.shard_id,
            generation=self.generation,
            lines=tuple(self.lines),
            size_bytes=self.size_bytes,
        )
        # Reset into the next generation.
        self.generation += 1
        self.lines = []
        self.size_bytes = 0
        self.opened_at = None
        return sealed


@dataclass(frozen=True, slots=True)
class SealedGeneration:
    shard_id: str
    generation: int
    lines: tuple[bytes, ...]
    size_bytes: int


@dataclass(frozen=True, slots=True)
class PendingDelivery:
    # Everything needed to retry a flush without recompressing or re-resolving.
    sealed: SealedGeneration
    partition: PartitionKey
    partition_path: str
    flushed_at: datetime
    body: bytes
    reason: str


class ShardWriter:
    """Buffer and flush logic for exactly one shard; not thread-safe by itself."""

    def __init__(
        self,
        shard_id: str,
        *,
        resolver: PartitionPathResolver,
        store: ObjectStore,
        thresholds: FlushThresholds | None = None,
        retry: RetryPolicy | None = None,
        codec: Codec = Codec.GZIP,
        object_prefix: str = "",
        auto_redrive: bool = True,
        clock: Clock = utc_now,
        sleep: Callable[[float], None] = time.sleep,
        token: Callable[[], str] = lambda: uuid.uuid4().hex[:8],
        logger: StructuredLogger | None = None,
        stats: IngestStats | None = None,
    ) -> None:
        self.shard_id = shard_id
        self._resolver = resolver
        self._store = store
        self._thresholds = thresholds or FlushThresholds()
        self._retry = retry or RetryPolicy()
        self._codec = codec
        self._object_prefix = object_prefix
        self._auto_redrive = auto_redrive
        self._clock = clock
        self._sleep = sleep
        self._token = token
        self._logger = logger
        self._stats = stats or IngestStats()
        self._buffer = BufferShard(shard_id=shard_id)
        self._failed: deque[PendingDelivery] = deque()

    @property
    def buffer(self) -> BufferShard:
        return self._buffer

    @property
    def pending_redrive(self) -> int:
        return len(self._failed)

    def append(self, record: LogRecord) -> list[StorageObject]:
        now = self._clock()
        self._buffer.add(record.to_line(shard_id=self.shard_id, generation=self._buffer.generation), now)
        if self._buffer.size_bytes >= self._thresholds.size_bytes:
            return self.flush(reason="size")
        return []

    def due(self) -> str | None:
        if self._buffer.is_empty():
            return None
        if self._buffer.size_bytes >= self._thresholds.size_bytes:
            return "size"
        if self._buffer.age_seconds(self._clock()) >= self._thresholds.interval_seconds:
            return "age"
        return None

    def seconds_until_due(self) -> float | None:
        # Used by the shard actor to sleep exactly until the age trigger.
        if self._buffer.is_empty():
            return None
        remaining = self._thresholds.interval_seconds - self._buffer.age_seconds(self._clock())
        return max(0.0, remaining)

    def tick(self) -> list[StorageObject]:
        reason = self.due()
        if reason is None:
            return []
        return self.flush(reason=reason)

    def flush(self, *, reason: str = "manual") -> list[StorageObject]:
        written: list[StorageObject] = []
        if self._auto_redrive and self._failed:
            written.extend(self.redrive())
        if self._buffer.is_empty():
            return written

        flushed_at = self._clock()
        # Resolve before sealing so a bad timestamp leaves the buffer untouched.
        partition, prefix = self._resolver.path(flushed_at)
        sealed = self._buffer.seal()
        body = codecs.compress(b"".join(sealed.lines), self._codec)
        pending = PendingDelivery(
            sealed=sealed,
            partition=partition,
            partition_path=prefix,
            flushed_at=flushed_at,
            body=body,
            reason=reason,
        )
        written.append(self._deliver(pending))
        return written

    def redrive(self) -> list[StorageObject]:
        written: list[StorageObject] = []
        while self._failed:
            pending = self._failed.popleft()
            if self._logger is not None:
                self._logger.info(
                    "writer.redrive",
                    shard=self.shard_id,
                    generation=pending.sealed.generation,
                )
            written.append(self._deliver(pending))
        return written

    def _deliver(self, pending: PendingDelivery) -> StorageObject:
        sealed = pending.sealed
        delays = self._retry.delays()
        attempts = 0
        while True:
            attempts += 1
            key = self._object_key(pending)
            try:
                self._store.put(key, pending.body, content_type=codecs.CONTENT_TYPES[self._codec])
            except WriteTimeout as exc:
                delay = next(delays, None)
                if delay is None:
                    self._park(pending)
                    self._stats.increment("delivery_failures")
                    if self._logger is not None:
                        self._logger.error(
                            "writer.delivery_failed",
                            shard=self.shard_id,
                            generation=sealed.generation,
                            attempts=attempts,
                            error=str(exc),
                        )
                    raise DeliveryFailed(self.shard_id, sealed.generation, attempts) from exc
                self._stats.increment("write_retries")
                if self._logger is not None:
                    self._logger.warning(
                        "writer.retry",
                        shard=self.shard_id,
                        generation=sealed.generation,
                        attempt=attempts,
                        delay_seconds=delay,
                    )
                self._sleep(delay)
                continue
            except Exception:
                # Non-timeout failures are not retried, but the records are kept.
                self._park(pending)
                raise
            break

        self._stats.increment("objects_written")
        result = StorageObject(
            path=key,
            shard_id=self.shard_id,
            generation=sealed.generation,
            record_count=len(sealed.lines),
            size_bytes=sealed.size_bytes,
            compressed_bytes=len(pending.body),
            attempts=attempts,
            reason=pending.reason,
            partition=pending.partition,
            flushed_at=pending.flushed_at,
        )
        if self._logger is not None:
            self._logger.info(
                "writer.flush",
                shard=self.shard_id,
                generation=sealed.generation,
                path=key,
                records=result.record_count,
                bytes=result.size_bytes,
                compressed_bytes=result.compressed_bytes,
                reason=pending.reason,
                attempts=attempts,
            )
        return result

    def _park(self, pending: PendingDelivery) -> None:
        # Back to the head of the queue so redrive keeps generation order.
        self._failed.appendleft(pending)

    def _object_key(self, pending: PendingDelivery) -> str:
        # Fresh token per attempt: a timed-out write that actually landed stays as a duplicate.
        epoch_ms = int(pending.flushed_at.timestamp() * 1000)
        shard = _UNSAFE_NAME.sub("_", self.shard_id)
        name = (
            f"{self._object_prefix}{shard}-{pending.sealed.generation:06d}-{epoch_ms}-"
            f"{self._token()}.{codecs.EXTENSIONS[self._codec]}"
        )
        return pending.partition_path + name


class ObjectWriter:
    """Shard-keyed facade over ShardWriter instances.

    Shards are created on their first record. The facade is meant to be driven
    from one thread; concurrent shards go through ShardActor instead.
    """

    def __init__(self, factory: Callable[[str], ShardWriter]) -> None:
        self._factory = factory
        self._shards: dict[str, ShardWriter] = {}

    def shard(self, shard_id: str) -> ShardWriter:
        writer = self._shards.get(shard_id)
        if writer is None:
            writer = self._factory(shard_id)
            self._shards[shard_id] = writer
        return writer

    def shard_ids(self) -> list[str]:
        return sorted(self._shards)

    def append(self, shard_id: str, record: LogRecord) -> list[StorageObject]:
        return self.shard(shard_id).append(record)

    def tick(self) -> list[StorageObject]:
        written: list[StorageObject] = []
        for shard_id in self.shard_ids():
            written.extend(self._shards[shard_id].tick())
        return written

    def flush(self, shard_id: str, *, reason: str = "manual") -> list[StorageObject]:
        return self.shard(shard_id).flush(reason=reason)

    def redrive(self, shard_id: str) -> list[StorageObject]:
        return self.shard(shard_id).redrive()

    def close(self) -> list[StorageObject]:
        written: list[StorageObject] = []
        for shard_id in self.shard_ids():
            written.extend(self._shards[shard_id].flush(reason="shutdown"))
        return written
