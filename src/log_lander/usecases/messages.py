from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from log_lander.domain.messages import LogRecord, StorageObject


# Step-to-step messages of the landing pipeline live here; the domain stays minimal.
@dataclass(frozen=True, slots=True)
class DecodedStream:
    # Output of the receiver: plain UTF-8 bytes, possibly many concatenated envelopes.
    shard_id: str
    arrival: datetime
    data: bytes


@dataclass(frozen=True, slots=True)
class FramedLine:
    # One framed top-level object with its canonical newline-terminated form.
    shard_id: str
    payload: dict[str, object]
    line: bytes


@dataclass(frozen=True, slots=True)
class ShardRecord:
    shard_id: str
    record: LogRecord


@dataclass(frozen=True, slots=True)
class Landed:
    # Emitted for every object a flush committed while appending this batch.
    shard_id: str
    storage_object: StorageObject
