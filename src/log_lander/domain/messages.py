from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class Codec(str, Enum):
    # Compression codecs understood by the receiver and the writer.
    GZIP = "gzip"
    ZSTD = "zstd"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class LogBatch:
    # Raw unit handed over by the log source; owned by the receiver until framed.
    payload: bytes
    codec: Codec
    arrival: datetime
    shard_id: str


@dataclass(frozen=True, slots=True)
class LogRecord:
    """Flattened record as persisted: one per log event, parent fields copied in."""

    id: str
    timestamp: int
    message: str
    log_group: str = ""
    log_stream: str = ""
    owner: str = ""

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "message": self.message,
            "logGroup": self.log_group,
            "logStream": self.log_stream,
            "owner": self.owner,
        }

    def to_line(self, *, shard_id: str | None = None, generation: int | None = None) -> bytes:
        # Exactly one newline per record; json.dumps escapes newlines and non-ASCII text.
        payload = self.to_wire()
        if shard_id is not None:
            payload["_shard"] = shard_id
        if generation is not None:
            payload["_generation"] = generation
        return json.dumps(payload, separators=(",", ":")).encode("ascii") + b"\n"

    def dedup_key(self, shard_id: str, generation: int) -> str:
        return f"{self.id}:{shard_id}:{generation}"

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any], *, parent: Mapping[str, Any] | None = None) -> LogRecord:
        shared = parent or {}
        return cls(
            id=str(payload["id"]),
            timestamp=int(payload["timestamp"]),
            message=str(payload["message"]),
            log_group=str(payload.get("logGroup", shared.get("logGroup", ""))),
            log_stream=str(payload.get("logStream", shared.get("logStream", ""))),
            owner=str(payload.get("owner", shared.get("owner", ""))),
        )


@dataclass(frozen=True, slots=True)
class PartitionKey:
    # Components are already rendered at the configured digit widths.
    year: str
    month: str
    day: str
    hour: str

    def as_dict(self) -> dict[str, str]:
        return {"year": self.year, "month": self.month, "day": self.day, "hour": self.hour}


@dataclass(frozen=True, slots=True)
class StorageObject:
    # Descriptor of one committed flush; the object itself is write-once.
    path: str
    shard_id: str
    generation: int
    record_count: int
    size_bytes: int
    compressed_bytes: int
    attempts: int
    reason: str
    partition: PartitionKey | None = None
    flushed_at: datetime | None = None
