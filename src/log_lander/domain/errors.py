from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# Stable reason codes for dropped input; they show up in logs and in Context errors.
class ReasonCode(str, Enum):
    INVALID_CODEC = "INVALID_CODEC"
    DOUBLE_COMPRESSION = "DOUBLE_COMPRESSION"
    DECOMPRESSION_FAILED = "DECOMPRESSION_FAILED"
    NOT_UTF8 = "NOT_UTF8"
    SHAPE_VIOLATION = "SHAPE_VIOLATION"
    TRAILING_FRAGMENT = "TRAILING_FRAGMENT"
    UNBALANCED_OBJECT = "UNBALANCED_OBJECT"
    INVALID_JSON = "INVALID_JSON"


class LandingError(Exception):
    pass


class MalformedBatch(LandingError, ValueError):
    # Batch-level rejection; the batch is dropped and counted, the pipeline keeps running.
    def __init__(self, reason: ReasonCode, detail: str = "") -> None:
        message = reason.value if not detail else f"{reason.value}: {detail}"
        super().__init__(message)
        self.reason = reason
        self.detail = detail


class WriteTimeout(LandingError, TimeoutError):
    # Raised by object stores when a write was not acknowledged in time.
    pass


class DeliveryFailed(LandingError, RuntimeError):
    # Retry budget exhausted; the sealed generation stays queued for redrive.
    def __init__(self, shard_id: str, generation: int, attempts: int) -> None:
        super().__init__(
            f"delivery failed for shard '{shard_id}' generation {generation} after {attempts} attempts"
        )
        self.shard_id = shard_id
        self.generation = generation
        self.attempts = attempts


class QueryError(LandingError, ValueError):
    pass


class QueryCancelled(LandingError):
    pass


@dataclass(frozen=True, slots=True)
class PartialParseWarning:
    # A fragment the framer could not turn into a record; it is dropped, never carried over.
    reason: ReasonCode
    offset: int
    fragment: bytes

    def describe(self) -> str:
        preview = self.fragment[:64].decode("utf-8", errors="replace")
        return f"{self.reason.value} at byte {self.offset}: {preview!r}"
