from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from log_lander.domain.errors import ReasonCode
from log_lander.domain.messages import LogRecord
from log_lander.kernel.context import Context
from log_lander.usecases.messages import FramedLine, ShardRecord

CONTROL_MESSAGE = "CONTROL_MESSAGE"


class _RawLogEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str
    timestamp: int
    message: str


class _RawLogBatch(BaseModel):
    # Wire shape of one subscription batch envelope.
    model_config = ConfigDict(extra="ignore")
    messageType: str
    owner: str = ""
    logGroup: str
    logStream: str
    subscriptionFilters: list[str] = Field(default_factory=list)
    logEvents: list[_RawLogEvent]


class _RawFlatRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str
    timestamp: int
    message: str
    logGroup: str = ""
    logStream: str = ""
    owner: str = ""


@dataclass(frozen=True, slots=True)
class ExpandLogEvents:
    """Turn framed envelopes into flattened LogRecords.

    A framed object is either a batch envelope (fans out to one record per log
    event) or an already-flat record. Control messages are skipped. An object
    matching neither shape is dropped on its own; sibling envelopes of the same
    stream still land.
    """

    def __call__(self, msg: FramedLine, ctx: Context | None) -> list[ShardRecord]:
        payload = msg.payload
        if payload.get("messageType") == CONTROL_MESSAGE:
            if ctx is not None:
                ctx.metric_add("control_messages")
            return []

        try:
            records = _to_records(payload)
        except ValidationError as exc:
            if ctx is not None:
                ctx.error(
                    ReasonCode.SHAPE_VIOLATION.value,
                    f"{exc.error_count()} validation error(s)",
                    step="expand_log_events",
                    details={"kind": "envelope", "keys": sorted(payload)},
                )
            return []
        return [ShardRecord(shard_id=msg.shard_id, record=record) for record in records]


def _to_records(payload: dict[str, Any]) -> list[LogRecord]:
    if "logEvents" in payload or "messageType" in payload:
        batch = _RawLogBatch.model_validate(payload)
        return [
            LogRecord(
                id=event.id,
                timestamp=event.timestamp,
                message=event.message,
                log_group=batch.logGroup,
                log_stream=batch.logStream,
                owner=batch.owner,
            )
            for event in batch.logEvents
        ]
    flat = _RawFlatRecord.model_validate(payload)
    return [
        LogRecord(
            id=flat.id,
            timestamp=flat.timestamp,
            message=flat.message,
            log_group=flat.logGroup,
            log_stream=flat.logStream,
            owner=flat.owner,
        )
    ]
