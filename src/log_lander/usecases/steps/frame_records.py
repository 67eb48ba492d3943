from __future__ import annotations

from dataclasses import dataclass, field

from log_lander.kernel.context import Context
from log_lander.services.record_framer import RecordFramer
from log_lander.usecases.messages import DecodedStream, FramedLine


@dataclass(frozen=True, slots=True)
class FrameRecords:
    framer: RecordFramer = field(default_factory=RecordFramer)

    def __call__(self, msg: DecodedStream, ctx: Context | None) -> list[FramedLine]:
        result = self.framer.frame(msg.data)
        if ctx is not None:
            ctx.metric_add("records_framed", len(result.records))
            for warning in result.warnings:
                # Fragments are dropped here and never merged into a later batch.
                ctx.error(
                    warning.reason.value,
                    warning.describe(),
                    step="frame_records",
                    details={"offset": warning.offset, "kind": "fragment"},
                )
        return [FramedLine(shard_id=msg.shard_id, payload=item.payload, line=item.line) for item in result.records]
