from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from log_lander.domain.errors import DeliveryFailed
from log_lander.kernel.context import Context
from log_lander.services.object_writer import ShardWriter
from log_lander.usecases.messages import Landed, ShardRecord


@dataclass(frozen=True, slots=True)
class AppendToShard:
    # Final step: hand the record to the shard's writer; emit whatever a size flush committed.
    writers: Callable[[str], ShardWriter]

    def __call__(self, msg: ShardRecord, ctx: Context | None) -> list[Landed]:
        writer = self.writers(msg.shard_id)
        if ctx is not None:
            ctx.metric_add("records_appended")
        try:
            written = writer.append(msg.record)
        except DeliveryFailed as exc:
            # The record is buffered or parked for redrive; later records keep buffering.
            if ctx is None:
                raise
            ctx.defer(exc)
            return []
        return [Landed(shard_id=msg.shard_id, storage_object=obj) for obj in written]
