from __future__ import annotations

from dataclasses import dataclass, field

from log_lander.domain.messages import LogBatch
from log_lander.kernel.context import Context
from log_lander.services.batch_receiver import BatchReceiver
from log_lander.usecases.messages import DecodedStream


@dataclass(frozen=True, slots=True)
class ReceiveBatch:
    # MalformedBatch propagates; the runner's error policy drops and counts the batch.
    receiver: BatchReceiver = field(default_factory=BatchReceiver)

    def __call__(self, msg: LogBatch, ctx: Context | None) -> list[DecodedStream]:
        data = self.receiver.receive(msg)
        if ctx is not None:
            ctx.metric_add("bytes_decoded", len(data))
        if not data.strip():
            return []
        return [DecodedStream(shard_id=msg.shard_id, arrival=msg.arrival, data=data)]
