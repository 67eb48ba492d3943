from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from log_lander.domain.messages import Codec, LogBatch
from log_lander.services.object_writer import utc_now


@dataclass(frozen=True, slots=True)
class FileBatchSource:
    # One file is one batch: raw payload bytes exactly as the log source delivered them.
    paths: tuple[Path, ...]
    shard_id: str
    codec: Codec
    arrival: datetime | None = None

    def read(self) -> Iterable[LogBatch]:
        for path in self.paths:
            yield LogBatch(
                payload=path.read_bytes(),
                codec=self.codec,
                arrival=self.arrival or utc_now(),
                shard_id=self.shard_id,
            )
