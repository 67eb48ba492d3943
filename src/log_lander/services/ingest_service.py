from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future
from threading import Lock

from log_lander.domain.errors import MalformedBatch, ReasonCode
from log_lander.domain.messages import LogBatch, StorageObject
from log_lander.kernel.context import Context
from log_lander.kernel.runner import Runner
from log_lander.observability.logging import StructuredLogger
from log_lander.services.object_writer import ShardWriter
from log_lander.services.shard_actor import ShardActor
from log_lander.services.stats import IngestStats
from log_lander.usecases.messages import Landed

# Builds the per-batch Runner once the writers lookup exists; see app.composition_root.
RunnerFactory = Callable[[Callable[[str], ShardWriter], Callable[[Context, Exception], None]], Runner]

_FRAGMENT_CODES = frozenset(
    {
        ReasonCode.TRAILING_FRAGMENT.value,
        ReasonCode.UNBALANCED_OBJECT.value,
        ReasonCode.INVALID_JSON.value,
    }
)


class IngestService:
    """Front door for batches: one serialized actor per source shard.

    A batch runs receive -> frame -> expand -> append on its shard's actor
    thread, so shards progress in parallel while each buffer has one owner.
    With threaded=False everything runs on the caller's thread (tests, CLI).
    """

    def __init__(
        self,
        *,
        writer_factory: Callable[[str], ShardWriter],
        runner_factory: RunnerFactory,
        stats: IngestStats | None = None,
        logger: StructuredLogger | None = None,
        threaded: bool = True,
        idle_poll_seconds: float = 1.0,
    ) -> None:
        self._writer_factory = writer_factory
        self._stats = stats or IngestStats()
        self._logger = logger
        self._threaded = threaded
        self._idle_poll = idle_poll_seconds
        self._actors: dict[str, ShardActor] = {}
        self._writers: dict[str, ShardWriter] = {}
        self._lock = Lock()
        self._closed = False
        self._runner = runner_factory(self._writer, self._on_error)

    @property
    def ingest_stats(self) -> IngestStats:
        return self._stats

    def stats(self) -> dict[str, int]:
        return self._stats.snapshot()

    def shard_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._writers)

    def submit(self, batch: LogBatch) -> Future[list[StorageObject]]:
        if self._closed:
            raise RuntimeError("ingest service is closed")
        if not self._threaded:
            future: Future[list[StorageObject]] = Future()
            try:
                future.set_result(self._process(batch))
            except Exception as exc:  # noqa: BLE001 - surfaced through the future like the threaded path
                future.set_exception(exc)
            return future
        return self._actor(batch.shard_id).submit(lambda _writer: self._process(batch))

    def ingest(self, batch: LogBatch) -> list[StorageObject]:
        # Blocks until the batch is appended; returns objects a size flush committed on the way.
        return self.submit(batch).result()

    def flush(self, shard_id: str) -> list[StorageObject]:
        return self._on_shard(shard_id, lambda writer: writer.flush(reason="manual"))

    def redrive(self, shard_id: str) -> list[StorageObject]:
        return self._on_shard(shard_id, lambda writer: writer.redrive())

    def tick(self) -> list[StorageObject]:
        # Explicit age check for the unthreaded mode; actors run their own timer.
        written: list[StorageObject] = []
        for shard_id in self.shard_ids():
            written.extend(self._on_shard(shard_id, lambda writer: writer.tick()))
        return written

    def close(self) -> list[StorageObject]:
        """Drain every shard: final flush, then stop the actors."""
        if self._closed:
            return []
        self._closed = True
        written: list[StorageObject] = []
        errors: list[Exception] = []
        for shard_id in self.shard_ids():
            try:
                written.extend(self._on_shard(shard_id, lambda writer: writer.flush(reason="shutdown")))
            except Exception as exc:  # noqa: BLE001 - drain the other shards, re-raise below
                errors.append(exc)
        with self._lock:
            actors = list(self._actors.values())
        for actor in actors:
            actor.stop(drain=False)
        if self._logger is not None:
            self._logger.info("ingest.closed", objects=len(written), stats=self._stats.snapshot())
        if errors:
            raise errors[0]
        return written

    def _process(self, batch: LogBatch) -> list[StorageObject]:
        self._stats.increment("batches_received")
        outputs, ctx = self._runner.run_one(batch, shard_id=batch.shard_id)
        self._account(ctx)
        if ctx.deferred:
            raise ctx.deferred[0]
        return [item.storage_object for item in outputs if isinstance(item, Landed)]

    def _account(self, ctx: Context) -> None:
        self._stats.increment("control_messages", int(ctx.metrics.get("control_messages", 0)))
        self._stats.increment("records_framed", int(ctx.metrics.get("records_framed", 0)))
        for error in ctx.errors:
            if error.code in _FRAGMENT_CODES:
                self._stats.increment("fragments_dropped")
            elif error.step == "expand_log_events":
                self._stats.increment("batches_malformed")
            if self._logger is not None:
                self._logger.warning(
                    "ingest.dropped",
                    shard=ctx.shard_id,
                    trace_id=ctx.trace_id,
                    code=error.code,
                    step=error.step,
                    detail=error.message,
                )
        if ctx.metrics.get("control_messages") and self._logger is not None:
            self._logger.debug(
                "ingest.control_message_skipped",
                shard=ctx.shard_id,
                count=int(ctx.metrics["control_messages"]),
            )

    def _on_error(self, ctx: Context, exc: Exception) -> None:
        # Only a rejected batch is recoverable here; delivery and store errors propagate.
        if not isinstance(exc, MalformedBatch):
            raise exc
        self._stats.increment("batches_malformed")
        if self._logger is not None:
            self._logger.warning(
                "ingest.malformed_batch",
                shard=ctx.shard_id,
                trace_id=ctx.trace_id,
                reason=exc.reason.value,
                detail=exc.detail,
            )

    def _on_shard(self, shard_id: str, job: Callable[[ShardWriter], list[StorageObject]]) -> list[StorageObject]:
        if not self._threaded:
            return job(self._writer(shard_id))
        return self._actor(shard_id).submit(job).result()

    def _writer(self, shard_id: str) -> ShardWriter:
        with self._lock:
            writer = self._writers.get(shard_id)
            if writer is None:
                writer = self._writer_factory(shard_id)
                self._writers[shard_id] = writer
            return writer

    def _actor(self, shard_id: str) -> ShardActor:
        writer = self._writer(shard_id)
        with self._lock:
            actor = self._actors.get(shard_id)
            if actor is None:
                actor = ShardActor(
                    writer,
                    logger=self._logger,
                    idle_poll_seconds=self._idle_poll,
                )
                self._actors[shard_id] = actor
            return actor

