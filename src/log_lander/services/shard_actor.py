from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any, TypeVar

from log_lander.domain.messages import StorageObject
from log_lander.observability.logging import StructuredLogger
from log_lander.services.object_writer import ShardWriter

T = TypeVar("T")

_STOP = object()


class ShardActor:
    """Serialized owner of one shard's pipeline and buffer.

    Jobs run one at a time on the actor thread, and the age trigger is checked
    by the same thread between jobs, so the size check and the timer never race
    on the buffer. Submitting never blocks on a flush in progress; the job
    waits in the mailbox and its records go to the next buffer generation.
    """

    def __init__(
        self,
        writer: ShardWriter,
        *,
        logger: StructuredLogger | None = None,
        idle_poll_seconds: float = 1.0,
        on_flush_error: Callable[[str, Exception], None] | None = None,
    ) -> None:
        self.writer = writer
        self._logger = logger
        self._idle_poll = idle_poll_seconds
        self._on_flush_error = on_flush_error
        self._mailbox: queue.Queue[Any] = queue.Queue()
        self._written: list[StorageObject] = []
        self._written_lock = threading.Lock()
        self._thread = threading.Thread(
            target=self._loop, name=f"shard-{writer.shard_id}", daemon=True
        )
        self._stopped = False
        self._timer_failed = False
        self._thread.start()

    @property
    def shard_id(self) -> str:
        return self.writer.shard_id

    def submit(self, job: Callable[[ShardWriter], T]) -> Future[T]:
        if self._stopped:
            raise RuntimeError(f"shard actor '{self.shard_id}' is stopped")
        future: Future[T] = Future()
        self._mailbox.put((job, future))
        return future

    def written(self) -> list[StorageObject]:
        with self._written_lock:
            return list(self._written)

    def stop(self, *, drain: bool = True, timeout: float | None = None) -> None:
        # Flushes are commit points: a drain waits for the final flush to finish.
        if self._stopped:
            return
        if drain:
            self.submit(lambda writer: writer.flush(reason="shutdown"))
        self._stopped = True
        self._mailbox.put(_STOP)
        self._thread.join(timeout)

    def _loop(self) -> None:
        while True:
            # A failed timer flush leaves the buffer due; retry it on the idle poll only.
            wait = None if self._timer_failed else self.writer.seconds_until_due()
            timeout = self._idle_poll if wait is None else min(wait, self._idle_poll)
            try:
                item = self._mailbox.get(timeout=timeout)
            except queue.Empty:
                self._run_timer()
                continue
            if item is _STOP:
                return
            job, future = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = job(self.writer)
            except Exception as exc:  # noqa: BLE001 - handed to the submitter via the future
                future.set_exception(exc)
            else:
                self._record(result)
                future.set_result(result)
            self._run_timer()

    def _run_timer(self) -> None:
        try:
            self._record(self.writer.tick())
        except Exception as exc:  # noqa: BLE001 - no caller to raise to; records stay parked
            self._timer_failed = True
            if self._logger is not None:
                self._logger.error("shard.timer_flush_failed", shard=self.shard_id, error=str(exc))
            if self._on_flush_error is not None:
                self._on_flush_error(self.shard_id, exc)
        else:
            self._timer_failed = False

    def _record(self, result: object) -> None:
        if isinstance(result, list):
            objects = [item for item in result if isinstance(item, StorageObject)]
            if objects:
                with self._written_lock:
                    self._written.extend(objects)
