"""Query execution over projected partitions.

Flow per query:

1. split the conjunction into partition constraints and residual terms;
2. enumerate candidate partitions lazily through the projection engine;
3. read every object under each candidate prefix, a bounded number of
   prefixes at a time on a thread pool (a missing prefix is simply empty);
4. decompress, split on newlines, flatten nested batch envelopes into rows;
5. apply residual terms, then ORDER BY and LIMIT.

Without ORDER BY the row stream stops reading as soon as LIMIT is satisfied.
With ORDER BY only the best LIMIT rows are retained while scanning.
"""

from __future__ import annotations

import heapq
import json
import threading
from collections import deque
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from log_lander.domain.errors import QueryCancelled
from log_lander.domain.messages import LogRecord, PartitionKey
from log_lander.domain.projection import PARTITION_FIELDS, ProjectionSpec
from log_lander.observability.logging import StructuredLogger
from log_lander.ports.object_store import ObjectStore
from log_lander.services.codecs import decompress_object
from log_lander.services.projection_engine import Candidate, PartitionProjectionEngine
from log_lander.services.query import OrderBy, Query, split_predicate

Row = dict[str, Any]


@dataclass
class QueryStats:
    paths_scanned: int = 0
    objects_found: int = 0
    rows_emitted: int = 0
    lines_skipped: int = 0


@dataclass
class CancellationToken:
    _event: threading.Event = field(default_factory=threading.Event)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class QueryResult:
    """Lazy, restartable row sequence; every iteration rescans storage."""

    def __init__(self, executor: QueryExecutor, query: Query, token: CancellationToken | None) -> None:
        self._executor = executor
        self.query = query
        self._token = token
        self.stats = QueryStats()

    def __iter__(self) -> Iterator[Row]:
        self.stats = QueryStats()
        return self._executor._run(self.query, self.stats, self._token)


class QueryExecutor:
    def __init__(
        self,
        store: ObjectStore,
        spec: ProjectionSpec,
        *,
        max_parallel_reads: int = 8,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._store = store
        self._engine = PartitionProjectionEngine(spec)
        self._spec = spec
        self._max_parallel = max(1, max_parallel_reads)
        self._logger = logger

    @property
    def engine(self) -> PartitionProjectionEngine:
        return self._engine

    def execute(self, query: Query, *, token: CancellationToken | None = None) -> QueryResult:
        return QueryResult(self, query, token)

    def candidate_paths(self, query: Query) -> tuple[str, ...]:
        split = split_predicate(query.terms, self._spec)
        return self._engine.enumerate(split.partition)

    def _run(self, query: Query, stats: QueryStats, token: CancellationToken | None) -> Iterator[Row]:
        split = split_predicate(query.terms, self._spec)
        limit = query.limit
        if limit == 0:
            return

        rows = self._scan(self._engine.candidates(split.partition), stats, token)
        matched = (row for row in rows if all(term.matches(row) for term in split.residual))
        try:
            if query.order_by:
                if limit is None:
                    ordered = sorted(matched, key=lambda row: _SortKey(row, query.order_by))
                else:
                    ordered = heapq.nsmallest(limit, matched, key=lambda row: _SortKey(row, query.order_by))
                for row in ordered:
                    stats.rows_emitted += 1
                    yield row
            else:
                for row in matched:
                    stats.rows_emitted += 1
                    yield row
                    if limit is not None and stats.rows_emitted >= limit:
                        break
        finally:
            # Stops outstanding reads once LIMIT is met or the caller walks away.
            rows.close()
        self._report(stats)

    def _scan(
        self,
        candidates: Iterator[Candidate],
        stats: QueryStats,
        token: CancellationToken | None,
    ) -> Iterator[Row]:
        # Keep at most max_parallel prefixes in flight; results come back in candidate order.
        pool = ThreadPoolExecutor(max_workers=self._max_parallel, thread_name_prefix="query-read")
        inflight: deque[Future[list[tuple[str, bytes]]]] = deque()
        keys: deque[PartitionKey] = deque()
        try:
            exhausted = False
            while True:
                while not exhausted and len(inflight) < self._max_parallel:
                    candidate = next(candidates, None)
                    if candidate is None:
                        exhausted = True
                        break
                    stats.paths_scanned += 1
                    inflight.append(pool.submit(self._read_prefix, candidate.path))
                    keys.append(candidate.key)
                if not inflight:
                    return
                if token is not None and token.cancelled:
                    raise QueryCancelled("query cancelled between path reads")
                objects = inflight.popleft().result()
                partition = keys.popleft()
                stats.objects_found += len(objects)
                for key, body in objects:
                    yield from self._rows(key, body, partition, stats)
        finally:
            for future in inflight:
                future.cancel()
            pool.shutdown(wait=False, cancel_futures=True)

    def _read_prefix(self, prefix: str) -> list[tuple[str, bytes]]:
        found: list[tuple[str, bytes]] = []
        for key in self._store.list_prefix(prefix):
            body = self._store.get(key)
            if body is None:
                # Listed then vanished: same as never written.
                continue
            found.append((key, decompress_object(key, body)))
        return found

    def _rows(self, key: str, data: bytes, partition: PartitionKey, stats: QueryStats) -> Iterator[Row]:
        for raw in data.split(b"\n"):
            if not raw.strip():
                continue
            try:
                payload = json.loads(raw)
            except ValueError:
                stats.lines_skipped += 1
                continue
            if not isinstance(payload, dict):
                stats.lines_skipped += 1
                continue
            try:
                yield from self._flatten(payload, key, partition)
            except (KeyError, TypeError, ValueError):
                stats.lines_skipped += 1

    def _flatten(self, payload: dict[str, Any], key: str, partition: PartitionKey) -> Iterator[Row]:
        shard = payload.get("_shard")
        generation = payload.get("_generation")
        if isinstance(payload.get("logEvents"), list):
            # Nested envelope: every event inherits group/stream/owner from its parent.
            records = [LogRecord.from_wire(event, parent=payload) for event in payload["logEvents"]]
        else:
            records = [LogRecord.from_wire(payload)]
        for record in records:
            row: Row = record.to_wire()
            row.update(self._partition_values(partition))
            row["dedup_key"] = (
                record.dedup_key(str(shard), int(generation))
                if shard is not None and generation is not None
                else None
            )
            row["path"] = key
            yield row

    def _partition_values(self, partition: PartitionKey) -> dict[str, int | str]:
        values: dict[str, int | str] = {}
        rendered = partition.as_dict()
        for name in PARTITION_FIELDS:
            text = rendered[name]
            values[name] = text if self._spec.field(name).type == "string" else int(text)
        return values

    def _report(self, stats: QueryStats) -> None:
        if self._logger is None:
            return
        if stats.paths_scanned and not stats.objects_found:
            # Not an error: an empty range and a projection mismatch look the same from here.
            self._logger.warning("query.no_objects", candidate_paths=stats.paths_scanned)
        self._logger.info(
            "query.completed",
            paths_scanned=stats.paths_scanned,
            objects_found=stats.objects_found,
            rows=stats.rows_emitted,
            lines_skipped=stats.lines_skipped,
        )


class _SortKey:
    # Mixed ASC/DESC ordering over heterogeneous row values; None sorts last.
    __slots__ = ("row", "order")

    def __init__(self, row: Row, order: tuple[OrderBy, ...]) -> None:
        self.row = row
        self.order = order

    def __lt__(self, other: _SortKey) -> bool:
        for item in self.order:
            left = self.row.get(item.field)
            right = other.row.get(item.field)
            if left == right:
                continue
            if left is None:
                return False
            if right is None:
                return True
            if type(left) is not type(right):
                left, right = str(left), str(right)
            return left > right if item.descending else left < right
        return False
