from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TextIO

from log_lander.adapters.log_sinks import build_log_sink
from log_lander.adapters.object_store import FileSystemObjectStore, InMemoryObjectStore
from log_lander.adapters.s3_object_store import S3ObjectStore
from log_lander.domain.projection import ProjectionSpec
from log_lander.kernel.context import Context, ContextFactory
from log_lander.kernel.runner import Runner
from log_lander.observability.logging import StructuredLogger
from log_lander.ports.log_sink import LogSink
from log_lander.ports.object_store import ObjectStore
from log_lander.services.ingest_service import IngestService
from log_lander.services.object_writer import (
    FlushThresholds,
    RetryPolicy,
    ShardWriter,
    utc_now,
)
from log_lander.services.partition_resolver import PartitionPathResolver
from log_lander.services.query_executor import QueryExecutor
from log_lander.services.stats import IngestStats
from log_lander.usecases.config_models import AppConfig, build_projection_spec
from log_lander.usecases.wiring import build_scenario


@dataclass(frozen=True, slots=True)
class AppRuntime:
    # Everything a CLI command needs, built from one AppConfig.
    config: AppConfig
    spec: ProjectionSpec
    store: ObjectStore
    sink: LogSink
    logger: StructuredLogger
    ingest: IngestService
    query: QueryExecutor

    def close(self) -> None:
        self.ingest.close()
        self.sink.close()


def build_store(config: AppConfig) -> ObjectStore:
    storage = config.storage
    if storage.kind == "filesystem":
        assert storage.filesystem is not None
        return FileSystemObjectStore(Path(storage.filesystem.root))
    if storage.kind == "s3":
        assert storage.s3 is not None
        return S3ObjectStore(
            storage.s3.bucket,
            region=storage.s3.region,
            endpoint_url=storage.s3.endpoint_url,
        )
    return InMemoryObjectStore()


def build_writer_factory(
    config: AppConfig,
    *,
    spec: ProjectionSpec,
    store: ObjectStore,
    stats: IngestStats,
    logger: StructuredLogger | None = None,
    clock: Callable[[], datetime] = utc_now,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[str], ShardWriter]:
    writer = config.writer
    resolver = PartitionPathResolver(spec)
    thresholds = FlushThresholds(
        size_bytes=writer.buffer.size_bytes,
        interval_seconds=writer.buffer.interval_seconds,
    )
    retry = RetryPolicy(
        max_attempts=writer.retry.max_attempts,
        backoff_ms=writer.retry.backoff_ms,
        multiplier=writer.retry.multiplier,
        max_backoff_ms=writer.retry.max_backoff_ms,
    )

    def factory(shard_id: str) -> ShardWriter:
        return ShardWriter(
            shard_id,
            resolver=resolver,
            store=store,
            thresholds=thresholds,
            retry=retry,
            codec=writer.compression,
            object_prefix=writer.object_prefix,
            auto_redrive=writer.auto_redrive,
            clock=clock,
            sleep=sleep,
            logger=logger,
            stats=stats,
        )

    return factory


def build_runner_factory(
    config: AppConfig, *, run_id: str
) -> Callable[[Callable[[str], ShardWriter], Callable[[Context, Exception], None]], Runner]:
    # The registry needs the writers lookup, which only the ingest service owns.
    def factory(writers: Callable[[str], ShardWriter], on_error: Callable[[Context, Exception], None]) -> Runner:
        return Runner(
            scenario=build_scenario(config, {"writers": writers}),
            context_factory=ContextFactory(run_id=run_id, scenario_id=config.scenario.name),
            on_error=on_error,
        )

    return factory


def build_runtime(
    config: AppConfig,
    *,
    run_id: str = "run",
    store: ObjectStore | None = None,
    sink: LogSink | None = None,
    log_stream: TextIO | None = None,
    threaded: bool = True,
    clock: Callable[[], datetime] = utc_now,
    sleep: Callable[[float], None] = time.sleep,
) -> AppRuntime:
    # One ProjectionSpec value is built here and handed to both the writer and the query side.
    spec = build_projection_spec(config)
    store = store if store is not None else build_store(config)
    sink = sink if sink is not None else build_log_sink(config.logging.sink, config.logging.path, stream=log_stream)
    logger = StructuredLogger(sink=sink, level=config.logging.level)
    stats = IngestStats()
    ingest = IngestService(
        writer_factory=build_writer_factory(
            config,
            spec=spec,
            store=store,
            stats=stats,
            logger=logger.child("writer"),
            clock=clock,
            sleep=sleep,
        ),
        runner_factory=build_runner_factory(config, run_id=run_id),
        stats=stats,
        logger=logger.child("ingest"),
        threaded=threaded,
    )
    query = QueryExecutor(
        store,
        spec,
        max_parallel_reads=config.query.max_parallel_reads,
        logger=logger.child("query"),
    )
    return AppRuntime(
        config=config,
        spec=spec,
        store=store,
        sink=sink,
        logger=logger,
        ingest=ingest,
        query=query,
    )
