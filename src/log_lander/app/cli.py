from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from log_lander.adapters.batch_source import FileBatchSource
from log_lander.app.composition_root import build_runtime
from log_lander.config.loader import load_config
from log_lander.domain.errors import DeliveryFailed, QueryError
from log_lander.domain.messages import Codec
from log_lander.services.object_writer import utc_now
from log_lander.services.query_parser import parse_query
from log_lander.usecases.config_models import AppConfig, FileSystemStorageConfig

# Thin shell over the composition root; behavior lives in services.
# Results go to stdout; console logs go to stderr.


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="log-lander", description="Land log batches and query them by partition")
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", required=True, help="Path to YAML config")
    common.add_argument("--storage-root", help="Override storage with a filesystem root")
    common.add_argument("--log-path", help="Write logs as JSON lines to this file")

    ingest = sub.add_parser("ingest", parents=[common], help="Land one or more batch files")
    ingest.add_argument("--input", required=True, action="append", help="Batch file (repeatable)")
    ingest.add_argument("--shard", default="shard-0", help="Source shard identifier")
    ingest.add_argument("--codec", choices=[codec.value for codec in Codec], help="Declared batch codec")
    ingest.add_argument("--arrival", help="Arrival and flush time, ISO 8601 with offset (default: now)")

    query = sub.add_parser("query", parents=[common], help="Run a query and print rows as JSON lines")
    query.add_argument("query", help="Query text, e.g. \"year=2024 AND message LIKE '%%ERROR%%' LIMIT 10\"")

    paths = sub.add_parser("paths", parents=[common], help="Print the candidate partition paths of a query")
    paths.add_argument("query", help="Query text")
    return parser


def parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> None:
    # CLI flags take precedence over config values.
    if getattr(args, "storage_root", None):
        config.storage.kind = "filesystem"
        config.storage.filesystem = FileSystemStorageConfig(root=args.storage_root)
    if getattr(args, "log_path", None):
        config.logging.sink = "jsonl"
        config.logging.path = args.log_path


def run(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    config = load_config(Path(args.config))
    apply_overrides(config, args)
    if args.command == "ingest":
        return _ingest(config, args)
    if args.command == "query":
        return _query(config, args)
    return _paths(config, args)


def _ingest(config: AppConfig, args: argparse.Namespace) -> int:
    arrival = _parse_arrival(args.arrival) if args.arrival else None
    codec = Codec(args.codec) if args.codec else config.receiver.codec
    source = FileBatchSource(
        paths=tuple(Path(item) for item in args.input),
        shard_id=args.shard,
        codec=codec,
        arrival=arrival,
    )
    # Single-shot command: run on this thread and drain before exiting.
    # A pinned arrival also pins the flush clock, so replayed batches land where they first arrived.
    clock = (lambda: arrival) if arrival is not None else utc_now
    runtime = build_runtime(config, run_id="cli", threaded=False, clock=clock, log_stream=sys.stderr)
    written = []
    try:
        for batch in source.read():
            written.extend(runtime.ingest.ingest(batch))
        written.extend(runtime.ingest.close())
    except DeliveryFailed as exc:
        print(f"delivery failed: {exc}", file=sys.stderr)
        runtime.sink.close()
        return 2
    for item in written:
        print(json.dumps({"path": item.path, "records": item.record_count, "reason": item.reason}))
    print(json.dumps({"stats": runtime.ingest.stats()}), file=sys.stderr)
    runtime.sink.close()
    return 0


def _query(config: AppConfig, args: argparse.Namespace) -> int:
    try:
        query = parse_query(args.query)
    except QueryError as exc:
        print(f"invalid query: {exc}", file=sys.stderr)
        return 2
    runtime = build_runtime(config, run_id="cli", threaded=False, log_stream=sys.stderr)
    for row in runtime.query.execute(query):
        print(json.dumps(row))
    runtime.close()
    return 0


def _paths(config: AppConfig, args: argparse.Namespace) -> int:
    try:
        query = parse_query(args.query)
    except QueryError as exc:
        print(f"invalid query: {exc}", file=sys.stderr)
        return 2
    runtime = build_runtime(config, run_id="cli", threaded=False, log_stream=sys.stderr)
    for path in runtime.query.candidate_paths(query):
        print(path)
    runtime.close()
    return 0


def _parse_arrival(text: str) -> datetime:
    # Accept a trailing Z for UTC.
    value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if value.tzinfo is None:
        raise SystemExit("--arrival must include a UTC offset")
    return value
