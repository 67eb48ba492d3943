from __future__ import annotations

import gzip
import json
from datetime import UTC, datetime
from pathlib import Path

from log_lander.adapters.log_sinks import MemoryLogSink
from log_lander.adapters.object_store import FileSystemObjectStore, InMemoryObjectStore
from log_lander.app.composition_root import build_runtime
from log_lander.domain.messages import Codec, LogBatch, LogRecord
from log_lander.services import codecs
from log_lander.services.query_parser import parse_query
from log_lander.usecases.config_models import AppConfig

_ARRIVAL = datetime(2024, 1, 15, 10, 0, tzinfo=UTC)


def _envelope(events: list[dict[str, object]]) -> dict[str, object]:
    return {
        "messageType": "DATA_MESSAGE",
        "owner": "123456789012",
        "logGroup": "/svc/a",
        "logStream": "i-0001",
        "subscriptionFilters": ["all"],
        "logEvents": events,
    }


def _runtime(store, config: dict[str, object] | None = None):
    return build_runtime(
        AppConfig.model_validate({"version": 1, **(config or {})}),
        store=store,
        sink=MemoryLogSink(),
        threaded=False,
        clock=lambda: _ARRIVAL,
    )


def test_single_error_event_is_found_by_partition_and_message() -> None:
    store = InMemoryObjectStore()
    runtime = _runtime(store)
    payload = gzip.compress(
        json.dumps(_envelope([{"id": "1", "timestamp": 1700000000000, "message": "ERROR boom"}])).encode()
    )

    runtime.ingest.ingest(LogBatch(payload=payload, codec=Codec.GZIP, arrival=_ARRIVAL, shard_id="s-1"))
    runtime.ingest.close()
    query = parse_query("year=2024 AND month=01 AND day=15 AND hour=10 AND message LIKE '%ERROR%'")
    rows = list(runtime.query.execute(query))

    assert len(rows) == 1
    assert rows[0]["message"] == "ERROR boom"
    assert rows[0]["logGroup"] == "/svc/a"
    assert rows[0]["id"] == "1"


def test_round_trip_preserves_order_and_fields(tmp_path: Path) -> None:
    # Records come back in arrival order, field for field, from the persisted object.
    store = FileSystemObjectStore(tmp_path)
    runtime = _runtime(store, {"writer": {"compression": "zstd"}})
    events = [
        {"id": str(idx), "timestamp": 1700000000000 + idx, "message": f"line {idx}\twith \"quotes\" and é"}
        for idx in range(50)
    ]
    # Two envelopes glued together, the first pretty-printed.
    payload = json.dumps(_envelope(events[:20]), indent=2).encode() + json.dumps(_envelope(events[20:])).encode()

    runtime.ingest.ingest(LogBatch(payload=payload, codec=Codec.NONE, arrival=_ARRIVAL, shard_id="s-1"))
    (obj,) = runtime.ingest.close()

    body = codecs.decompress_object(obj.path, store.get(obj.path) or b"")
    lines = body.split(b"\n")
    assert lines[-1] == b""
    restored = [LogRecord.from_wire(json.loads(line)) for line in lines[:-1]]
    expected = [
        LogRecord(
            id=event["id"],
            timestamp=event["timestamp"],
            message=event["message"],
            log_group="/svc/a",
            log_stream="i-0001",
            owner="123456789012",
        )
        for event in events
    ]
    assert restored == expected

    rows = list(runtime.query.execute(parse_query("year=2024 AND month=1 AND day=15 AND hour=10")))
    assert [row["id"] for row in rows] == [str(idx) for idx in range(50)]
