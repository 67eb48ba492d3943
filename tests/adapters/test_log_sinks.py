from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from log_lander.adapters.log_sinks import (
    JsonlLogSink,
    MemoryLogSink,
    NullLogSink,
    StdoutLogSink,
    build_log_sink,
)
from log_lander.observability.logging import LogMessage


def test_stdout_sink_prints_compact_json(capsys: pytest.CaptureFixture[str]) -> None:
    StdoutLogSink().emit(LogMessage(level="INFO", message="writer.flush", fields={"records": 3}))
    payload = json.loads(capsys.readouterr().out)
    assert payload["message"] == "writer.flush"
    assert payload["fields"] == {"records": 3}
    assert payload["timestamp"].endswith("Z")


def test_stdout_sink_can_target_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    StdoutLogSink(sys.stderr).emit(LogMessage(level="WARNING", message="query.no_objects"))
    captured = capsys.readouterr()
    assert captured.out == ""
    assert json.loads(captured.err)["message"] == "query.no_objects"


def test_jsonl_sink_appends_lines(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "run.jsonl"
    sink = JsonlLogSink(path)
    sink.emit(LogMessage(level="INFO", message="a"))
    sink.emit(LogMessage(level="WARNING", message="b"))
    sink.close()
    sink.close()
    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [(line["level"], line["message"]) for line in lines] == [("INFO", "a"), ("WARNING", "b")]


def test_memory_sink_filters_by_message() -> None:
    sink = MemoryLogSink()
    sink.emit(LogMessage(level="INFO", message="a"))
    sink.emit(LogMessage(level="INFO", message="b"))
    assert [m.message for m in sink.by_message("b")] == ["b"]


def test_build_log_sink_kinds(tmp_path: Path) -> None:
    assert isinstance(build_log_sink("stdout"), StdoutLogSink)
    assert isinstance(build_log_sink("none"), NullLogSink)
    jsonl = build_log_sink("jsonl", str(tmp_path / "x.jsonl"))
    assert isinstance(jsonl, JsonlLogSink)
    jsonl.close()
    with pytest.raises(ValueError):
        build_log_sink("jsonl")
    with pytest.raises(ValueError):
        build_log_sink("syslog")
