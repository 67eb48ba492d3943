from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TextIO

from log_lander.observability.logging import LogMessage
from log_lander.ports.log_sink import LogSink


def _render(message: LogMessage) -> str:
    return json.dumps(message.to_dict(), separators=(",", ":"), ensure_ascii=False, default=str)


class StdoutLogSink(LogSink):
    # Compact JSON per line on stdout, or on another console stream.
    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def emit(self, message: LogMessage) -> None:
        print(_render(message), file=self._stream or sys.stdout)

    def close(self) -> None:
        return None


class JsonlLogSink(LogSink):
    # File-backed sink; each message is flushed so a crash keeps what was logged.
    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self._path.open("a", encoding="utf-8")

    def emit(self, message: LogMessage) -> None:
        self._file.write(_render(message) + "\n")
        self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


class MemoryLogSink(LogSink):
    # Keeps messages in memory for tests and diagnostics.
    def __init__(self) -> None:
        self.messages: list[LogMessage] = []

    def emit(self, message: LogMessage) -> None:
        self.messages.append(message)

    def close(self) -> None:
        return None

    def by_message(self, text: str) -> list[LogMessage]:
        return [item for item in self.messages if item.message == text]


class NullLogSink(LogSink):
    def emit(self, message: LogMessage) -> None:
        return None

    def close(self) -> None:
        return None


def build_log_sink(kind: str, path: str | None = None, *, stream: TextIO | None = None) -> LogSink:
    if kind == "stdout":
        return StdoutLogSink(stream)
    if kind == "jsonl":
        if not path:
            raise ValueError("jsonl log sink requires a path")
        return JsonlLogSink(Path(path))
    if kind == "none":
        return NullLogSink()
    raise ValueError(f"Unsupported log sink kind: {kind}")
