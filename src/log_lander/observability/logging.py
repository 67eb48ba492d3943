from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from log_lander.ports.log_sink import LogSink

LEVELS: dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


@dataclass(frozen=True, slots=True)
class LogMessage:
    # Structured log payload; sinks decide the rendering.
    level: str
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    fields: dict[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.level or not self.message:
            raise ValueError("LogMessage requires non-empty level/message")

    def to_dict(self) -> dict[str, object]:
        return {
            "level": self.level,
            "message": self.message,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
            "fields": self.fields,
        }


@dataclass(slots=True)
class StructuredLogger:
    # Thin front over a LogSink: level filtering plus a fixed component field.
    sink: LogSink
    level: str = "INFO"
    component: str | None = None

    def __post_init__(self) -> None:
        if self.level not in LEVELS:
            raise ValueError(f"Unknown log level: {self.level}")

    def child(self, component: str) -> StructuredLogger:
        return StructuredLogger(sink=self.sink, level=self.level, component=component)

    def debug(self, message: str, **fields: object) -> None:
        self._emit("DEBUG", message, fields)

    def info(self, message: str, **fields: object) -> None:
        self._emit("INFO", message, fields)

    def warning(self, message: str, **fields: object) -> None:
        self._emit("WARNING", message, fields)

    def error(self, message: str, **fields: object) -> None:
        self._emit("ERROR", message, fields)

    def _emit(self, level: str, message: str, fields: dict[str, object]) -> None:
        if LEVELS[level] < LEVELS[self.level]:
            return
        if self.component is not None:
            fields = {"component": self.component, **fields}
        self.sink.emit(LogMessage(level=level, message=message, fields=fields))
