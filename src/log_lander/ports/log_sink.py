from __future__ import annotations

from typing import Protocol, runtime_checkable

from log_lander.observability.logging import LogMessage


# LogSink is the port for structured log output.
@runtime_checkable
class LogSink(Protocol):
    def emit(self, message: LogMessage) -> None:
        """Consume one LogMessage."""
        raise NotImplementedError("LogSink is a port; use a concrete adapter.")

    def close(self) -> None:
        """Release resources held by the sink."""
        raise NotImplementedError("LogSink is a port; use a concrete adapter.")
