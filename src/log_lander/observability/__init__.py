from .logging import LEVELS, LogMessage, StructuredLogger

__all__ = ["LEVELS", "LogMessage", "StructuredLogger"]
