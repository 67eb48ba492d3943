from .batch_source import FileBatchSource
from .log_sinks import JsonlLogSink, MemoryLogSink, NullLogSink, StdoutLogSink, build_log_sink
from .object_store import FileSystemObjectStore, InMemoryObjectStore

# S3ObjectStore is imported from its module so boto3 loads only where it is used.
__all__ = [
    "FileBatchSource",
    "FileSystemObjectStore",
    "InMemoryObjectStore",
    "JsonlLogSink",
    "MemoryLogSink",
    "NullLogSink",
    "StdoutLogSink",
    "build_log_sink",
]
