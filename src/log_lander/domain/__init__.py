from .errors import (
    DeliveryFailed,
    LandingError,
    MalformedBatch,
    PartialParseWarning,
    QueryCancelled,
    QueryError,
    ReasonCode,
    WriteTimeout,
)
from .messages import Codec, LogBatch, LogRecord, PartitionKey, StorageObject
from .projection import PARTITION_FIELDS, PartitionField, ProjectionSpec, default_projection_spec

# Public domain exports keep imports explicit across layers.
__all__ = [
    "Codec",
    "DeliveryFailed",
    "LandingError",
    "LogBatch",
    "LogRecord",
    "MalformedBatch",
    "PARTITION_FIELDS",
    "PartialParseWarning",
    "PartitionField",
    "PartitionKey",
    "ProjectionSpec",
    "QueryCancelled",
    "QueryError",
    "ReasonCode",
    "StorageObject",
    "WriteTimeout",
    "default_projection_spec",
]
