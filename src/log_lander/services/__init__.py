from .batch_receiver import BatchReceiver
from .object_writer import FlushThresholds, ObjectWriter, RetryPolicy, ShardWriter
from .partition_resolver import PartitionPathResolver, partition_path, resolve
from .projection_engine import FieldConstraint, PartitionProjectionEngine, enumerate_paths
from .query import Comparison, OrderBy, Query, split_predicate
from .query_executor import CancellationToken, QueryExecutor, QueryResult, QueryStats
from .query_parser import parse_query
from .record_framer import RecordFramer
from .stats import IngestStats

__all__ = [
    "BatchReceiver",
    "CancellationToken",
    "Comparison",
    "FieldConstraint",
    "FlushThresholds",
    "IngestStats",
    "ObjectWriter",
    "OrderBy",
    "PartitionPathResolver",
    "PartitionProjectionEngine",
    "Query",
    "QueryExecutor",
    "QueryResult",
    "QueryStats",
    "RecordFramer",
    "RetryPolicy",
    "ShardWriter",
    "enumerate_paths",
    "parse_query",
    "partition_path",
    "resolve",
    "split_predicate",
]
