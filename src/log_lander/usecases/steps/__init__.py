from .append_to_shard import AppendToShard
from .expand_log_events import ExpandLogEvents
from .frame_records import FrameRecords
from .receive_batch import ReceiveBatch

__all__ = ["AppendToShard", "ExpandLogEvents", "FrameRecords", "ReceiveBatch"]
