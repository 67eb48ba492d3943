from .log_sink import LogSink
from .object_store import ObjectStore

# Public port exports keep wiring explicit at composition time.
__all__ = ["LogSink", "ObjectStore"]
