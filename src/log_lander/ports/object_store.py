from __future__ import annotations

from typing import Protocol, runtime_checkable


# ObjectStore port: flat key space, write-once objects, no listing required by the landing path.
@runtime_checkable
class ObjectStore(Protocol):
    def put(self, key: str, body: bytes, *, content_type: str | None = None) -> None:
        """Durably store body under key; raise WriteTimeout when unacknowledged."""
        # Port contract has no implementation; calling it directly is a wiring error.
        raise NotImplementedError("ObjectStore is a port; use a concrete adapter.")

    def get(self, key: str) -> bytes | None:
        """Return the object body, or None when no object exists at key."""
        raise NotImplementedError("ObjectStore is a port; use a concrete adapter.")

    def list_prefix(self, prefix: str) -> list[str]:
        """Return keys under prefix in lexical order."""
        raise NotImplementedError("ObjectStore is a port; use a concrete adapter.")
