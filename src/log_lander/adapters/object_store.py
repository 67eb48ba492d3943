from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock

from log_lander.ports.object_store import ObjectStore


@dataclass
class InMemoryObjectStore(ObjectStore):
    # Reference adapter for tests and local runs; shard actors and query readers share it.
    _objects: dict[str, bytes] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    def put(self, key: str, body: bytes, *, content_type: str | None = None) -> None:
        with self._lock:
            self._objects[key] = bytes(body)

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._objects.get(key)

    def list_prefix(self, prefix: str) -> list[str]:
        with self._lock:
            return sorted(key for key in self._objects if key.startswith(prefix))

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)


@dataclass(frozen=True, slots=True)
class FileSystemObjectStore(ObjectStore):
    # Keys map to relative paths under root; writes land via temp file + atomic replace.
    root: Path

    def put(self, key: str, body: bytes, *, content_type: str | None = None) -> None:
        target = self._resolve(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        temp = target.with_name(target.name + ".tmp")
        with temp.open("wb") as handle:
            handle.write(body)
            handle.flush()
            os.fsync(handle.fileno())
        temp.replace(target)

    def get(self, key: str) -> bytes | None:
        target = self._resolve(key)
        if not target.is_file():
            return None
        return target.read_bytes()

    def list_prefix(self, prefix: str) -> list[str]:
        # Prefixes produced by the projection end with "/", so the directory walk is exact.
        root = self.root.resolve()
        base = self._resolve(prefix) if prefix else root
        directory = base if prefix.endswith("/") or not prefix else base.parent
        if not directory.is_dir():
            return []
        keys: list[str] = []
        for path in directory.rglob("*"):
            if not path.is_file() or path.name.endswith(".tmp"):
                continue
            key = path.relative_to(root).as_posix()
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)

    def _resolve(self, key: str) -> Path:
        candidate = (self.root / key).resolve()
        root = self.root.resolve()
        if candidate != root and root not in candidate.parents:
            raise ValueError(f"Object key escapes store root: {key}")
        return candidate
