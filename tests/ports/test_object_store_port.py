from __future__ import annotations

import pytest

from log_lander.ports.object_store import ObjectStore


def test_object_store_port_default_raises() -> None:
    # Direct port calls without an adapter are wiring errors.
    class _PortOnly(ObjectStore):
        pass

    port = _PortOnly()  # type: ignore[misc,abstract]
    with pytest.raises(NotImplementedError):
        port.put("k", b"x")
    with pytest.raises(NotImplementedError):
        port.get("k")
    with pytest.raises(NotImplementedError):
        port.list_prefix("p/")
