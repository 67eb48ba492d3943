from __future__ import annotations

# Package version is mirrored in pyproject.toml.
__version__ = "0.1.0"
