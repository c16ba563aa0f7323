"""Entity resolution and merge pipeline for heterogeneous record sources."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("unifyr")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
