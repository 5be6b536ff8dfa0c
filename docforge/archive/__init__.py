"""Archive packaging for the :mod:`docforge` toolkit."""

from __future__ import annotations

from .packager import COMPRESSION_LEVEL, entry_name, pack

__all__ = ["COMPRESSION_LEVEL", "entry_name", "pack"]
