"""Page selection utilities for the :mod:`docforge` toolkit."""

from __future__ import annotations

from .selection import PageRange, PageSelection, SelectionMode, parse_segments, parse_selection

__all__ = [
    "PageRange",
    "PageSelection",
    "SelectionMode",
    "parse_segments",
    "parse_selection",
]
