"""External collaborators used by :mod:`docforge` transformations."""

from __future__ import annotations

from .base import Rasterizer, Renderer
from .rasterizer import PdfiumRasterizer
from .renderer import ChromiumRenderer, find_browser

__all__ = [
    "ChromiumRenderer",
    "PdfiumRasterizer",
    "Rasterizer",
    "Renderer",
    "find_browser",
]
