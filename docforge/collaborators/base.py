"""Interfaces of the external services consumed by :mod:`docforge`."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Protocol, runtime_checkable


@runtime_checkable
class Renderer(Protocol):
    """Turns a web page into a PDF document."""

    def render(self, url: str, destination: Path) -> None:
        """Write the PDF rendering of ``url`` to ``destination``.

        Raises:
            RenderError: If the page cannot be fetched or printed.
        """


@runtime_checkable
class Rasterizer(Protocol):
    """Turns document pages into images."""

    extension: str

    def rasterize(self, source: Path) -> Iterator[bytes]:
        """Yield one encoded image per page of ``source``, in page order.

        Raises:
            RasterError: If the document cannot be rasterized.
        """
