"""Rasterizing PDF pages with pdfium."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Iterator

import pypdfium2 as pdfium

from ..exceptions import RasterError

LOGGER = logging.getLogger("docforge.collaborators")

_PDF_POINTS_PER_INCH = 72.0


class PdfiumRasterizer:
    """Render every page of a PDF to JPEG.

    Args:
        dpi: Output density; PDF user space is 72 points per inch.
        quality: JPEG quality passed to Pillow.
    """

    extension = "jpg"

    def __init__(self, *, dpi: int = 100, quality: int = 85) -> None:
        if dpi < 1:
            raise ValueError("dpi must be positive")
        self.dpi = dpi
        self.quality = quality

    def rasterize(self, source: Path) -> Iterator[bytes]:
        try:
            document = pdfium.PdfDocument(str(source))
        except pdfium.PdfiumError as exc:
            LOGGER.error("Failed to open %s for rasterizing: %s", source, exc)
            raise RasterError(f"Failed to open {source.name} for rasterizing.") from exc

        scale = self.dpi / _PDF_POINTS_PER_INCH
        try:
            for index in range(len(document)):
                page = document[index]
                try:
                    bitmap = page.render(scale=scale)
                    image = bitmap.to_pil().convert("RGB")
                except pdfium.PdfiumError as exc:
                    LOGGER.error("Failed to rasterize page %d of %s: %s", index + 1, source, exc)
                    raise RasterError(f"Failed to rasterize page {index + 1}.") from exc
                finally:
                    page.close()

                buffer = io.BytesIO()
                image.save(buffer, format="JPEG", quality=self.quality)
                LOGGER.debug("Rasterized page %d of %s at %d dpi", index + 1, source.name, self.dpi)
                yield buffer.getvalue()
        finally:
            document.close()


__all__ = ["PdfiumRasterizer"]
