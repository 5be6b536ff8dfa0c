"""Embedding raster images as document pages."""

from __future__ import annotations

import enum
import io
import logging
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from PIL import Image, UnidentifiedImageError
from pypdf import PageObject, PdfReader

from ..exceptions import DocumentLoadError, UnsupportedMediaType

LOGGER = logging.getLogger("docforge.assemble")

# 1 px == 1 pt, so a page has the image's native pixel dimensions.
_POINTS_PER_INCH = 72.0
_SNIFF_BYTES = 16


class ImageKind(enum.Enum):
    """Raster formats accepted for image-to-document assembly."""

    JPEG = ("image/jpeg", (b"\xff\xd8\xff",))
    PNG = ("image/png", (b"\x89PNG\r\n\x1a\n",))

    def __init__(self, media_type: str, signatures: Tuple[bytes, ...]) -> None:
        self.media_type = media_type
        self.signatures = signatures

    @classmethod
    def detect(cls, header: bytes) -> Optional["ImageKind"]:
        """Return the kind whose file signature ``header`` starts with."""

        for kind in cls:
            if any(header.startswith(signature) for signature in kind.signatures):
                return kind
        return None

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(kind.name for kind in cls)


def _flatten_alpha(image: Image.Image) -> Image.Image:
    rgba = image.convert("RGBA")
    background = Image.new("RGB", rgba.size, (255, 255, 255))
    background.paste(rgba, mask=rgba.getchannel("A"))
    return background


def _prepare_jpeg(image: Image.Image) -> Image.Image:
    if image.mode in ("L", "RGB", "CMYK"):
        return image
    return image.convert("RGB")


def _prepare_png(image: Image.Image) -> Image.Image:
    if image.mode in ("1", "L", "RGB"):
        return image
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        return _flatten_alpha(image)
    return image.convert("RGB")


EMBEDDERS: Dict[ImageKind, Callable[[Image.Image], Image.Image]] = {
    ImageKind.JPEG: _prepare_jpeg,
    ImageKind.PNG: _prepare_png,
}


def classify_image(path: Path, *, name: str | None = None) -> ImageKind:
    """Return the :class:`ImageKind` of the file at ``path``.

    Raises:
        UnsupportedMediaType: If the file is not one of the supported kinds.
    """

    display = name or path.name
    with path.open("rb") as handle:
        header = handle.read(_SNIFF_BYTES)
    kind = ImageKind.detect(header)
    if kind is None:
        raise UnsupportedMediaType(display, ImageKind.names())
    return kind


def image_page(path: Path, kind: ImageKind, *, name: str | None = None) -> PageObject:
    """Render the image at ``path`` into a single page sized to its pixels."""

    display = name or path.name
    try:
        with Image.open(path) as image:
            image.load()
            width, height = image.size
            prepared = EMBEDDERS[kind](image)
            buffer = io.BytesIO()
            prepared.save(buffer, format="PDF", resolution=_POINTS_PER_INCH)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        LOGGER.error("Failed to decode image %s: %s", display, exc)
        raise DocumentLoadError(f"'{display}' is not a readable {kind.name} image") from exc

    buffer.seek(0)
    page = PdfReader(buffer).pages[0]
    LOGGER.debug("Embedded %s image %s as %dx%d page", kind.name, display, width, height)
    return page


__all__ = ["EMBEDDERS", "ImageKind", "classify_image", "image_page"]
