"""Document reassembly for the :mod:`docforge` toolkit."""

from __future__ import annotations

from .documents import Document, load_document
from .images import ImageKind, classify_image, image_page
from .reassembler import (
    build,
    images_to_document,
    merge_documents,
    select_pages,
    split_document,
    write_document,
)

__all__ = [
    "Document",
    "ImageKind",
    "build",
    "classify_image",
    "image_page",
    "images_to_document",
    "load_document",
    "merge_documents",
    "select_pages",
    "split_document",
    "write_document",
]
