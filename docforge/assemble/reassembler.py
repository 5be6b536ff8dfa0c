"""Copying pages between documents."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from pypdf import PdfWriter

from ..exceptions import InvalidSelection, StorageError, ValidationError
from ..pages import PageSelection
from .documents import Document
from .images import classify_image, image_page

LOGGER = logging.getLogger("docforge.assemble")

PageSource = Tuple[Document, int]


def _apply_metadata(writer: PdfWriter, metadata: Optional[Dict[str, Any]]) -> None:
    if not metadata:
        return
    try:
        writer.add_metadata(metadata)
    except (TypeError, ValueError) as exc:
        LOGGER.warning("Failed to copy document metadata: %s", exc)


def build(sources: Sequence[PageSource], *, metadata: Optional[Dict[str, Any]] = None) -> PdfWriter:
    """Return a new document holding the referenced pages in order.

    Each entry of ``sources`` names a document and a zero-based page of it.
    Pages from several documents may be interleaved and a page may appear
    more than once. Source documents are never modified.
    """

    writer = PdfWriter()
    for document, index in sources:
        if not 0 <= index < document.page_count:
            raise InvalidSelection(index, f"page index outside 0..{document.page_count - 1} of {document.name}")
        LOGGER.debug("Adding page %s from %s", index, document.name)
        writer.add_page(document.page(index))
    _apply_metadata(writer, metadata)
    return writer


def merge_documents(documents: Sequence[Document]) -> PdfWriter:
    """Concatenate every page of ``documents`` in the order given.

    Metadata of the first document is carried over.
    """

    if not documents:
        raise ValidationError("At least one PDF must be provided.")

    sources: List[PageSource] = [
        (document, index) for document in documents for index in range(document.page_count)
    ]
    if not sources:
        raise ValidationError("The uploaded PDFs contain no pages.")

    writer = build(sources, metadata=documents[0].metadata)
    LOGGER.info("Merged %d document(s) into %d page(s)", len(documents), len(sources))
    return writer


def select_pages(document: Document, selection: PageSelection) -> PdfWriter:
    """Build a document from ``selection`` of ``document``'s pages."""

    if selection.page_count != document.page_count:
        raise InvalidSelection(
            selection.page_numbers(),
            f"selection was validated against {selection.page_count} pages, {document.name} has {document.page_count}",
        )
    writer = build([(document, index) for index in selection], metadata=document.metadata)
    LOGGER.info("Selected pages %s of %s", selection.page_numbers(), document.name)
    return writer


def split_document(document: Document) -> Iterator[Tuple[int, PdfWriter]]:
    """Yield ``(position, writer)`` for every page, position being 1-indexed."""

    if document.page_count == 0:
        raise ValidationError(f"'{document.name}' has no pages to split.")

    metadata = document.metadata
    for index in range(document.page_count):
        yield index + 1, build([(document, index)], metadata=metadata)


def images_to_document(images: Sequence[Tuple[Path, str]]) -> PdfWriter:
    """Build a document with one page per image, in the order given.

    ``images`` holds ``(path, display name)`` pairs. Every input is
    classified before any page is built, so one unsupported file rejects the
    whole batch.
    """

    if not images:
        raise ValidationError("At least one image must be provided.")

    kinds = [classify_image(path, name=name) for path, name in images]

    writer = PdfWriter()
    for (path, name), kind in zip(images, kinds):
        writer.add_page(image_page(path, kind, name=name))
    LOGGER.info("Assembled %d image(s) into a document", len(images))
    return writer


def write_document(writer: PdfWriter, destination: Path) -> Path:
    """Write ``writer`` to ``destination``, removing partial output on failure."""

    try:
        with destination.open("wb") as output_stream:
            writer.write(output_stream)
    except OSError as exc:
        LOGGER.error("Failed to write PDF to %s: %s", destination, exc)
        destination.unlink(missing_ok=True)
        raise StorageError(f"Failed to write PDF to {destination.name}") from exc
    return destination


__all__ = [
    "PageSource",
    "build",
    "images_to_document",
    "merge_documents",
    "select_pages",
    "split_document",
    "write_document",
]
