"""Stateless document transformations: merge, extract, split, organize and convert PDFs."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from . import archive, assemble, collaborators, orchestrator, pages, resources
from .config import Settings
from .exceptions import (
    CollaboratorError,
    ConfigurationError,
    DocforgeError,
    DocumentLoadError,
    InvalidSelection,
    PackagingError,
    PayloadTooLarge,
    RasterError,
    RenderError,
    ResourceError,
    StorageError,
    TransformationStateError,
    TransformationTimeout,
    UnsupportedMediaType,
    UnsupportedOperation,
    ValidationError,
)
from .orchestrator import LocalOutput, Operation, Orchestrator, run_local
from .pages import parse_selection

__version__ = "0.1.0"

__all__ = [
    "archive",
    "assemble",
    "collaborators",
    "orchestrator",
    "pages",
    "resources",
    "Settings",
    "Operation",
    "Orchestrator",
    "LocalOutput",
    "run_local",
    "parse_selection",
    "merge_files",
    "images_to_pdf",
    "extract_pages",
    "organize_pages",
    "split_pages",
    "rasterize_pages",
    "render_url",
    "CollaboratorError",
    "ConfigurationError",
    "DocforgeError",
    "DocumentLoadError",
    "InvalidSelection",
    "PackagingError",
    "PayloadTooLarge",
    "RasterError",
    "RenderError",
    "ResourceError",
    "StorageError",
    "TransformationStateError",
    "TransformationTimeout",
    "UnsupportedMediaType",
    "UnsupportedOperation",
    "ValidationError",
]


def merge_files(inputs: Sequence[str | Path], output: str | Path) -> LocalOutput:
    """Merge ``inputs`` in order into ``output``."""

    return run_local(Operation.MERGE, inputs, output)


def images_to_pdf(inputs: Sequence[str | Path], output: str | Path) -> LocalOutput:
    """Build a PDF with one page per JPEG or PNG in ``inputs``."""

    return run_local(Operation.IMAGES_TO_PDF, inputs, output)


def extract_pages(source: str | Path, page_range: str, output: str | Path) -> LocalOutput:
    """Copy the pages named by ``page_range`` (e.g. ``"1-3,7"``) into ``output``."""

    return run_local(Operation.EXTRACT, [source], output, parameter=page_range)


def organize_pages(source: str | Path, order: str, output: str | Path) -> LocalOutput:
    """Rebuild ``source`` in ``order``; pages may repeat."""

    return run_local(Operation.ORGANIZE, [source], output, parameter=order)


def split_pages(source: str | Path, output: str | Path) -> LocalOutput:
    """Write each page of ``source`` to its own PDF inside the ZIP ``output``."""

    return run_local(Operation.SPLIT, [source], output)


def rasterize_pages(
    source: str | Path, output: str | Path, *, settings: Optional[Settings] = None
) -> LocalOutput:
    """Render every page of ``source`` to JPEG inside the ZIP ``output``."""

    return run_local(Operation.PDF_TO_JPG, [source], output, orchestrator=Orchestrator(settings))


def render_url(url: str, output: str | Path, *, settings: Optional[Settings] = None) -> LocalOutput:
    """Print the web page at ``url`` to the PDF ``output``."""

    return run_local(Operation.HTML_TO_PDF, (), output, parameter=url, orchestrator=Orchestrator(settings))
