"""Catalog of transformation operations."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional

PDF_MEDIA_TYPE = "application/pdf"
ZIP_MEDIA_TYPE = "application/zip"


class Operation(str, enum.Enum):
    """Every operation the service exposes, named by its route."""

    MERGE = "merge"
    IMAGES_TO_PDF = "jpg-to-pdf"
    EXTRACT = "extract"
    SPLIT = "split"
    ORGANIZE = "organize"
    HTML_TO_PDF = "html-to-pdf"
    PDF_TO_JPG = "pdf-to-jpg"
    OFFICE_TO_PDF = "office-to-pdf"
    PDF_TO_OFFICE = "pdf-to-office"
    PDF_TO_PDFA = "pdf-to-pdfa"
    SCAN_TO_PDF = "scan-to-pdf"

    @property
    def spec(self) -> "OperationSpec":
        return CATALOG[self]

    @property
    def supported(self) -> bool:
        return CATALOG[self].supported


@dataclass(frozen=True)
class OperationSpec:
    """What an operation delivers, or why it is declined."""

    download_name: Optional[str] = None
    media_type: Optional[str] = None
    decline_reason: Optional[str] = None

    @property
    def supported(self) -> bool:
        return self.decline_reason is None


CATALOG: Dict[Operation, OperationSpec] = {
    Operation.MERGE: OperationSpec("merged.pdf", PDF_MEDIA_TYPE),
    Operation.IMAGES_TO_PDF: OperationSpec("images.pdf", PDF_MEDIA_TYPE),
    Operation.EXTRACT: OperationSpec("extracted.pdf", PDF_MEDIA_TYPE),
    Operation.SPLIT: OperationSpec("split.zip", ZIP_MEDIA_TYPE),
    Operation.ORGANIZE: OperationSpec("organized.pdf", PDF_MEDIA_TYPE),
    Operation.HTML_TO_PDF: OperationSpec("website.pdf", PDF_MEDIA_TYPE),
    Operation.PDF_TO_JPG: OperationSpec("images.zip", ZIP_MEDIA_TYPE),
    Operation.OFFICE_TO_PDF: OperationSpec(
        decline_reason="Office-to-PDF conversion is not supported by this service."
    ),
    Operation.PDF_TO_OFFICE: OperationSpec(
        decline_reason="PDF-to-Office conversion is not supported by this service."
    ),
    Operation.PDF_TO_PDFA: OperationSpec(
        decline_reason="PDF/A conversion is not supported by this service."
    ),
    Operation.SCAN_TO_PDF: OperationSpec(
        decline_reason=(
            "Scanning happens on the client. Capture the pages as images and "
            "upload them to /jpg-to-pdf."
        )
    ),
}


__all__ = ["CATALOG", "Operation", "OperationSpec", "PDF_MEDIA_TYPE", "ZIP_MEDIA_TYPE"]
