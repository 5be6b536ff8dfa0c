"""Loading source documents for reassembly."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Union

from pypdf import PageObject, PasswordType, PdfReader
from pypdf.errors import PyPdfError

from ..exceptions import DocumentLoadError

LOGGER = logging.getLogger("docforge.assemble")

PathLike = Union[str, Path]


class Document:
    """Read-only view of a PDF's pages, addressable by zero-based index."""

    def __init__(self, reader: PdfReader, *, name: str = "document") -> None:
        self._reader = reader
        self.name = name
        self.page_count = len(reader.pages)

    def __repr__(self) -> str:
        return f"Document(name={self.name!r}, page_count={self.page_count})"

    def __len__(self) -> int:
        return self.page_count

    def page(self, index: int) -> PageObject:
        """Return page ``index``; negative indices are not accepted."""

        if not 0 <= index < self.page_count:
            raise IndexError(f"Page index {index} outside 0..{self.page_count - 1} of {self.name}")
        return self._reader.pages[index]

    @property
    def metadata(self) -> Dict[str, Any]:
        """Document information entries with ``None`` values removed."""

        try:
            info = self._reader.metadata
        except PyPdfError as exc:
            LOGGER.warning("Failed to read metadata from %s: %s", self.name, exc)
            return {}
        if not info:
            return {}
        return {key: value for key, value in info.items() if isinstance(key, str) and value is not None}


def load_document(path: PathLike, *, name: str | None = None) -> Document:
    """Open ``path`` as a :class:`Document`.

    Encrypted documents are opened with an empty password, as most PDFs
    carrying only an owner password are.

    Raises:
        DocumentLoadError: If the file is missing, malformed or cannot be
            decrypted.
    """

    pdf_path = Path(path)
    display = name or pdf_path.name
    LOGGER.debug("Loading document %s from %s", display, pdf_path)
    try:
        reader = PdfReader(str(pdf_path))
        if reader.is_encrypted:
            LOGGER.debug("Attempting to decrypt encrypted PDF %s", display)
            if reader.decrypt("") == PasswordType.NOT_DECRYPTED:
                raise DocumentLoadError(f"'{display}' is encrypted and requires a password")
        document = Document(reader, name=display)
    except FileNotFoundError as exc:
        raise DocumentLoadError(f"Document '{display}' does not exist") from exc
    except (PyPdfError, ValueError, KeyError, TypeError, NotImplementedError) as exc:
        LOGGER.error("Failed to read PDF %s: %s", display, exc)
        raise DocumentLoadError(f"'{display}' is not a readable PDF document") from exc

    LOGGER.debug("Loaded %s with %d page(s)", display, document.page_count)
    return document


__all__ = ["Document", "PathLike", "load_document"]
