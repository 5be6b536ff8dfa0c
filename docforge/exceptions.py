"""Custom exceptions raised by :mod:`docforge`."""

from __future__ import annotations

from typing import Iterable


class DocforgeError(Exception):
    """Base exception for all errors raised by :mod:`docforge`.

    ``status_code`` is the HTTP status the backend answers with when the
    error escapes a transformation.
    """

    status_code = 500


class ConfigurationError(DocforgeError):
    """Raised when an environment setting cannot be parsed."""


class ValidationError(DocforgeError):
    """Raised when required input is missing or malformed."""

    status_code = 400


class InvalidSelection(ValidationError):
    """Raised when a page selection cannot be parsed or selects nothing."""

    def __init__(self, spec: object, reason: str) -> None:
        self.spec = spec
        self.reason = reason
        super().__init__(f"Invalid page selection {spec!r}: {reason}")


class PayloadTooLarge(ValidationError):
    """Raised when an upload exceeds the configured size limit."""

    status_code = 413


class UnsupportedMediaType(DocforgeError):
    """Raised when an input is not one of the supported image kinds."""

    status_code = 415

    def __init__(self, name: str, supported: Iterable[str]) -> None:
        self.name = name
        self.supported = list(supported)
        super().__init__(
            f"Unsupported input '{name}'. Supported kinds: {', '.join(self.supported)}."
        )


class DocumentLoadError(DocforgeError):
    """Raised when a document or image cannot be read."""

    status_code = 422


class StorageError(DocforgeError):
    """Raised when an output cannot be written to the work directory."""


class PackagingError(StorageError):
    """Raised when an archive cannot be written."""


class ResourceError(DocforgeError):
    """Raised when the resource tracker is used incorrectly."""


class TransformationStateError(DocforgeError):
    """Raised on an illegal transformation stage transition."""


class CollaboratorError(DocforgeError):
    """Base class for failures of external collaborators."""

    status_code = 502


class RenderError(CollaboratorError):
    """Raised when a web page cannot be rendered to PDF."""


class RasterError(CollaboratorError):
    """Raised when document pages cannot be rasterized."""


class UnsupportedOperation(DocforgeError):
    """Raised for operations the service deliberately declines."""

    status_code = 501


class TransformationTimeout(DocforgeError):
    """Raised when a blocking step exceeds the request timeout."""

    status_code = 504


__all__ = [
    "DocforgeError",
    "ConfigurationError",
    "ValidationError",
    "InvalidSelection",
    "PayloadTooLarge",
    "UnsupportedMediaType",
    "DocumentLoadError",
    "StorageError",
    "PackagingError",
    "ResourceError",
    "TransformationStateError",
    "CollaboratorError",
    "RenderError",
    "RasterError",
    "UnsupportedOperation",
    "TransformationTimeout",
]
