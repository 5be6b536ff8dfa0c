"""Per-request transformation state machine.

A :class:`Transformation` walks one request through
``RECEIVED -> VALIDATED -> PROCESSED -> DELIVERED -> RELEASED``. Any error
moves it to ``FAILED``; both ``DELIVERED`` and ``FAILED`` end in
``RELEASED``, at which point every artifact the request created has been
deleted.
"""

from __future__ import annotations

import enum
import functools
import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, List, Optional, Tuple, TypeVar
from urllib.parse import urlparse

from pypdf import PdfWriter

from ..archive import pack
from ..assemble import (
    Document,
    images_to_document,
    load_document,
    merge_documents,
    select_pages,
    split_document,
    write_document,
)
from ..collaborators import Rasterizer, Renderer
from ..exceptions import (
    DocforgeError,
    DocumentLoadError,
    PayloadTooLarge,
    RenderError,
    StorageError,
    TransformationStateError,
    UnsupportedOperation,
    ValidationError,
)
from ..pages import SelectionMode, parse_selection
from ..resources import Artifact, ArtifactKind, ResourceTracker
from .operations import Operation

LOGGER = logging.getLogger("docforge.orchestrator")

_CHUNK_SIZE = 1024 * 1024

T = TypeVar("T")


class Stage(str, enum.Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    PROCESSED = "processed"
    DELIVERED = "delivered"
    FAILED = "failed"
    RELEASED = "released"


_TRANSITIONS: Dict[Stage, Tuple[Stage, ...]] = {
    Stage.RECEIVED: (Stage.VALIDATED, Stage.FAILED),
    Stage.VALIDATED: (Stage.PROCESSED, Stage.FAILED),
    Stage.PROCESSED: (Stage.DELIVERED, Stage.FAILED),
    Stage.DELIVERED: (Stage.RELEASED,),
    Stage.FAILED: (Stage.RELEASED,),
    Stage.RELEASED: (),
}


@dataclass(frozen=True)
class TransformationResult:
    """The artifact a transformation hands to its caller."""

    artifact: Artifact
    download_name: str
    media_type: str
    count: int

    @property
    def path(self) -> Path:
        return self.artifact.path


def _guarded(method: Callable[..., T]) -> Callable[..., T]:
    """Move the transformation to ``FAILED`` when ``method`` raises."""

    @functools.wraps(method)
    def wrapper(self: "Transformation", *args: Any, **kwargs: Any) -> T:
        try:
            return method(self, *args, **kwargs)
        except BaseException as exc:
            self.fail(exc)
            raise

    return wrapper


class Transformation:
    """One request's run through an :class:`Operation`.

    Args:
        operation: The operation being performed.
        tracker: Tracker owning every artifact of this request.
        renderer: Collaborator used by :meth:`html_to_pdf`.
        rasterizer: Collaborator used by :meth:`pdf_to_jpg`.
        max_upload_bytes: Per-input size limit enforced by :meth:`receive`.

    Use it as a context manager: leaving the block always releases the
    request's artifacts, failing the transformation first when the block
    raised or the result was never delivered.
    """

    def __init__(
        self,
        operation: Operation,
        tracker: ResourceTracker,
        *,
        renderer: Renderer,
        rasterizer: Rasterizer,
        max_upload_bytes: int,
    ) -> None:
        self.operation = operation
        self.tracker = tracker
        self.renderer = renderer
        self.rasterizer = rasterizer
        self.max_upload_bytes = max_upload_bytes
        self.stage = Stage.RECEIVED
        self.error: Optional[BaseException] = None
        self.result: Optional[TransformationResult] = None
        self._inputs: List[Tuple[Artifact, str]] = []
        self._lock = threading.RLock()
        self._worker: Optional[Future] = None
        self._release_deferred = False

    def __repr__(self) -> str:
        return f"Transformation(operation={self.operation.value!r}, stage={self.stage.value!r})"

    def __enter__(self) -> "Transformation":
        return self

    def __exit__(self, exc_type: object, exc: Optional[BaseException], tb: object) -> None:
        if exc is not None:
            self.fail(exc)
        self.release()

    # -- state -----------------------------------------------------------

    def _advance(self, stage: Stage) -> None:
        with self._lock:
            if stage not in _TRANSITIONS[self.stage]:
                raise TransformationStateError(
                    f"{self.operation.value}: cannot move from {self.stage.value} to {stage.value}"
                )
            LOGGER.debug("%s: %s -> %s", self.operation.value, self.stage.value, stage.value)
            self.stage = stage

    def _require_stage(self, *stages: Stage) -> None:
        if self.stage not in stages:
            expected = ", ".join(stage.value for stage in stages)
            raise TransformationStateError(
                f"{self.operation.value}: expected stage {expected}, found {self.stage.value}"
            )

    def fail(self, error: BaseException) -> None:
        """Record ``error`` and move to ``FAILED``; later calls keep the first error."""

        with self._lock:
            if self.stage in (Stage.FAILED, Stage.DELIVERED, Stage.RELEASED):
                return
            failed_at = self.stage
            self.stage = Stage.FAILED
            self.error = error

        if isinstance(error, DocforgeError) and error.status_code < 500:
            LOGGER.info("%s rejected at %s: %s", self.operation.value, failed_at.value, error)
        else:
            LOGGER.error("%s failed at %s: %r", self.operation.value, failed_at.value, error)

    def attach_worker(self, future: Future) -> None:
        """Tie release to ``future``: artifacts stay until the worker finishes."""

        with self._lock:
            self._worker = future

    def release(self) -> None:
        """Delete every artifact of this request. Safe to call repeatedly.

        When a worker still runs a step of this transformation, deletion is
        deferred until it completes so late writes cannot leave files behind.
        """

        with self._lock:
            if self.stage is Stage.RELEASED:
                return
            worker = self._worker
            if worker is not None and not worker.done():
                if not self._release_deferred:
                    self._release_deferred = True
                    LOGGER.debug("%s: release deferred until worker finishes", self.operation.value)
                    worker.add_done_callback(lambda _future: self.release())
                return
            if self.stage not in (Stage.DELIVERED, Stage.FAILED):
                self.fail(TransformationStateError(f"{self.operation.value}: released before delivery"))
            self.tracker.close()
            self._advance(Stage.RELEASED)
        LOGGER.debug("%s: released", self.operation.value)

    @_guarded
    def deliver(self, sink: Optional[Callable[[Path], Any]] = None) -> TransformationResult:
        """Hand the result to ``sink`` and mark it delivered."""

        self._require_stage(Stage.PROCESSED)
        if self.result is None:
            raise TransformationStateError(f"{self.operation.value}: nothing to deliver")
        if sink is not None:
            sink(self.result.path)
        self._advance(Stage.DELIVERED)
        LOGGER.info(
            "%s delivered %s (%d bytes)",
            self.operation.value,
            self.result.download_name,
            self.result.artifact.size,
        )
        return self.result

    # -- inputs ----------------------------------------------------------

    @property
    def inputs(self) -> List[Tuple[Artifact, str]]:
        return list(self._inputs)

    @_guarded
    def receive(self, name: Optional[str], stream: BinaryIO) -> Artifact:
        """Store one uploaded input, enforcing the size limit."""

        self._require_stage(Stage.RECEIVED)
        display = Path(name).name if name else f"upload_{len(self._inputs) + 1}"
        artifact = self.tracker.allocate(ArtifactKind.SOURCE, display)

        written = 0
        try:
            with artifact.path.open("wb") as target:
                while True:
                    chunk = stream.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_upload_bytes:
                        limit_mb = self.max_upload_bytes // (1024 * 1024)
                        raise PayloadTooLarge(f"File '{display}' is too large. Max allowed is {limit_mb}MB.")
                    target.write(chunk)
        except OSError as exc:
            raise StorageError(f"Failed to store upload '{display}'") from exc

        if written == 0:
            raise ValidationError(f"File '{display}' is empty.")

        LOGGER.debug("Received %s (%d bytes) as %s", display, written, artifact.identifier)
        self._inputs.append((artifact, display))
        return artifact

    @_guarded
    def receive_path(self, path: Path) -> Artifact:
        source = Path(path)
        try:
            handle = source.open("rb")
        except OSError as exc:
            raise ValidationError(f"Input '{source.name}' cannot be read.") from exc
        with handle:
            return self.receive(source.name, handle)

    def _require_inputs(self, minimum: int = 1, maximum: Optional[int] = None) -> List[Tuple[Artifact, str]]:
        count = len(self._inputs)
        if count < minimum:
            noun = "file" if minimum == 1 else "files"
            raise ValidationError(f"{self.operation.value} needs at least {minimum} {noun}.")
        if maximum is not None and count > maximum:
            raise ValidationError(f"{self.operation.value} accepts at most {maximum} file(s), got {count}.")
        return self.inputs

    def _single_document(self) -> Document:
        [(artifact, name)] = self._require_inputs(1, 1)
        return load_document(artifact.path, name=name)

    # -- outputs ---------------------------------------------------------

    def _finish(self, artifact: Artifact, count: int) -> TransformationResult:
        spec = self.operation.spec
        if spec.download_name is None or spec.media_type is None:
            raise TransformationStateError(f"{self.operation.value} produces no artifact")
        self.result = TransformationResult(
            artifact=artifact,
            download_name=spec.download_name,
            media_type=spec.media_type,
            count=count,
        )
        self._advance(Stage.PROCESSED)
        return self.result

    def _finish_document(self, writer: PdfWriter) -> TransformationResult:
        artifact = self.tracker.allocate(ArtifactKind.OUTPUT, self.operation.spec.download_name or "output.pdf")
        write_document(writer, artifact.path)
        return self._finish(artifact, len(writer.pages))

    def _finish_archive(self, entries: List[Tuple[str, Path]]) -> TransformationResult:
        artifact = self.tracker.allocate(ArtifactKind.ARCHIVE, self.operation.spec.download_name or "output.zip")
        pack(entries, artifact.path)
        return self._finish(artifact, len(entries))

    # -- operations ------------------------------------------------------

    @_guarded
    def merge(self) -> TransformationResult:
        """Concatenate every uploaded PDF in upload order."""

        documents = [load_document(artifact.path, name=name) for artifact, name in self._require_inputs(1)]
        if not any(document.page_count for document in documents):
            raise ValidationError("The uploaded PDFs contain no pages.")
        self._advance(Stage.VALIDATED)
        return self._finish_document(merge_documents(documents))

    @_guarded
    def images_to_pdf(self) -> TransformationResult:
        """Turn every uploaded JPEG or PNG into one page of a new PDF."""

        images = [(artifact.path, name) for artifact, name in self._require_inputs(1)]
        self._advance(Stage.VALIDATED)
        return self._finish_document(images_to_document(images))

    @_guarded
    def extract(self, spec: Optional[str]) -> TransformationResult:
        """Copy the pages named by ``spec`` once each, in the order listed."""

        return self._select(spec, SelectionMode.EXTRACT, "No page range provided.")

    @_guarded
    def organize(self, spec: Optional[str]) -> TransformationResult:
        """Rebuild the document in the page order given by ``spec``, repeats included."""

        return self._select(spec, SelectionMode.ORGANIZE, "No page order provided.")

    def _select(self, spec: Optional[str], mode: SelectionMode, missing: str) -> TransformationResult:
        if spec is None or not spec.strip():
            raise ValidationError(missing)
        document = self._single_document()
        selection = parse_selection(spec, document.page_count, mode)
        self._advance(Stage.VALIDATED)
        return self._finish_document(select_pages(document, selection))

    @_guarded
    def split(self) -> TransformationResult:
        """Write every page to its own PDF and archive them as ``page_<n>.pdf``."""

        document = self._single_document()
        if document.page_count == 0:
            raise ValidationError(f"'{document.name}' has no pages to split.")
        self._advance(Stage.VALIDATED)

        entries: List[Tuple[str, Path]] = []
        for position, writer in split_document(document):
            name = f"page_{position}.pdf"
            artifact = self.tracker.allocate(ArtifactKind.INTERMEDIATE, name)
            write_document(writer, artifact.path)
            entries.append((name, artifact.path))
        return self._finish_archive(entries)

    @_guarded
    def pdf_to_jpg(self) -> TransformationResult:
        """Rasterize every page and archive the images as ``page_<n>.<ext>``."""

        [(source, name)] = self._require_inputs(1, 1)
        document = load_document(source.path, name=name)
        if document.page_count == 0:
            raise ValidationError(f"'{name}' has no pages to convert.")
        self._advance(Stage.VALIDATED)

        entries: List[Tuple[str, Path]] = []
        for position, image in enumerate(self.rasterizer.rasterize(source.path), start=1):
            entry = f"page_{position}.{self.rasterizer.extension}"
            artifact = self.tracker.allocate(ArtifactKind.INTERMEDIATE, entry)
            try:
                artifact.path.write_bytes(image)
            except OSError as exc:
                raise StorageError(f"Failed to store rasterized page {position}") from exc
            entries.append((entry, artifact.path))
        return self._finish_archive(entries)

    @_guarded
    def html_to_pdf(self, url: Optional[str]) -> TransformationResult:
        """Render ``url`` with the configured renderer."""

        if url is None or not url.strip():
            raise ValidationError("No URL provided.")
        target = url.strip()
        parsed = urlparse(target)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError("URL must be an absolute http or https address.")
        self._advance(Stage.VALIDATED)

        artifact = self.tracker.allocate(ArtifactKind.OUTPUT, self.operation.spec.download_name or "website.pdf")
        self.renderer.render(target, artifact.path)
        try:
            document = load_document(artifact.path, name=self.operation.spec.download_name)
        except DocumentLoadError as exc:
            raise RenderError(f"The renderer produced an unreadable document for {target}.") from exc
        return self._finish(artifact, document.page_count)

    @_guarded
    def decline(self) -> TransformationResult:
        """Reject an operation the service does not implement."""

        reason = self.operation.spec.decline_reason or f"{self.operation.value} is not supported."
        raise UnsupportedOperation(reason)


__all__ = ["Stage", "Transformation", "TransformationResult"]
