"""Running transformations on local files without the HTTP layer."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from ..exceptions import StorageError
from .operations import Operation
from .orchestrator import Orchestrator
from .transformation import Transformation, TransformationResult

LOGGER = logging.getLogger("docforge.orchestrator")

PathLike = Union[str, Path]


@dataclass(frozen=True)
class LocalOutput:
    """Where a local transformation wrote its result."""

    path: Path
    count: int
    media_type: str


def _dispatch(transformation: Transformation, parameter: Optional[str]) -> TransformationResult:
    operation = transformation.operation
    if operation is Operation.MERGE:
        return transformation.merge()
    if operation is Operation.IMAGES_TO_PDF:
        return transformation.images_to_pdf()
    if operation is Operation.EXTRACT:
        return transformation.extract(parameter)
    if operation is Operation.ORGANIZE:
        return transformation.organize(parameter)
    if operation is Operation.SPLIT:
        return transformation.split()
    if operation is Operation.PDF_TO_JPG:
        return transformation.pdf_to_jpg()
    if operation is Operation.HTML_TO_PDF:
        return transformation.html_to_pdf(parameter)
    return transformation.decline()


def run_local(
    operation: Operation,
    inputs: Iterable[PathLike],
    output: PathLike,
    *,
    parameter: Optional[str] = None,
    orchestrator: Optional[Orchestrator] = None,
) -> LocalOutput:
    """Run ``operation`` over local ``inputs`` and copy the result to ``output``.

    ``parameter`` carries the page range, page order or URL for the
    operations that take one. Temporary artifacts are released before
    returning, whether or not the run succeeded.
    """

    orchestrator = orchestrator or Orchestrator()
    destination = Path(output)

    def copy_out(path: Path) -> None:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, destination)
        except OSError as exc:
            raise StorageError(f"Failed to write {destination}") from exc

    with orchestrator.begin(operation) as transformation:
        for source in inputs:
            transformation.receive_path(Path(source))
        _dispatch(transformation, parameter)
        result = transformation.deliver(copy_out)

    LOGGER.info("%s wrote %s", operation.value, destination)
    return LocalOutput(path=destination, count=result.count, media_type=result.media_type)


__all__ = ["LocalOutput", "run_local"]
