"""Transformation orchestration: operations, state machine and worker pool."""

from __future__ import annotations

from .local import LocalOutput, run_local
from .operations import CATALOG, PDF_MEDIA_TYPE, ZIP_MEDIA_TYPE, Operation, OperationSpec
from .orchestrator import Orchestrator
from .transformation import Stage, Transformation, TransformationResult

__all__ = [
    "CATALOG",
    "LocalOutput",
    "Operation",
    "OperationSpec",
    "Orchestrator",
    "PDF_MEDIA_TYPE",
    "Stage",
    "Transformation",
    "TransformationResult",
    "ZIP_MEDIA_TYPE",
    "run_local",
]
