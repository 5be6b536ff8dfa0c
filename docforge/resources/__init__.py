"""Temporary artifact lifecycle for :mod:`docforge`."""

from __future__ import annotations

from .identifiers import IdentifierFactory
from .tracker import Artifact, ArtifactKind, ResourceTracker

__all__ = [
    "Artifact",
    "ArtifactKind",
    "IdentifierFactory",
    "ResourceTracker",
]
