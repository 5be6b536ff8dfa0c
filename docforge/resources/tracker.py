"""Registration and guaranteed removal of temporary artifacts."""

from __future__ import annotations

import enum
import logging
import re
import shutil
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Tuple

from ..exceptions import ResourceError
from .identifiers import IdentifierFactory

LOGGER = logging.getLogger("docforge.resources")

_UNSAFE_LABEL = re.compile(r"[^A-Za-z0-9._-]+")


class ArtifactKind(str, enum.Enum):
    """Role an artifact plays within a transformation."""

    SOURCE = "source"
    INTERMEDIATE = "intermediate"
    OUTPUT = "output"
    ARCHIVE = "archive"


@dataclass(frozen=True)
class Artifact:
    """A temporary file or directory owned by a :class:`ResourceTracker`."""

    identifier: str
    path: Path
    kind: ArtifactKind
    label: str = ""

    @property
    def exists(self) -> bool:
        return self.path.exists()

    @property
    def size(self) -> int:
        """Bytes currently on disk, ``0`` when the artifact is absent."""

        if self.path.is_dir():
            return sum(item.stat().st_size for item in self.path.rglob("*") if item.is_file())
        try:
            return self.path.stat().st_size
        except FileNotFoundError:
            return 0


def _safe_label(label: str) -> str:
    cleaned = _UNSAFE_LABEL.sub("_", Path(label).name).strip("._")
    return cleaned[:64] or "artifact"


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


class ResourceTracker:
    """Track every artifact created for one request and delete them together.

    Args:
        root: Directory all artifacts are allocated under. It is shared
            between requests; disjoint names keep them apart.
        identifiers: Callable returning a fresh unique identifier per call.
    """

    def __init__(
        self,
        root: Path,
        identifiers: Callable[[], str] | None = None,
    ) -> None:
        self.root = Path(root)
        self._identifiers = identifiers or IdentifierFactory()
        self._artifacts: Dict[str, Artifact] = {}
        self._lock = threading.Lock()
        self._closed = False

    def __enter__(self) -> "ResourceTracker":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._artifacts)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def artifacts(self) -> Tuple[Artifact, ...]:
        with self._lock:
            return tuple(self._artifacts.values())

    def allocate(
        self,
        kind: ArtifactKind,
        label: str,
        *,
        suffix: str = "",
        directory: bool = False,
    ) -> Artifact:
        """Reserve a unique location under :attr:`root` and register it.

        File artifacts are left for the caller to create. Directory
        artifacts are created immediately.
        """

        self.root.mkdir(parents=True, exist_ok=True)
        safe = _safe_label(label)
        while True:
            identifier = self._identifiers()
            path = self.root / f"{identifier}-{safe}{suffix}"
            if identifier not in self._artifacts and not path.exists():
                break
            LOGGER.debug("Identifier %s already in use, drawing another", identifier)

        artifact = Artifact(identifier=identifier, path=path, kind=kind, label=safe)
        self.register(artifact)
        if directory:
            path.mkdir()
        return artifact

    def register(self, artifact: Artifact) -> str:
        """Record ``artifact`` for later release and return its handle."""

        with self._lock:
            if self._closed:
                raise ResourceError("Resource tracker has already been released")
            if artifact.identifier in self._artifacts:
                raise ResourceError(f"Artifact identifier already registered: {artifact.identifier}")
            self._artifacts[artifact.identifier] = artifact
        LOGGER.debug("Registered %s artifact %s", artifact.kind.value, artifact.path)
        return artifact.identifier

    def release_all(self, handles: Optional[Iterable[str]] = None) -> int:
        """Delete the artifacts named by ``handles`` (default: all of them).

        Missing paths are ignored and directories are removed recursively.
        Deletion failures are logged and never raised. Returns the number of
        artifacts released by this call.
        """

        with self._lock:
            if handles is None:
                selected = list(self._artifacts.values())
                self._artifacts.clear()
            else:
                selected = [
                    self._artifacts.pop(handle)
                    for handle in list(handles)
                    if handle in self._artifacts
                ]

        for artifact in selected:
            try:
                _remove_path(artifact.path)
            except OSError as exc:
                LOGGER.warning("Failed to remove artifact %s: %s", artifact.path, exc)
            else:
                LOGGER.debug("Removed %s artifact %s", artifact.kind.value, artifact.path)

        return len(selected)

    def close(self) -> None:
        """Release everything and refuse further registrations."""

        with self._lock:
            self._closed = True
        self.release_all()


__all__ = ["Artifact", "ArtifactKind", "ResourceTracker"]
