"""Streaming multiple outputs into a single ZIP archive."""

from __future__ import annotations

import io
import logging
import shutil
from pathlib import Path, PurePath
from typing import BinaryIO, Iterable, Set, Tuple, Union
from zipfile import ZIP_DEFLATED, ZipFile

from ..exceptions import PackagingError

LOGGER = logging.getLogger("docforge.archive")

COMPRESSION_LEVEL = 9
CHUNK_SIZE = 1024 * 1024

ByteSource = Union[Path, bytes, BinaryIO]
Entry = Tuple[str, ByteSource]


def entry_name(name: str) -> str:
    """Flatten ``name`` to a bare file name safe to use inside the archive."""

    flat = PurePath(name.replace("\\", "/")).name
    if not flat or flat in {".", ".."}:
        raise PackagingError(f"Invalid archive entry name: {name!r}")
    return flat


def _copy_source(source: ByteSource, target: BinaryIO) -> None:
    if isinstance(source, Path):
        with source.open("rb") as handle:
            shutil.copyfileobj(handle, target, CHUNK_SIZE)
    elif isinstance(source, (bytes, bytearray, memoryview)):
        shutil.copyfileobj(io.BytesIO(source), target, CHUNK_SIZE)
    else:
        shutil.copyfileobj(source, target, CHUNK_SIZE)


def pack(entries: Iterable[Entry], destination: Path) -> Path:
    """Write ``entries`` into a ZIP archive at ``destination``.

    Args:
        entries: Ordered ``(name, source)`` pairs. ``source`` is a file path,
            a bytes object or a readable binary stream. Each entry is copied
            in fixed-size chunks, so only one chunk is held in memory.
        destination: Path of the archive to create.

    Raises:
        PackagingError: If an entry name is repeated or invalid, or the
            archive cannot be written. The partial archive is deleted.
    """

    seen: Set[str] = set()
    count = 0
    try:
        with ZipFile(destination, "w", compression=ZIP_DEFLATED, compresslevel=COMPRESSION_LEVEL) as archive:
            for name, source in entries:
                arcname = entry_name(name)
                if arcname in seen:
                    raise PackagingError(f"Duplicate archive entry: {arcname}")
                seen.add(arcname)
                with archive.open(arcname, "w", force_zip64=True) as target:
                    _copy_source(source, target)
                count += 1
                LOGGER.debug("Added %s to %s", arcname, destination.name)
    except PackagingError:
        destination.unlink(missing_ok=True)
        raise
    except OSError as exc:
        LOGGER.error("Failed to write archive %s: %s", destination, exc)
        destination.unlink(missing_ok=True)
        raise PackagingError(f"Failed to write archive {destination.name}") from exc

    LOGGER.info("Packed %d entr%s into %s", count, "y" if count == 1 else "ies", destination.name)
    return destination


__all__ = ["CHUNK_SIZE", "COMPRESSION_LEVEL", "ByteSource", "Entry", "entry_name", "pack"]
