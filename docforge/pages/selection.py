"""Parsing of user supplied page selections."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from ..exceptions import InvalidSelection

LOGGER = logging.getLogger("docforge.pages")

_NUMBER = re.compile(r"[0-9]+")


class SelectionMode(str, enum.Enum):
    """How parsed indices are post-processed."""

    EXTRACT = "extract"
    ORGANIZE = "organize"


@dataclass(frozen=True)
class PageRange:
    """An inclusive, 1-indexed range as written by the user."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("Page range start must be less than or equal to end")

    def clamp(self, page_count: int) -> range:
        """Return the zero-based indices of this range that exist in the document."""

        first = max(self.start, 1)
        last = min(self.end, page_count)
        return range(first - 1, last)


@dataclass(frozen=True)
class PageSelection:
    """An ordered sequence of zero-based page indices valid for one document."""

    indices: Tuple[int, ...]
    page_count: int
    mode: SelectionMode

    def __iter__(self) -> Iterator[int]:
        return iter(self.indices)

    def __len__(self) -> int:
        return len(self.indices)

    def page_numbers(self) -> List[int]:
        """Return the selection as 1-indexed page numbers."""

        return [index + 1 for index in self.indices]


def _parse_number(token: str, spec: str) -> int:
    if not _NUMBER.fullmatch(token):
        raise InvalidSelection(spec, f"'{token}' is not a page number")
    return int(token)


def parse_segments(spec: Optional[str]) -> List[PageRange]:
    """Split ``spec`` into :class:`PageRange` segments without bounds checks."""

    if spec is None or not spec.strip():
        raise InvalidSelection(spec, "no pages given")

    segments: List[PageRange] = []
    for raw in spec.split(","):
        token = raw.strip()
        if not token:
            continue
        if "-" in token:
            start_str, end_str = token.split("-", 1)
            start = _parse_number(start_str.strip(), spec)
            end = _parse_number(end_str.strip(), spec)
            if start > end:
                raise InvalidSelection(spec, f"range '{token}' starts after it ends")
            segments.append(PageRange(start, end))
        else:
            number = _parse_number(token, spec)
            segments.append(PageRange(number, number))

    if not segments:
        raise InvalidSelection(spec, "no pages given")
    return segments


def parse_selection(
    spec: Optional[str],
    page_count: int,
    mode: SelectionMode = SelectionMode.EXTRACT,
) -> PageSelection:
    """Parse ``spec`` into a :class:`PageSelection` against ``page_count`` pages.

    Args:
        spec: Comma separated 1-indexed page numbers and inclusive ranges,
            e.g. ``"1-3, 5"``.
        page_count: Number of pages in the source document.
        mode: :attr:`SelectionMode.EXTRACT` drops repeated pages keeping the
            first occurrence; :attr:`SelectionMode.ORGANIZE` keeps the order
            and repetitions exactly as written.

    Raises:
        InvalidSelection: If ``spec`` is empty or malformed, or no page of it
            exists in the document.

    Pages outside ``1..page_count`` are dropped silently.
    """

    if page_count < 0:
        raise ValueError("page_count must not be negative")

    indices: List[int] = []
    dropped = 0
    for segment in parse_segments(spec):
        kept = segment.clamp(page_count)
        dropped += (segment.end - segment.start + 1) - len(kept)
        indices.extend(kept)

    if dropped:
        LOGGER.debug("Dropped %d out-of-range page(s) from %r (document has %d)", dropped, spec, page_count)

    if mode is SelectionMode.EXTRACT:
        indices = list(dict.fromkeys(indices))

    if not indices:
        raise InvalidSelection(spec, f"no listed page exists in a {page_count}-page document")

    return PageSelection(indices=tuple(indices), page_count=page_count, mode=mode)


__all__ = [
    "PageRange",
    "PageSelection",
    "SelectionMode",
    "parse_segments",
    "parse_selection",
]
