from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator
import sys

import pytest
from PIL import Image
from pypdf import PdfReader, PdfWriter

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from docforge.config import Settings  # noqa: E402
from docforge.orchestrator import Orchestrator  # noqa: E402

# Page ``n`` (1-indexed) of every generated PDF is ``100 + n`` points wide, so
# tests can tell pages apart after they have been copied around.
BASE_WIDTH = 100


def write_pdf(path: Path, pages: int, title: str | None = None) -> Path:
    writer = PdfWriter()
    for number in range(1, pages + 1):
        writer.add_blank_page(width=BASE_WIDTH + number, height=200)
    if title is not None:
        writer.add_metadata({"/Producer": "docforge-tests", "/Title": title})
    with path.open("wb") as stream:
        writer.write(stream)
    return path


def page_numbers(path: Path) -> list[int]:
    """Return the original page number of every page in ``path``."""

    reader = PdfReader(str(path))
    return [int(float(page.mediabox.width)) - BASE_WIDTH for page in reader.pages]


@pytest.fixture()
def pdf_factory(tmp_path: Path) -> Callable[..., Path]:
    def _create(filename: str, pages: int = 1, title: str | None = None) -> Path:
        return write_pdf(tmp_path / filename, pages, title)

    return _create


@pytest.fixture()
def sample_pdf(pdf_factory: Callable[..., Path]) -> Path:
    return pdf_factory("sample.pdf", pages=5, title="Sample")


@pytest.fixture()
def empty_pdf(pdf_factory: Callable[..., Path]) -> Path:
    return pdf_factory("empty.pdf", pages=0)


@pytest.fixture()
def image_factory(tmp_path: Path) -> Callable[..., Path]:
    def _create(filename: str, fmt: str = "PNG", size: tuple[int, int] = (40, 30), mode: str = "RGB") -> Path:
        path = tmp_path / filename
        color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
        Image.new(mode, size, color).save(path, format=fmt)
        return path

    return _create


class FakeRenderer:
    """Writes a fixed two-page PDF instead of launching a browser."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def render(self, url: str, destination: Path) -> None:
        self.calls.append(url)
        write_pdf(destination, 2)


class FakeRasterizer:
    """Yields one small payload per page of the source."""

    extension = "jpg"

    def rasterize(self, source: Path) -> Iterator[bytes]:
        for number in range(1, len(PdfReader(str(source)).pages) + 1):
            yield f"image-{number}".encode()


@pytest.fixture()
def work_dir(tmp_path: Path) -> Path:
    return tmp_path / "work"


@pytest.fixture()
def settings(work_dir: Path) -> Settings:
    return Settings(work_dir=work_dir, max_upload_bytes=1024 * 1024, request_timeout=10.0, max_workers=4)


@pytest.fixture()
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture()
def orchestrator(settings: Settings, fake_renderer: FakeRenderer) -> Iterator[Orchestrator]:
    instance = Orchestrator(settings, renderer=fake_renderer, rasterizer=FakeRasterizer())
    yield instance
    instance.shutdown()


def leftover_files(work_dir: Path) -> list[Path]:
    if not work_dir.exists():
        return []
    return sorted(work_dir.iterdir())
