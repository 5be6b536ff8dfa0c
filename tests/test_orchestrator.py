from __future__ import annotations

import asyncio
import io
import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import Callable
from zipfile import ZipFile

import pytest

from conftest import FakeRasterizer, FakeRenderer, leftover_files, page_numbers
from docforge.config import Settings
from docforge.exceptions import (
    DocumentLoadError,
    InvalidSelection,
    PayloadTooLarge,
    RenderError,
    TransformationStateError,
    TransformationTimeout,
    UnsupportedMediaType,
    UnsupportedOperation,
    ValidationError,
)
from docforge.orchestrator import Operation, Orchestrator, Stage, run_local
from docforge.resources import ArtifactKind


def test_merge_walks_every_stage(orchestrator: Orchestrator, pdf_factory: Callable[..., Path], work_dir: Path) -> None:
    first = pdf_factory("one.pdf", pages=2)
    second = pdf_factory("two.pdf", pages=1)
    delivered: list[list[int]] = []

    with orchestrator.begin(Operation.MERGE) as transformation:
        assert transformation.stage is Stage.RECEIVED
        transformation.receive_path(first)
        transformation.receive_path(second)
        result = transformation.merge()
        assert transformation.stage is Stage.PROCESSED
        assert result.download_name == "merged.pdf"
        assert result.media_type == "application/pdf"
        assert result.count == 3
        transformation.deliver(lambda path: delivered.append(page_numbers(path)))
        assert transformation.stage is Stage.DELIVERED

    assert transformation.stage is Stage.RELEASED
    assert delivered == [[1, 2, 1]]
    assert leftover_files(work_dir) == []


def test_failure_releases_everything(orchestrator: Orchestrator, sample_pdf: Path, work_dir: Path) -> None:
    with pytest.raises(InvalidSelection):
        with orchestrator.begin(Operation.EXTRACT) as transformation:
            transformation.receive_path(sample_pdf)
            transformation.extract("9-12")

    assert isinstance(transformation.error, InvalidSelection)
    assert transformation.stage is Stage.RELEASED
    assert leftover_files(work_dir) == []


def test_release_before_delivery_marks_failure(orchestrator: Orchestrator, sample_pdf: Path, work_dir: Path) -> None:
    transformation = orchestrator.begin(Operation.SPLIT)
    transformation.receive_path(sample_pdf)
    transformation.split()

    transformation.release()
    transformation.release()

    assert isinstance(transformation.error, TransformationStateError)
    assert transformation.stage is Stage.RELEASED
    assert leftover_files(work_dir) == []


def test_deliver_requires_processed_result(orchestrator: Orchestrator) -> None:
    transformation = orchestrator.begin(Operation.MERGE)

    with pytest.raises(TransformationStateError):
        transformation.deliver()
    assert transformation.stage is Stage.FAILED
    transformation.release()


def test_deliver_without_result_is_a_state_error(orchestrator: Orchestrator, work_dir: Path) -> None:
    transformation = orchestrator.begin(Operation.MERGE)
    transformation.stage = Stage.PROCESSED

    with pytest.raises(TransformationStateError, match="nothing to deliver"):
        transformation.deliver()
    assert transformation.stage is Stage.FAILED
    transformation.release()
    assert leftover_files(work_dir) == []


def test_declined_operation_cannot_finish(orchestrator: Orchestrator, work_dir: Path) -> None:
    with pytest.raises(TransformationStateError, match="produces no artifact"):
        with orchestrator.begin(Operation.PDF_TO_PDFA) as transformation:
            artifact = transformation.tracker.allocate(ArtifactKind.OUTPUT, "output.pdf")
            transformation._finish(artifact, 0)

    assert transformation.result is None
    assert leftover_files(work_dir) == []


def test_operations_cannot_run_twice(orchestrator: Orchestrator, sample_pdf: Path) -> None:
    with orchestrator.begin(Operation.SPLIT) as transformation:
        transformation.receive_path(sample_pdf)
        transformation.split()
        with pytest.raises(TransformationStateError):
            transformation.receive_path(sample_pdf)
    assert transformation.stage is Stage.RELEASED


def test_receive_enforces_size_limit(settings: Settings, work_dir: Path) -> None:
    orchestrator = Orchestrator(replace(settings, max_upload_bytes=10), renderer=FakeRenderer(), rasterizer=FakeRasterizer())

    with pytest.raises(PayloadTooLarge) as excinfo:
        with orchestrator.begin(Operation.MERGE) as transformation:
            transformation.receive("big.pdf", io.BytesIO(b"x" * 11))

    assert excinfo.value.status_code == 413
    assert leftover_files(work_dir) == []


def test_receive_rejects_empty_upload(orchestrator: Orchestrator, work_dir: Path) -> None:
    with pytest.raises(ValidationError, match="is empty"):
        with orchestrator.begin(Operation.MERGE) as transformation:
            transformation.receive("nothing.pdf", io.BytesIO(b""))
    assert leftover_files(work_dir) == []


def test_receive_keeps_only_the_base_name(orchestrator: Orchestrator, sample_pdf: Path) -> None:
    with orchestrator.begin(Operation.MERGE) as transformation:
        artifact = transformation.receive("../../secret/sample.pdf", io.BytesIO(sample_pdf.read_bytes()))
        assert artifact.kind is ArtifactKind.SOURCE
        assert transformation.inputs[0][1] == "sample.pdf"
        assert artifact.path.parent == orchestrator.settings.work_dir


def test_missing_input_file_is_a_validation_error(orchestrator: Orchestrator, tmp_path: Path, work_dir: Path) -> None:
    with pytest.raises(ValidationError, match="Input 'nope.pdf' cannot be read") as excinfo:
        run_local(Operation.MERGE, [tmp_path / "nope.pdf"], tmp_path / "out.pdf", orchestrator=orchestrator)

    assert excinfo.value.status_code == 400
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)
    assert not (tmp_path / "out.pdf").exists()
    assert leftover_files(work_dir) == []


def test_unreadable_input_fails_the_transformation(orchestrator: Orchestrator, tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        with orchestrator.begin(Operation.SPLIT) as transformation:
            transformation.receive_path(tmp_path)

    assert isinstance(transformation.error, ValidationError)
    assert transformation.stage is Stage.RELEASED


def test_merge_without_inputs(orchestrator: Orchestrator) -> None:
    with pytest.raises(ValidationError):
        with orchestrator.begin(Operation.MERGE) as transformation:
            transformation.merge()


def test_merge_rejects_non_pdf(orchestrator: Orchestrator, image_factory: Callable[..., Path]) -> None:
    with pytest.raises(DocumentLoadError):
        with orchestrator.begin(Operation.MERGE) as transformation:
            transformation.receive_path(image_factory("photo.png"))
            transformation.merge()


@pytest.mark.parametrize(
    ("operation", "method", "message"),
    [
        (Operation.EXTRACT, "extract", "No page range provided."),
        (Operation.ORGANIZE, "organize", "No page order provided."),
    ],
)
def test_missing_selection_parameter(
    orchestrator: Orchestrator, sample_pdf: Path, operation: Operation, method: str, message: str
) -> None:
    with orchestrator.begin(operation) as transformation:
        transformation.receive_path(sample_pdf)
        with pytest.raises(ValidationError, match=message):
            getattr(transformation, method)("  ")
        assert transformation.stage is Stage.FAILED


def test_extract_and_organize(orchestrator: Orchestrator, sample_pdf: Path, tmp_path: Path) -> None:
    extracted = run_local(Operation.EXTRACT, [sample_pdf], tmp_path / "e.pdf", parameter="2,2,5", orchestrator=orchestrator)
    organized = run_local(Operation.ORGANIZE, [sample_pdf], tmp_path / "o.pdf", parameter="5,2,2", orchestrator=orchestrator)

    assert page_numbers(extracted.path) == [2, 5]
    assert page_numbers(organized.path) == [5, 2, 2]
    assert organized.count == 3


def test_extract_accepts_a_single_file_only(orchestrator: Orchestrator, sample_pdf: Path) -> None:
    with pytest.raises(ValidationError, match="at most 1"):
        with orchestrator.begin(Operation.EXTRACT) as transformation:
            transformation.receive_path(sample_pdf)
            transformation.receive_path(sample_pdf)
            transformation.extract("1")


def test_split_archives_every_page(orchestrator: Orchestrator, sample_pdf: Path, tmp_path: Path) -> None:
    output = run_local(Operation.SPLIT, [sample_pdf], tmp_path / "split.zip", orchestrator=orchestrator)

    with ZipFile(output.path) as archive:
        assert archive.namelist() == [f"page_{n}.pdf" for n in range(1, 6)]
        archive.extract("page_4.pdf", tmp_path)
    assert page_numbers(tmp_path / "page_4.pdf") == [4]
    assert output.media_type == "application/zip"


def test_split_rejects_empty_document(orchestrator: Orchestrator, empty_pdf: Path, tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        run_local(Operation.SPLIT, [empty_pdf], tmp_path / "split.zip", orchestrator=orchestrator)


def test_images_to_pdf(orchestrator: Orchestrator, image_factory: Callable[..., Path], tmp_path: Path) -> None:
    images = [image_factory("a.png"), image_factory("b.jpg", "JPEG")]

    output = run_local(Operation.IMAGES_TO_PDF, images, tmp_path / "images.pdf", orchestrator=orchestrator)

    assert output.count == 2


def test_images_to_pdf_rejects_unknown_kind(orchestrator: Orchestrator, tmp_path: Path, work_dir: Path) -> None:
    text = tmp_path / "notes.txt"
    text.write_text("not an image")

    with pytest.raises(UnsupportedMediaType):
        run_local(Operation.IMAGES_TO_PDF, [text], tmp_path / "images.pdf", orchestrator=orchestrator)
    assert leftover_files(work_dir) == []


def test_pdf_to_jpg_archives_rasterized_pages(orchestrator: Orchestrator, pdf_factory: Callable[..., Path], tmp_path: Path) -> None:
    source = pdf_factory("three.pdf", pages=3)

    output = run_local(Operation.PDF_TO_JPG, [source], tmp_path / "images.zip", orchestrator=orchestrator)

    with ZipFile(output.path) as archive:
        assert archive.namelist() == ["page_1.jpg", "page_2.jpg", "page_3.jpg"]
        assert archive.read("page_2.jpg") == b"image-2"


def test_html_to_pdf_uses_renderer(orchestrator: Orchestrator, fake_renderer: FakeRenderer, tmp_path: Path) -> None:
    output = run_local(
        Operation.HTML_TO_PDF, [], tmp_path / "site.pdf", parameter=" https://example.com ", orchestrator=orchestrator
    )

    assert fake_renderer.calls == ["https://example.com"]
    assert output.count == 2


@pytest.mark.parametrize("url", [None, "", "example.com", "ftp://example.com/file", "file:///etc/passwd", "http://"])
def test_html_to_pdf_validates_url(orchestrator: Orchestrator, fake_renderer: FakeRenderer, url) -> None:
    with pytest.raises(ValidationError):
        with orchestrator.begin(Operation.HTML_TO_PDF) as transformation:
            transformation.html_to_pdf(url)
    assert fake_renderer.calls == []


def test_html_to_pdf_rejects_unreadable_render(settings: Settings, work_dir: Path) -> None:
    class GarbageRenderer:
        def render(self, url: str, destination: Path) -> None:
            destination.write_bytes(b"<html>not a pdf</html>")

    orchestrator = Orchestrator(settings, renderer=GarbageRenderer(), rasterizer=FakeRasterizer())

    with pytest.raises(RenderError):
        with orchestrator.begin(Operation.HTML_TO_PDF) as transformation:
            transformation.html_to_pdf("https://example.com")
    assert leftover_files(work_dir) == []


@pytest.mark.parametrize(
    "operation",
    [Operation.OFFICE_TO_PDF, Operation.PDF_TO_OFFICE, Operation.PDF_TO_PDFA, Operation.SCAN_TO_PDF],
)
def test_declined_operations(orchestrator: Orchestrator, sample_pdf: Path, work_dir: Path, operation: Operation) -> None:
    assert not operation.supported

    with pytest.raises(UnsupportedOperation) as excinfo:
        with orchestrator.begin(operation) as transformation:
            transformation.receive_path(sample_pdf)
            transformation.decline()

    assert excinfo.value.status_code == 501
    assert leftover_files(work_dir) == []


def test_scan_decline_points_to_image_upload() -> None:
    assert "/jpg-to-pdf" in (Operation.SCAN_TO_PDF.spec.decline_reason or "")


def test_concurrent_transformations_do_not_interfere(
    orchestrator: Orchestrator, pdf_factory: Callable[..., Path], work_dir: Path
) -> None:
    sources = [pdf_factory(f"doc{count}.pdf", pages=count) for count in range(1, 9)]

    async def split_one(source: Path) -> list[str]:
        with orchestrator.begin(Operation.SPLIT) as transformation:
            await orchestrator.run(transformation, transformation.receive_path, source)
            result = await orchestrator.run(transformation, transformation.split)
            with ZipFile(result.path) as archive:
                names = archive.namelist()
            transformation.deliver()
        return names

    async def scenario() -> list[list[str]]:
        return await asyncio.gather(*(split_one(source) for source in sources))

    results = asyncio.run(scenario())

    assert [len(names) for names in results] == list(range(1, 9))
    assert leftover_files(work_dir) == []


def test_timeout_defers_release_until_worker_finishes(settings: Settings, sample_pdf: Path, work_dir: Path) -> None:
    orchestrator = Orchestrator(
        replace(settings, request_timeout=0.05), renderer=FakeRenderer(), rasterizer=FakeRasterizer()
    )
    gate = threading.Event()
    transformation = orchestrator.begin(Operation.MERGE)
    transformation.receive_path(sample_pdf)

    def slow_step() -> None:
        gate.wait(5)
        late = transformation.tracker.allocate(ArtifactKind.INTERMEDIATE, "late.pdf")
        late.path.write_bytes(b"late")

    async def scenario() -> None:
        with pytest.raises(TransformationTimeout):
            await orchestrator.run(transformation, slow_step)

    try:
        asyncio.run(scenario())
        assert transformation.stage is Stage.FAILED

        transformation.release()
        assert transformation.stage is Stage.FAILED
        assert leftover_files(work_dir)

        gate.set()
        deadline = time.monotonic() + 5
        while transformation.stage is not Stage.RELEASED and time.monotonic() < deadline:
            time.sleep(0.01)

        assert transformation.stage is Stage.RELEASED
        assert leftover_files(work_dir) == []
    finally:
        gate.set()
        orchestrator.shutdown()
