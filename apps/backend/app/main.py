"""FastAPI application exposing docforge transformations over HTTP."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence

from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PayloadError

from docforge import __version__
from docforge.exceptions import DocforgeError, ValidationError
from docforge.orchestrator import Operation, Orchestrator

from .responses import ArtifactResponse

DOCS_PREFIX = "/api"

router = APIRouter()


class RenderRequest(BaseModel):
    """Body accepted by ``/html-to-pdf``, as JSON or as form fields."""

    url: Optional[str] = None


_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


async def _execute(
    orchestrator: Orchestrator,
    operation: Operation,
    uploads: Sequence[UploadFile],
    action: str,
    *args: object,
) -> ArtifactResponse:
    """Receive ``uploads``, run ``action`` on the pool and wrap the result.

    On any failure before the response exists the transformation is failed
    and released here; otherwise :class:`ArtifactResponse` releases it once
    the body has been sent.
    """

    transformation = orchestrator.begin(operation)
    try:
        for upload in uploads:
            await orchestrator.run(transformation, transformation.receive, upload.filename, upload.file)
        result = await orchestrator.run(transformation, getattr(transformation, action), *args)
    except BaseException as exc:
        transformation.fail(exc)
        transformation.release()
        raise
    return ArtifactResponse(transformation, result)


async def _decline(
    orchestrator: Orchestrator, operation: Operation, uploads: Sequence[UploadFile]
) -> None:
    with orchestrator.begin(operation) as transformation:
        for upload in uploads:
            await orchestrator.run(transformation, transformation.receive, upload.filename, upload.file)
        transformation.decline()


async def health() -> dict[str, str]:
    """Lightweight health endpoint for uptime checks."""
    return {"status": "ok"}


@router.post("/merge", response_class=FileResponse, summary="Merge PDFs in upload order")
async def merge(
    files: Optional[List[UploadFile]] = File(None, description="PDF files to merge"),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ArtifactResponse:
    return await _execute(orchestrator, Operation.MERGE, files or [], "merge")


@router.post("/jpg-to-pdf", response_class=FileResponse, summary="Convert JPEG/PNG images to one PDF")
async def jpg_to_pdf(
    files: Optional[List[UploadFile]] = File(None, description="JPEG or PNG images, one page each"),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ArtifactResponse:
    return await _execute(orchestrator, Operation.IMAGES_TO_PDF, files or [], "images_to_pdf")


@router.post("/extract", response_class=FileResponse, summary="Extract a page range")
async def extract(
    file: Optional[UploadFile] = File(None, description="Source PDF"),
    page_range: Optional[str] = Form(None, alias="range", description="Pages to keep, e.g. '1-3, 5'."),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ArtifactResponse:
    """Copy the requested pages once each into ``extracted.pdf``."""

    return await _execute(orchestrator, Operation.EXTRACT, [file] if file else [], "extract", page_range)


@router.post("/split", response_class=FileResponse, summary="Split every page into its own PDF")
async def split(
    file: Optional[UploadFile] = File(None, description="Source PDF"),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ArtifactResponse:
    return await _execute(orchestrator, Operation.SPLIT, [file] if file else [], "split")


@router.post("/organize", response_class=FileResponse, summary="Reorder, repeat or drop pages")
async def organize(
    file: Optional[UploadFile] = File(None, description="Source PDF"),
    order: Optional[str] = Form(None, description="New page order, e.g. '3,1,2'."),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ArtifactResponse:
    return await _execute(orchestrator, Operation.ORGANIZE, [file] if file else [], "organize", order)


async def _render_request(request: Request) -> RenderRequest:
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(_FORM_TYPES):
        form = await request.form()
        value = form.get("url")
        return RenderRequest(url=value if isinstance(value, str) else None)

    body = await request.body()
    if not body.strip():
        return RenderRequest()
    try:
        return RenderRequest.model_validate_json(body)
    except PayloadError as exc:
        raise ValidationError("Request body must be a JSON object with an optional 'url' string.") from exc


@router.post(
    "/html-to-pdf",
    response_class=FileResponse,
    summary="Print a web page to PDF",
    openapi_extra={
        "requestBody": {
            "content": {
                "application/json": {"schema": RenderRequest.model_json_schema()},
                "application/x-www-form-urlencoded": {"schema": RenderRequest.model_json_schema()},
            }
        }
    },
)
async def html_to_pdf(
    payload: RenderRequest = Depends(_render_request),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ArtifactResponse:
    return await _execute(orchestrator, Operation.HTML_TO_PDF, [], "html_to_pdf", payload.url)


@router.post("/pdf-to-jpg", response_class=FileResponse, summary="Render every page to JPEG")
async def pdf_to_jpg(
    file: Optional[UploadFile] = File(None, description="Source PDF"),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ArtifactResponse:
    return await _execute(orchestrator, Operation.PDF_TO_JPG, [file] if file else [], "pdf_to_jpg")


@router.post("/office-to-pdf", summary="Not supported")
async def office_to_pdf(
    file: Optional[UploadFile] = File(None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> None:
    await _decline(orchestrator, Operation.OFFICE_TO_PDF, [file] if file else [])


@router.post("/pdf-to-office", summary="Not supported")
async def pdf_to_office(
    file: Optional[UploadFile] = File(None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> None:
    await _decline(orchestrator, Operation.PDF_TO_OFFICE, [file] if file else [])


@router.post("/pdf-to-pdfa", summary="Not supported")
async def pdf_to_pdfa(
    file: Optional[UploadFile] = File(None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> None:
    await _decline(orchestrator, Operation.PDF_TO_PDFA, [file] if file else [])


@router.post("/scan-to-pdf", summary="Scanning happens on the client")
async def scan_to_pdf(orchestrator: Orchestrator = Depends(get_orchestrator)) -> None:
    await _decline(orchestrator, Operation.SCAN_TO_PDF, [])


async def _docforge_error_handler(request: Request, exc: DocforgeError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


def create_app(orchestrator: Optional[Orchestrator] = None) -> FastAPI:
    """Build the application around ``orchestrator`` (one from the environment by default)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            app.state.orchestrator.shutdown(wait=False)

    app = FastAPI(title="docforge API", version=__version__, lifespan=lifespan)
    app.state.orchestrator = orchestrator or Orchestrator()
    app.add_exception_handler(DocforgeError, _docforge_error_handler)
    app.add_api_route("/health", health, methods=["GET"], response_class=JSONResponse)

    @app.get(f"{DOCS_PREFIX}/openapi.json", include_in_schema=False, name="prefixed_openapi")
    async def prefixed_openapi() -> JSONResponse:
        """Expose the OpenAPI schema under the gateway's ``/api`` prefix."""

        return JSONResponse(app.openapi())

    @app.get(f"{DOCS_PREFIX}/docs", include_in_schema=False)
    async def prefixed_swagger_ui(request: Request) -> HTMLResponse:
        """Serve Swagger UI from the same ``/api`` prefix used by the gateway."""

        return get_swagger_ui_html(
            openapi_url=str(request.url_for("prefixed_openapi")),
            title=f"{app.title} - Swagger UI",
        )

    app.include_router(router)
    return app


app = create_app()

__all__ = ["app", "create_app", "RenderRequest"]
