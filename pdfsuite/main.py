# FastAPI application entry point for the PDF tools service.

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional
from urllib.parse import quote

from fastapi import FastAPI, File, Form, Request, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.datastructures import UploadFile as FormFile

from . import operations, security
from .blob_store import BlobStore
from .errors import PdfSuiteError, ValidationError
from .html_fetcher import HtmlFetcher
from .logging_config import configure_logging, get_logger
from .models import (
    EncryptionCheckResponse,
    ErrorResponse,
    ServiceInfo,
    StoredFileResponse,
    parse_organize_instructions,
    parse_page_instructions,
    parse_page_selection,
    parse_rotations,
    parse_split_request,
)
from .packager import PDF_MEDIA_TYPE, PackedOutput
from .settings import ENV_FILE_PATH, Settings, get_settings, load_env_file
from .sources import SourceFile
from .watermark import (
    CoordinateSpace,
    ImageWatermark,
    Placement,
    Position,
    TextWatermark,
    WatermarkSpec,
)
from .worker_client import ConversionWorkerClient, UploadPart, operation_of

LOGGER = get_logger(__name__)

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


# Build the common JSON error body.
# Args:
#     code (str): machine readable error code.
#     message (str): message shown to the client.
#     status_code (int): HTTP status code.
def _error_response(code: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code})


# Content-Disposition header with an ASCII fallback and an RFC 5987 UTF-8 name.
def _content_disposition(filename: str) -> str:
    printable = "".join(char for char in filename if char.isprintable())
    fallback = printable.encode("ascii", "ignore").decode("ascii").replace('"', "") or "download"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def _attachment(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": _content_disposition(filename)},
    )


def _packed_response(packed: PackedOutput) -> Response:
    return _attachment(packed.content, packed.media_type, packed.filename)


async def _read_upload(upload: Optional[UploadFile], field_name: str = "file") -> SourceFile:
    if upload is None:
        raise ValidationError(f"Missing required file '{field_name}'")
    data = await upload.read()
    return SourceFile(data=data, filename=upload.filename or "document.pdf")


def _form_float(raw: Optional[str], default: float, field_name: str) -> float:
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValidationError(f"Field '{field_name}' must be a number") from exc


# Create the FastAPI application with middleware, routes and shared components.
# Args:
#     settings (Settings | None): configuration; read from the environment when omitted.
# Returns:
#     FastAPI: configured application instance.
def create_application(settings: Optional[Settings] = None) -> FastAPI:
    if settings is None:
        loaded = load_env_file()
        if loaded:
            get_settings.cache_clear()
        settings = get_settings()
        if loaded:
            LOGGER.info(
                "Loaded environment overrides from file",
                extra={"path": str(ENV_FILE_PATH), "keyCount": len(loaded)},
            )
    configure_logging(settings.log_level)

    app = FastAPI(title="pdfsuite", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.blob_store = BlobStore(settings.storage_dir, settings.blob_ttl_seconds)
    app.state.worker_client = ConversionWorkerClient(
        settings.worker_url, timeout=settings.worker_timeout
    )
    app.state.html_fetcher = HtmlFetcher(settings.fetch_timeout)

    register_error_handlers(app)
    register_routes(app)
    register_worker_routes(app)
    register_events(app)
    return app


# Map typed errors and request validation failures onto the JSON error body.
def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(PdfSuiteError)
    async def handle_pdfsuite_error(request: Request, exc: PdfSuiteError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error(
                "Request failed",
                extra={"path": request.url.path, "code": exc.code, "error": exc.message},
            )
        else:
            LOGGER.info(
                "Request rejected",
                extra={"path": request.url.path, "code": exc.code, "error": exc.message},
            )
        return _error_response(exc.code, exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(
            f"{'.'.join(str(item) for item in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        )
        return _error_response(ValidationError.code, message or "Invalid request", status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.exception("Unexpected error while processing request", extra={"path": request.url.path})
        return _error_response(
            "INTERNAL_ERROR", str(exc) or "Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR
        )


# Register health checks and the page-level PDF operations.
# Args:
#     app (FastAPI): application receiving the routes.
def register_routes(app: FastAPI) -> None:

    @app.get("/", tags=["health"])
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/healthz", tags=["health"])
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    # Merge several PDFs; `rotations` holds one delta per file.
    @app.post("/api/merge-pdf", responses=ERROR_RESPONSES, tags=["pages"])
    async def merge_pdf(
        files: Optional[List[UploadFile]] = File(None),
        rotations: Optional[str] = Form(None),
    ) -> Response:
        if not files:
            raise ValidationError("No files were received")
        deltas = parse_rotations(rotations, len(files))
        sources = [await _read_upload(upload, "files") for upload in files]
        LOGGER.info("Merging files", extra={"files": len(sources)})
        packed = await asyncio.to_thread(operations.merge_documents, sources, deltas)
        return _packed_response(packed)

    # rotate-pdf, delete-pages and process-pages share one payload: 0-based
    # `originalIndex` plus `rotation`, in output order.
    def _register_rearrange(path: str, prefix: str) -> None:

        @app.post(path, responses=ERROR_RESPONSES, tags=["pages"], name=prefix)
        async def rearrange(
            file: Optional[UploadFile] = File(None),
            pageInstructions: Optional[str] = Form(None),
        ) -> Response:
            instructions = parse_page_instructions(pageInstructions)
            source = await _read_upload(file)
            packed = await asyncio.to_thread(
                operations.rearrange_pages, source, instructions, f"{prefix}-{source.filename}"
            )
            return _packed_response(packed)

    _register_rearrange("/api/rotate-pdf", "rotated")
    _register_rearrange("/api/delete-pages", "modified")
    _register_rearrange("/api/process-pages", "processed")

    # Build a document from pages of several files (`file-{n}` or repeated
    # `file` fields) and blank pages; `originalIndex` is 1-based here.
    @app.post("/api/organize-pdf", responses=ERROR_RESPONSES, tags=["pages"])
    async def organize_pdf(request: Request) -> Response:
        form = await request.form()
        instructions = parse_organize_instructions(form.get("instructions"))

        files: Dict[int, SourceFile] = {}
        for key, value in form.multi_items():
            if key.startswith("file-") and isinstance(value, FormFile):
                suffix = key[len("file-"):]
                if suffix.isdigit():
                    files[int(suffix)] = await _read_upload(value, key)
        if not files:
            fallback = [value for value in form.getlist("file") if isinstance(value, FormFile)]
            for index, upload in enumerate(fallback):
                files[index] = await _read_upload(upload)
        if not files:
            raise ValidationError("No PDF files were provided")

        packed = await asyncio.to_thread(operations.organize_pages, files, instructions)
        return _packed_response(packed)

    # Proxy an http(s) page for the HTML-to-PDF preview, with a <base> tag added
    # so relative assets still resolve.
    @app.get("/api/fetch-html", response_class=HTMLResponse, responses=ERROR_RESPONSES, tags=["html"])
    async def fetch_html(request: Request, url: Optional[str] = None) -> HTMLResponse:
        fetcher: HtmlFetcher = request.app.state.html_fetcher
        html = await asyncio.to_thread(fetcher.fetch, url)
        return HTMLResponse(content=html, headers={"Cache-Control": "no-store"})

    @app.post("/api/split-pdf", responses=ERROR_RESPONSES, tags=["pages"])
    async def split_pdf(
        file: Optional[UploadFile] = File(None),
        mode: Optional[str] = Form(None),
        config: Optional[str] = Form(None),
    ) -> Response:
        policy = parse_split_request(mode, config).to_policy()
        source = await _read_upload(file)
        LOGGER.info("Splitting file", extra={"fileName": source.filename, "mode": mode})
        packed = await asyncio.to_thread(operations.split_document, source, policy)
        return _packed_response(packed)

    @app.post("/api/unlock-pdf/check", response_model=EncryptionCheckResponse, tags=["security"])
    async def check_unlock(file: Optional[UploadFile] = File(None)) -> EncryptionCheckResponse:
        source = await _read_upload(file)
        result = await asyncio.to_thread(
            security.check_encryption, source.data, filename=source.filename
        )
        return EncryptionCheckResponse(
            isEncrypted=result.is_encrypted,
            encryptionInfo=result.encryption_info,
            message=(
                "The PDF is password protected"
                if result.is_encrypted
                else "The PDF is not password protected"
            ),
        )

    @app.get("/api/unlock-pdf/info", response_model=ServiceInfo, tags=["security"])
    async def unlock_info() -> ServiceInfo:
        return ServiceInfo(
            message="PDF unlocking is available. 128-bit and 256-bit AES encryption are supported."
        )

    @app.post("/api/unlock-pdf", responses=ERROR_RESPONSES, tags=["security"])
    async def unlock_pdf(
        file: Optional[UploadFile] = File(None),
        password: Optional[str] = Form(None),
    ) -> Response:
        source = await _read_upload(file)
        content = await asyncio.to_thread(
            security.unlock, source.data, password or "", filename=source.filename
        )
        return _attachment(content, PDF_MEDIA_TYPE, f"unlocked-{source.filename}")

    @app.post("/api/protect-pdf", responses=ERROR_RESPONSES, tags=["security"])
    async def protect_pdf(
        file: Optional[UploadFile] = File(None),
        password: Optional[str] = Form(None),
    ) -> Response:
        source = await _read_upload(file)
        content = await asyncio.to_thread(
            security.protect, source.data, password or "", filename=source.filename
        )
        return _attachment(content, PDF_MEDIA_TYPE, f"protected-{source.filename}")


# Build a WatermarkSpec from the watermark form fields.
# Args:
#     kind (str): "text" or "image".
#     form: parsed multipart form.
# Returns:
#     WatermarkSpec: validated watermark description.
async def _watermark_spec(kind: str, form) -> WatermarkSpec:
    try:
        position = Position(form.get("position") or Position.CENTER.value)
        space = CoordinateSpace(form.get("coordinateSpace") or CoordinateSpace.ABSOLUTE.value)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    placement = Placement(
        position=position,
        x=_form_float(form.get("customX"), 0.0, "customX"),
        y=_form_float(form.get("customY"), 0.0, "customY"),
        space=space,
    )

    if kind == "text":
        content = TextWatermark(
            text=form.get("text") or "DRAFT",
            font_size=_form_float(form.get("fontSize"), 48.0, "fontSize"),
            color_hex=form.get("color") or "#000000",
        )
    elif kind == "image":
        image = form.get("watermarkImage")
        if not isinstance(image, FormFile):
            raise ValidationError("No watermark image was provided")
        height = form.get("height")
        content = ImageWatermark(
            image_bytes=await image.read(),
            width=_form_float(form.get("width"), 200.0, "width"),
            height=_form_float(height, 0.0, "height") if height else None,
            maintain_aspect_ratio=(form.get("maintainAspectRatio") or "").lower() == "true",
        )
    else:
        raise ValidationError(f"Unsupported watermark type: {kind}")

    return WatermarkSpec(
        content=content,
        opacity=_form_float(form.get("opacity"), 0.5, "opacity"),
        rotation_degrees=_form_float(form.get("rotation"), 0.0, "rotation"),
        placement=placement,
        target_pages=parse_page_selection(form.get("pages")),
    )


# Register watermarking, temporary downloads and the conversion worker relay.
# Args:
#     app (FastAPI): application receiving the routes.
def register_worker_routes(app: FastAPI) -> None:

    # Watermark the upload and keep the result in the blob store; the client
    # fetches it from /api/worker/download/{id}.
    @app.post(
        "/api/worker/watermark-pdf/{kind}",
        response_model=StoredFileResponse,
        responses=ERROR_RESPONSES,
        tags=["watermark"],
    )
    async def watermark_pdf(kind: str, request: Request) -> StoredFileResponse:
        form = await request.form()
        upload = form.get("file")
        if not isinstance(upload, FormFile):
            raise ValidationError("No file provided")
        spec = await _watermark_spec(kind, form)
        source = await _read_upload(upload)
        packed = await asyncio.to_thread(operations.watermark_document, source, spec)

        blob_store: BlobStore = request.app.state.blob_store
        stored = await asyncio.to_thread(
            blob_store.put, packed.content, form.get("fileName") or "watermarked.pdf"
        )
        return StoredFileResponse(fileId=stored.blob_id, fileName=stored.filename, fileSize=stored.size)

    @app.get("/api/worker/download/{blob_id}", tags=["watermark"])
    async def download(blob_id: str, request: Request) -> Response:
        blob_store: BlobStore = request.app.state.blob_store
        content, filename = await asyncio.to_thread(blob_store.get, blob_id)
        return _attachment(content, PDF_MEDIA_TYPE, filename)

    # Relay a conversion, or one of its sub-endpoints such as `ocr-pdf/languages`,
    # to the remote worker. POST forwards every form field and file; GET
    # forwards the query string.
    @app.api_route(
        "/api/worker/{path:path}", methods=["GET", "POST"], responses=ERROR_RESPONSES, tags=["worker"]
    )
    async def relay_to_worker(path: str, request: Request) -> Response:
        try:
            operation_of(path)
        except ValidationError as exc:
            return _error_response("NOT_FOUND", exc.message, status.HTTP_404_NOT_FOUND)

        files: List[UploadPart] = []
        fields: Dict[str, str] = {}
        if request.method == "GET":
            fields.update(request.query_params)
        else:
            form = await request.form()
            for key, value in form.multi_items():
                if isinstance(value, FormFile):
                    files.append(
                        UploadPart(
                            field=key,
                            filename=value.filename or "upload",
                            data=await value.read(),
                            content_type=value.content_type or "application/octet-stream",
                        )
                    )
                else:
                    fields[key] = value

        worker: ConversionWorkerClient = request.app.state.worker_client
        result = await asyncio.to_thread(
            worker.relay, request.method, path, files=files, fields=fields
        )
        if result.filename is None:
            return Response(content=result.content, media_type=result.media_type)
        return _attachment(result.content, result.media_type, result.filename)


# Release process-scoped clients when the application stops.
def register_events(app: FastAPI) -> None:

    @app.on_event("shutdown")
    async def on_shutdown() -> None:  # pragma: no cover - lifecycle hook
        app.state.worker_client.close()
        app.state.html_fetcher.close()


app = create_application()
