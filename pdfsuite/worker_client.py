"""HTTP client for the remote conversion worker (Office, images, OCR, compression)."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import httpx

from .errors import ValidationError, WorkerError
from .logging_config import get_logger

LOGGER = get_logger(__name__)

WORKER_OPERATIONS = frozenset(
    {
        "word-to-pdf",
        "excel-to-pdf",
        "ppt-to-pdf",
        "html-to-pdf",
        "image-to-pdf",
        "pdf-to-word",
        "pdf-to-excel",
        "pdf-to-ppt",
        "pdf-to-image",
        "compress-pdf",
        "ocr-pdf",
        "flatten-pdf",
        "grayscale-pdf",
        "repair-pdf",
        "sign-pdf",
    }
)

_FILENAME_PATTERN = re.compile(r'filename="?([^";]+)"?')
_PATH_SEGMENT = re.compile(r"^[a-z0-9-]+$")


@dataclass(slots=True)
class UploadPart:
    field: str
    filename: str
    data: bytes
    content_type: str = "application/octet-stream"


@dataclass(slots=True)
class WorkerResult:
    content: bytes
    media_type: str
    # from Content-Disposition; None for inline bodies such as JSON
    filename: Optional[str] = None


class ConversionWorkerClient:
    """Thin wrapper around the worker's ``/api/{operation}`` endpoints and their sub-paths.

    The underlying :class:`httpx.Client` is created on first use, exactly
    once, even when several request threads race for it.
    """

    def __init__(self, base_url: Optional[str], *, timeout: float) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._timeout = timeout
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

    @property
    def configured(self) -> bool:
        return self._base_url is not None

    def _ensure_client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(timeout=self._timeout)
            return self._client

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text or f"Worker responded with HTTP {response.status_code}"
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return f"Worker responded with HTTP {response.status_code}"

    def convert(
        self,
        operation: str,
        files: Sequence[UploadPart],
        fields: Optional[Mapping[str, str]] = None,
    ) -> WorkerResult:
        return self.relay("POST", operation, files=files, fields=fields)

    def relay(
        self,
        method: str,
        path: str,
        *,
        files: Sequence[UploadPart] = (),
        fields: Optional[Mapping[str, str]] = None,
    ) -> WorkerResult:
        """Forward a request to ``{base}/api/{path}`` and return the worker's body.

        ``path`` is an operation name, optionally followed by a sub-endpoint
        such as ``ocr-pdf/languages``. GET requests send ``fields`` as query
        parameters; POST requests send them with ``files`` as multipart data.
        """

        operation = operation_of(path)
        if not self.configured:
            raise WorkerError("The conversion worker is not configured")

        url = f"{self._base_url}/api/{path.strip('/')}"
        client = self._ensure_client()
        LOGGER.info(
            "Relaying request to worker",
            extra={"operation": operation, "path": path, "files": len(files)},
        )
        try:
            if method == "GET":
                response = client.get(url, params=dict(fields or {}))
            else:
                multipart = [
                    (part.field, (part.filename, part.data, part.content_type)) for part in files
                ]
                response = client.post(url, data=dict(fields or {}), files=multipart or None)
        except httpx.HTTPError as exc:
            LOGGER.warning("Worker request failed", extra={"operation": operation, "error": str(exc)})
            raise WorkerError("The conversion worker is unavailable") from exc

        if response.status_code >= 500:
            message = self._error_message(response)
            LOGGER.error(
                "Worker conversion failed",
                extra={"operation": operation, "status": response.status_code, "error": message},
            )
            raise WorkerError(message)
        if response.status_code >= 400:
            raise ValidationError(self._error_message(response))

        match = _FILENAME_PATTERN.search(response.headers.get("content-disposition", ""))
        return WorkerResult(
            content=response.content,
            media_type=response.headers.get("content-type", "application/octet-stream"),
            filename=match.group(1) if match else None,
        )


def operation_of(path: str) -> str:
    """Validate a relay path and return its operation (first segment).

    Raises :class:`ValidationError` for unknown operations and for segments
    outside ``[a-z0-9-]``, so a path can never climb out of ``/api/``.
    """

    segments = path.strip("/").split("/")
    if not all(_PATH_SEGMENT.match(segment) for segment in segments):
        raise ValidationError(f"Invalid worker path: {path}")
    if segments[0] not in WORKER_OPERATIONS:
        raise ValidationError(f"Unsupported conversion: {segments[0]}")
    return segments[0]


__all__ = [
    "ConversionWorkerClient",
    "UploadPart",
    "WORKER_OPERATIONS",
    "WorkerResult",
    "operation_of",
]
