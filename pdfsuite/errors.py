"""Exception types raised by the PDF operations and mapped to HTTP responses."""

from __future__ import annotations


class PdfSuiteError(Exception):
    """Base class for errors that carry an HTTP status and a machine readable code."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PdfSuiteError):
    """The request is missing data or carries values that cannot be processed."""

    status_code = 400
    code = "VALIDATION_ERROR"


class SourceDecodeError(PdfSuiteError):
    """An uploaded file is not a readable PDF."""

    status_code = 400
    code = "INVALID_PDF"

    def __init__(self, message: str, *, filename: str | None = None) -> None:
        super().__init__(message)
        self.filename = filename


class PasswordRequiredError(SourceDecodeError):
    """An uploaded PDF is encrypted and no valid password was supplied."""

    code = "PASSWORD_REQUIRED"


class BlobNotFoundError(PdfSuiteError):
    status_code = 404
    code = "NOT_FOUND"


class WorkerError(PdfSuiteError):
    """The remote conversion worker is unavailable or failed."""

    status_code = 500
    code = "WORKER_ERROR"


class FetchError(PdfSuiteError):
    """A remote page could not be fetched; carries the upstream status when there is one."""

    status_code = 500
    code = "FETCH_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


__all__ = [
    "BlobNotFoundError",
    "FetchError",
    "PasswordRequiredError",
    "PdfSuiteError",
    "SourceDecodeError",
    "ValidationError",
    "WorkerError",
]
