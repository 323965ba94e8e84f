"""Serialize assembled documents into a single PDF or a ZIP archive."""

from __future__ import annotations

import io
import warnings
import zipfile
from dataclasses import dataclass
from typing import Sequence, Tuple

from pypdf import PdfWriter

from .errors import ValidationError
from .logging_config import get_logger

LOGGER = get_logger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
ZIP_MEDIA_TYPE = "application/zip"
DEFAULT_ARCHIVE_NAME = "split-files.zip"


@dataclass(slots=True)
class PackedOutput:
    content: bytes
    media_type: str
    filename: str


def serialize(document: PdfWriter) -> bytes:
    buffer = io.BytesIO()
    document.write(buffer)
    return buffer.getvalue()


def pack(
    outputs: Sequence[Tuple[str, PdfWriter]], *, archive_name: str = DEFAULT_ARCHIVE_NAME
) -> PackedOutput:
    """Return one PDF as-is, or bundle two or more into a ZIP in the given order.

    Duplicate names are written as separate archive entries; nothing is
    dropped.
    """

    if not outputs:
        raise ValidationError("No output documents were produced")

    if len(outputs) == 1:
        name, document = outputs[0]
        return PackedOutput(content=serialize(document), media_type=PDF_MEDIA_TYPE, filename=name)

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, document in outputs:
            with warnings.catch_warnings():
                # same-named entries are kept side by side
                warnings.filterwarnings("ignore", "Duplicate name", UserWarning)
                archive.writestr(name, serialize(document))
    LOGGER.info("Packed outputs into archive", extra={"entries": len(outputs), "archive": archive_name})
    return PackedOutput(content=buffer.getvalue(), media_type=ZIP_MEDIA_TYPE, filename=archive_name)


__all__ = [
    "DEFAULT_ARCHIVE_NAME",
    "PDF_MEDIA_TYPE",
    "PackedOutput",
    "ZIP_MEDIA_TYPE",
    "pack",
    "serialize",
]
