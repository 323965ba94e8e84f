"""Password protection helpers delegating to pypdf's encryption support."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Optional

from pypdf import PasswordType, PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from .errors import SourceDecodeError, ValidationError
from .logging_config import get_logger
from .packager import serialize
from .sources import open_pdf

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class EncryptionStatus:
    is_encrypted: bool
    encryption_info: Optional[str] = None


def _describe_encryption(reader: PdfReader) -> str:
    encrypt = reader.trailer.get("/Encrypt")
    encrypt = encrypt.get_object() if encrypt is not None else {}
    version = int(encrypt.get("/V", 0))
    if version >= 5:
        return "256-bit AES"
    if version == 4:
        crypt_filter = encrypt.get("/CF", {}).get("/StdCF", {})
        if crypt_filter.get("/CFM") == "/AESV2":
            return "128-bit AES"
        return "128-bit RC4"
    if version in (1, 2):
        return f"{int(encrypt.get('/Length', 40))}-bit RC4"
    return "Password protected"


def check_encryption(data: bytes, *, filename: str = "document.pdf") -> EncryptionStatus:
    """Report whether opening the document needs a user password."""

    if not data:
        raise ValidationError(f'The file "{filename}" is empty')
    try:
        reader = PdfReader(io.BytesIO(data))
        if not reader.is_encrypted or reader.decrypt("") != PasswordType.NOT_DECRYPTED:
            return EncryptionStatus(is_encrypted=False)
        return EncryptionStatus(is_encrypted=True, encryption_info=_describe_encryption(reader))
    except (PdfReadError, ValueError) as exc:
        raise SourceDecodeError(
            f'The file "{filename}" is not a valid PDF or is corrupt', filename=filename
        ) from exc


def unlock(data: bytes, password: str, *, filename: str = "document.pdf") -> bytes:
    reader = open_pdf(data, filename=filename, password=password)
    writer = PdfWriter(clone_from=reader)
    LOGGER.info("Removed PDF password", extra={"fileName": filename})
    return serialize(writer)


def protect(data: bytes, password: str, *, filename: str = "document.pdf") -> bytes:
    if not password:
        raise ValidationError("A password is required")
    reader = open_pdf(data, filename=filename)
    writer = PdfWriter(clone_from=reader)
    writer.encrypt(user_password=password, owner_password=None, algorithm="AES-256")
    LOGGER.info("Encrypted PDF", extra={"fileName": filename})
    return serialize(writer)


__all__ = ["EncryptionStatus", "check_encryption", "protect", "unlock"]
