"""Request-scoped loading and caching of uploaded source PDFs."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Optional, Sequence, Union

from pypdf import PageObject, PasswordType, PdfReader
from pypdf.errors import FileNotDecryptedError, PdfReadError

from .errors import PasswordRequiredError, SourceDecodeError, ValidationError
from .logging_config import get_logger

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class SourceFile:
    data: bytes
    filename: str = "document.pdf"


def open_pdf(
    data: bytes,
    *,
    filename: str = "document.pdf",
    password: Optional[str] = None,
    stream: Optional[io.BytesIO] = None,
) -> PdfReader:
    """Parse ``data`` into a :class:`PdfReader`, decrypting it when possible.

    Encrypted files are first tried with ``password`` (or the empty user
    password, which opens owner-only protected files). Raises
    :class:`PasswordRequiredError` when that fails and
    :class:`SourceDecodeError` when the bytes are not a readable PDF.
    """

    if not data:
        raise ValidationError(f'The file "{filename}" is empty')
    buffer = stream if stream is not None else io.BytesIO(data)
    try:
        reader = PdfReader(buffer)
        if reader.is_encrypted and reader.decrypt(password or "") == PasswordType.NOT_DECRYPTED:
            raise PasswordRequiredError(
                f'The file "{filename}" is password protected', filename=filename
            )
        # Touch the page tree so structural damage surfaces here, not mid-copy.
        page_count = len(reader.pages)
    except FileNotDecryptedError as exc:
        raise PasswordRequiredError(
            f'The file "{filename}" is password protected', filename=filename
        ) from exc
    except (PdfReadError, ValueError) as exc:
        LOGGER.warning("Failed to parse PDF", extra={"fileName": filename, "error": str(exc)})
        raise SourceDecodeError(
            f'The file "{filename}" is not a valid PDF or is corrupt', filename=filename
        ) from exc
    if page_count == 0:
        raise SourceDecodeError(f'The file "{filename}" has no pages', filename=filename)
    return reader


class SourceDocumentSet:
    """Source documents available to one request, keyed by source index.

    Documents are parsed on first use and cached so many instructions that
    point at the same upload parse it only once. Use as a context manager;
    every buffer is released on exit.
    """

    def __init__(
        self,
        files: Union[Mapping[int, SourceFile], Sequence[SourceFile]],
        *,
        password: Optional[str] = None,
    ) -> None:
        if isinstance(files, Mapping):
            self._files: Dict[int, SourceFile] = dict(files)
        else:
            self._files = dict(enumerate(files))
        self._password = password
        self._readers: Dict[int, PdfReader] = {}
        self._streams: Dict[int, io.BytesIO] = {}

    def __enter__(self) -> "SourceDocumentSet":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __contains__(self, source_index: object) -> bool:
        return source_index in self._files

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._files))

    def filename(self, source_index: int) -> str:
        return self._source(source_index).filename

    def _source(self, source_index: int) -> SourceFile:
        try:
            return self._files[source_index]
        except KeyError:
            raise ValidationError(f"No file was uploaded for source index {source_index}") from None

    def reader(self, source_index: int) -> PdfReader:
        cached = self._readers.get(source_index)
        if cached is not None:
            return cached
        source = self._source(source_index)
        stream = io.BytesIO(source.data)
        self._streams[source_index] = stream
        reader = open_pdf(
            source.data, filename=source.filename, password=self._password, stream=stream
        )
        self._readers[source_index] = reader
        LOGGER.debug(
            "Loaded source document",
            extra={"sourceIndex": source_index, "pageCount": len(reader.pages)},
        )
        return reader

    def page_count(self, source_index: int) -> int:
        return len(self.reader(source_index).pages)

    def page(self, source_index: int, page_index: int) -> PageObject:
        return self.reader(source_index).pages[page_index]

    def load_all(self) -> None:
        """Parse every source now, so one bad file fails the whole request up front."""

        for source_index in self:
            self.reader(source_index)

    def close(self) -> None:
        for stream in self._streams.values():
            stream.close()
        self._streams.clear()
        self._readers.clear()


__all__ = ["SourceDocumentSet", "SourceFile", "open_pdf"]
