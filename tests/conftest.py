import io
import os
import sys
import tempfile
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="pdfsuite-tests-"))

import pytest
from pypdf import PdfReader, PdfWriter

PdfFactory = Callable[..., bytes]


def _build_pdf(
    widths: Iterable[float],
    *,
    height: float = 500.0,
    rotations: Optional[Sequence[int]] = None,
    password: Optional[str] = None,
) -> bytes:
    writer = PdfWriter()
    for position, width in enumerate(widths):
        page = writer.add_blank_page(width=width, height=height)
        if rotations is not None:
            page.rotation = rotations[position]
    if password is not None:
        writer.encrypt(user_password=password, owner_password=None, algorithm="AES-256")
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_pdf() -> PdfFactory:
    """Build a PDF whose pages are told apart by their MediaBox width."""

    return _build_pdf


@pytest.fixture
def page_widths() -> Callable[[bytes], list]:
    def _widths(data: bytes) -> list:
        return [int(float(page.mediabox.width)) for page in PdfReader(io.BytesIO(data)).pages]

    return _widths


@pytest.fixture
def page_rotations() -> Callable[[bytes], list]:
    def _rotations(data: bytes) -> list:
        return [page.rotation for page in PdfReader(io.BytesIO(data)).pages]

    return _rotations
