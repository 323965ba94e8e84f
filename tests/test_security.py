"""Tests for :mod:`pdfsuite.security`."""
from __future__ import annotations

import io

import pytest
from pypdf import PdfReader

from pdfsuite.errors import PasswordRequiredError, SourceDecodeError, ValidationError
from pdfsuite.security import check_encryption, protect, unlock


def test_protect_then_unlock_round_trip(make_pdf, page_widths) -> None:
    original = make_pdf([120, 240])

    protected = protect(original, "s3cret")
    status = check_encryption(protected)
    unlocked = unlock(protected, "s3cret")

    assert status.is_encrypted is True
    assert status.encryption_info == "256-bit AES"
    assert PdfReader(io.BytesIO(unlocked)).is_encrypted is False
    assert page_widths(unlocked) == [120, 240]


def test_plain_document_is_not_encrypted(make_pdf) -> None:
    status = check_encryption(make_pdf([100]))

    assert status.is_encrypted is False
    assert status.encryption_info is None


def test_unlock_with_wrong_password(make_pdf) -> None:
    protected = make_pdf([100], password="right")

    with pytest.raises(PasswordRequiredError):
        unlock(protected, "wrong")


def test_protect_requires_password(make_pdf) -> None:
    with pytest.raises(ValidationError):
        protect(make_pdf([100]), "")


def test_check_rejects_garbage() -> None:
    with pytest.raises(SourceDecodeError):
        check_encryption(b"garbage bytes", filename="x.pdf")
