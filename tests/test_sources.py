"""Tests for :mod:`pdfsuite.sources`."""
from __future__ import annotations

import logging

import pytest

from pdfsuite.errors import PasswordRequiredError, SourceDecodeError, ValidationError
from pdfsuite.sources import SourceDocumentSet, SourceFile, open_pdf


def test_corrupt_input_is_reported_with_logging_enabled(caplog, make_pdf) -> None:
    caplog.set_level(logging.DEBUG)
    truncated = make_pdf([100])[:40]

    with pytest.raises(SourceDecodeError) as exc:
        open_pdf(truncated, filename="scan.pdf")

    assert exc.value.code == "INVALID_PDF"
    assert exc.value.filename == "scan.pdf"
    record = next(record for record in caplog.records if record.getMessage() == "Failed to parse PDF")
    assert record.fileName == "scan.pdf"


def test_empty_upload_is_a_validation_error() -> None:
    with pytest.raises(ValidationError):
        open_pdf(b"", filename="empty.pdf")


def test_encrypted_input_needs_password(caplog, make_pdf) -> None:
    caplog.set_level(logging.DEBUG)

    with pytest.raises(PasswordRequiredError):
        open_pdf(make_pdf([100], password="pw"), filename="locked.pdf")


def test_source_set_parses_each_file_once(make_pdf) -> None:
    with SourceDocumentSet({2: SourceFile(make_pdf([100, 200]), "a.pdf")}) as sources:
        assert sources.reader(2) is sources.reader(2)
        assert sources.page_count(2) == 2
        assert sources.filename(2) == "a.pdf"
        assert 0 not in sources
        with pytest.raises(ValidationError):
            sources.reader(0)
