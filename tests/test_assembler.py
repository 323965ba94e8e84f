"""Tests for :mod:`pdfsuite.assembler` and the page instruction model."""
from __future__ import annotations

import io

import pytest
from pypdf import PdfReader

from pdfsuite.assembler import DEFAULT_PAGE_SIZE, assemble
from pdfsuite.errors import PasswordRequiredError, SourceDecodeError, ValidationError
from pdfsuite.instructions import PageInstruction, compose_rotation, enumerate_pages
from pdfsuite.packager import serialize
from pdfsuite.sources import SourceDocumentSet, SourceFile


def _assemble_bytes(instructions, files) -> bytes:
    with SourceDocumentSet(files) as sources:
        return serialize(assemble(instructions, sources))


def test_assemble_copies_pages_in_instruction_order(make_pdf, page_widths) -> None:
    source = SourceFile(make_pdf([100, 200, 300]))
    instructions = [PageInstruction.copy(0, 2), PageInstruction.copy(0, 0)]

    result = _assemble_bytes(instructions, [source])

    assert page_widths(result) == [300, 100]


def test_assemble_composes_rotation_with_existing(make_pdf, page_rotations) -> None:
    source = SourceFile(make_pdf([100, 200], rotations=[90, 270]))
    instructions = [PageInstruction.copy(0, 0, 90), PageInstruction.copy(0, 1, 180)]

    result = _assemble_bytes(instructions, [source])

    assert page_rotations(result) == [180, 90]


def test_rotation_applied_twice_equals_half_turn(make_pdf, page_rotations) -> None:
    once = _assemble_bytes([PageInstruction.copy(0, 0, 90)], [SourceFile(make_pdf([100]))])
    twice = _assemble_bytes([PageInstruction.copy(0, 0, 90)], [SourceFile(once)])
    direct = _assemble_bytes([PageInstruction.copy(0, 0, 180)], [SourceFile(make_pdf([100]))])

    assert page_rotations(twice) == page_rotations(direct) == [180]


def test_full_turn_and_negative_deltas_normalise() -> None:
    assert compose_rotation(0, 360) == 0
    assert compose_rotation(90, -90) == 0
    assert compose_rotation(0, -90) == 270
    assert compose_rotation(270, 180) == 90


def test_rotation_must_be_multiple_of_ninety() -> None:
    with pytest.raises(ValidationError):
        PageInstruction.copy(0, 0, 45)


def test_identity_instructions_keep_document(make_pdf, page_widths, page_rotations) -> None:
    original = make_pdf([110, 120, 130], rotations=[0, 90, 180])

    result = _assemble_bytes(enumerate_pages(3), [SourceFile(original)])

    assert page_widths(result) == [110, 120, 130]
    assert page_rotations(result) == [0, 90, 180]


def test_duplicate_pages_are_independent(make_pdf, page_rotations) -> None:
    source = SourceFile(make_pdf([100]))
    instructions = [PageInstruction.copy(0, 0, 90), PageInstruction.copy(0, 0, 0)]

    result = _assemble_bytes(instructions, [source])

    assert page_rotations(result) == [90, 0]


def test_blank_pages_use_default_size(make_pdf) -> None:
    source = SourceFile(make_pdf([100]))
    instructions = [PageInstruction.blank(), PageInstruction.copy(0, 0)]

    reader = PdfReader(io.BytesIO(_assemble_bytes(instructions, [source])))

    blank = reader.pages[0]
    assert float(blank.mediabox.width) == pytest.approx(DEFAULT_PAGE_SIZE[0])
    assert float(blank.mediabox.height) == pytest.approx(DEFAULT_PAGE_SIZE[1])
    assert len(reader.pages) == 2


def test_pages_from_several_sources(make_pdf, page_widths) -> None:
    files = {0: SourceFile(make_pdf([100, 101])), 3: SourceFile(make_pdf([300]))}
    instructions = [
        PageInstruction.copy(3, 0),
        PageInstruction.copy(0, 1),
        PageInstruction.copy(0, 0),
    ]

    assert page_widths(_assemble_bytes(instructions, files)) == [300, 101, 100]


def test_page_index_equal_to_page_count_is_rejected(make_pdf) -> None:
    source = SourceFile(make_pdf([100, 200]))

    with pytest.raises(ValidationError) as exc:
        _assemble_bytes([PageInstruction.copy(0, 0), PageInstruction.copy(0, 2)], [source])
    assert "out of range" in str(exc.value)


def test_negative_page_index_is_rejected(make_pdf) -> None:
    with pytest.raises(ValidationError):
        _assemble_bytes([PageInstruction.copy(0, -1)], [SourceFile(make_pdf([100]))])


def test_missing_source_is_rejected(make_pdf) -> None:
    with pytest.raises(ValidationError) as exc:
        _assemble_bytes([PageInstruction.copy(1, 0)], [SourceFile(make_pdf([100]))])
    assert "missing file index 1" in str(exc.value)


def test_empty_instruction_list_is_rejected(make_pdf) -> None:
    with pytest.raises(ValidationError):
        _assemble_bytes([], [SourceFile(make_pdf([100]))])


def test_corrupt_source_raises_decode_error() -> None:
    with pytest.raises(SourceDecodeError) as exc:
        _assemble_bytes([PageInstruction.copy(0, 0)], [SourceFile(b"not a pdf", "broken.pdf")])
    assert exc.value.filename == "broken.pdf"


def test_encrypted_source_requires_password(make_pdf) -> None:
    source = SourceFile(make_pdf([100], password="secret"), "locked.pdf")

    with pytest.raises(PasswordRequiredError):
        _assemble_bytes([PageInstruction.copy(0, 0)], [source])


def test_encrypted_source_opens_with_password(make_pdf, page_widths) -> None:
    source = SourceFile(make_pdf([150], password="secret"))

    with SourceDocumentSet([source], password="secret") as sources:
        result = serialize(assemble([PageInstruction.copy(0, 0)], sources))

    assert page_widths(result) == [150]
