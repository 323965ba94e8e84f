"""Build one output PDF from an instruction list."""

from __future__ import annotations

from typing import Sequence

from pypdf import PdfWriter

from .errors import ValidationError
from .instructions import PageInstruction, compose_rotation, ensure_non_empty
from .logging_config import get_logger
from .sources import SourceDocumentSet

LOGGER = get_logger(__name__)

# pt, A4 portrait
DEFAULT_PAGE_SIZE = (595.28, 841.89)


def validate_instructions(
    instructions: Sequence[PageInstruction], sources: SourceDocumentSet
) -> None:
    """Check every page reference against the loaded sources.

    Raises :class:`ValidationError` on the first reference whose source is
    missing or whose page index is outside ``[0, page_count)``.
    """

    for position, instruction in enumerate(instructions):
        if instruction.is_blank:
            continue
        if instruction.source_index not in sources:
            raise ValidationError(
                f"Instruction {position} refers to missing file index {instruction.source_index}"
            )
        page_count = sources.page_count(instruction.source_index)
        if not 0 <= instruction.page_index < page_count:
            raise ValidationError(
                f"Instruction {position}: page index {instruction.page_index} is out of range "
                f"for a document with {page_count} pages"
            )


def assemble(instructions: Sequence[PageInstruction], sources: SourceDocumentSet) -> PdfWriter:
    """Copy the referenced pages into a new document in instruction order.

    Every copied page gets its own page dictionary, so rotating one copy
    never affects the source or other copies of the same page.
    """

    instructions = ensure_non_empty(instructions)
    validate_instructions(instructions, sources)

    writer = PdfWriter()
    for instruction in instructions:
        if instruction.is_blank:
            writer.add_blank_page(*DEFAULT_PAGE_SIZE)
            continue
        source_page = sources.page(instruction.source_index, instruction.page_index)
        copied = writer.add_page(source_page)
        copied.rotation = compose_rotation(source_page.rotation, instruction.rotation_delta)

    LOGGER.info(
        "Assembled document",
        extra={"pageCount": len(writer.pages), "sourceCount": len(sources)},
    )
    return writer


__all__ = ["DEFAULT_PAGE_SIZE", "assemble", "validate_instructions"]
