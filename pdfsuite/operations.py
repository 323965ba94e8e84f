"""Request-level PDF operations combining sources, assembly, partitioning and packaging."""

from __future__ import annotations

from typing import List, Mapping, Sequence, Tuple

from pypdf import PdfWriter

from .assembler import assemble
from .errors import ValidationError
from .instructions import InstructionList, enumerate_pages, ensure_non_empty
from .logging_config import get_logger
from .packager import DEFAULT_ARCHIVE_NAME, PDF_MEDIA_TYPE, PackedOutput, pack, serialize
from .partitioner import SplitPolicy, partition
from .sources import SourceDocumentSet, SourceFile
from .watermark import WatermarkSpec, apply_watermark

LOGGER = get_logger(__name__)


def merge_documents(files: Sequence[SourceFile], rotations: Sequence[int]) -> PackedOutput:
    """Concatenate every page of ``files`` in order, rotating each file's pages by its delta."""

    if not files:
        raise ValidationError("No files were received")
    with SourceDocumentSet(files) as sources:
        # Any unreadable file fails the merge before pages are copied.
        sources.load_all()
        instructions: InstructionList = []
        for source_index in sources:
            instructions.extend(
                enumerate_pages(
                    sources.page_count(source_index),
                    source_index=source_index,
                    rotation_delta=rotations[source_index] if source_index < len(rotations) else 0,
                )
            )
        document = assemble(instructions, sources)
        LOGGER.info("Merged documents", extra={"files": len(files), "pages": len(instructions)})
        return pack([("merged.pdf", document)])


def rearrange_pages(
    source: SourceFile, instructions: InstructionList, output_name: str
) -> PackedOutput:
    """Rotate, drop or reorder the pages of one document (rotate, delete-pages, process-pages)."""

    instructions = ensure_non_empty(instructions)
    with SourceDocumentSet([source]) as sources:
        return pack([(output_name, assemble(instructions, sources))])


def organize_pages(
    files: Mapping[int, SourceFile],
    instructions: InstructionList,
    output_name: str = "organized_document.pdf",
) -> PackedOutput:
    """Build one document from pages of several uploads plus blank pages."""

    instructions = ensure_non_empty(instructions)
    if not files:
        raise ValidationError("No PDF files were provided")
    with SourceDocumentSet(files) as sources:
        return pack([(output_name, assemble(instructions, sources))])


def split_document(
    source: SourceFile, policy: SplitPolicy, *, archive_name: str = DEFAULT_ARCHIVE_NAME
) -> PackedOutput:
    with SourceDocumentSet([source]) as sources:
        groups = partition(policy, sources.page_count(0))
        outputs: List[Tuple[str, PdfWriter]] = [
            (name, assemble(group, sources)) for name, group in groups
        ]
        return pack(outputs, archive_name=archive_name)


def watermark_document(source: SourceFile, spec: WatermarkSpec) -> PackedOutput:
    with SourceDocumentSet([source]) as sources:
        document = PdfWriter(clone_from=sources.reader(0))
        apply_watermark(document, spec)
        return PackedOutput(
            content=serialize(document), media_type=PDF_MEDIA_TYPE, filename=source.filename
        )


__all__ = [
    "merge_documents",
    "organize_pages",
    "rearrange_pages",
    "split_document",
    "watermark_document",
]
