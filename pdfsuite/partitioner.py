"""Split policies that partition one document's pages into several outputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple, Union

from .errors import ValidationError
from .instructions import InstructionList, PageInstruction, pages_from_indices
from .logging_config import get_logger

LOGGER = get_logger(__name__)

NamedInstructions = Tuple[str, InstructionList]


@dataclass(frozen=True, slots=True)
class FixedSize:
    size: int


@dataclass(frozen=True, slots=True)
class Ranges:
    # 1-based number of the last page of each group
    breakpoints: Tuple[int, ...]


@dataclass(frozen=True, slots=True)
class Extract:
    # 1-based page numbers, in output order
    pages: Tuple[int, ...]
    merge: bool = field(default=False)


SplitPolicy = Union[FixedSize, Ranges, Extract]


def _partition_fixed(policy: FixedSize, page_count: int) -> List[NamedInstructions]:
    if policy.size < 1:
        raise ValidationError("The split size must be at least 1")
    groups: List[NamedInstructions] = []
    for part, start in enumerate(range(0, page_count, policy.size), start=1):
        end = min(start + policy.size, page_count)
        groups.append((f"archivo-{part}.pdf", pages_from_indices(range(start, end))))
    return groups


def _partition_ranges(policy: Ranges, page_count: int) -> List[NamedInstructions]:
    if not policy.breakpoints:
        raise ValidationError("No split ranges were defined")
    groups: List[NamedInstructions] = []
    start = 0
    for breakpoint_ in [*sorted(policy.breakpoints), page_count]:
        end = min(breakpoint_, page_count)
        if start >= end:
            continue
        groups.append((f"archivo-{len(groups) + 1}.pdf", pages_from_indices(range(start, end))))
        start = end
    return groups


def _partition_extract(policy: Extract, page_count: int) -> List[NamedInstructions]:
    if not policy.pages:
        raise ValidationError("No pages were selected")
    invalid = [number for number in policy.pages if not 1 <= number <= page_count]
    if invalid:
        raise ValidationError(
            f"Pages {invalid} are out of range for a document with {page_count} pages"
        )
    if policy.merge:
        return [("extracted-pages.pdf", pages_from_indices(n - 1 for n in policy.pages))]
    return [(f"page-{number}.pdf", [PageInstruction.copy(0, number - 1)]) for number in policy.pages]


def partition(policy: SplitPolicy, page_count: int) -> List[NamedInstructions]:
    """Turn ``policy`` into ordered ``(output name, instructions)`` pairs for source 0."""

    if isinstance(policy, FixedSize):
        groups = _partition_fixed(policy, page_count)
    elif isinstance(policy, Ranges):
        groups = _partition_ranges(policy, page_count)
    elif isinstance(policy, Extract):
        groups = _partition_extract(policy, page_count)
    else:
        raise ValidationError(f"Unsupported split policy: {policy!r}")

    if not groups:
        raise ValidationError("The split did not produce any files")
    LOGGER.info(
        "Partitioned document",
        extra={"policy": type(policy).__name__, "pageCount": page_count, "outputs": len(groups)},
    )
    return groups


__all__ = ["Extract", "FixedSize", "NamedInstructions", "Ranges", "SplitPolicy", "partition"]
