"""Page instruction model shared by every page-level PDF operation.

All indices in this module are 0-based. Routes that accept 1-based page
numbers convert them exactly once, in :mod:`pdfsuite.models`, before an
instruction is built.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .errors import ValidationError

InstructionList = List["PageInstruction"]


@dataclass(frozen=True, slots=True)
class PageReference:
    source_index: int
    page_index: int


@dataclass(frozen=True, slots=True)
class PageInstruction:
    """One output page: a copied source page plus a rotation delta, or a blank page."""

    source_index: int = 0
    page_index: int = 0
    rotation_delta: int = 0
    is_blank: bool = False

    def __post_init__(self) -> None:
        if self.rotation_delta % 90 != 0:
            raise ValidationError(
                f"Rotation must be a multiple of 90 degrees, got {self.rotation_delta}"
            )

    @classmethod
    def blank(cls) -> "PageInstruction":
        return cls(is_blank=True)

    @classmethod
    def copy(cls, source_index: int, page_index: int, rotation_delta: int = 0) -> "PageInstruction":
        return cls(source_index=source_index, page_index=page_index, rotation_delta=rotation_delta)

    @property
    def reference(self) -> PageReference:
        return PageReference(self.source_index, self.page_index)


def compose_rotation(existing: int, delta: int) -> int:
    """Add ``delta`` to a stored page rotation, normalised into ``[0, 360)``."""

    return (existing + delta) % 360


def ensure_non_empty(instructions: Sequence[PageInstruction]) -> InstructionList:
    if not instructions:
        raise ValidationError("The page instruction list must not be empty")
    return list(instructions)


def enumerate_pages(
    page_count: int, *, source_index: int = 0, rotation_delta: int = 0
) -> InstructionList:
    """Instructions copying every page of one source in its original order."""

    return [
        PageInstruction.copy(source_index, index, rotation_delta) for index in range(page_count)
    ]


def pages_from_indices(indices: Iterable[int], *, source_index: int = 0) -> InstructionList:
    return [PageInstruction.copy(source_index, index) for index in indices]


__all__ = [
    "InstructionList",
    "PageInstruction",
    "PageReference",
    "compose_rotation",
    "ensure_non_empty",
    "enumerate_pages",
    "pages_from_indices",
]
