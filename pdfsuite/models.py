"""Pydantic models for request payloads and JSON responses.

Request payloads arrive as JSON strings inside multipart form fields. The
``to_*`` methods are the only place where user-facing numbering is turned
into the 0-based :class:`~pdfsuite.instructions.PageInstruction` model.
"""

from __future__ import annotations

import json
from typing import Any, List, Literal, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .instructions import InstructionList, PageInstruction
from .partitioner import Extract, FixedSize, Ranges, SplitPolicy
from .watermark import PageSelector

ModelT = TypeVar("ModelT", bound=BaseModel)


class PageInstructionPayload(BaseModel):
    """Entry of ``pageInstructions`` for rotate, delete-pages and process-pages."""

    # 0-based despite the name
    original_index: int = Field(..., alias="originalIndex")
    rotation: int = 0

    class Config:
        populate_by_name = True

    def to_instruction(self, source_index: int = 0) -> PageInstruction:
        return PageInstruction.copy(source_index, self.original_index, self.rotation)


class OrganizeInstructionPayload(BaseModel):
    """Entry of ``instructions`` for organize; ``originalIndex`` is a 1-based page number."""

    is_blank: bool = Field(default=False, alias="isBlank")
    file_index: int = Field(default=0, alias="fileIndex")
    original_index: Optional[int] = Field(default=None, alias="originalIndex")
    rotation: int = 0

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def _require_page_for_copies(self) -> "OrganizeInstructionPayload":
        if not self.is_blank and self.original_index is None:
            raise ValueError("originalIndex is required unless isBlank is set")
        return self

    def to_instruction(self) -> PageInstruction:
        if self.is_blank:
            return PageInstruction.blank()
        return PageInstruction.copy(self.file_index, self.original_index - 1, self.rotation)


class SplitConfig(BaseModel):
    ranges: List[int] = Field(default_factory=list)
    pages: List[int] = Field(default_factory=list)
    merge: bool = False
    size: Optional[int] = None


class SplitRequest(BaseModel):
    mode: Literal["ranges", "extract", "fixed"]
    config: SplitConfig = Field(default_factory=SplitConfig)

    def to_policy(self) -> SplitPolicy:
        """Build the split policy, rejecting parameters that cannot fit any document."""

        config = self.config
        if self.mode == "fixed":
            if config.size is None or config.size < 1:
                raise ValidationError("The split size must be at least 1")
            return FixedSize(size=config.size)
        if self.mode == "ranges":
            if not config.ranges:
                raise ValidationError("No split ranges were defined")
            if any(number < 1 for number in config.ranges):
                raise ValidationError("Split ranges must be page numbers starting at 1")
            return Ranges(breakpoints=tuple(config.ranges))
        if not config.pages:
            raise ValidationError("No pages were selected")
        if any(number < 1 for number in config.pages):
            raise ValidationError("Page numbers start at 1")
        return Extract(pages=tuple(config.pages), merge=config.merge)


class ErrorResponse(BaseModel):
    error: str
    code: str


class StoredFileResponse(BaseModel):
    success: bool = True
    fileId: str
    fileName: str
    fileSize: int


class EncryptionCheckResponse(BaseModel):
    success: bool = True
    isEncrypted: bool
    encryptionInfo: Optional[str] = None
    message: str


class ServiceInfo(BaseModel):
    message: str


def _format_errors(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


def parse_json_field(raw: Optional[str], field_name: str) -> Any:
    if raw is None or not raw.strip():
        raise ValidationError(f"Missing required field '{field_name}'")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Field '{field_name}' is not valid JSON") from exc


def parse_model_list(raw: Optional[str], model: Type[ModelT], field_name: str) -> List[ModelT]:
    payload = parse_json_field(raw, field_name)
    if not isinstance(payload, list):
        raise ValidationError(f"Field '{field_name}' must be a JSON list")
    try:
        return TypeAdapter(List[model]).validate_python(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid '{field_name}': {_format_errors(exc)}") from exc


def parse_page_instructions(raw: Optional[str]) -> InstructionList:
    entries = parse_model_list(raw, PageInstructionPayload, "pageInstructions")
    return [entry.to_instruction() for entry in entries]


def parse_organize_instructions(raw: Optional[str]) -> InstructionList:
    entries = parse_model_list(raw, OrganizeInstructionPayload, "instructions")
    return [entry.to_instruction() for entry in entries]


def parse_split_request(mode: Optional[str], raw_config: Optional[str]) -> SplitRequest:
    if not mode:
        raise ValidationError("Missing required field 'mode'")
    config = parse_json_field(raw_config, "config") if raw_config and raw_config.strip() else {}
    try:
        return SplitRequest.model_validate({"mode": mode, "config": config})
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid split request: {_format_errors(exc)}") from exc


def parse_rotations(raw: Optional[str], file_count: int) -> List[int]:
    """Per-file rotation deltas for merge; missing entries default to 0."""

    if raw is None or not raw.strip():
        return [0] * file_count
    payload = parse_json_field(raw, "rotations")
    try:
        rotations = TypeAdapter(List[Optional[int]]).validate_python(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid 'rotations': {_format_errors(exc)}") from exc
    padded = [value or 0 for value in rotations[:file_count]]
    return padded + [0] * (file_count - len(padded))


def parse_page_selection(raw: Optional[str]) -> Union[str, Tuple[PageSelector, ...]]:
    """Parse ``"all"``, a JSON list like ``[1, 3]`` or a human list like ``"1,3-5"``.

    Human ranges stay ``(first, last)`` spans; they are clamped to the
    document once its page count is known.
    """

    text = (raw or "").strip()
    if not text or text.lower() == "all":
        return "all"
    if text.startswith("["):
        try:
            return tuple(TypeAdapter(List[int]).validate_python(json.loads(text)))
        except (json.JSONDecodeError, PydanticValidationError) as exc:
            raise ValidationError("Field 'pages' must be 'all' or a list of page numbers") from exc

    selectors: List[PageSelector] = []
    for part in (item.strip() for item in text.split(",")):
        if not part:
            continue
        start, _, end = part.partition("-")
        try:
            first = int(start)
            last = int(end) if end else first
        except ValueError as exc:
            raise ValidationError(f"Invalid page range: {part}") from exc
        if first < 1 or last < first:
            raise ValidationError(f"Invalid page range: {part}")
        selectors.append(first if first == last else (first, last))
    return tuple(selectors)


__all__ = [
    "EncryptionCheckResponse",
    "ErrorResponse",
    "OrganizeInstructionPayload",
    "PageInstructionPayload",
    "ServiceInfo",
    "SplitConfig",
    "SplitRequest",
    "StoredFileResponse",
    "parse_json_field",
    "parse_model_list",
    "parse_organize_instructions",
    "parse_page_instructions",
    "parse_page_selection",
    "parse_rotations",
    "parse_split_request",
]
