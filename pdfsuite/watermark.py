"""Text and image watermarks drawn onto selected pages of a PDF.

Geometry works in absolute page units with the origin at the lower-left
corner of the page's MediaBox. A watermark is positioned by its *centre*
and rotated counter-clockwise about that centre. Custom coordinates
arriving in other frames are converted by :func:`custom_anchor`.
"""

from __future__ import annotations

import io
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Set, Tuple, Union

from pypdf import PageObject, PdfReader, PdfWriter
from reportlab.lib.colors import HexColor
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from .errors import ValidationError
from .logging_config import get_logger

LOGGER = get_logger(__name__)

MARGIN = 20.0
FONT_NAME = "Helvetica-Bold"
DEFAULT_IMAGE_HEIGHT = 150.0

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

PageSpan = Tuple[int, int]
PageSelector = Union[int, PageSpan]


class Position(str, Enum):
    CENTER = "center"
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"
    CUSTOM = "custom"


class CoordinateSpace(str, Enum):
    # x/y are the lower-left corner of the unrotated watermark, in page units
    ABSOLUTE = "absolute"
    # x/y are fractions of the page size locating the centre; y grows downwards
    NORMALIZED = "normalized"


@dataclass(frozen=True, slots=True)
class Placement:
    position: Position = Position.CENTER
    x: float = 0.0
    y: float = 0.0
    space: CoordinateSpace = CoordinateSpace.ABSOLUTE


@dataclass(frozen=True, slots=True)
class TextWatermark:
    text: str
    font_size: float = 48.0
    color_hex: str = "#000000"

    def __post_init__(self) -> None:
        if not self.text:
            raise ValidationError("Watermark text must not be empty")
        if self.font_size <= 0:
            raise ValidationError("Font size must be positive")
        if not _HEX_COLOR.match(self.color_hex):
            raise ValidationError(f"Invalid colour {self.color_hex!r}, expected #RRGGBB")


@dataclass(frozen=True, slots=True)
class ImageWatermark:
    image_bytes: bytes
    width: float = 200.0
    height: Optional[float] = None
    maintain_aspect_ratio: bool = False

    def __post_init__(self) -> None:
        if not self.image_bytes:
            raise ValidationError("No watermark image was provided")
        if self.width <= 0 or (self.height is not None and self.height <= 0):
            raise ValidationError("Watermark image dimensions must be positive")


@dataclass(frozen=True, slots=True)
class WatermarkSpec:
    content: Union[TextWatermark, ImageWatermark]
    opacity: float = 0.5
    rotation_degrees: float = 0.0
    placement: Placement = field(default_factory=Placement)
    # "all", or 1-based page numbers and inclusive (first, last) spans
    target_pages: Union[str, Tuple[PageSelector, ...]] = "all"

    def __post_init__(self) -> None:
        if not 0.0 <= self.opacity <= 1.0:
            raise ValidationError("Opacity must be between 0 and 1")

    @property
    def kind(self) -> str:
        return "text" if isinstance(self.content, TextWatermark) else "image"

    @property
    def rotation(self) -> float:
        return normalize_rotation(self.rotation_degrees)


def normalize_rotation(degrees: float) -> float:
    return degrees % 360.0


def resolve_target_pages(
    target_pages: Union[str, Sequence[PageSelector]], page_count: int
) -> List[int]:
    """Return the 0-based indices to watermark.

    Each selector is a page number or an inclusive ``(first, last)`` span.
    Spans are clamped to ``[1, page_count]`` before they are expanded;
    numbers outside that range are dropped silently and repeated pages
    keep their first position.
    """

    if target_pages == "all":
        return list(range(page_count))
    indices: List[int] = []
    seen: Set[int] = set()
    for selector in target_pages:
        first, last = (selector, selector) if isinstance(selector, int) else selector
        for number in range(max(first, 1), min(last, page_count) + 1):
            if number not in seen:
                seen.add(number)
                indices.append(number - 1)
    return indices


def rotated_extent(width: float, height: float, degrees: float) -> Tuple[float, float]:
    """Size of the axis-aligned box around a ``width`` x ``height`` box rotated by ``degrees``."""

    theta = math.radians(degrees)
    cos = abs(math.cos(theta))
    sin = abs(math.sin(theta))
    return width * cos + height * sin, width * sin + height * cos


def custom_anchor(
    placement: Placement, page_width: float, page_height: float, width: float, height: float
) -> Tuple[float, float]:
    if placement.space is CoordinateSpace.NORMALIZED:
        return page_width * placement.x, page_height * (1.0 - placement.y)
    return placement.x + width / 2.0, placement.y + height / 2.0


def resolve_anchor(
    placement: Placement,
    page_width: float,
    page_height: float,
    width: float,
    height: float,
    degrees: float,
) -> Tuple[float, float]:
    """Centre point of the watermark on a page of the given size."""

    position = placement.position
    if position is Position.CUSTOM:
        return custom_anchor(placement, page_width, page_height, width, height)
    if position is Position.CENTER:
        return page_width / 2.0, page_height / 2.0

    w_rot, h_rot = rotated_extent(width, height, degrees)
    left = MARGIN + w_rot / 2.0
    right = page_width - MARGIN - w_rot / 2.0
    top = page_height - MARGIN - h_rot / 2.0
    bottom = MARGIN + h_rot / 2.0
    return {
        Position.TOP_LEFT: (left, top),
        Position.TOP_RIGHT: (right, top),
        Position.BOTTOM_LEFT: (left, bottom),
        Position.BOTTOM_RIGHT: (right, bottom),
    }[position]


def text_box(content: TextWatermark) -> Tuple[float, float, float]:
    """Width, height and descent (negative) of the text at its font size."""

    width = pdfmetrics.stringWidth(content.text, FONT_NAME, content.font_size)
    ascent, descent = pdfmetrics.getAscentDescent(FONT_NAME, content.font_size)
    return width, ascent - descent, descent


def load_image(content: ImageWatermark) -> ImageReader:
    try:
        image = ImageReader(io.BytesIO(content.image_bytes))
        image.getSize()
        return image
    except Exception as exc:  # reportlab/Pillow raise assorted types for bad images
        raise ValidationError(
            "The watermark image format is not supported or the file is damaged. Use PNG or JPG."
        ) from exc


def image_box(content: ImageWatermark, image: ImageReader) -> Tuple[float, float]:
    intrinsic_width, intrinsic_height = image.getSize()
    width = content.width
    if content.height is not None:
        height = content.height
    elif content.maintain_aspect_ratio:
        height = width * intrinsic_height / intrinsic_width
    else:
        height = DEFAULT_IMAGE_HEIGHT
    return width, height


DrawFn = Callable[[canvas.Canvas], None]


def _overlay_page(page_width: float, page_height: float, draw: DrawFn) -> PageObject:
    buffer = io.BytesIO()
    sheet = canvas.Canvas(buffer, pagesize=(page_width, page_height))
    draw(sheet)
    sheet.showPage()
    sheet.save()
    buffer.seek(0)
    return PdfReader(buffer).pages[0]


def _stamp_page(page: PageObject, spec: WatermarkSpec, image: Optional[ImageReader]) -> None:
    mediabox = page.mediabox
    origin_x, origin_y = float(mediabox.left), float(mediabox.bottom)
    page_width, page_height = float(mediabox.width), float(mediabox.height)
    rotation = spec.rotation
    content = spec.content

    if isinstance(content, TextWatermark):
        width, height, descent = text_box(content)
    else:
        width, height = image_box(content, image)
        descent = 0.0

    cx, cy = resolve_anchor(spec.placement, page_width, page_height, width, height, rotation)

    def draw(sheet: canvas.Canvas) -> None:
        sheet.saveState()
        sheet.setFillAlpha(spec.opacity)
        sheet.translate(origin_x + cx, origin_y + cy)
        sheet.rotate(rotation)
        if isinstance(content, TextWatermark):
            sheet.setFillColor(HexColor(content.color_hex))
            sheet.setFont(FONT_NAME, content.font_size)
            sheet.drawString(-width / 2.0, -height / 2.0 - descent, content.text)
        else:
            sheet.drawImage(image, -width / 2.0, -height / 2.0, width=width, height=height, mask="auto")
        sheet.restoreState()

    page.merge_page(_overlay_page(origin_x + page_width, origin_y + page_height, draw))


def apply_watermark(document: PdfWriter, spec: WatermarkSpec) -> PdfWriter:
    """Stamp ``spec`` on its target pages of ``document`` in place and return it."""

    targets = resolve_target_pages(spec.target_pages, len(document.pages))
    image = load_image(spec.content) if isinstance(spec.content, ImageWatermark) else None
    for index in targets:
        _stamp_page(document.pages[index], spec, image)
    LOGGER.info(
        "Applied watermark",
        extra={"kind": spec.kind, "pages": len(targets), "position": spec.placement.position.value},
    )
    return document


__all__ = [
    "CoordinateSpace",
    "ImageWatermark",
    "MARGIN",
    "PageSelector",
    "PageSpan",
    "Placement",
    "Position",
    "TextWatermark",
    "WatermarkSpec",
    "apply_watermark",
    "custom_anchor",
    "image_box",
    "normalize_rotation",
    "resolve_anchor",
    "resolve_target_pages",
    "rotated_extent",
    "text_box",
]
