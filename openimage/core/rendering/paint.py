"""
Paint Plan
==========

One paint instruction per element kind. The editor view (and therefore the
client capture) and the remote rasterizer both consume these instructions,
so the fields each kind supports are defined in exactly one place.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Union

from openimage.models.schemas import Element, ElementKind

DEFAULT_FONT_SIZE = 16
DEFAULT_FONT_FAMILY = "sans-serif"
DEFAULT_TEXT_COLOR = "#000"


@dataclass(frozen=True)
class BoxPaint:
    """Filled rectangle; no fill paints nothing."""

    left: int
    top: int
    width: int
    height: int
    fill: Optional[str]
    kind: ElementKind = ElementKind.BOX


@dataclass(frozen=True)
class TextPaint:
    """Single text run whose line box starts at (left, top)."""

    left: int
    top: int
    text: str
    font_size: int
    line_height: int
    font_family: str
    color: str
    kind: ElementKind = ElementKind.TEXT


@dataclass(frozen=True)
class ImagePaint:
    """Bitmap drawn with a centred cover fit into width x height."""

    left: int
    top: int
    width: int
    height: int
    src: str
    kind: ElementKind = ElementKind.IMAGE


PaintInstruction = Union[BoxPaint, TextPaint, ImagePaint]


def _paint_box(element: Element) -> BoxPaint:
    style = element.style
    return BoxPaint(
        left=style.left,
        top=style.top,
        width=style.width or 0,
        height=style.height or 0,
        fill=style.background_color or None,
    )


def _paint_text(element: Element) -> TextPaint:
    style = element.style
    font_size = style.font_size or DEFAULT_FONT_SIZE
    return TextPaint(
        left=style.left,
        top=style.top,
        text=element.text or "",
        font_size=font_size,
        line_height=style.line_height or font_size,
        font_family=style.font_family or DEFAULT_FONT_FAMILY,
        color=style.color or DEFAULT_TEXT_COLOR,
    )


def _paint_image(element: Element) -> ImagePaint:
    style = element.style
    return ImagePaint(
        left=style.left,
        top=style.top,
        width=style.width or 0,
        height=style.height or 0,
        src=element.src or "",
    )


PAINTERS: Dict[ElementKind, Callable[[Element], PaintInstruction]] = {
    ElementKind.BOX: _paint_box,
    ElementKind.TEXT: _paint_text,
    ElementKind.IMAGE: _paint_image,
}


def paint_instruction(element: Element) -> PaintInstruction:
    """Paint instruction for one element."""
    return PAINTERS[element.kind](element)


def paint_plan(elements: Iterable[Element]) -> List[PaintInstruction]:
    """Paint instructions in list order (later paints on top)."""
    return [paint_instruction(element) for element in elements]


def is_empty(instruction: PaintInstruction) -> bool:
    """True when the instruction cannot put any pixel on the canvas."""
    if isinstance(instruction, TextPaint):
        return not instruction.text
    return instruction.width <= 0 or instruction.height <= 0
