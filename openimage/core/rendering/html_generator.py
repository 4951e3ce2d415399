"""
HTML Generator
==============

Render a Scene into the editor canvas markup. This is the live view the
browser lays out, and the exact page the client rasterizer captures.
"""

from typing import Any, Dict, List
from pathlib import Path
from dataclasses import dataclass
from abc import ABC, abstractmethod
import re

import jinja2

from openimage.config.logging import get_logger
from openimage.core.rendering.paint import (
    BoxPaint,
    ImagePaint,
    PaintInstruction,
    TextPaint,
    paint_plan,
)
from openimage.core.scene.scene import Scene
from openimage.models.schemas import CANVAS_HEIGHT, CANVAS_WIDTH

logger = get_logger(__name__)

_CSS_UNSAFE = re.compile(r"[;{}<>\\]")


class HTMLGenerationError(Exception):
    """Exception raised when HTML generation fails."""

    pass


@dataclass(frozen=True)
class CanvasItem:
    """One positioned node of the canvas."""

    index: int
    paint: PaintInstruction
    selected: bool


class BaseHTMLGenerator(ABC):
    """Abstract base class for HTML generators."""

    @abstractmethod
    async def generate(self, scene: Scene, show_selection: bool = True) -> str:
        """Generate HTML from a scene."""
        pass


def px(value: int) -> str:
    """Convert numeric value to CSS pixels."""
    return f"{value}px"


def css_value(value: str) -> str:
    """Strip characters that could end a declaration or break out of the attribute."""
    return _CSS_UNSAFE.sub("", str(value)).strip()


def css_url(value: str) -> str:
    """Quote a URL for use inside url(...)."""
    return value.replace("\\", "%5C").replace('"', "%22").replace("\n", "").replace("\r", "")


def paint_css(paint: PaintInstruction) -> str:
    """Inline style for a paint instruction."""
    rules: List[str] = [f"left: {px(paint.left)}", f"top: {px(paint.top)}"]

    if isinstance(paint, BoxPaint):
        rules.append(f"width: {px(paint.width)}")
        rules.append(f"height: {px(paint.height)}")
        if paint.fill:
            rules.append(f"background-color: {css_value(paint.fill)}")
    elif isinstance(paint, TextPaint):
        rules.append(f"font-size: {px(paint.font_size)}")
        rules.append(f"line-height: {px(paint.line_height)}")
        rules.append(f"font-family: {css_value(paint.font_family)}")
        rules.append(f"color: {css_value(paint.color)}")
    elif isinstance(paint, ImagePaint):
        rules.append(f"width: {px(paint.width)}")
        rules.append(f"height: {px(paint.height)}")
        rules.append(f'background-image: url("{css_url(paint.src)}")')

    return "; ".join(rules)


class SceneHTMLGenerator(BaseHTMLGenerator):
    """Jinja2-based canvas generator."""

    def __init__(self, background: str = "#ffffff", title: str = "Open Image") -> None:
        self.background = background
        self.title = title
        self.logger: Any = logger.bind(generator="jinja2")
        self._setup_jinja2_environment()

    def _setup_jinja2_environment(self) -> None:
        """Setup Jinja2 template environment."""
        template_dir = Path(__file__).parent / "templates"
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(["html", "xml"]),
            enable_async=True,
        )
        self.env.filters["px"] = px
        self.env.filters["css_value"] = css_value
        self.env.filters["paint_css"] = paint_css

    def _prepare_context(self, scene: Scene, show_selection: bool) -> Dict[str, Any]:
        """Prepare template rendering context."""
        items = [
            CanvasItem(index=i, paint=paint, selected=show_selection and i == scene.selected)
            for i, paint in enumerate(paint_plan(scene.elements))
        ]
        return {
            "title": self.title,
            "background": self.background,
            "width": CANVAS_WIDTH,
            "height": CANVAS_HEIGHT,
            "items": items,
        }

    async def generate(self, scene: Scene, show_selection: bool = True) -> str:
        """
        Generate the canvas page for a scene.

        Args:
            scene: Scene to lay out
            show_selection: Draw the dashed highlight around the selected element

        Returns:
            Generated HTML string

        Raises:
            HTMLGenerationError: If template rendering fails
        """
        try:
            template = self.env.get_template("canvas.html")
            html = await template.render_async(**self._prepare_context(scene, show_selection))
        except jinja2.TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            self.logger.error("HTML generation failed", error=error_msg)
            raise HTMLGenerationError(error_msg) from e

        self.logger.debug("HTML generation completed", elements=len(scene), html_length=len(html))
        return html


async def generate_html(scene: Scene, show_selection: bool = True) -> str:
    """Generate canvas HTML for a scene."""
    return await SceneHTMLGenerator().generate(scene, show_selection)
