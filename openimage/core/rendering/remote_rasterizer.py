"""
Remote Rasterizer
=================

Stateless Pillow renderer behind the image endpoint. Rebuilds a scene from
its element list with its own layout and returns a 900x400 PNG. Text uses
the rasterizer's fonts, so pixel parity with the browser capture is
approximate.
"""

import asyncio
import io
import re
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from openimage.config.logging import get_logger
from openimage.config.settings import get_settings
from openimage.core.rendering.image_fetcher import ImageFetcher
from openimage.core.rendering.paint import (
    BoxPaint,
    ImagePaint,
    PaintInstruction,
    TextPaint,
    is_empty,
    paint_plan,
)
from openimage.models.schemas import CANVAS_HEIGHT, CANVAS_WIDTH, Element, RasterResult

logger = get_logger(__name__)

BACKGROUND = (255, 255, 255)
TRANSPARENT_KEYWORDS = {"transparent", "none"}
_CSS_RGBA = re.compile(
    r"^rgba\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d*\.?\d+)\s*\)$"
)

RGBA = Tuple[int, int, int, int]
FontType = Any  # ImageFont.FreeTypeFont or the bitmap fallback


class RasterizationError(Exception):
    """Exception raised when the remote rendering cannot be produced."""

    pass


class RenderTimeout(RasterizationError):
    """Exception raised when a render exceeds its time budget."""

    pass


def resolve_color(value: Optional[str]) -> Optional[RGBA]:
    """Parse a CSS colour to RGBA; None for absent, transparent or unknown."""
    if not value:
        return None
    v = value.strip().lower()
    if v in TRANSPARENT_KEYWORDS:
        return None
    match = _CSS_RGBA.match(v)
    if match:
        # CSS alpha is a 0-1 fraction; Pillow reads it as 0-255
        r, g, b = (min(255, int(c)) for c in match.group(1, 2, 3))
        alpha = round(min(1.0, float(match.group(4))) * 255)
        return (r, g, b, alpha) if alpha else None
    try:
        rgb = ImageColor.getrgb(v)
    except ValueError:
        logger.warning("Unsupported colour, painting nothing", color=value)
        return None
    if len(rgb) == 3:
        return (rgb[0], rgb[1], rgb[2], 255)
    if rgb[3] == 0:
        return None
    return (rgb[0], rgb[1], rgb[2], rgb[3])


class RemoteRasterizer:
    """Pillow compositor for paint plans."""

    def __init__(self, fetcher: Optional[ImageFetcher] = None):
        self.settings = get_settings()
        self.logger: Any = logger.bind(rasterizer="pillow")
        self.fetcher = fetcher
        self._font_cache: Dict[Tuple[str, int], FontType] = {}

    def font_candidates(self, family: str) -> List[str]:
        """Font files for a CSS font-family list, most preferred first."""
        candidates: List[str] = []
        for name in family.split(","):
            name = name.strip().strip("\"'").lower()
            candidates.extend(self.settings.font_families.get(name, []))
        candidates.extend(self.settings.font_paths)
        return list(dict.fromkeys(candidates))

    def get_font(self, family: str, size: int) -> FontType:
        """First available font for the family at the given size."""
        key = (family, size)
        if key in self._font_cache:
            return self._font_cache[key]

        font: FontType = None
        for path in self.font_candidates(family):
            try:
                font = ImageFont.truetype(path, size)
                break
            except OSError:
                continue
        if font is None:
            self.logger.debug("No TrueType font found, using default", family=family, size=size)
            font = ImageFont.load_default(size=size)

        self._font_cache[key] = font
        return font

    async def render(self, elements: Sequence[Element]) -> RasterResult:
        """
        Render elements in list order onto a white canvas.

        Args:
            elements: Decoded element list

        Returns:
            RasterResult holding the PNG bytes

        Raises:
            RenderTimeout: If the render exceeds settings.render_timeout
            RasterizationError: If compositing or encoding fails
        """
        start_time = time.time()
        try:
            result = await asyncio.wait_for(
                self._render(list(elements)), timeout=self.settings.render_timeout
            )
        except asyncio.TimeoutError as e:
            self.logger.error(
                "Render timed out", timeout=self.settings.render_timeout, elements=len(elements)
            )
            raise RenderTimeout(
                f"Render exceeded {self.settings.render_timeout} seconds"
            ) from e

        result.metadata["render_time"] = time.time() - start_time
        self.logger.info(
            "Remote render completed",
            elements=len(elements),
            file_size=result.file_size,
            missing_images=result.metadata.get("missing_images", 0),
        )
        return result

    async def _render(self, elements: List[Element]) -> RasterResult:
        plan = [p for p in paint_plan(elements) if not is_empty(p)]
        srcs = [p.src for p in plan if isinstance(p, ImagePaint)]

        fetcher = self.fetcher or ImageFetcher()
        try:
            images = await fetcher.fetch_many(srcs)
        finally:
            if self.fetcher is None:
                await fetcher.close()

        try:
            # Worker thread; still bounded by render_timeout
            png_data = await asyncio.to_thread(self._encode, plan, images)
        except Exception as e:
            raise RasterizationError(f"Compositing failed: {e}") from e

        return RasterResult(
            png_data=png_data,
            width=CANVAS_WIDTH,
            height=CANVAS_HEIGHT,
            file_size=len(png_data),
            metadata={
                "painted": len(plan),
                "missing_images": sum(1 for src in set(srcs) if images.get(src) is None),
            },
        )

    def _encode(
        self, plan: Sequence[PaintInstruction], images: Dict[str, Optional[Image.Image]]
    ) -> bytes:
        canvas = self.composite(plan, images)
        output = io.BytesIO()
        canvas.save(output, format="PNG")
        return output.getvalue()

    def composite(
        self, plan: Sequence[PaintInstruction], images: Dict[str, Optional[Image.Image]]
    ) -> Image.Image:
        """Paint instructions onto a fresh canvas; anything outside the frame is clipped."""
        canvas = Image.new("RGB", (CANVAS_WIDTH, CANVAS_HEIGHT), BACKGROUND)
        draw = ImageDraw.Draw(canvas, "RGBA")

        for paint in plan:
            if isinstance(paint, BoxPaint):
                self._draw_box(draw, paint)
            elif isinstance(paint, TextPaint):
                self._draw_text(draw, paint)
            elif isinstance(paint, ImagePaint):
                self._draw_image(canvas, paint, images.get(paint.src))

        return canvas

    def _draw_box(self, draw: ImageDraw.ImageDraw, paint: BoxPaint) -> None:
        fill = resolve_color(paint.fill)
        if fill is None:
            return
        draw.rectangle(
            [paint.left, paint.top, paint.left + paint.width - 1, paint.top + paint.height - 1],
            fill=fill,
        )

    def _draw_text(self, draw: ImageDraw.ImageDraw, paint: TextPaint) -> None:
        color = resolve_color(paint.color)
        if color is None:
            return
        font = self.get_font(paint.font_family, paint.font_size)
        # Half-leading places the glyphs inside a line box of line_height
        offset = (paint.line_height - paint.font_size) / 2
        draw.multiline_text(
            (paint.left, paint.top + offset),
            paint.text,
            fill=color,
            font=font,
            spacing=max(0, paint.line_height - paint.font_size),
        )

    def _draw_image(
        self, canvas: Image.Image, paint: ImagePaint, source: Optional[Image.Image]
    ) -> None:
        if source is None:
            return

        # Only the part of the element inside the frame is resampled
        vx0 = max(0, -paint.left)
        vy0 = max(0, -paint.top)
        vx1 = min(paint.width, CANVAS_WIDTH - paint.left)
        vy1 = min(paint.height, CANVAS_HEIGHT - paint.top)
        if vx1 <= vx0 or vy1 <= vy0:
            return

        x0, y0, x1, y1 = cover_box(source.size, (paint.width, paint.height))
        sx = (x1 - x0) / paint.width
        sy = (y1 - y0) / paint.height
        fitted = source.resize(
            (vx1 - vx0, vy1 - vy0),
            Image.Resampling.LANCZOS,
            box=(x0 + vx0 * sx, y0 + vy0 * sy, x0 + vx1 * sx, y0 + vy1 * sy),
        )
        canvas.paste(fitted, (paint.left + vx0, paint.top + vy0), fitted)


def cover_box(
    source_size: Tuple[int, int], target_size: Tuple[int, int]
) -> Tuple[float, float, float, float]:
    """Centred region of the source with the target's aspect ratio."""
    sw, sh = source_size
    tw, th = target_size
    if sw * th > sh * tw:
        crop_w = sh * tw / th
        return ((sw - crop_w) / 2, 0.0, (sw + crop_w) / 2, float(sh))
    crop_h = sw * th / tw
    return (0.0, (sh - crop_h) / 2, float(sw), (sh + crop_h) / 2)


async def render_scene_png(elements: Sequence[Element]) -> RasterResult:
    """Render an element list with a fresh rasterizer."""
    return await RemoteRasterizer().render(elements)
