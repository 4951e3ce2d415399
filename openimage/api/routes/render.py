"""
Render Routes
=============

FastAPI route for the stateless image endpoint.
"""

from typing import List, Optional

from fastapi import APIRouter, Query
from fastapi.responses import Response

from openimage.config.logging import get_logger
from openimage.config.settings import get_settings
from openimage.core.rendering.remote_rasterizer import render_scene_png
from openimage.core.scene.serialization import IMAGE_ENDPOINT, parse_payload
from openimage.models.schemas import Element

logger = get_logger(__name__)

router = APIRouter(tags=["Rendering"])


def cache_control_header() -> str:
    return f"public, max-age={get_settings().cache_max_age}, must-revalidate"


@router.get(
    IMAGE_ENDPOINT,
    response_class=Response,
    responses={200: {"content": {"image/png": {}}, "description": "900x400 PNG rendering"}},
)
async def render_image(
    data: Optional[str] = Query(None, description="URL-encoded JSON array of elements"),
) -> Response:
    """
    Render a serialized scene to PNG.

    A missing or empty data parameter renders a blank white canvas. Query
    values arrive already URL-decoded.
    """
    elements: List[Element] = []
    if data and data.strip():
        elements = parse_payload(data)

    logger.info("Image render requested", elements=len(elements), payload_length=len(data or ""))
    result = await render_scene_png(elements)

    return Response(
        content=result.png_data,
        media_type="image/png",
        headers={"Cache-Control": cache_control_header()},
    )
