"""
Editor Routes
=============

FastAPI routes driving the interactive editor. One controller serves the
application; its scene is persisted to the JSON file store after every
mutation.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import HTMLResponse, Response

from openimage.config.logging import get_logger
from openimage.config.settings import get_settings
from openimage.core.rendering.client_rasterizer import capture_scene
from openimage.core.rendering.html_generator import generate_html
from openimage.core.rendering.remote_rasterizer import RasterizationError, render_scene_png
from openimage.core.scene.controller import InteractionController
from openimage.core.scene.store import JSONFileSceneStore
from openimage.models.schemas import (
    AddElementRequest,
    DragRequest,
    EditorStateResponse,
    GenerateResponse,
    PositionRequest,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/editor", tags=["Editor"])

GENERATE_NOTICE = "Something went wrong"

# Global controller instance - created on first request
_controller: Optional[InteractionController] = None


def get_editor_controller() -> InteractionController:
    """Get the application's editor controller."""
    global _controller
    if _controller is None:
        store = JSONFileSceneStore(get_settings().scene_store_path)
        _controller = InteractionController(store)
    return _controller


def reset_editor_controller() -> None:
    """Drop the controller so the next request re-hydrates from the store."""
    global _controller
    _controller = None


def editor_state(controller: InteractionController) -> EditorStateResponse:
    scene = controller.scene
    return EditorStateResponse(
        elements=scene.to_wire(),
        selected=scene.selected,
        is_dragging=controller.is_dragging,
        layers=controller.layers(),
        sidebar=controller.sidebar(),
    )


@router.get("/scene", response_model=EditorStateResponse)
async def get_scene(
    controller: InteractionController = Depends(get_editor_controller),
) -> EditorStateResponse:
    """Current scene, layer list and sidebar."""
    return editor_state(controller)


@router.post("/elements", response_model=EditorStateResponse, status_code=201)
async def add_element(
    request: AddElementRequest,
    controller: InteractionController = Depends(get_editor_controller),
) -> EditorStateResponse:
    """Add an element; without a kind a random element is added."""
    if request.kind is None:
        controller.add_random_element()
    else:
        controller.add_element(request.kind, request.geometry, request.content)
    return editor_state(controller)


@router.delete("/elements/{index}", response_model=EditorStateResponse)
async def remove_element(
    index: int, controller: InteractionController = Depends(get_editor_controller)
) -> EditorStateResponse:
    controller.remove_layer(index)
    return editor_state(controller)


@router.post("/elements/{index}/select", response_model=EditorStateResponse)
async def select_element(
    index: int, controller: InteractionController = Depends(get_editor_controller)
) -> EditorStateResponse:
    """Toggle the selection of a layer."""
    controller.click_layer(index)
    return editor_state(controller)


@router.post("/elements/{index}/drag", response_model=EditorStateResponse)
async def drag_element(
    index: int,
    request: DragRequest,
    controller: InteractionController = Depends(get_editor_controller),
) -> EditorStateResponse:
    """Replay a drag gesture; every sample is committed as it arrives."""
    controller.start_drag(index)
    try:
        for sample in request.samples:
            controller.drag_to(sample.x, sample.y)
    finally:
        controller.end_drag()
    return editor_state(controller)


@router.patch("/elements/{index}/style", response_model=EditorStateResponse)
async def update_style(
    index: int,
    patch: Dict[str, Any] = Body(..., description="Style keys to merge"),
    controller: InteractionController = Depends(get_editor_controller),
) -> EditorStateResponse:
    controller.update_style(index, patch)
    return editor_state(controller)


@router.put("/selection/position", response_model=EditorStateResponse)
async def set_selection_position(
    request: PositionRequest,
    controller: InteractionController = Depends(get_editor_controller),
) -> EditorStateResponse:
    """Apply X/Y fields to the selected element; no-op without a selection."""
    if request.x is not None:
        controller.staged_x = request.x
    if request.y is not None:
        controller.staged_y = request.y
    controller.apply_position()
    return editor_state(controller)


@router.get("/canvas", response_class=HTMLResponse)
async def get_canvas(
    controller: InteractionController = Depends(get_editor_controller),
) -> HTMLResponse:
    """Editor canvas markup, with the selection highlighted."""
    return HTMLResponse(await generate_html(controller.scene, show_selection=True))


@router.post(
    "/export",
    response_class=Response,
    responses={200: {"content": {"image/jpeg": {}}, "description": "Canvas capture"}},
)
async def export_canvas(
    controller: InteractionController = Depends(get_editor_controller),
) -> Response:
    """Capture the canvas as a JPEG download; the selection is cleared first."""
    controller.clear_selection()
    result = await capture_scene(controller.scene)
    return Response(
        content=result.data,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    controller: InteractionController = Depends(get_editor_controller),
) -> GenerateResponse:
    """
    Produce the remote rendering URL for the current scene.

    The rendering is attempted once; a failure is reported as a notice and
    the scene is left untouched.
    """
    url = controller.generate_url()
    try:
        await render_scene_png(controller.scene.elements)
    except RasterizationError as e:
        logger.warning("Generate failed", error=str(e))
        return GenerateResponse(ok=False, notice=GENERATE_NOTICE)
    return GenerateResponse(ok=True, preview_url=url)
