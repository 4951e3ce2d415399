"""
Pydantic Models and Schemas
===========================

Core data models for scene elements, rendering results, editor state and
API requests/responses. Geometry is always stored as integer pixels; the
legacy "Npx" string form is only accepted at the input boundary.
"""

from typing import Optional, List, Dict, Any, Literal
from datetime import datetime, timezone
from enum import Enum
import math
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Output frame shared by both rasterizers
CANVAS_WIDTH = 900
CANVAS_HEIGHT = 400

_PIXEL_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:px)?\s*$")


def coerce_pixels(value: Any) -> Any:
    """Normalize a pixel quantity (int, float or "Npx") to an int."""
    if value is None:
        return value
    if isinstance(value, bool):
        raise ValueError("Pixel value must be a number, not a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError("Pixel value must be finite")
        return int(round(value))
    if isinstance(value, str):
        match = _PIXEL_PATTERN.match(value)
        if not match:
            raise ValueError(f"Unsupported pixel value: {value!r}")
        return int(round(float(match.group(1))))
    raise ValueError(f"Unsupported pixel value type: {type(value).__name__}")


# Enums
class ElementKind(str, Enum):
    """Closed set of element kinds."""
    TEXT = "text"
    BOX = "box"
    IMAGE = "image"


# Scene Models
class ElementStyle(BaseModel):
    """Presentation attributes of one element."""
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    left: int = Field(0, ge=0, description="X position in pixels")
    top: int = Field(0, ge=0, description="Y position in pixels")
    width: Optional[int] = Field(None, ge=0, description="Width in pixels (box, image)")
    height: Optional[int] = Field(None, ge=0, description="Height in pixels (box, image)")
    background_color: Optional[str] = Field(None, alias="backgroundColor")
    font_size: Optional[int] = Field(None, gt=0, alias="fontSize")
    line_height: Optional[int] = Field(None, gt=0, alias="lineHeight")
    font_family: Optional[str] = Field(None, alias="fontFamily")
    color: Optional[str] = None

    @field_validator(
        "left", "top", "width", "height", "font_size", "line_height", mode="before"
    )
    @classmethod
    def normalize_pixels(cls, v: Any) -> Any:
        """Accept legacy "Npx" strings and store plain integers."""
        return coerce_pixels(v)

    @classmethod
    def field_for_key(cls, key: str) -> Optional[str]:
        """Resolve a camelCase alias or snake_case name to the field name."""
        if key in cls.model_fields:
            return key
        for name, info in cls.model_fields.items():
            if info.alias == key:
                return name
        return None


class Element(BaseModel):
    """One visual item on the canvas."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: ElementKind = Field(..., alias="type", description="Element kind")
    style: ElementStyle = Field(default_factory=ElementStyle)
    text: Optional[str] = Field(None, description="Text content (text elements only)")
    src: Optional[str] = Field(None, description="Image source URL (image elements only)")

    @model_validator(mode="after")
    def check_kind_fields(self) -> "Element":
        """Enforce per-kind content and geometry requirements."""
        if self.kind == ElementKind.TEXT:
            if self.text is None:
                raise ValueError("Text element requires 'text'")
        elif self.text is not None:
            raise ValueError(f"Element of type '{self.kind.value}' cannot carry 'text'")

        if self.kind == ElementKind.IMAGE:
            if not self.src:
                raise ValueError("Image element requires 'src'")
        elif self.src is not None:
            raise ValueError(f"Element of type '{self.kind.value}' cannot carry 'src'")

        if self.kind in (ElementKind.BOX, ElementKind.IMAGE):
            if self.style.width is None or self.style.height is None:
                raise ValueError(f"Element of type '{self.kind.value}' requires width and height")
        return self

    def to_wire(self) -> Dict[str, Any]:
        """Transport/persistence form of the element."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Rendering Models
class RasterResult(BaseModel):
    """Result of a remote rendering."""
    png_data: bytes = Field(..., description="PNG binary data", exclude=True)
    width: int = Field(..., description="Image width")
    height: int = Field(..., description="Image height")
    file_size: int = Field(..., description="File size in bytes")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Rendering metadata")


class CaptureOptions(BaseModel):
    """Options for capturing the live canvas."""
    scale: float = Field(6.0, gt=0, le=8.0, description="Device pixel ratio of the capture")
    jpeg_quality: int = Field(100, ge=1, le=100, description="JPEG quality (1-100)")
    background_color: str = Field("#ffffff", description="Background behind transparent areas")
    wait_for_load: bool = Field(True, description="Wait for images to finish loading")


class ExportResult(BaseModel):
    """Downloadable export produced by the client rasterizer."""
    filename: str = Field(..., description="Suggested download name")
    data: bytes = Field(..., description="Encoded image bytes", exclude=True)
    media_type: str = Field("image/jpeg", description="MIME type of data")
    width: int = Field(..., description="Pixel width of the export")
    height: int = Field(..., description="Pixel height of the export")
    file_size: int = Field(..., description="File size in bytes")


# Editor Models
class LayerEntry(BaseModel):
    """One row of the layer list."""
    index: int
    label: str
    kind: ElementKind
    selected: bool = False


class SidebarState(BaseModel):
    """Edit controls shown for the selected element."""
    index: int
    width: int = 0
    height: int = 0
    x: int = 0
    y: int = 0
    background_color: Optional[str] = None


class AddElementRequest(BaseModel):
    """Request to add an element; omit kind for a random element."""
    kind: Optional[str] = Field(None, description="text, box or image")
    geometry: Dict[str, Any] = Field(default_factory=dict, description="Style overrides")
    content: Optional[str] = Field(None, description="Text for text elements, URL for images")


class DragSample(BaseModel):
    """One pointer position in canvas coordinates."""
    x: float
    y: float


class DragRequest(BaseModel):
    """A complete drag gesture on one element."""
    samples: List[DragSample] = Field(..., min_length=1)


class PositionRequest(BaseModel):
    """Keyboard X/Y edits for the selected element."""
    x: Optional[int] = None
    y: Optional[int] = None


class EditorStateResponse(BaseModel):
    """Snapshot of the editor."""
    elements: List[Dict[str, Any]]
    selected: Optional[int] = None
    is_dragging: bool = False
    layers: List[LayerEntry] = Field(default_factory=list)
    sidebar: Optional[SidebarState] = None


class GenerateResponse(BaseModel):
    """Outcome of the remote generate action."""
    ok: bool
    preview_url: Optional[str] = None
    notice: Optional[str] = None


# Health Check Models
class HealthStatus(BaseModel):
    """Health check status."""
    status: Literal["healthy", "unhealthy", "degraded"] = Field(..., description="Overall status")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp"
    )
    version: str = Field(..., description="Application version")
    browser_pool: bool = Field(..., description="Browser pool available")
    storage: bool = Field(..., description="Editor store writable")


# Error Models
class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Error timestamp"
    )
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
