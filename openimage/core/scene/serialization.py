"""
Serialization Bridge
====================

Converts a Scene to and from its transport string: compact JSON,
percent-encoded for use as a single query parameter. Payloads are
structurally validated with Cerberus before the element models are built,
so errors carry a readable path such as ``elements.0.style.width``.
"""

import json
from typing import Any, Dict, List
from urllib.parse import quote, unquote

from cerberus import Validator  # type: ignore[import-untyped]

from openimage.config.logging import get_logger
from openimage.config.settings import get_settings
from openimage.core.scene.scene import MalformedScene, Scene
from openimage.models.schemas import Element, ElementKind

logger = get_logger(__name__)

IMAGE_ENDPOINT = "/api/image"


class MalformedInput(MalformedScene):
    """Exception raised when a transport payload cannot be decoded."""

    pass


class SceneValidator:
    """Structural validation of transport payloads using Cerberus schemas."""

    PIXEL_RULE: Dict[str, Any] = {
        "type": ["integer", "float", "string"],
        "regex": r"^\s*\d+(\.\d+)?\s*(px)?\s*$",
    }

    def __init__(self) -> None:
        self.logger: Any = logger.bind(component="scene_validator")
        self._setup_schemas()

    def _setup_schemas(self) -> None:
        """Setup validation schemas."""
        self.style_schema = {
            "left": dict(self.PIXEL_RULE),
            "top": dict(self.PIXEL_RULE),
            "width": dict(self.PIXEL_RULE),
            "height": dict(self.PIXEL_RULE),
            "fontSize": dict(self.PIXEL_RULE),
            "lineHeight": dict(self.PIXEL_RULE),
            "backgroundColor": {"type": "string", "nullable": True},
            "fontFamily": {"type": "string", "nullable": True},
            "color": {"type": "string", "nullable": True},
        }

        self.element_schema = {
            "type": {"type": "string", "required": True, "allowed": [k.value for k in ElementKind]},
            "style": {"type": "dict", "schema": self.style_schema, "allow_unknown": True},
            "text": {"type": "string"},
            "src": {"type": "string", "empty": False},
        }

        self.payload_schema: Dict[str, Any] = {
            "elements": {
                "type": "list",
                "required": True,
                "schema": {"type": "dict", "schema": self.element_schema},
            },
        }

    def validate(self, data: Any) -> List[str]:
        """
        Validate a decoded payload.

        Args:
            data: Result of json.loads on the payload

        Returns:
            List of error messages; empty when the payload is well formed
        """
        if not isinstance(data, list):
            return [f"Payload must be a JSON array of elements, got {type(data).__name__}"]

        validator = Validator(self.payload_schema)  # type: ignore[misc]
        validator.allow_unknown = True  # type: ignore[attr-defined]
        if validator.validate({"elements": data}):  # type: ignore[misc]
            return []
        return self._format_validation_errors(validator.errors)  # type: ignore[attr-defined]

    def _format_validation_errors(self, errors: Any, path: str = "") -> List[str]:
        """Format Cerberus validation errors into readable messages."""
        formatted_errors: List[str] = []

        for field, error_info in errors.items():
            current_path = f"{path}.{field}" if path else str(field)

            if isinstance(error_info, list):
                for error in error_info:
                    if isinstance(error, dict):
                        formatted_errors.extend(self._format_validation_errors(error, current_path))
                    else:
                        formatted_errors.append(f"{current_path}: {error}")
            elif isinstance(error_info, dict):
                formatted_errors.extend(self._format_validation_errors(error_info, current_path))

        return formatted_errors


_validator = SceneValidator()


def parse_payload(json_text: str) -> List[Element]:
    """
    Decode an already URL-decoded payload into an ordered element list.

    Raises:
        MalformedInput: On invalid JSON or any malformed element; nothing is
            partially decoded
    """
    try:
        data = json.loads(json_text)
    except (TypeError, json.JSONDecodeError) as e:
        raise MalformedInput(f"Invalid JSON payload: {e}") from e

    errors = _validator.validate(data)
    if errors:
        logger.warning("Rejected malformed scene payload", errors=errors[:5])
        raise MalformedInput("; ".join(errors))

    try:
        return list(Scene.from_elements(data).elements)
    except MalformedScene as e:
        raise MalformedInput(str(e)) from e


def encode(scene: Scene) -> str:
    """
    JSON-stringify then percent-encode a scene.

    Long scenes are never truncated; exceeding the configured URL length only
    logs a warning.
    """
    transport = quote(scene.serialize(), safe="")
    limit = get_settings().max_transport_length
    if len(transport) > limit:
        logger.warning(
            "Encoded scene exceeds practical URL length",
            length=len(transport),
            limit=limit,
            elements=len(scene),
        )
    return transport


def decode(transport: str) -> Scene:
    """
    Inverse of encode().

    Raises:
        MalformedInput: If the string is not an encoded array of well-formed elements
    """
    return Scene(elements=tuple(parse_payload(unquote(transport))))


def build_image_url(scene: Scene, endpoint: str = IMAGE_ENDPOINT) -> str:
    """URL of the remote rendering of scene."""
    return f"{endpoint}?data={encode(scene)}"
