"""
Element Construction
====================

Factories for new canvas elements with kind-appropriate defaults.
"""

import random
import string
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from openimage.models.schemas import Element, ElementKind, ElementStyle


class InvalidKind(ValueError):
    """Exception raised for an element kind outside text/box/image."""

    pass


class InvalidStyle(ValueError):
    """Exception raised when style attributes or content fail validation."""

    pass


KIND_DEFAULTS: Dict[ElementKind, Dict[str, Any]] = {
    ElementKind.TEXT: {
        "left": 0,
        "top": 0,
        "fontSize": 20,
        "lineHeight": 24,
        "fontFamily": "sans-serif",
        "color": "#000",
    },
    ElementKind.BOX: {
        "left": 0,
        "top": 0,
        "width": 100,
        "height": 100,
        "backgroundColor": "#3498db",
    },
    ElementKind.IMAGE: {
        "left": 0,
        "top": 0,
        "width": 100,
        "height": 100,
    },
}

PLACEHOLDER_IMAGES = [
    "https://placehold.co/610x400/BBB/31343C.png",
    "https://placehold.co/600x410/EEE/ff0000.png",
    "https://placehold.co/610x400/EEE/31343C.png",
    "https://placehold.co/600x410/BBB/0000ff.png",
]

RANDOM_MAX_SIZE = 300


def resolve_kind(kind: Union[str, ElementKind]) -> ElementKind:
    """Map a kind name onto the closed kind set."""
    if isinstance(kind, ElementKind):
        return kind
    try:
        return ElementKind(kind)
    except ValueError:
        raise InvalidKind(f"Unknown element kind: {kind!r}")


def create_element(
    kind: Union[str, ElementKind],
    geometry: Optional[Mapping[str, Any]] = None,
    content: Optional[str] = None,
) -> Element:
    """
    Build a new element from kind defaults merged with caller geometry.

    Args:
        kind: text, box or image
        geometry: Style overrides (camelCase or snake_case keys)
        content: Text for text elements, source URL for image elements

    Returns:
        The new Element

    Raises:
        InvalidKind: If kind is outside the closed set
        InvalidStyle: If the merged style or content is invalid
    """
    element_kind = resolve_kind(kind)

    style: Dict[str, Any] = dict(KIND_DEFAULTS[element_kind])
    for key, value in (geometry or {}).items():
        field = ElementStyle.field_for_key(key)
        if field is None:
            raise InvalidStyle(f"Unknown style attribute: {key!r}")
        alias = ElementStyle.model_fields[field].alias or field
        style[alias] = value

    payload: Dict[str, Any] = {"type": element_kind.value, "style": style}
    if element_kind == ElementKind.TEXT:
        payload["text"] = content if content is not None else ""
    elif element_kind == ElementKind.IMAGE:
        payload["src"] = content or PLACEHOLDER_IMAGES[0]

    try:
        return Element.model_validate(payload)
    except ValidationError as e:
        raise InvalidStyle(f"Invalid element definition: {e}") from e


def create_random_element(rng: Optional[random.Random] = None) -> Element:
    """Create an element of random kind and size at the canvas origin."""
    rng = rng or random.Random()
    kind = rng.choice(list(ElementKind))
    width = rng.randrange(RANDOM_MAX_SIZE)
    height = rng.randrange(RANDOM_MAX_SIZE)

    if kind == ElementKind.TEXT:
        suffix = "".join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(6))
        return create_element(kind, content=f"Random Text {suffix}")
    if kind == ElementKind.BOX:
        return create_element(kind, {"width": width, "height": height})
    return create_element(kind, {"width": width, "height": height}, rng.choice(PLACEHOLDER_IMAGES))
