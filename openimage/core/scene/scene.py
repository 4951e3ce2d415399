"""
Scene
=====

Immutable, ordered collection of elements with an optional selection.
Every operation returns a new Scene; list order is paint order.
"""

import json
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from openimage.config.logging import get_logger
from openimage.core.scene.elements import InvalidStyle
from openimage.models.schemas import Element, ElementStyle

logger = get_logger(__name__)

_ELEMENT_LIST = TypeAdapter(Tuple[Element, ...])


class IndexOutOfRange(IndexError):
    """Exception raised when an operation addresses a non-existent element."""

    pass


class MalformedScene(ValueError):
    """Exception raised when serialized scene data cannot be decoded."""

    pass


class Scene(BaseModel):
    """Snapshot of the composition."""

    model_config = ConfigDict(frozen=True)

    elements: Tuple[Element, ...] = ()
    selected: Optional[int] = None

    def __len__(self) -> int:
        return len(self.elements)

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or isinstance(index, bool):
            raise IndexOutOfRange(f"Index must be an integer, got {index!r}")
        if index < 0 or index >= len(self.elements):
            raise IndexOutOfRange(
                f"Index {index} out of range for scene with {len(self.elements)} elements"
            )

    def append(self, element: Element) -> "Scene":
        """Add an element on top of the others."""
        return self.model_copy(update={"elements": self.elements + (element,)})

    def remove_at(self, index: int) -> "Scene":
        """Remove the element at index; clears a selection at or beyond it."""
        self._check_index(index)
        elements = self.elements[:index] + self.elements[index + 1:]
        selected = self.selected
        if selected is not None and selected >= index:
            selected = None
        return Scene(elements=elements, selected=selected)

    def update_style_at(self, index: int, patch: Mapping[str, Any]) -> "Scene":
        """
        Merge a style patch into one element.

        Keys may be camelCase aliases or field names. Keys whose value is
        None or an empty string are skipped so a real value is never blanked.

        Raises:
            IndexOutOfRange: If index is not a valid position
            InvalidStyle: If a key is unknown or the merged style is invalid
        """
        self._check_index(index)
        element = self.elements[index]

        updates: Dict[str, Any] = {}
        for key, value in patch.items():
            field = ElementStyle.field_for_key(key)
            if field is None:
                raise InvalidStyle(f"Unknown style attribute: {key!r}")
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            updates[field] = value

        if not updates:
            return self

        merged = element.style.model_dump()
        merged.update(updates)
        try:
            style = ElementStyle.model_validate(merged)
            updated = Element.model_validate(
                {"type": element.kind, "style": style, "text": element.text, "src": element.src}
            )
        except ValidationError as e:
            raise InvalidStyle(f"Invalid style for element {index}: {e}") from e

        elements = self.elements[:index] + (updated,) + self.elements[index + 1:]
        return self.model_copy(update={"elements": elements})

    def element_at(self, index: int) -> Element:
        """Return the element at index."""
        self._check_index(index)
        return self.elements[index]

    def select(self, index: int) -> "Scene":
        """Select index, or clear the selection if it is already selected."""
        self._check_index(index)
        if self.selected == index:
            return self.clear_selection()
        return self.model_copy(update={"selected": index})

    def clear_selection(self) -> "Scene":
        return self.model_copy(update={"selected": None})

    @property
    def selected_element(self) -> Optional[Element]:
        if self.selected is None:
            return None
        return self.elements[self.selected]

    def to_wire(self) -> list:
        """Elements in their transport form, in paint order."""
        return [element.to_wire() for element in self.elements]

    def serialize(self) -> str:
        """JSON array of elements. Selection is editor state and is not included."""
        return json.dumps(self.to_wire(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_elements(cls, elements: Any) -> "Scene":
        """
        Build a scene from already-parsed JSON data.

        Raises:
            MalformedScene: If data is not an array of well-formed elements
        """
        if not isinstance(elements, list):
            raise MalformedScene(
                f"Scene must be a JSON array of elements, got {type(elements).__name__}"
            )
        try:
            return cls(elements=_ELEMENT_LIST.validate_python(elements))
        except ValidationError as e:
            raise MalformedScene(f"Invalid scene elements: {e}") from e

    @classmethod
    def deserialize(cls, text: str) -> "Scene":
        """
        Parse the output of serialize().

        Raises:
            MalformedScene: On invalid JSON or elements missing required fields
        """
        try:
            data = json.loads(text)
        except (TypeError, json.JSONDecodeError) as e:
            raise MalformedScene(f"Invalid scene JSON: {e}") from e
        return cls.from_elements(data)
