"""
Interaction Controller
======================

Translates editor input (layer clicks, drags, form fields, colour picks)
into Scene operations and persists the scene after every mutation.

Transient interaction state (dragging flag, staged X/Y fields) lives here
and is never persisted.
"""

import random
from typing import Any, List, Mapping, Optional, Union

from openimage.config.logging import get_logger
from openimage.core.scene.elements import create_element, create_random_element
from openimage.core.scene.scene import Scene
from openimage.core.scene.serialization import IMAGE_ENDPOINT, build_image_url
from openimage.core.scene.store import SceneStore, hydrate_scene, persist_scene
from openimage.models.schemas import (
    Element,
    ElementKind,
    LayerEntry,
    SidebarState,
)

logger = get_logger(__name__)


class InteractionController:
    """Editor state machine over a Scene."""

    def __init__(self, store: SceneStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()
        self.logger: Any = logger.bind(component="interaction_controller")

        self._scene = hydrate_scene(store)
        self.is_dragging = False
        self.dragging_index: Optional[int] = None
        self.staged_x = 0
        self.staged_y = 0

    @property
    def scene(self) -> Scene:
        return self._scene

    def _commit(self, scene: Scene) -> Scene:
        self._scene = scene
        persist_scene(self.store, scene)
        return scene

    def _stage_from(self, index: Optional[int]) -> None:
        if index is None:
            return
        style = self._scene.elements[index].style
        self.staged_x = style.left
        self.staged_y = style.top

    # Adding and removing layers

    def add_element(
        self,
        kind: Union[str, ElementKind],
        geometry: Optional[Mapping[str, Any]] = None,
        content: Optional[str] = None,
    ) -> Element:
        """Append a new element of the given kind."""
        element = create_element(kind, geometry, content)
        self._commit(self._scene.append(element))
        self.logger.info("Element added", kind=element.kind.value, index=len(self._scene) - 1)
        return element

    def add_random_element(self) -> Element:
        """Append an element of random kind and size."""
        element = create_random_element(self.rng)
        self._commit(self._scene.append(element))
        self.logger.info("Random element added", kind=element.kind.value)
        return element

    def remove_layer(self, index: int) -> Scene:
        """Delete a layer; the selection is dropped when it pointed at or past it."""
        scene = self._commit(self._scene.remove_at(index))
        self.logger.info("Element removed", index=index, remaining=len(scene))
        return scene

    # Selection

    def click_layer(self, index: int) -> Optional[int]:
        """Toggle selection of a layer and load its position into the staged fields."""
        self._commit(self._scene.select(index))
        self._stage_from(self._scene.selected)
        return self._scene.selected

    select_element = click_layer

    def clear_selection(self) -> None:
        self._commit(self._scene.clear_selection())

    # Dragging

    def start_drag(self, index: int) -> None:
        """Begin dragging an element; selects it without toggling."""
        self._scene.element_at(index)
        if self._scene.selected != index:
            self._commit(self._scene.select(index))
            self._stage_from(index)
        self.is_dragging = True
        self.dragging_index = index

    def drag_to(self, x: float, y: float) -> None:
        """Commit one drag sample immediately."""
        if not self.is_dragging or self.dragging_index is None:
            return
        left = max(0, int(round(x)))
        top = max(0, int(round(y)))
        self._commit(self._scene.update_style_at(self.dragging_index, {"left": left, "top": top}))
        self.staged_x = left
        self.staged_y = top

    def end_drag(self) -> None:
        if self.dragging_index is not None:
            self.logger.debug(
                "Drag finished", index=self.dragging_index, x=self.staged_x, y=self.staged_y
            )
        self.is_dragging = False
        self.dragging_index = None

    # Sidebar edits for the selected element

    def _update_selected(self, patch: Mapping[str, Any]) -> bool:
        selected = self._scene.selected
        if selected is None:
            return False
        self._commit(self._scene.update_style_at(selected, patch))
        return True

    def set_width(self, value: Any) -> bool:
        return self._update_selected({"width": value})

    def set_height(self, value: Any) -> bool:
        return self._update_selected({"height": value})

    def set_background_color(self, hex_color: Optional[str]) -> bool:
        return self._update_selected({"backgroundColor": hex_color})

    def set_staged_x(self, value: int) -> bool:
        self.staged_x = value
        return self.apply_position()

    def set_staged_y(self, value: int) -> bool:
        self.staged_y = value
        return self.apply_position()

    def apply_position(self) -> bool:
        """Commit the staged X/Y fields to the selected element."""
        return self._update_selected({"left": self.staged_x, "top": self.staged_y})

    def update_style(self, index: int, patch: Mapping[str, Any]) -> Scene:
        return self._commit(self._scene.update_style_at(index, patch))

    # Views

    def layers(self) -> List[LayerEntry]:
        """Layer list rows; hidden while a drag is in progress."""
        if self.is_dragging:
            return []
        return [
            LayerEntry(
                index=i,
                label=f"Layer {i + 1} {element.kind.value}",
                kind=element.kind,
                selected=i == self._scene.selected,
            )
            for i, element in enumerate(self._scene.elements)
        ]

    def sidebar(self) -> Optional[SidebarState]:
        """Edit controls for the selection; hidden while dragging."""
        selected = self._scene.selected
        if selected is None or self.is_dragging:
            return None
        style = self._scene.elements[selected].style
        return SidebarState(
            index=selected,
            width=style.width or 0,
            height=style.height or 0,
            x=self.staged_x,
            y=self.staged_y,
            background_color=style.background_color,
        )

    def generate_url(self, endpoint: str = IMAGE_ENDPOINT) -> str:
        """URL of the remote rendering for the current scene."""
        return build_image_url(self._scene, endpoint)
