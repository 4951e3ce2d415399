"""
Unit Tests for the Interaction Controller
=========================================

Tests for editor interactions: adding and removing layers, selection,
dragging, sidebar edits and persistence after every mutation.
"""

import random

import pytest

from openimage.core.scene.controller import InteractionController
from openimage.core.scene.elements import InvalidKind, InvalidStyle
from openimage.core.scene.scene import IndexOutOfRange, Scene
from openimage.core.scene.store import ELEMENTS_KEY, MemorySceneStore, hydrate_scene, persist_scene
from openimage.core.scene.serialization import decode
from openimage.models.schemas import ElementKind


@pytest.fixture
def populated(controller):
    """Controller holding a text, a box and an image."""
    controller.add_element("text", {"left": 10, "top": 20}, "Hello")
    controller.add_element("box", {"left": 50, "top": 60, "width": 120, "height": 80})
    controller.add_element("image", {"left": 200, "top": 100})
    return controller


class TestAddRemove:
    """Test adding and removing layers."""

    def test_starts_from_persisted_scene(self, sample_scene):
        store = MemorySceneStore()
        persist_scene(store, sample_scene)
        assert InteractionController(store).scene == sample_scene

    def test_add_persists(self, controller, memory_store):
        element = controller.add_element("text", content="Hello")

        assert controller.scene.elements == (element,)
        assert hydrate_scene(memory_store) == controller.scene

    def test_add_unknown_kind(self, controller, memory_store):
        with pytest.raises(InvalidKind):
            controller.add_element("circle")
        assert len(controller.scene) == 0
        assert memory_store.get(ELEMENTS_KEY) is None

    def test_add_random(self, memory_store):
        controller = InteractionController(memory_store, rng=random.Random(4))
        element = controller.add_random_element()
        assert controller.scene.elements[-1] == element

    def test_add_then_remove_text(self, controller, memory_store):
        controller.add_element("text", content="Hello")
        controller.remove_layer(0)

        assert len(controller.scene) == 0
        assert hydrate_scene(memory_store) == Scene()

    def test_remove_out_of_range(self, populated):
        with pytest.raises(IndexOutOfRange):
            populated.remove_layer(3)
        assert len(populated.scene) == 3

    def test_remove_selected_clears_selection(self, populated):
        populated.click_layer(1)
        populated.remove_layer(1)
        assert populated.scene.selected is None
        assert populated.sidebar() is None


class TestSelection:
    """Test layer clicks."""

    def test_click_selects_and_stages_position(self, populated):
        assert populated.click_layer(1) == 1
        assert (populated.staged_x, populated.staged_y) == (50, 60)

    def test_click_twice_deselects(self, populated):
        populated.click_layer(1)
        assert populated.click_layer(1) is None

    def test_select_element_alias(self, populated):
        assert populated.select_element(2) == 2

    def test_layers(self, populated):
        populated.click_layer(2)
        layers = populated.layers()

        assert [layer.label for layer in layers] == [
            "Layer 1 text",
            "Layer 2 box",
            "Layer 3 image",
        ]
        assert [layer.selected for layer in layers] == [False, False, True]


class TestDragging:
    """Test dragging elements on the canvas."""

    def test_drag_commits_every_sample(self, populated, memory_store):
        populated.start_drag(1)
        populated.drag_to(70, 90)
        assert hydrate_scene(memory_store).elements[1].style.left == 70

        populated.drag_to(80.6, 95.2)
        populated.end_drag()

        style = populated.scene.elements[1].style
        assert (style.left, style.top) == (81, 95)
        assert (populated.staged_x, populated.staged_y) == (81, 95)
        assert populated.is_dragging is False

    def test_drag_selects_without_toggling(self, populated):
        populated.click_layer(1)
        populated.start_drag(1)
        assert populated.scene.selected == 1

    def test_drag_clamps_to_canvas_origin(self, populated):
        populated.start_drag(0)
        populated.drag_to(-30, -5)
        populated.end_drag()

        style = populated.scene.elements[0].style
        assert (style.left, style.top) == (0, 0)

    def test_drag_without_start_is_ignored(self, populated):
        before = populated.scene
        populated.drag_to(10, 10)
        assert populated.scene == before

    def test_drag_out_of_range(self, populated):
        with pytest.raises(IndexOutOfRange):
            populated.start_drag(9)
        assert populated.is_dragging is False

    def test_layers_and_sidebar_hidden_while_dragging(self, populated):
        populated.start_drag(1)
        assert populated.layers() == []
        assert populated.sidebar() is None

        populated.end_drag()
        assert len(populated.layers()) == 3
        assert populated.sidebar() is not None


class TestSidebar:
    """Test edits applied through the sidebar."""

    def test_sidebar_requires_selection(self, populated):
        assert populated.sidebar() is None
        assert populated.set_width(10) is False

    def test_sidebar_state(self, populated):
        populated.click_layer(1)
        sidebar = populated.sidebar()

        assert sidebar.index == 1
        assert (sidebar.width, sidebar.height) == (120, 80)
        assert (sidebar.x, sidebar.y) == (50, 60)
        assert sidebar.background_color == "#3498db"

    def test_set_width_and_height(self, populated, memory_store):
        populated.click_layer(1)
        assert populated.set_width("150px") is True
        assert populated.set_height(40) is True

        style = hydrate_scene(memory_store).elements[1].style
        assert (style.width, style.height) == (150, 40)

    def test_set_background_color(self, populated):
        populated.click_layer(1)
        populated.set_background_color("#ff0000")
        assert populated.scene.elements[1].style.background_color == "#ff0000"

    def test_empty_background_color_ignored(self, populated):
        populated.click_layer(1)
        populated.set_background_color("")
        assert populated.scene.elements[1].style.background_color == "#3498db"

    def test_position_fields(self, populated):
        populated.click_layer(1)
        populated.set_staged_x(300)
        populated.set_staged_y(120)

        style = populated.scene.elements[1].style
        assert (style.left, style.top) == (300, 120)

    def test_invalid_width(self, populated):
        populated.click_layer(1)
        with pytest.raises(InvalidStyle):
            populated.set_width(-4)
        assert populated.scene.elements[1].style.width == 120

    def test_update_style_by_index(self, populated):
        populated.update_style(0, {"fontSize": 32, "color": "#333"})
        style = populated.scene.elements[0].style
        assert style.font_size == 32
        assert style.color == "#333"


class TestGenerateUrl:
    """Test the remote generate URL."""

    def test_url_decodes_to_scene(self, populated):
        populated.click_layer(0)
        url = populated.generate_url()

        assert url.startswith("/api/image?data=")
        assert decode(url.split("data=", 1)[1]) == populated.scene.clear_selection()

    def test_kinds_survive(self, populated):
        url = populated.generate_url("/render")
        kinds = [e.kind for e in decode(url.split("data=", 1)[1]).elements]
        assert kinds == [ElementKind.TEXT, ElementKind.BOX, ElementKind.IMAGE]
