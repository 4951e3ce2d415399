"""
Unit Tests for Scene
====================

Tests for scene operations, selection semantics, index safety and the
JSON round-trip.
"""

import json

import pytest

from openimage.core.scene.elements import InvalidStyle, create_element
from openimage.core.scene.scene import IndexOutOfRange, MalformedScene, Scene
from openimage.models.schemas import ElementKind

from tests.utils.assertions import assert_scene_equal
from tests.utils.data_generators import SceneDataGenerator


class TestSceneOperations:
    """Test append, remove and lookup."""

    def test_empty_scene(self, empty_scene):
        assert len(empty_scene) == 0
        assert empty_scene.selected is None
        assert empty_scene.selected_element is None

    def test_append_keeps_order(self, empty_scene):
        first = create_element("text", content="a")
        second = create_element("box")

        scene = empty_scene.append(first).append(second)

        assert scene.elements == (first, second)
        assert len(empty_scene) == 0

    def test_remove_at(self, sample_scene):
        scene = sample_scene.remove_at(1)

        assert len(scene) == 2
        assert scene.elements[0] == sample_scene.elements[0]
        assert scene.elements[1] == sample_scene.elements[2]

    @pytest.mark.parametrize("index", [3, 100, -1, -3])
    def test_remove_out_of_range(self, sample_scene, index):
        with pytest.raises(IndexOutOfRange):
            sample_scene.remove_at(index)

    def test_remove_from_empty(self, empty_scene):
        with pytest.raises(IndexOutOfRange):
            empty_scene.remove_at(0)

    def test_index_out_of_range_is_index_error(self):
        assert issubclass(IndexOutOfRange, IndexError)

    def test_element_at(self, sample_scene):
        assert sample_scene.element_at(2).kind == ElementKind.IMAGE
        with pytest.raises(IndexOutOfRange):
            sample_scene.element_at(3)

    def test_boolean_index_rejected(self, sample_scene):
        with pytest.raises(IndexOutOfRange):
            sample_scene.element_at(True)


class TestSelection:
    """Test toggle selection and its interaction with removal."""

    def test_select(self, sample_scene):
        assert sample_scene.select(1).selected == 1

    def test_select_twice_toggles_off(self, sample_scene):
        assert sample_scene.select(1).select(1).selected is None

    def test_select_other_moves_selection(self, sample_scene):
        assert sample_scene.select(1).select(2).selected == 2

    def test_select_out_of_range(self, sample_scene):
        with pytest.raises(IndexOutOfRange):
            sample_scene.select(3)

    def test_clear_selection(self, sample_scene):
        assert sample_scene.select(0).clear_selection().selected is None

    def test_selected_element(self, sample_scene):
        scene = sample_scene.select(1)
        assert scene.selected_element == sample_scene.elements[1]

    def test_remove_selected_clears_selection(self, sample_scene):
        assert sample_scene.select(1).remove_at(1).selected is None

    def test_remove_before_selected_clears_selection(self, sample_scene):
        assert sample_scene.select(2).remove_at(0).selected is None

    def test_remove_after_selected_keeps_selection(self, sample_scene):
        assert sample_scene.select(0).remove_at(2).selected == 0

    def test_selection_always_valid(self):
        scene = SceneDataGenerator.random_scene(6, seed=3)
        for index in [5, 0, 3, 1]:
            scene = scene.select(min(index, len(scene) - 1)).remove_at(0)
            assert scene.selected is None or 0 <= scene.selected < len(scene)


class TestUpdateStyle:
    """Test style patch merging."""

    def test_patch_merges(self, sample_scene):
        scene = sample_scene.update_style_at(1, {"width": 300, "backgroundColor": "#00ff00"})
        style = scene.elements[1].style

        assert style.width == 300
        assert style.height == 80
        assert style.background_color == "#00ff00"
        assert sample_scene.elements[1].style.width == 120

    def test_patch_accepts_pixel_strings(self, sample_scene):
        scene = sample_scene.update_style_at(1, {"left": "75px"})
        assert scene.elements[1].style.left == 75

    def test_blank_values_do_not_clear(self, sample_scene):
        scene = sample_scene.update_style_at(1, {"width": "", "backgroundColor": None})
        assert scene.elements[1].style == sample_scene.elements[1].style

    def test_unknown_key(self, sample_scene):
        with pytest.raises(InvalidStyle):
            sample_scene.update_style_at(1, {"rotation": 45})

    def test_invalid_value(self, sample_scene):
        with pytest.raises(InvalidStyle):
            sample_scene.update_style_at(1, {"width": "wide"})

    def test_negative_position_rejected(self, sample_scene):
        with pytest.raises(InvalidStyle):
            sample_scene.update_style_at(1, {"left": -10})

    def test_out_of_range(self, sample_scene):
        with pytest.raises(IndexOutOfRange):
            sample_scene.update_style_at(5, {"left": 1})

    def test_selection_preserved(self, sample_scene):
        scene = sample_scene.select(1).update_style_at(1, {"left": 5})
        assert scene.selected == 1


class TestSerialization:
    """Test JSON round-trip of scenes."""

    def test_serialize_is_json_array(self, sample_scene):
        data = json.loads(sample_scene.serialize())

        assert isinstance(data, list)
        assert [item["type"] for item in data] == ["text", "box", "image"]
        assert data[1]["style"]["width"] == 120

    def test_round_trip(self, sample_scene):
        assert_scene_equal(Scene.deserialize(sample_scene.serialize()), sample_scene)

    def test_round_trip_drops_selection(self, sample_scene):
        scene = sample_scene.select(2)
        restored = Scene.deserialize(scene.serialize())

        assert restored == scene.clear_selection()

    def test_round_trip_random_scenes(self):
        for seed in range(5):
            scene = SceneDataGenerator.random_scene(8, seed=seed)
            assert Scene.deserialize(scene.serialize()) == scene

    def test_empty_scene_round_trip(self, empty_scene):
        assert empty_scene.serialize() == "[]"
        assert Scene.deserialize("[]") == empty_scene

    def test_unicode_text_survives(self):
        scene = Scene().append(create_element("text", content="Grüße 👋"))
        assert "Grüße" in scene.serialize()
        assert Scene.deserialize(scene.serialize()).elements[0].text == "Grüße 👋"

    def test_legacy_pixel_strings_deserialize(self):
        scene = Scene.deserialize(
            '[{"type":"box","style":{"left":"10px","top":"5px","width":"20px","height":"30px"}}]'
        )
        assert scene.elements[0].style.left == 10
        assert scene.elements[0].style.height == 30

    @pytest.mark.parametrize(
        "text",
        ["", "nope", "{}", "[1]", '[{"type":"circle"}]', '[{"type":"text","style":{}}]'],
    )
    def test_malformed(self, text):
        with pytest.raises(MalformedScene):
            Scene.deserialize(text)


class TestScenarios:
    """End-to-end scene scenarios."""

    def test_add_then_remove_text(self, empty_scene):
        text = create_element(
            "text", {"left": 10, "top": 10, "fontSize": "20px", "color": "#000"}, "Hi"
        )
        scene = empty_scene.append(text)
        assert scene.elements[0].style.font_size == 20

        scene = scene.remove_at(0)

        assert len(scene) == 0
        assert scene.serialize() == "[]"

    @pytest.mark.parametrize("index", [3, -1])
    def test_failed_operations_leave_scene_unchanged(self, sample_scene, index):
        for operation in (
            lambda s: s.remove_at(index),
            lambda s: s.update_style_at(index, {"left": 1}),
            lambda s: s.select(index),
        ):
            with pytest.raises(IndexOutOfRange):
                operation(sample_scene)
        assert sample_scene == SceneDataGenerator.mixed_scene()
