"""
Unit Tests for Element Construction
===================================

Tests for kind resolution, defaults, geometry overrides and random elements.
"""

import random

import pytest

from openimage.core.scene.elements import (
    KIND_DEFAULTS,
    PLACEHOLDER_IMAGES,
    RANDOM_MAX_SIZE,
    InvalidKind,
    InvalidStyle,
    create_element,
    create_random_element,
    resolve_kind,
)
from openimage.models.schemas import Element, ElementKind, ElementStyle, coerce_pixels


class TestPixelCoercion:
    """Test normalization of pixel quantities."""

    @pytest.mark.parametrize(
        "value,expected",
        [(12, 12), (12.4, 12), (12.6, 13), ("100px", 100), (" 40 px ", 40), ("7", 7), ("2.5px", 2)],
    )
    def test_accepted_forms(self, value, expected):
        assert coerce_pixels(value) == expected

    @pytest.mark.parametrize("value", ["wide", "-5px", "10em", True, float("inf"), [1]])
    def test_rejected_forms(self, value):
        with pytest.raises(ValueError):
            coerce_pixels(value)

    def test_none_passes_through(self):
        assert coerce_pixels(None) is None


class TestResolveKind:
    """Test the closed kind set."""

    def test_known_kinds(self):
        assert resolve_kind("text") is ElementKind.TEXT
        assert resolve_kind("box") is ElementKind.BOX
        assert resolve_kind(ElementKind.IMAGE) is ElementKind.IMAGE

    @pytest.mark.parametrize("kind", ["circle", "", "TEXT"])
    def test_unknown_kind(self, kind):
        with pytest.raises(InvalidKind):
            resolve_kind(kind)


class TestCreateElement:
    """Test element construction from defaults."""

    def test_text_defaults(self):
        element = create_element("text")

        assert element.kind == ElementKind.TEXT
        assert element.text == ""
        assert element.src is None
        assert element.style.left == 0
        assert element.style.top == 0
        assert element.style.font_size == KIND_DEFAULTS[ElementKind.TEXT]["fontSize"]

    def test_box_defaults(self):
        element = create_element("box")

        assert element.style.width == 100
        assert element.style.height == 100
        assert element.style.background_color == "#3498db"
        assert element.text is None

    def test_image_defaults_to_placeholder(self):
        element = create_element("image")

        assert element.src == PLACEHOLDER_IMAGES[0]
        assert element.style.width == 100

    def test_geometry_overrides_defaults(self):
        element = create_element(
            "box", {"left": "30px", "top": 40, "width": 10, "backgroundColor": "#000"}
        )

        assert element.style.left == 30
        assert element.style.top == 40
        assert element.style.width == 10
        assert element.style.height == 100
        assert element.style.background_color == "#000"

    def test_snake_case_geometry_keys(self):
        element = create_element("text", {"font_size": 32}, "Title")
        assert element.style.font_size == 32
        assert element.text == "Title"

    def test_unknown_geometry_key(self):
        with pytest.raises(InvalidStyle, match="opacity"):
            create_element("box", {"opacity": 0.5})

    def test_invalid_geometry_value(self):
        with pytest.raises(InvalidStyle):
            create_element("box", {"width": -1})

    def test_unknown_kind(self):
        with pytest.raises(InvalidKind):
            create_element("circle")

    def test_invalid_kind_is_value_error(self):
        assert issubclass(InvalidKind, ValueError)
        assert issubclass(InvalidStyle, ValueError)


class TestElementModel:
    """Test per-kind invariants on the model itself."""

    def test_text_requires_text(self):
        with pytest.raises(ValueError):
            Element.model_validate({"type": "text", "style": {}})

    def test_box_cannot_carry_src(self):
        with pytest.raises(ValueError):
            Element.model_validate(
                {"type": "box", "style": {"width": 1, "height": 1}, "src": "http://x/y.png"}
            )

    def test_image_requires_dimensions(self):
        with pytest.raises(ValueError):
            Element.model_validate({"type": "image", "style": {}, "src": "http://x/y.png"})

    def test_wire_form_uses_aliases(self):
        element = create_element("box", {"width": 10, "height": 20})
        wire = element.to_wire()

        assert wire["type"] == "box"
        assert wire["style"]["backgroundColor"] == "#3498db"
        assert "background_color" not in wire["style"]
        assert "text" not in wire

    def test_elements_are_immutable(self):
        element = create_element("box")
        with pytest.raises(Exception):
            element.style = ElementStyle()

    def test_field_for_key(self):
        assert ElementStyle.field_for_key("backgroundColor") == "background_color"
        assert ElementStyle.field_for_key("background_color") == "background_color"
        assert ElementStyle.field_for_key("zIndex") is None


class TestRandomElement:
    """Test random element generation."""

    def test_seeded_generation_is_repeatable(self):
        first = create_random_element(random.Random(7))
        second = create_random_element(random.Random(7))
        assert first == second

    def test_random_elements_are_valid(self):
        rng = random.Random(1)
        kinds = set()
        for _ in range(60):
            element = create_random_element(rng)
            kinds.add(element.kind)
            assert element.style.left == 0
            assert element.style.top == 0
            if element.kind == ElementKind.TEXT:
                assert element.text.startswith("Random Text ")
                assert len(element.text) == len("Random Text ") + 6
            else:
                assert 0 <= element.style.width < RANDOM_MAX_SIZE
                assert 0 <= element.style.height < RANDOM_MAX_SIZE
            if element.kind == ElementKind.IMAGE:
                assert element.src in PLACEHOLDER_IMAGES

        assert kinds == set(ElementKind)
