"""
Unit Tests for PNG Generator
============================

Tests for canvas sizing, drawing of label fields and PNG encoding.
"""

import pytest
from unittest.mock import patch

from PIL import Image, ImageDraw

from zpl_render.core.rendering.png_generator import (
    PNGGenerationError,
    PillowRasterizer,
    generate_png,
)
from zpl_render.models.schemas import (
    ElementType,
    FieldOrientation,
    LabelDocument,
    LabelElement,
    LineColor,
    RenderOptions,
)

from tests.conftest import TestSettings
from tests.utils.assertions import assert_all_black, assert_all_white, assert_png_size

CANVAS = (1000, 1000)


def options(width_mm: float = 10, height_mm: float = 10, dpmm: int = 8) -> RenderOptions:
    return RenderOptions(label_width_mm=width_mm, label_height_mm=height_mm, dpmm=dpmm)


def box(x: int, y: int, width: int, height: int, thickness: int, **fields) -> LabelElement:
    return LabelElement(
        type=ElementType.BOX, x=x, y=y, width=width, height=height, thickness=thickness, **fields
    )


def text(value: str, x: int = 0, y: int = 0, **fields) -> LabelElement:
    return LabelElement(type=ElementType.TEXT, x=x, y=y, text=value, **fields)


class TestPNGGenerationError:
    """Test PNG generation error handling."""

    def test_png_generation_error_creation(self):
        error = PNGGenerationError("Test error message")
        assert str(error) == "Test error message"
        assert isinstance(error, Exception)


class TestCanvasSize:
    """Test pixel size computation."""

    def test_size_is_millimeters_times_dpmm(self, rasterizer):
        assert rasterizer.canvas_size(options(10, 10, 8)) == (80, 80)
        assert rasterizer.canvas_size(options(25, 5, 12)) == (300, 60)

    @pytest.mark.parametrize(
        "width_mm,height_mm,dpmm",
        [(0, 10, 8), (10, 0, 8), (10, 10, 0), (-5, 10, 8), (10, 10, -1)],
    )
    def test_non_positive_geometry_is_rejected(self, rasterizer, width_mm, height_mm, dpmm):
        with pytest.raises(PNGGenerationError, match="must be positive"):
            rasterizer.canvas_size(options(width_mm, height_mm, dpmm))

    def test_pixel_limit(self):
        rasterizer = PillowRasterizer(max_image_pixels=100)

        with pytest.raises(PNGGenerationError, match="exceeds the 100 pixel limit"):
            rasterizer.canvas_size(options(10, 10, 8))


class TestPillowRasterizer:
    """Test drawing of label fields."""

    def test_blank_label_is_white(self, rasterizer):
        result = rasterizer.render(LabelDocument(), options())

        image = assert_png_size(result.png_data, (80, 80))
        assert_all_white(image)
        assert result.file_size == len(result.png_data)
        assert (result.width, result.height) == (80, 80)
        assert result.metadata["generator"] == "pillow"

    def test_thick_box_is_filled(self, rasterizer):
        document = LabelDocument(elements=[box(0, 0, 80, 80, 80)])

        image = assert_png_size(rasterizer.render(document, options()).png_data, (80, 80))
        assert_all_black(image)

    def test_outlined_box(self, rasterizer):
        document = LabelDocument(elements=[box(10, 10, 40, 40, 2)])

        image = assert_png_size(rasterizer.render(document, options()).png_data, (80, 80))
        assert image.getpixel((10, 10)) == 0
        assert image.getpixel((49, 49)) == 0
        assert image.getpixel((30, 30)) == 255
        assert image.getpixel((5, 5)) == 255

    def test_white_box_clears_black_area(self, rasterizer):
        document = LabelDocument(
            elements=[
                box(0, 0, 80, 80, 80),
                box(20, 20, 40, 40, 40, color=LineColor.WHITE),
            ]
        )

        image = assert_png_size(rasterizer.render(document, options()).png_data, (80, 80))
        assert image.getpixel((40, 40)) == 255
        assert image.getpixel((5, 5)) == 0

    def test_reverse_field_inverts_pixels(self, rasterizer):
        document = LabelDocument(
            elements=[
                box(0, 0, 40, 80, 40),
                box(20, 0, 40, 80, 40, reverse=True),
            ]
        )

        image = assert_png_size(rasterizer.render(document, options()).png_data, (80, 80))
        assert image.getpixel((10, 40)) == 0  # black, untouched
        assert image.getpixel((30, 40)) == 255  # black, inverted
        assert image.getpixel((50, 40)) == 0  # white, inverted
        assert image.getpixel((70, 40)) == 255  # white, untouched

    def test_filled_circle(self, rasterizer):
        circle = LabelElement(type=ElementType.CIRCLE, x=0, y=0, width=80, height=80, thickness=40)
        document = LabelDocument(elements=[circle])

        image = assert_png_size(rasterizer.render(document, options()).png_data, (80, 80))
        assert image.getpixel((40, 40)) == 0
        assert image.getpixel((1, 1)) == 255

    def test_fields_outside_canvas_are_clipped(self, rasterizer):
        document = LabelDocument(elements=[box(60, 60, 100, 100, 100), box(-20, -20, 30, 30, 30)])

        image = assert_png_size(rasterizer.render(document, options()).png_data, (80, 80))
        assert image.getpixel((79, 79)) == 0
        assert image.getpixel((5, 5)) == 0
        assert image.getpixel((40, 40)) == 255

    def test_text_draws_dark_pixels(self, rasterizer):
        document = LabelDocument(elements=[text("HELLO", 5, 5, font_height=30)])

        image = assert_png_size(
            rasterizer.render(document, options(25, 8, 8)).png_data, (200, 64)
        )
        assert image.getextrema()[0] < 128

    def test_empty_text_draws_nothing(self, rasterizer):
        document = LabelDocument(elements=[text("", 5, 5)])

        assert_all_white(assert_png_size(rasterizer.render(document, options()).png_data, (80, 80)))

    def test_text_width_scaling(self, rasterizer):
        narrow, _ = rasterizer._text_mask(text("WWWW", font_height=30, font_width=15), CANVAS, {})
        wide, _ = rasterizer._text_mask(text("WWWW", font_height=30, font_width=60), CANVAS, {})

        assert narrow.height == wide.height
        assert wide.width > narrow.width * 3

    def test_rotated_text_is_tall(self, rasterizer):
        normal, _ = rasterizer._text_mask(text("WIDE TEXT", font_height=30), CANVAS, {})
        rotated, _ = rasterizer._text_mask(
            text("WIDE TEXT", font_height=30, orientation=FieldOrientation.ROTATED), CANVAS, {}
        )

        assert normal.width > normal.height
        assert rotated.size == (normal.height, normal.width)

    def test_rendering_is_deterministic(self, rasterizer):
        document = LabelDocument(
            elements=[text("Same", 4, 4, font_height=20), box(2, 2, 70, 30, 2, rounding=4)]
        )

        first = rasterizer.render(document, options())
        second = rasterizer.render(document, options())
        assert first.png_data == second.png_data

    def test_drawing_failure_is_wrapped(self, rasterizer):
        with patch(
            "zpl_render.core.rendering.png_generator.Image.new",
            side_effect=RuntimeError("out of ink"),
        ):
            with pytest.raises(PNGGenerationError, match="PNG generation failed: out of ink"):
                rasterizer.render(LabelDocument(), options())

    def test_shape_masks_are_bounded_by_canvas(self, rasterizer):
        document = LabelDocument(
            elements=[
                box(0, 0, 40000, 40000, 1),
                LabelElement(type=ElementType.ELLIPSE, x=-20000, y=40, width=40000, height=30000),
            ]
        )
        new_image = Image.new

        with patch(
            "zpl_render.core.rendering.png_generator.Image.new", side_effect=new_image
        ) as mock_new:
            image = assert_png_size(rasterizer.render(document, options()).png_data, (80, 80))

        assert all(call.args[1][0] <= 80 and call.args[1][1] <= 80 for call in mock_new.call_args_list)
        assert image.getpixel((0, 0)) == 0
        assert image.getpixel((40, 20)) == 255

    def test_partly_visible_box_matches_full_drawing(self, rasterizer):
        document = LabelDocument(elements=[box(-10, -10, 60, 60, 3)])
        expected = Image.new("L", (80, 80), 255)
        full_mask = Image.new("L", (60, 60), 0)
        ImageDraw.Draw(full_mask).rectangle((0, 0, 59, 59), outline=255, width=3)
        expected.paste(0, (-10, -10, 50, 50), full_mask)

        image = assert_png_size(rasterizer.render(document, options()).png_data, (80, 80))
        assert image.convert("L").tobytes() == expected.tobytes()

    def test_shape_outside_canvas_is_skipped(self, rasterizer):
        assert rasterizer._shape_mask(box(100, 0, 40000, 10, 1), (80, 80)) is None
        assert rasterizer._shape_mask(box(-50, -50, 50, 50, 1), (80, 80)) is None

    def test_text_outside_canvas_is_skipped(self, rasterizer):
        assert rasterizer._text_mask(text("FAR", 5000, 5000, font_height=30), (80, 80), {}) is None

    def test_oversized_text_is_rejected(self):
        rasterizer = PillowRasterizer(max_image_pixels=10_000)
        document = LabelDocument(elements=[text("HUGE", 0, 0, font_height=400)])

        with pytest.raises(PNGGenerationError, match="text field .* exceeds the 10000 pixel limit"):
            rasterizer.render(document, options())

    def test_generate_png_helper(self):
        result = generate_png(LabelDocument(), options(5, 5, 8))

        assert_png_size(result.png_data, (40, 40))


class TestRasterizerSettings:
    """Test where the rasterizer takes its limits from."""

    def test_explicit_settings(self):
        settings = TestSettings(max_image_pixels=1234, png_optimize=True)

        with patch("zpl_render.core.rendering.png_generator.get_settings") as mock_get_settings:
            rasterizer = PillowRasterizer(settings=settings)

        mock_get_settings.assert_not_called()
        assert rasterizer.max_image_pixels == 1234
        assert rasterizer.optimize is True

    def test_explicit_arguments(self):
        with patch("zpl_render.core.rendering.png_generator.get_settings") as mock_get_settings:
            rasterizer = PillowRasterizer(max_image_pixels=99, optimize=False)

        mock_get_settings.assert_not_called()
        assert rasterizer.max_image_pixels == 99

    def test_arguments_override_settings(self):
        rasterizer = PillowRasterizer(max_image_pixels=99, settings=TestSettings())

        assert rasterizer.max_image_pixels == 99
        assert rasterizer.optimize is False
