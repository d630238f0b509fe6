"""
Unit tests for segmentation.masking module.
"""
from PIL import Image

from core.models import Point, Stroke
from segmentation.coordinates import CoordinateMapper, DisplaySurface
from segmentation.masking import build_masked_image, draw_highlight_mask, native_paths


class TestNativePaths:
    """Tests for native_paths function."""

    def test_scaled_points_and_width(self):
        mapper = CoordinateMapper(400, 300, DisplaySurface(200, 150))
        stroke = Stroke.from_points([Point(0.25, 0.5), Point(0.75, 0.5)], line_width=4.0)

        paths = native_paths([stroke], mapper)

        assert paths == [([(100.0, 150.0), (300.0, 150.0)], 8.0)]

    def test_empty_strokes_skipped(self):
        assert native_paths([Stroke()], CoordinateMapper(400, 300)) == []


class TestDrawHighlightMask:
    """Tests for draw_highlight_mask function."""

    def test_single_point_dot(self):
        mask = draw_highlight_mask((50, 50), [([(25.0, 25.0)], 4.0)], extra_width=6)

        assert mask.getpixel((25, 25)) == 255
        assert mask.getpixel((25, 29)) == 255
        assert mask.getpixel((5, 5)) == 0

    def test_line_thickness(self):
        mask = draw_highlight_mask((100, 50), [([(10.0, 25.0), (90.0, 25.0)], 4.0)], extra_width=12)

        assert mask.getpixel((50, 25)) == 255
        assert mask.getpixel((50, 31)) == 255
        assert mask.getpixel((50, 40)) == 0


class TestBuildMaskedImage:
    """Tests for build_masked_image function."""

    def test_outside_painted_white(self):
        image = Image.new('RGBA', (100, 50), (0, 0, 0, 255))
        stroke = Stroke.from_points([Point(0.1, 0.5), Point(0.9, 0.5)], line_width=2.0)

        masked = build_masked_image(image, [stroke], CoordinateMapper(100, 50), extra_width=4)

        assert masked.mode == 'RGB'
        assert masked.getpixel((50, 25)) == (0, 0, 0)
        assert masked.getpixel((50, 2)) == (255, 255, 255)

    def test_nothing_to_mask(self):
        image = Image.new('RGBA', (100, 50), (0, 0, 0, 255))

        assert build_masked_image(image, [], CoordinateMapper(100, 50)) is None
