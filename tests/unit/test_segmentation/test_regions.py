"""
Unit tests for segmentation.regions module.

Pages are synthetic: 10px-wide black "glyphs" every 16px between x=40 and
x=360, on 20px lines separated by 8px gaps.
"""
import numpy as np
import pytest
from PIL import Image

from core.models import Band, BoundingBox, ExtractedRegion, SelectionRect
from segmentation.coordinates import CoordinateMapper, DisplaySurface
from segmentation.regions import (
    RegionAssembler,
    clamp_unit,
    densify,
    finalize_box,
    group_bands,
    merge_bands_to_limit,
)


def _native(region, width, height):
    """Normalized region back to native (x1, y1, x2, y2)."""
    return (
        round(region.x * width),
        round(region.y * height),
        round(region.x2 * width),
        round(region.y2 * height),
    )


def _assert_in_unit_square(region):
    assert region.x >= 0.0 and region.y >= 0.0
    assert region.x2 <= 1.0 + 1e-9 and region.y2 <= 1.0 + 1e-9
    assert region.width > 0 and region.height > 0


class TestHelpers:
    """Tests for densify, band grouping and box finalization."""

    def test_densify_spacing(self):
        dense = densify([(0.0, 0.0), (10.0, 0.0)], 2.0)

        assert dense[0] == (0.0, 0.0)
        assert dense[-1] == (10.0, 0.0)
        assert len(dense) == 6
        assert all(b[0] - a[0] <= 2.0 for a, b in zip(dense, dense[1:]))

    def test_densify_single_point(self):
        assert densify([(3.0, 4.0)], 2.0) == [(3.0, 4.0)]

    def test_group_bands_under_limit(self):
        bands = [Band(i * 10, i * 10 + 8) for i in range(4)]

        assert group_bands(bands, 6) == [[b] for b in bands]

    def test_group_bands_contiguous_chunks(self):
        bands = [Band(i * 10, i * 10 + 8) for i in range(9)]

        groups = group_bands(bands, 6)

        assert [len(g) for g in groups] == [2, 2, 2, 1, 1, 1]
        assert [b for g in groups for b in g] == bands

    def test_merge_bands_to_limit(self):
        bands = [Band(i * 10, i * 10 + 8) for i in range(8)]

        merged = merge_bands_to_limit(bands, 6)

        assert len(merged) == 6
        assert merged[0] == Band(0, 18)
        assert merged[-1] == Band(70, 78)

    def test_clamp_unit(self):
        region = clamp_unit(ExtractedRegion(x=-0.1, y=0.9, width=0.5, height=0.2))

        assert region.x == 0.0
        assert region.y == 0.9
        assert region.width == pytest.approx(0.4)
        assert region.y2 == pytest.approx(1.0)

    def test_finalize_grows_then_clamps(self):
        box = finalize_box(
            BoundingBox(2, 2, 8, 8),
            envelope=BoundingBox(-40, -40, 50, 50),
            bounds=BoundingBox(0, 0, 100, 100),
            min_width=24,
            min_height=16
        )

        assert box == BoundingBox(0, 0, 24, 16)

    def test_finalize_respects_envelope(self):
        box = finalize_box(
            BoundingBox(0, 0, 200, 10),
            envelope=BoundingBox(20, 0, 80, 50),
            bounds=BoundingBox(0, 0, 300, 300),
            min_width=24,
            min_height=16
        )

        assert box == BoundingBox(20, 0, 80, 16)


class TestSelection:
    """Tests for RegionAssembler.assemble_selection."""

    def test_padded_selection(self):
        mapper = CoordinateMapper(400, 300, DisplaySurface(200, 150))

        result = RegionAssembler().assemble_selection(SelectionRect(0.25, 0.25, 0.25, 0.25), mapper)

        assert result.status == 'detected'
        assert len(result.regions) == 1
        assert _native(result.regions[0], 400, 300) == (94, 69, 206, 156)

    def test_corner_selection_clamped(self):
        mapper = CoordinateMapper(400, 300)

        result = RegionAssembler().assemble_selection(SelectionRect(0.0, 0.0, 0.03125, 0.03125), mapper)

        region = result.regions[0]
        _assert_in_unit_square(region)
        assert region.x == 0.0
        assert region.y == 0.0
        assert region.width * 400 >= 24 - 1e-9
        assert region.height * 300 >= 16 - 1e-9

    def test_tiny_selection_meets_minimum(self):
        mapper = CoordinateMapper(400, 300)

        result = RegionAssembler().assemble_selection(SelectionRect(0.5, 0.5, 0.0025, 0.0025), mapper)

        x1, y1, x2, y2 = _native(result.regions[0], 400, 300)
        assert x2 - x1 >= 24
        assert y2 - y1 >= 16

    def test_unlaid_surface_is_invalid(self):
        mapper = CoordinateMapper(400, 300, DisplaySurface(0, 0))

        result = RegionAssembler().assemble_selection(SelectionRect(0.1, 0.1, 0.5, 0.5), mapper)

        assert result.status == 'invalid'
        assert result.regions == []

    def test_empty_selection_is_invalid(self):
        result = RegionAssembler().assemble_selection(SelectionRect(0.1, 0.1, 0.0, 0.5), CoordinateMapper(400, 300))

        assert result.status == 'invalid'


class TestTightHighlight:
    """Tests for RegionAssembler.assemble_highlight in tight mode."""

    def test_single_line_highlight(self, three_line_page, mapper_for, stroke_factory):
        """Test a thin horizontal stroke picks only the line it sits on."""
        stroke = stroke_factory(three_line_page, [(40.5, 117.5), (200.5, 119.5), (360.5, 117.5)], 4.0)

        result = RegionAssembler().assemble_highlight([stroke], three_line_page, mapper_for(three_line_page))

        assert result.status == 'detected'
        assert len(result.regions) == 1
        assert _native(result.regions[0], 400, 300) == (40, 108, 354, 128)

    def test_vertical_stroke_across_lines(self, three_line_page, mapper_for, stroke_factory):
        """Test one region per crossed line, narrowed to the stroked glyph."""
        stroke = stroke_factory(three_line_page, [(205.5, 70.5), (205.5, 165.5)], 8.0)

        result = RegionAssembler().assemble_highlight([stroke], three_line_page, mapper_for(three_line_page))

        assert result.status == 'detected'
        boxes = [_native(r, 400, 300) for r in result.regions]
        assert boxes == [
            (193, 80, 217, 100),
            (193, 108, 217, 128),
            (193, 136, 217, 156),
        ]

    def test_regions_sorted_top_to_bottom(self, three_line_page, mapper_for, stroke_factory):
        stroke = stroke_factory(three_line_page, [(205.5, 165.5), (205.5, 70.5)], 8.0)

        result = RegionAssembler().assemble_highlight([stroke], three_line_page, mapper_for(three_line_page))

        ys = [r.y for r in result.regions]
        assert ys == sorted(ys)

    def test_many_lines_capped(self, nine_line_page, mapper_for, stroke_factory):
        """Test nine crossed lines collapse into the region limit."""
        stroke = stroke_factory(nine_line_page, [(205.5, 30.5), (205.5, 293.5)], 8.0)

        result = RegionAssembler().assemble_highlight([stroke], nine_line_page, mapper_for(nine_line_page))

        assert result.status == 'detected'
        assert len(result.regions) == 6
        first = _native(result.regions[0], 400, 320)
        assert first[1] == 40
        assert first[3] == 88

    def test_downscaled_surface(self, three_line_page, stroke_factory):
        """Test strokes drawn on a half-size rendering map to the same lines."""
        stroke = stroke_factory(three_line_page, [(205.5, 70.5), (205.5, 165.5)], 4.0)
        mapper = CoordinateMapper(400, 300, DisplaySurface(200, 150))

        result = RegionAssembler().assemble_highlight([stroke], three_line_page, mapper)

        assert len(result.regions) == 3

    def test_blank_page_has_no_ink(self, blank_page, mapper_for, stroke_factory):
        stroke = stroke_factory(blank_page, [(50.5, 100.5), (300.5, 100.5)], 8.0)

        result = RegionAssembler().assemble_highlight([stroke], blank_page, mapper_for(blank_page))

        assert result.status == 'no_ink'
        assert not result.detected

    def test_stroke_between_glyphs_finds_no_text(self, three_line_page, mapper_for, stroke_factory):
        """Test ink beside the stroke is never claimed."""
        stroke = stroke_factory(three_line_page, [(197.5, 70.5), (197.5, 165.5)], 2.0)

        result = RegionAssembler().assemble_highlight([stroke], three_line_page, mapper_for(three_line_page))

        assert result.status == 'no_text'
        assert result.regions == []

    def test_no_band_uses_stroke_rows(self, mapper_for, stroke_factory):
        """Test a rule too thin to form a band is still found."""
        arr = np.full((300, 400, 3), 255, dtype=np.uint8)
        arr[150:153, 50:350] = 0
        image = Image.fromarray(arr, 'RGB').convert('RGBA')
        stroke = stroke_factory(image, [(100.5, 151.5), (300.5, 151.5)], 4.0)

        result = RegionAssembler().assemble_highlight([stroke], image, mapper_for(image))

        assert result.status == 'detected'
        assert len(result.regions) == 1
        x1, y1, x2, y2 = _native(result.regions[0], 400, 300)
        assert y1 <= 150 and y2 >= 153
        assert y2 - y1 >= 16

    def test_bounded_growth(self, three_line_page, mapper_for, stroke_factory):
        """Test every region stays within the expansion envelope."""
        stroke = stroke_factory(three_line_page, [(205.5, 70.5), (205.5, 165.5)], 8.0)

        result = RegionAssembler().assemble_highlight([stroke], three_line_page, mapper_for(three_line_page))

        for region in result.regions:
            _assert_in_unit_square(region)
            x1, y1, x2, y2 = _native(region, 400, 300)
            assert x1 >= 205 - 40 and x2 <= 206 + 40
            assert y1 >= 70 - 40 and y2 <= 166 + 40

    def test_thick_stroke_growth_measured_from_points(self, mapper_for, stroke_factory):
        """Test a wide stroke does not widen the expansion envelope."""
        arr = np.full((300, 400, 3), 255, dtype=np.uint8)
        arr[100:120, 130:280] = 0
        image = Image.fromarray(arr, 'RGB').convert('RGBA')
        stroke = stroke_factory(image, [(200.5, 90.5), (200.5, 130.5)], 100.0)

        result = RegionAssembler().assemble_highlight([stroke], image, mapper_for(image))

        assert result.status == 'detected'
        assert len(result.regions) == 1
        x1, y1, x2, y2 = _native(result.regions[0], 400, 300)
        assert x1 >= 200 - 40 and x2 <= 201 + 40
        assert y1 >= 90 - 40 and y2 <= 131 + 40
        assert y1 <= 100 and y2 >= 120

    def test_unlaid_surface_is_invalid(self, three_line_page, stroke_factory):
        stroke = stroke_factory(three_line_page, [(205.5, 70.5), (205.5, 165.5)], 8.0)
        mapper = CoordinateMapper(400, 300, DisplaySurface(0, 0))

        result = RegionAssembler().assemble_highlight([stroke], three_line_page, mapper)

        assert result.status == 'invalid'


class TestMaskedHighlight:
    """Tests for RegionAssembler.assemble_highlight in masked mode."""

    def test_masked_image(self, three_line_page, mapper_for, stroke_factory):
        stroke = stroke_factory(three_line_page, [(40.5, 118.5), (360.5, 118.5)], 4.0)

        result = RegionAssembler().assemble_highlight(
            [stroke], three_line_page, mapper_for(three_line_page), mode='masked'
        )

        assert result.status == 'detected'
        assert result.regions == []
        masked = result.masked_image
        assert masked.size == three_line_page.size
        # Glyph under the stroke survives, glyph on another line is whited out
        assert masked.getpixel((45, 118)) == (0, 0, 0)
        assert masked.getpixel((45, 90)) == (255, 255, 255)

    def test_masked_unlaid_surface(self, three_line_page, stroke_factory):
        stroke = stroke_factory(three_line_page, [(40.5, 118.5), (360.5, 118.5)], 4.0)
        mapper = CoordinateMapper(400, 300, DisplaySurface(0, 0))

        result = RegionAssembler().assemble_highlight([stroke], three_line_page, mapper, mode='masked')

        assert result.status == 'invalid'
        assert result.masked_image is None
