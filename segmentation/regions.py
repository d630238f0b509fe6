"""
Region assembly.

Turns a committed annotation into the rectangles (or the masked image)
handed to the recognition service:

1. Selections map straight to one padded native rectangle.
2. Highlights build an ink mask over a padded window, detect text-line
   bands, classify the gesture as small (part of one line) or large (one
   or more full lines), and tighten each chosen band with the component
   refiner.
3. Band counts above the region limit are merged in contiguous chunks.
4. Every rectangle is grown to a minimum size, clamped to the image and
   to an expansion envelope around the annotation, then normalized.
"""
import logging
import math
import statistics
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from core.constants import (
    DEFAULT_BAND_PARAMS,
    DEFAULT_COMPONENT_PARAMS,
    DEFAULT_REGION_PARAMS,
    HIGHLIGHT_MODE_MASKED,
    REGION_STATUS_DETECTED,
    REGION_STATUS_INVALID,
    REGION_STATUS_NO_INK,
    REGION_STATUS_NO_TEXT,
)
from core.models import Band, BoundingBox, ExtractedRegion, RegionResult, SelectionRect, Stroke
from segmentation.bands import find_text_bands
from segmentation.components import refine_region
from segmentation.coordinates import CoordinateMapper
from segmentation.ink_mask import build_ink_mask
from segmentation.masking import build_masked_image, native_paths
from utils.bbox_utils import (
    box_from_points,
    expand_to_min_size,
    fit_within,
    image_bounds,
    pad_box,
)
from utils.image_utils import image_to_rgba_array, window_pixels

logger = logging.getLogger(__name__)


def densify(points: Sequence[Tuple[float, float]], step: float) -> List[Tuple[float, float]]:
    """
    Insert points along each segment so consecutive points are at most
    step pixels apart.
    """
    if len(points) < 2 or step <= 0:
        return list(points)

    dense = [points[0]]
    for (x0, y0), (x1, y1) in zip(points, points[1:]):
        n = max(1, int(math.ceil(math.hypot(x1 - x0, y1 - y0) / step)))
        for i in range(1, n + 1):
            t = i / n
            dense.append((x0 + (x1 - x0) * t, y0 + (y1 - y0) * t))
    return dense


def group_bands(bands: List[Band], max_regions: int) -> List[List[Band]]:
    """
    Split bands into at most max_regions contiguous groups.

    Group sizes differ by at most one, earlier groups take the extra band.
    """
    if max_regions <= 0 or len(bands) <= max_regions:
        return [[band] for band in bands]

    base, extra = divmod(len(bands), max_regions)
    groups = []
    start = 0
    for i in range(max_regions):
        size = base + (1 if i < extra else 0)
        groups.append(bands[start:start + size])
        start += size
    return groups


def merge_bands_to_limit(bands: List[Band], max_regions: int) -> List[Band]:
    """Merge adjacent bands until no more than max_regions remain."""
    return [
        Band(group[0].start_row, group[-1].end_row)
        for group in group_bands(bands, max_regions)
    ]


def clamp_unit(region: ExtractedRegion) -> ExtractedRegion:
    """Clamp a normalized rectangle to the unit square."""
    x = min(max(region.x, 0.0), 1.0)
    y = min(max(region.y, 0.0), 1.0)
    return ExtractedRegion(
        x=x,
        y=y,
        width=min(region.x2, 1.0) - x,
        height=min(region.y2, 1.0) - y
    )


def finalize_box(
    box: BoundingBox,
    envelope: BoundingBox,
    bounds: BoundingBox,
    min_width: int,
    min_height: int
) -> BoundingBox:
    """
    Grow to the minimum size, then keep inside the image and the envelope.

    Returns:
        Final native box; may be empty when the bounds leave no room
    """
    grown = expand_to_min_size(box, min_width, min_height)
    limit = envelope.intersect(bounds)
    if limit.is_empty:
        return limit
    return fit_within(grown, limit)


class RegionAssembler:
    """Computes extraction regions for selections and highlights."""

    def __init__(
        self,
        ink_params: Optional[dict] = None,
        band_params: Optional[dict] = None,
        component_params: Optional[dict] = None,
        region_params: Optional[dict] = None
    ):
        self.ink_params = dict(ink_params or {})
        self.band_params = dict(DEFAULT_BAND_PARAMS)
        self.band_params.update(band_params or {})
        self.component_params = dict(DEFAULT_COMPONENT_PARAMS)
        self.component_params.update(component_params or {})
        self.region_params = dict(DEFAULT_REGION_PARAMS)
        self.region_params.update(region_params or {})

    # ------------------------------------------------------------------
    # Selections
    # ------------------------------------------------------------------

    def assemble_selection(self, selection: SelectionRect, mapper: CoordinateMapper) -> RegionResult:
        """
        One padded rectangle for a selection; no ink analysis.

        Args:
            selection: Normalized selection rectangle
            mapper: Display-to-native mapper for the image

        Returns:
            RegionResult with one region, or status "invalid"
        """
        if selection is None or selection.is_empty:
            return RegionResult(status=REGION_STATUS_INVALID)

        native = mapper.to_native(selection)
        if native is None:
            return RegionResult(status=REGION_STATUS_INVALID)

        p = self.region_params
        bounds = image_bounds(mapper.native_width, mapper.native_height)
        original = native.to_box()
        envelope = pad_box(original, p['max_expansion_px'])

        box = finalize_box(
            pad_box(original, p['selection_margin_px']),
            envelope,
            bounds,
            p['min_rect_width'],
            p['min_rect_height']
        )
        return self._normalized_result([box], mapper)

    # ------------------------------------------------------------------
    # Highlights
    # ------------------------------------------------------------------

    def assemble_highlight(
        self,
        strokes: Sequence[Stroke],
        image: Image.Image,
        mapper: CoordinateMapper,
        mode: str = 'tight'
    ) -> RegionResult:
        """
        Regions (or a masked image) for committed highlighter strokes.

        Args:
            strokes: Committed strokes of one highlight gesture
            image: Source image at native resolution
            mapper: Display-to-native mapper for the image
            mode: "tight" for per-line rectangles, "masked" for one
                masked full-resolution image

        Returns:
            RegionResult. "no_ink" and "no_text" are normal outcomes
            meaning nothing was detected under the highlight.
        """
        if mode == HIGHLIGHT_MODE_MASKED:
            masked = build_masked_image(image, strokes, mapper, self.region_params['mask_extra_width'])
            if masked is None:
                return RegionResult(status=REGION_STATUS_INVALID)
            return RegionResult(status=REGION_STATUS_DETECTED, masked_image=masked)

        return self._tight_regions(strokes, image, mapper)

    def _tight_regions(
        self,
        strokes: Sequence[Stroke],
        image: Image.Image,
        mapper: CoordinateMapper
    ) -> RegionResult:
        p = self.region_params
        bp = self.band_params

        paths = native_paths(strokes, mapper)
        if not paths:
            return RegionResult(status=REGION_STATUS_INVALID)

        points = []
        for path_points, _ in paths:
            points.extend(densify(path_points, p['densify_step']))
        line_width = max(width for _, width in paths)

        bounds = image_bounds(*image.size)
        raw = box_from_points(points)
        stroke_box = pad_box(raw, p['stroke_pad_ratio'] * line_width).intersect(bounds)
        if stroke_box.is_empty:
            return RegionResult(status=REGION_STATUS_INVALID)

        envelope = pad_box(raw, p['max_expansion_px'])
        window = pad_box(stroke_box, bp['window_pad']).intersect(bounds)

        pixels = window_pixels(image_to_rgba_array(image), window)
        ink = build_ink_mask(pixels, origin=(window.x1, window.y1), params=self.ink_params)
        if ink.coverage < p['min_ink_coverage']:
            logger.debug(
                "Ink coverage %.4f below %.4f (mean luminance %.1f)",
                ink.coverage, p['min_ink_coverage'], ink.mean_luminance
            )
            return RegionResult(status=REGION_STATUS_NO_INK)

        local_stroke = stroke_box.offset(-window.x1, -window.y1)
        local_points = [(x - window.x1, y - window.y1) for x, y in points]
        bands = find_text_bands(ink.mask, col_range=(local_stroke.x1, local_stroke.x2), params=bp)

        raw_height = raw.height
        if bands:
            line_height = statistics.median(b.height for b in bands)
        else:
            # No bands yet: the stroke's own height stands in for a line
            line_height = raw_height
        is_small = raw_height < p['small_stroke_ratio'] * line_height
        logger.debug(
            "%d bands, stroke height %d, line height %.1f -> %s gesture",
            len(bands), raw_height, line_height, 'small' if is_small else 'large'
        )

        if is_small:
            boxes = self._small_gesture_boxes(ink.mask, bands, local_stroke)
        else:
            boxes = self._large_gesture_boxes(ink.mask, bands, local_stroke, local_points, line_width)

        final = []
        for box in boxes:
            box = finalize_box(
                box.offset(window.x1, window.y1),
                envelope,
                bounds,
                p['min_rect_width'],
                p['min_rect_height']
            )
            if not box.is_empty:
                final.append(box)

        if not final:
            return RegionResult(status=REGION_STATUS_NO_TEXT)

        final.sort(key=lambda b: (b.y1, b.x1))
        return self._normalized_result(final, mapper)

    def _small_gesture_boxes(
        self,
        mask: np.ndarray,
        bands: List[Band],
        stroke: BoundingBox
    ) -> List[BoundingBox]:
        """Refine the single band nearest the stroke, inside the stroke's columns."""
        stroke_center = (stroke.y1 + stroke.y2) / 2.0
        band = max(
            bands,
            key=lambda b: (b.overlap(stroke.y1, stroke.y2), -abs(b.center - stroke_center))
        )
        pad = self.component_params['roi_pad']
        roi = BoundingBox(stroke.x1, band.start_row - pad, stroke.x2, band.end_row + pad)
        box = refine_region(mask, roi, params=self.component_params)
        return [box] if box is not None else []

    def _large_gesture_boxes(
        self,
        mask: np.ndarray,
        bands: List[Band],
        stroke: BoundingBox,
        points: List[Tuple[float, float]],
        line_width: float
    ) -> List[BoundingBox]:
        """Refine every band the stroke crosses, each with its own column span."""
        p = self.region_params
        if bands:
            selected = [
                b for b in bands
                if b.overlap(stroke.y1, stroke.y2) >= p['band_overlap_ratio'] * b.height
            ]
        else:
            selected = [Band(stroke.y1, stroke.y2)]

        if len(selected) > p['max_regions']:
            logger.debug("Merging %d bands down to %d", len(selected), p['max_regions'])
            selected = merge_bands_to_limit(selected, p['max_regions'])

        half_width = p['stroke_pad_ratio'] * line_width
        pad = self.component_params['roi_pad']
        boxes = []
        for band in selected:
            xs = [x for x, y in points if band.start_row <= y < band.end_row]
            if xs:
                span = (min(xs) - half_width, max(xs) + half_width + 1)
            else:
                span = (stroke.x1, stroke.x2)

            roi = BoundingBox(0, band.start_row - pad, mask.shape[1], band.end_row + pad)
            box = refine_region(mask, roi, span=span, params=self.component_params)
            if box is not None:
                boxes.append(box)
        return boxes

    def _normalized_result(self, boxes: List[BoundingBox], mapper: CoordinateMapper) -> RegionResult:
        regions = []
        for box in boxes:
            if box.is_empty:
                continue
            region = mapper.to_normalized(box)
            if region is None:
                continue
            region = clamp_unit(region)
            if not region.is_empty:
                regions.append(region)

        if not regions:
            return RegionResult(status=REGION_STATUS_INVALID)
        return RegionResult(status=REGION_STATUS_DETECTED, regions=regions)
