"""
Masked-image construction for freeform highlights.

Everything outside the highlighter path is painted white at native
resolution, so the recognition service only sees ink the user covered.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw

from core.constants import DEFAULT_REGION_PARAMS
from core.models import Stroke
from segmentation.coordinates import CoordinateMapper

logger = logging.getLogger(__name__)

NativePath = Tuple[List[Tuple[float, float]], float]


def native_paths(strokes: Sequence[Stroke], mapper: CoordinateMapper) -> List[NativePath]:
    """
    Convert strokes to native-pixel polylines with native widths.

    Returns:
        List of (points, width) pairs; empty when the surface is not laid out
    """
    paths = []
    for stroke in strokes:
        if stroke.is_empty:
            continue
        points = [mapper.point_to_native(p) for p in stroke.points]
        if any(p is None for p in points):
            return []
        paths.append((points, mapper.line_width_to_native(stroke.line_width)))
    return paths


def draw_highlight_mask(
    size: Tuple[int, int],
    paths: Sequence[NativePath],
    extra_width: float = DEFAULT_REGION_PARAMS['mask_extra_width']
) -> Image.Image:
    """
    Rasterize highlighter paths as thick round-capped lines.

    Args:
        size: Native (width, height)
        paths: Polylines with their native widths
        extra_width: Pixels added to each width for full glyph coverage

    Returns:
        Mode "L" image, 255 under the highlight and 0 elsewhere
    """
    mask = Image.new('L', size, 0)
    draw = ImageDraw.Draw(mask)

    for points, width in paths:
        line_width = max(1, int(round(width + extra_width)))
        radius = line_width / 2.0
        if len(points) > 1:
            draw.line(points, fill=255, width=line_width, joint='curve')
        # Round caps, and a dot for single-point strokes
        for x, y in (points[0], points[-1]):
            draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=255)

    return mask


def build_masked_image(
    image: Image.Image,
    strokes: Sequence[Stroke],
    mapper: CoordinateMapper,
    extra_width: float = DEFAULT_REGION_PARAMS['mask_extra_width']
) -> Optional[Image.Image]:
    """
    Full-resolution copy of the image, white outside the highlight.

    Args:
        image: Source image at native resolution
        strokes: Committed highlighter strokes
        mapper: Display-to-native mapper for this image
        extra_width: Pixels added to each stroke width

    Returns:
        RGB image, or None when there is nothing to mask
    """
    paths = native_paths(strokes, mapper)
    if not paths:
        return None

    mask = draw_highlight_mask(image.size, paths, extra_width)
    source = image.convert('RGB')
    blank = Image.new('RGB', image.size, (255, 255, 255))
    logger.debug("Masked %d strokes over %dx%d image", len(paths), *image.size)
    return Image.composite(source, blank, mask)
