"""
Bounding box utilities for highlight extraction.

Handles padding, minimum-size growth, clamping and visualization of
native pixel boxes.
"""
import math
from typing import Iterable, List, Optional, Tuple

from PIL import Image, ImageDraw

from core.models import BoundingBox


def box_from_points(points: Iterable[Tuple[float, float]]) -> Optional[BoundingBox]:
    """
    Smallest pixel box containing every point.

    Args:
        points: (x, y) pairs in native pixels

    Returns:
        BoundingBox, or None when no points are given
    """
    xs, ys = [], []
    for x, y in points:
        xs.append(x)
        ys.append(y)
    if not xs:
        return None
    return BoundingBox(
        int(math.floor(min(xs))),
        int(math.floor(min(ys))),
        int(math.floor(max(xs))) + 1,
        int(math.floor(max(ys))) + 1
    )


def pad_box(box: BoundingBox, pad_x: float, pad_y: Optional[float] = None) -> BoundingBox:
    """
    Grow a box outward on every side.

    Args:
        box: Box to pad
        pad_x: Horizontal padding in pixels
        pad_y: Vertical padding (defaults to pad_x)

    Returns:
        New padded box
    """
    if pad_y is None:
        pad_y = pad_x
    px = int(math.ceil(pad_x))
    py = int(math.ceil(pad_y))
    return BoundingBox(box.x1 - px, box.y1 - py, box.x2 + px, box.y2 + py)


def image_bounds(width: int, height: int) -> BoundingBox:
    """Box covering a whole image."""
    return BoundingBox(0, 0, width, height)


def expand_to_min_size(box: BoundingBox, min_width: int, min_height: int) -> BoundingBox:
    """
    Grow a box symmetrically until it meets a minimum size.

    Odd leftovers go to the right/bottom edge.
    """
    x1, y1, x2, y2 = box.x1, box.y1, box.x2, box.y2

    if box.width < min_width:
        grow = min_width - box.width
        x1 -= grow // 2
        x2 += grow - grow // 2

    if box.height < min_height:
        grow = min_height - box.height
        y1 -= grow // 2
        y2 += grow - grow // 2

    return BoundingBox(x1, y1, x2, y2)


def _shift_axis(lo: int, hi: int, bound_lo: int, bound_hi: int) -> Tuple[int, int]:
    if hi - lo >= bound_hi - bound_lo:
        return bound_lo, bound_hi
    if lo < bound_lo:
        return bound_lo, hi + (bound_lo - lo)
    if hi > bound_hi:
        return lo - (hi - bound_hi), bound_hi
    return lo, hi


def fit_within(box: BoundingBox, bounds: BoundingBox) -> BoundingBox:
    """
    Move a box inside bounds, shrinking it only when it is larger than them.

    Sliding keeps the size gained by expand_to_min_size whenever the
    bounds leave room for it.
    """
    x1, x2 = _shift_axis(box.x1, box.x2, bounds.x1, bounds.x2)
    y1, y2 = _shift_axis(box.y1, box.y2, bounds.y1, bounds.y2)
    return BoundingBox(x1, y1, x2, y2)


def merge_boxes(boxes: List[BoundingBox]) -> Optional[BoundingBox]:
    """Union of all boxes, or None for an empty list."""
    merged = None
    for box in boxes:
        merged = box if merged is None else merged.union(box)
    return merged


def draw_bounding_boxes(
    image: Image.Image,
    boxes: List[BoundingBox],
    color: Tuple[int, int, int] = (245, 158, 11),
    width: int = 3
) -> Image.Image:
    """
    Draw boxes on a copy of an image for debugging output.

    Args:
        image: PIL Image to draw on
        boxes: Native pixel boxes
        color: Outline color
        width: Outline width

    Returns:
        Annotated copy of the image
    """
    img_draw = image.convert('RGB')
    draw = ImageDraw.Draw(img_draw)

    for box in boxes:
        if box.is_empty:
            continue
        draw.rectangle([box.x1, box.y1, box.x2 - 1, box.y2 - 1], outline=color, width=width)

    return img_draw
