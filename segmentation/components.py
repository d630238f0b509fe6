"""
Connected-component refinement.

Flood-fills 8-connected ink inside a region of interest and reduces the
surviving blobs to one tight box. The fill uses an explicit stack and a
flat visited array sized to the region, so large ink areas cannot hit
the recursion limit.
"""
import logging
from typing import List, Optional, Tuple

import numpy as np

from core.constants import DEFAULT_COMPONENT_PARAMS
from core.models import BoundingBox, Component
from utils.bbox_utils import merge_boxes

logger = logging.getLogger(__name__)

_NEIGHBOR_OFFSETS = [(-1, -1), (0, -1), (1, -1), (-1, 0), (1, 0), (-1, 1), (0, 1), (1, 1)]


def find_components(
    mask: np.ndarray,
    roi: Optional[BoundingBox] = None,
    min_pixels: int = DEFAULT_COMPONENT_PARAMS['min_pixels']
) -> List[Component]:
    """
    Label 8-connected ink blobs inside a region of interest.

    Args:
        mask: Boolean ink mask of the analysis window
        roi: Window-local box to search (defaults to the whole mask)
        min_pixels: Blobs with fewer pixels are discarded as speckle

    Returns:
        Components with window-local bounding boxes, in scan order
    """
    h_mask, w_mask = mask.shape
    if roi is None:
        roi = BoundingBox(0, 0, w_mask, h_mask)
    roi = roi.intersect(BoundingBox(0, 0, w_mask, h_mask))
    if roi.is_empty:
        return []

    w, h = roi.width, roi.height
    ink = mask[roi.y1:roi.y2, roi.x1:roi.x2].ravel().tolist()
    visited = bytearray(w * h)
    components = []

    for seed, is_ink in enumerate(ink):
        if not is_ink or visited[seed]:
            continue

        visited[seed] = 1
        stack = [seed]
        count = 0
        min_x = min_y = None
        max_x = max_y = 0

        while stack:
            idx = stack.pop()
            y, x = divmod(idx, w)
            count += 1
            if min_x is None:
                min_x, min_y, max_x, max_y = x, y, x, y
            else:
                if x < min_x:
                    min_x = x
                elif x > max_x:
                    max_x = x
                if y < min_y:
                    min_y = y
                elif y > max_y:
                    max_y = y

            for dx, dy in _NEIGHBOR_OFFSETS:
                nx, ny = x + dx, y + dy
                if 0 <= nx < w and 0 <= ny < h:
                    nidx = ny * w + nx
                    if ink[nidx] and not visited[nidx]:
                        visited[nidx] = 1
                        stack.append(nidx)

        if count >= min_pixels:
            components.append(Component(
                bbox=BoundingBox(
                    roi.x1 + min_x,
                    roi.y1 + min_y,
                    roi.x1 + max_x + 1,
                    roi.y1 + max_y + 1
                ),
                pixel_count=count
            ))

    return components


def horizontal_overlap_ratio(box: BoundingBox, span: Tuple[float, float]) -> float:
    """
    Share of the box's own width covered by a horizontal span.

    Args:
        box: Component box
        span: [start, end) columns of the highlight

    Returns:
        Ratio in [0, 1]
    """
    if box.width <= 0:
        return 0.0
    overlap = min(box.x2, span[1]) - max(box.x1, span[0])
    return max(0.0, overlap) / box.width


def refine_region(
    mask: np.ndarray,
    roi: BoundingBox,
    span: Optional[Tuple[float, float]] = None,
    params: Optional[dict] = None
) -> Optional[BoundingBox]:
    """
    Tight box around the qualifying ink in a region of interest.

    Args:
        mask: Boolean ink mask of the analysis window
        roi: Window-local region to flood-fill
        span: Highlighted [start, end) columns; when given, a component is
            kept only if at least min_overlap_ratio of its width lies
            inside the span
        params: Overrides for DEFAULT_COMPONENT_PARAMS

    Returns:
        Window-local box, or None when nothing qualifies
    """
    p = dict(DEFAULT_COMPONENT_PARAMS)
    if params:
        p.update(params)

    components = find_components(mask, roi, p['min_pixels'])
    if span is not None:
        components = [
            c for c in components
            if horizontal_overlap_ratio(c.bbox, span) >= p['min_overlap_ratio']
        ]

    if not components:
        logger.debug("No qualifying components in %s", roi)
        return None

    return merge_boxes([c.bbox for c in components])
