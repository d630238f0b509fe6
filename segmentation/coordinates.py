"""
Coordinate mapping between the display surface and the native bitmap.

Annotations are captured as [0, 1] coordinates against a display surface
that may be a down-scaled rendering of the photo. Scale factors are
recomputed from the surface on every call; the surface can be resized
between calls and a cached factor would go stale.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from core.models import BoundingBox, ExtractedRegion, Point, SelectionRect

logger = logging.getLogger(__name__)

# Float noise tolerated when snapping to whole pixels
_SNAP_EPS = 1e-6


@dataclass
class DisplaySurface:
    """Rendered size of the drawing surface in display pixels."""
    width: float = 0.0
    height: float = 0.0

    @property
    def is_laid_out(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class PixelRect:
    """Rectangle in native pixels with float precision."""
    x: float
    y: float
    width: float
    height: float

    def to_box(self) -> BoundingBox:
        """Round outward to whole pixels."""
        return BoundingBox(
            int(math.floor(self.x + _SNAP_EPS)),
            int(math.floor(self.y + _SNAP_EPS)),
            int(math.ceil(self.x + self.width - _SNAP_EPS)),
            int(math.ceil(self.y + self.height - _SNAP_EPS))
        )


class CoordinateMapper:
    """Maps normalized annotation geometry to native pixels and back."""

    def __init__(self, native_width: int, native_height: int, surface: Optional[DisplaySurface] = None):
        self.native_width = native_width
        self.native_height = native_height
        # Unknown layout defaults to a 1:1 rendering
        self.surface = surface if surface is not None else DisplaySurface(native_width, native_height)

    def scale_factors(self) -> Optional[Tuple[float, float]]:
        """
        Compute (sx, sy) = native / rendered.

        Returns:
            Scale factors, or None when the surface is not laid out yet
        """
        if not self.surface.is_laid_out or self.native_width <= 0 or self.native_height <= 0:
            return None
        return (
            self.native_width / self.surface.width,
            self.native_height / self.surface.height
        )

    def to_native(self, rect: SelectionRect) -> Optional[PixelRect]:
        """Normalized rectangle to native pixels."""
        factors = self.scale_factors()
        if factors is None:
            logger.debug("Surface not laid out; skipping native mapping")
            return None
        sx, sy = factors
        rw, rh = self.surface.width, self.surface.height
        return PixelRect(
            x=rect.x * rw * sx,
            y=rect.y * rh * sy,
            width=rect.width * rw * sx,
            height=rect.height * rh * sy
        )

    def to_normalized(self, rect: Union[PixelRect, BoundingBox]) -> Optional[ExtractedRegion]:
        """Native pixel rectangle to normalized coordinates."""
        if self.scale_factors() is None:
            return None
        if isinstance(rect, BoundingBox):
            rect = PixelRect(rect.x1, rect.y1, rect.width, rect.height)
        return ExtractedRegion(
            x=rect.x / self.native_width,
            y=rect.y / self.native_height,
            width=rect.width / self.native_width,
            height=rect.height / self.native_height
        )

    def point_to_native(self, point: Point) -> Optional[Tuple[float, float]]:
        factors = self.scale_factors()
        if factors is None:
            return None
        sx, sy = factors
        return (
            point.x * self.surface.width * sx,
            point.y * self.surface.height * sy
        )

    def line_width_to_native(self, line_width: float) -> float:
        """Display stroke width in native pixels (mean of both axes)."""
        factors = self.scale_factors()
        if factors is None:
            return 0.0
        sx, sy = factors
        return line_width * (sx + sy) / 2.0
