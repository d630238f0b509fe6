"""
Core domain models for highlight extraction.

These are pure data structures without business logic.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image


@dataclass(frozen=True)
class Point:
    """A point normalized to [0, 1] against the displayed image."""
    x: float
    y: float


@dataclass
class Stroke:
    """A freehand highlighter path with a running bounding box."""
    points: List[Point] = field(default_factory=list)
    line_width: float = 4.0
    min_x: float = 1.0
    min_y: float = 1.0
    max_x: float = 0.0
    max_y: float = 0.0

    def add_point(self, point: Point) -> None:
        """Append a point and grow the running box."""
        self.points.append(point)
        self.min_x = min(self.min_x, point.x)
        self.min_y = min(self.min_y, point.y)
        self.max_x = max(self.max_x, point.x)
        self.max_y = max(self.max_y, point.y)

    @property
    def is_empty(self) -> bool:
        return not self.points

    @classmethod
    def from_points(cls, points, line_width: float = 4.0) -> 'Stroke':
        stroke = cls(line_width=line_width)
        for point in points:
            stroke.add_point(point)
        return stroke


@dataclass(frozen=True)
class SelectionRect:
    """A normalized axis-aligned rectangle."""
    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @classmethod
    def from_corners(cls, start: Point, end: Point) -> 'SelectionRect':
        """Build a rectangle from two drag corners in any direction."""
        x1, x2 = sorted((start.x, end.x))
        y1, y2 = sorted((start.y, end.y))
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height
        }


class ExtractedRegion(SelectionRect):
    """A normalized rectangle emitted by the region assembler."""


@dataclass
class CapturedImage:
    """Image bytes captured by the user plus any text pulled from them."""
    data: bytes
    mime_type: str = 'image/png'
    extracted_text: Optional[str] = None


@dataclass
class BoundingBox:
    """Bounding box in native pixels. x2 and y2 are exclusive."""
    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def width(self) -> int:
        """Calculate width."""
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        """Calculate height."""
        return self.y2 - self.y1

    @property
    def area(self) -> int:
        """Calculate area."""
        return max(0, self.width) * max(0, self.height)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def intersect(self, other: 'BoundingBox') -> 'BoundingBox':
        return BoundingBox(
            max(self.x1, other.x1),
            max(self.y1, other.y1),
            min(self.x2, other.x2),
            min(self.y2, other.y2)
        )

    def union(self, other: 'BoundingBox') -> 'BoundingBox':
        return BoundingBox(
            min(self.x1, other.x1),
            min(self.y1, other.y1),
            max(self.x2, other.x2),
            max(self.y2, other.y2)
        )

    def offset(self, dx: int, dy: int) -> 'BoundingBox':
        return BoundingBox(self.x1 + dx, self.y1 + dy, self.x2 + dx, self.y2 + dy)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'x1': self.x1,
            'y1': self.y1,
            'x2': self.x2,
            'y2': self.y2
        }


@dataclass(frozen=True)
class Band:
    """A candidate text line as a row range. end_row is exclusive."""
    start_row: int
    end_row: int

    @property
    def height(self) -> int:
        return self.end_row - self.start_row

    @property
    def center(self) -> float:
        return (self.start_row + self.end_row) / 2.0

    def overlap(self, lo: float, hi: float) -> float:
        """Number of rows shared with the half-open range [lo, hi)."""
        return max(0.0, min(self.end_row, hi) - max(self.start_row, lo))


@dataclass
class Component:
    """A flood-filled ink blob."""
    bbox: BoundingBox
    pixel_count: int


@dataclass
class InkMask:
    """Binary ink mask for an analysis window in native pixel space."""
    mask: np.ndarray
    ink_count: int
    mean_luminance: float
    origin: Tuple[int, int] = (0, 0)

    @property
    def height(self) -> int:
        return int(self.mask.shape[0])

    @property
    def width(self) -> int:
        return int(self.mask.shape[1])

    @property
    def coverage(self) -> float:
        """Fraction of window pixels classified as ink."""
        total = self.mask.size
        return self.ink_count / total if total else 0.0


@dataclass
class RegionResult:
    """Outcome of one region assembly call."""
    status: str
    regions: List[ExtractedRegion] = field(default_factory=list)
    masked_image: Optional[Image.Image] = None

    @property
    def detected(self) -> bool:
        return bool(self.regions) or self.masked_image is not None
