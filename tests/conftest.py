"""
Pytest configuration and global fixtures.
"""
import sys
from io import BytesIO
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.models import Point, Stroke
from segmentation.coordinates import CoordinateMapper, DisplaySurface


GLYPH_WIDTH = 10
GLYPH_GAP = 6
TEXT_LEFT = 40
TEXT_RIGHT = 360


def draw_page(width, height, lines, left=TEXT_LEFT, right=TEXT_RIGHT):
    """
    White page with black "glyph" blocks laid out along text lines.

    Args:
        width: Page width
        height: Page height
        lines: (top, bottom) row pairs, bottom exclusive
        left: First glyph column
        right: Glyphs end at or before this column

    Returns:
        RGBA PIL Image
    """
    arr = np.full((height, width, 3), 255, dtype=np.uint8)
    for top, bottom in lines:
        x = left
        while x + GLYPH_WIDTH <= right:
            arr[top:bottom, x:x + GLYPH_WIDTH] = 0
            x += GLYPH_WIDTH + GLYPH_GAP
    return Image.fromarray(arr, 'RGB').convert('RGBA')


def to_png(image):
    buf = BytesIO()
    image.convert('RGB').save(buf, format='PNG')
    return buf.getvalue()


def native_stroke(image, points, line_width=4.0):
    """Stroke from native pixel points on an image drawn 1:1."""
    w, h = image.size
    return Stroke.from_points([Point(x / w, y / h) for x, y in points], line_width=line_width)


class FakeRecognizer:
    """In-memory stand-in for the recognition service."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.calls = []

    async def recognize(self, image_bytes, mime_type="image/png", prompt=None):
        self.calls.append({
            'size': Image.open(BytesIO(image_bytes)).size,
            'image': Image.open(BytesIO(image_bytes)).convert('RGB'),
            'mime_type': mime_type,
            'prompt': prompt,
        })
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return ""


@pytest.fixture
def three_line_page():
    """400x300 page with three 20px lines separated by 8px gaps."""
    return draw_page(400, 300, [(80, 100), (108, 128), (136, 156)])


@pytest.fixture
def nine_line_page():
    """400x320 page with nine 20px lines separated by 8px gaps."""
    return draw_page(400, 320, [(40 + 28 * i, 60 + 28 * i) for i in range(9)])


@pytest.fixture
def blank_page():
    return Image.new('RGBA', (400, 300), (255, 255, 255, 255))


@pytest.fixture
def mapper_for():
    """Build a 1:1 mapper for an image."""
    def _build(image, rendered=None):
        w, h = image.size
        surface = DisplaySurface(*(rendered or (w, h)))
        return CoordinateMapper(w, h, surface)
    return _build


@pytest.fixture
def fake_recognizer():
    return FakeRecognizer()


@pytest.fixture
def page_factory():
    return draw_page


@pytest.fixture
def stroke_factory():
    return native_stroke


@pytest.fixture
def png_encoder():
    return to_png


@pytest.fixture
def recognizer_factory():
    return FakeRecognizer
