"""
Unit tests for utils.image_utils module.
"""
import base64
from io import BytesIO

import pytest
from PIL import Image

from core.models import BoundingBox
from utils.image_utils import (
    bytes_to_base64,
    crop_image,
    decode_base64_image,
    encode_png,
    image_to_rgba_array,
    load_image_bytes,
    window_pixels,
)


def _png_bytes(image):
    buf = BytesIO()
    image.save(buf, format='PNG')
    return buf.getvalue()


class TestLoadImageBytes:
    """Tests for load_image_bytes function."""

    def test_returns_rgba(self):
        data = _png_bytes(Image.new('RGB', (30, 20), color='red'))

        img = load_image_bytes(data)

        assert img.mode == 'RGBA'
        assert img.size == (30, 20)

    def test_garbage_raises(self):
        with pytest.raises(OSError):
            load_image_bytes(b'not an image')


class TestPixelAccess:
    """Tests for image_to_rgba_array and window_pixels functions."""

    def test_window_slice(self):
        img = Image.new('RGB', (40, 30), color='white')
        img.putpixel((12, 7), (0, 0, 0))

        pixels = image_to_rgba_array(img)
        window = window_pixels(pixels, BoundingBox(10, 5, 20, 15))

        assert pixels.shape == (30, 40, 4)
        assert window.shape == (10, 10, 4)
        assert tuple(window[2, 2, :3]) == (0, 0, 0)

    def test_crop(self):
        img = Image.new('RGB', (40, 30), color='white')

        assert crop_image(img, BoundingBox(5, 5, 25, 15)).size == (20, 10)


class TestEncodePng:
    """Tests for encode_png function."""

    def test_transparent_flattened_to_white(self):
        img = Image.new('RGBA', (4, 4), (0, 0, 0, 0))

        decoded = Image.open(BytesIO(encode_png(img)))

        assert decoded.mode == 'RGB'
        assert decoded.getpixel((0, 0)) == (255, 255, 255)

    def test_grayscale_converted(self):
        decoded = Image.open(BytesIO(encode_png(Image.new('L', (4, 4), 0))))

        assert decoded.mode == 'RGB'
        assert decoded.getpixel((1, 1)) == (0, 0, 0)


class TestBase64:
    """Tests for base64 helpers."""

    def test_plain_base64(self):
        assert decode_base64_image(bytes_to_base64(b'abc')) == b'abc'

    def test_data_url(self):
        payload = "data:image/jpeg;base64," + base64.b64encode(b'\xff\xd8').decode()

        assert decode_base64_image(payload) == b'\xff\xd8'
