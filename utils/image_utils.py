"""
Image utilities for highlight extraction.

Handles decoding captured bytes, pixel access, cropping and encoding
payloads for the recognition service.
"""
import base64
from io import BytesIO

import numpy as np
from PIL import Image, ImageOps

from core.models import BoundingBox


def load_image_bytes(data: bytes) -> Image.Image:
    """
    Decode captured image bytes into an upright RGBA image.

    Args:
        data: Encoded image (PNG, JPEG, ...)

    Returns:
        PIL Image in RGBA mode with EXIF orientation applied
    """
    img = Image.open(BytesIO(data))

    # Fix EXIF orientation
    img = ImageOps.exif_transpose(img)

    return img.convert('RGBA')


def image_to_rgba_array(image: Image.Image) -> np.ndarray:
    """Pixel buffer of shape (H, W, 4), dtype uint8."""
    return np.asarray(image.convert('RGBA'), dtype=np.uint8)


def window_pixels(pixels: np.ndarray, box: BoundingBox) -> np.ndarray:
    """
    Slice the pixel buffer for a window.

    The box must already be clamped to the image.
    """
    return pixels[box.y1:box.y2, box.x1:box.x2]


def crop_image(image: Image.Image, box: BoundingBox) -> Image.Image:
    """Crop a native pixel box out of an image."""
    return image.crop((box.x1, box.y1, box.x2, box.y2))


def encode_png(image: Image.Image) -> bytes:
    """
    Encode an image as PNG bytes.

    Alpha is flattened onto white so transparent photos read as paper.
    """
    if image.mode in ('RGBA', 'LA', 'P'):
        rgba = image.convert('RGBA')
        background = Image.new('RGB', rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        image = background
    elif image.mode != 'RGB':
        image = image.convert('RGB')

    buf = BytesIO()
    image.save(buf, format='PNG')
    return buf.getvalue()


def bytes_to_base64(data: bytes) -> str:
    """Base64-encode bytes to an ASCII string."""
    return base64.b64encode(data).decode()


def decode_base64_image(b64_string: str) -> bytes:
    """
    Decode a base64 string, accepting ``data:`` URLs.

    Args:
        b64_string: Base64 payload or data URL

    Returns:
        Raw image bytes
    """
    if b64_string.startswith('data:') and ',' in b64_string:
        b64_string = b64_string.split(',', 1)[1]
    return base64.b64decode(b64_string)
