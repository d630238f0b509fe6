"""Utilities package - Helper functions for image, bbox, and text processing."""

from .image_utils import (
    load_image_bytes,
    image_to_rgba_array,
    window_pixels,
    crop_image,
    encode_png,
    bytes_to_base64,
    decode_base64_image
)

from .bbox_utils import (
    box_from_points,
    pad_box,
    image_bounds,
    expand_to_min_size,
    fit_within,
    merge_boxes,
    draw_bounding_boxes,
)

from .text_utils import (
    strip_code_fences,
    extract_text_field,
    normalize_recognition_response
)

__all__ = [
    # Image utils
    'load_image_bytes',
    'image_to_rgba_array',
    'window_pixels',
    'crop_image',
    'encode_png',
    'bytes_to_base64',
    'decode_base64_image',

    # BBox utils
    'box_from_points',
    'pad_box',
    'image_bounds',
    'expand_to_min_size',
    'fit_within',
    'merge_boxes',
    'draw_bounding_boxes',

    # Text utils
    'strip_code_fences',
    'extract_text_field',
    'normalize_recognition_response'
]
