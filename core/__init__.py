"""Core package - Domain models and constants."""

from .models import (
    Point,
    Stroke,
    SelectionRect,
    ExtractedRegion,
    CapturedImage,
    BoundingBox,
    Band,
    Component,
    InkMask,
    RegionResult,
)
from .constants import (
    DEFAULT_INK_MASK_PARAMS,
    DEFAULT_BAND_PARAMS,
    DEFAULT_COMPONENT_PARAMS,
    DEFAULT_REGION_PARAMS,
    OCR_PROMPTS,
    DEFAULT_OCR_PARAMS,
)

__all__ = [
    'Point',
    'Stroke',
    'SelectionRect',
    'ExtractedRegion',
    'CapturedImage',
    'BoundingBox',
    'Band',
    'Component',
    'InkMask',
    'RegionResult',
    'DEFAULT_INK_MASK_PARAMS',
    'DEFAULT_BAND_PARAMS',
    'DEFAULT_COMPONENT_PARAMS',
    'DEFAULT_REGION_PARAMS',
    'OCR_PROMPTS',
    'DEFAULT_OCR_PARAMS',
]
