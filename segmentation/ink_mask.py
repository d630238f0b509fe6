"""
Ink mask builder.

Classifies the pixels of an analysis window into ink and background:
luminance extraction, contrast stretch around mid-grey, an adaptive (or
fixed) threshold, then an optional 8-neighbour denoise pass that drops
isolated specks.
"""
from typing import Optional, Tuple

import numpy as np

from core.constants import DEFAULT_INK_MASK_PARAMS, LUMINANCE_WEIGHTS, THRESHOLD_BOUNDS
from core.models import InkMask


def compute_luminance(pixels: np.ndarray) -> np.ndarray:
    """
    Per-pixel luminance of an RGB(A) buffer.

    Transparent pixels are composited over white.

    Args:
        pixels: Array of shape (H, W, 3) or (H, W, 4)

    Returns:
        Float array of shape (H, W) in [0, 255]
    """
    rgb = pixels[..., :3].astype(np.float32)
    wr, wg, wb = LUMINANCE_WEIGHTS
    lum = wr * rgb[..., 0] + wg * rgb[..., 1] + wb * rgb[..., 2]

    if pixels.shape[-1] == 4:
        alpha = pixels[..., 3].astype(np.float32) / 255.0
        lum = lum * alpha + 255.0 * (1.0 - alpha)

    return lum


def adjust_contrast(luminance: np.ndarray, contrast: float) -> np.ndarray:
    """L' = clamp((L - 128) * contrast + 128, 0, 255)."""
    return np.clip((luminance - 128.0) * contrast + 128.0, 0.0, 255.0)


def compute_threshold(
    mean_luminance: float,
    adaptive: bool = True,
    offset: float = DEFAULT_INK_MASK_PARAMS['adaptive_offset'],
    fixed_threshold: float = DEFAULT_INK_MASK_PARAMS['fixed_threshold']
) -> float:
    """
    Ink threshold for a window.

    Args:
        mean_luminance: Mean adjusted luminance of the window
        adaptive: Derive the threshold from the mean when True
        offset: Distance below the mean for adaptive mode
        fixed_threshold: Threshold used when adaptive is False

    Returns:
        Threshold; pixels darker than it are ink
    """
    if not adaptive:
        return float(fixed_threshold)
    lo, hi = THRESHOLD_BOUNDS
    return float(min(max(mean_luminance - offset, lo), hi))


def count_ink_neighbors(mask: np.ndarray) -> np.ndarray:
    """Number of ink pixels among each pixel's 8 neighbours."""
    padded = np.pad(mask.astype(np.uint8), 1, mode='constant')
    h, w = mask.shape
    counts = np.zeros((h, w), dtype=np.uint8)
    for dy in (0, 1, 2):
        for dx in (0, 1, 2):
            if dy == 1 and dx == 1:
                continue
            counts += padded[dy:dy + h, dx:dx + w]
    return counts


def denoise_mask(mask: np.ndarray, min_neighbors: int) -> np.ndarray:
    """Keep an ink pixel only if it has at least min_neighbors ink neighbours."""
    if mask.size == 0:
        return mask
    return mask & (count_ink_neighbors(mask) >= min_neighbors)


def build_ink_mask(
    pixels: np.ndarray,
    origin: Tuple[int, int] = (0, 0),
    params: Optional[dict] = None
) -> InkMask:
    """
    Build the binary ink mask for a window.

    Pure function of its inputs.

    Args:
        pixels: RGB(A) buffer for the window, shape (H, W, C)
        origin: Native (x, y) of the window's top-left pixel
        params: Overrides for DEFAULT_INK_MASK_PARAMS

    Returns:
        InkMask with the mask, ink pixel count and mean luminance
    """
    p = dict(DEFAULT_INK_MASK_PARAMS)
    if params:
        p.update(params)

    if pixels.size == 0:
        empty = np.zeros(pixels.shape[:2], dtype=bool)
        return InkMask(mask=empty, ink_count=0, mean_luminance=255.0, origin=origin)

    adjusted = adjust_contrast(compute_luminance(pixels), p['contrast'])
    mean_luminance = float(adjusted.mean())

    threshold = compute_threshold(
        mean_luminance,
        adaptive=p['adaptive'],
        offset=p['adaptive_offset'],
        fixed_threshold=p['fixed_threshold']
    )
    mask = adjusted < threshold

    if p['denoise']:
        mask = denoise_mask(mask, p['min_neighbors'])

    return InkMask(
        mask=mask,
        ink_count=int(mask.sum()),
        mean_luminance=mean_luminance,
        origin=origin
    )
