"""
Band detection from row projection profiles.

A band is a contiguous run of rows whose smoothed ink density stands out
from the rest of the analysis window, i.e. one candidate text line.
All functions here are pure; the same mask and window always give the
same bands.
"""
import logging
from typing import List, Optional, Tuple

import numpy as np

from core.constants import DEFAULT_BAND_PARAMS
from core.models import Band

logger = logging.getLogger(__name__)


def _merged(params: Optional[dict]) -> dict:
    p = dict(DEFAULT_BAND_PARAMS)
    if params:
        p.update(params)
    return p


def row_profile(
    mask: np.ndarray,
    row_range: Optional[Tuple[int, int]] = None,
    col_range: Optional[Tuple[int, int]] = None
) -> np.ndarray:
    """
    Count ink pixels per row.

    Args:
        mask: Boolean ink mask (H, W)
        row_range: Optional [start, end) rows to profile
        col_range: Optional [start, end) columns to count within

    Returns:
        Integer array with one count per profiled row
    """
    r0, r1 = row_range if row_range is not None else (0, mask.shape[0])
    c0, c1 = col_range if col_range is not None else (0, mask.shape[1])
    r0, r1 = max(0, r0), min(mask.shape[0], r1)
    c0, c1 = max(0, c0), min(mask.shape[1], c1)
    if r1 <= r0:
        return np.zeros(0, dtype=np.int64)
    if c1 <= c0:
        return np.zeros(r1 - r0, dtype=np.int64)
    return mask[r0:r1, c0:c1].sum(axis=1).astype(np.int64)


def smooth_profile(counts: np.ndarray, window: int) -> np.ndarray:
    """
    Centered moving average.

    Near the ends the average is taken over the rows that exist, so the
    edges are not pulled toward zero.
    """
    window = min(int(window), counts.size)
    if window <= 1:
        return counts.astype(np.float64)
    kernel = np.ones(window, dtype=np.float64)
    sums = np.convolve(counts.astype(np.float64), kernel, mode='same')
    support = np.convolve(np.ones(counts.size, dtype=np.float64), kernel, mode='same')
    return sums / support


def peak_threshold(smoothed: np.ndarray, relative_threshold: float, std_multiplier: float) -> float:
    """max(max * relative, mean + k * std) of the smoothed profile."""
    return float(max(
        smoothed.max() * relative_threshold,
        smoothed.mean() + std_multiplier * smoothed.std()
    ))


def _runs(flags: np.ndarray) -> List[Tuple[int, int]]:
    """Half-open [start, end) runs of True values."""
    runs = []
    start = None
    for i, flag in enumerate(flags):
        if flag and start is None:
            start = i
        elif not flag and start is not None:
            runs.append((start, i))
            start = None
    if start is not None:
        runs.append((start, len(flags)))
    return runs


def detect_bands(
    mask: np.ndarray,
    row_range: Optional[Tuple[int, int]] = None,
    col_range: Optional[Tuple[int, int]] = None,
    params: Optional[dict] = None
) -> List[Band]:
    """
    Extract text-line bands from an ink mask.

    Args:
        mask: Boolean ink mask of the analysis window
        row_range: Rows to analyse (defaults to the whole window)
        col_range: Columns to count ink in, usually the stroke's span
        params: Overrides for DEFAULT_BAND_PARAMS

    Returns:
        Bands in window-local rows, top to bottom
    """
    p = _merged(params)
    r0 = max(0, row_range[0]) if row_range is not None else 0

    counts = row_profile(mask, row_range, col_range)
    if counts.size == 0 or counts.max() == 0:
        return []

    smoothed = smooth_profile(counts, p['smooth_window'])
    threshold = peak_threshold(smoothed, p['relative_threshold'], p['std_multiplier'])

    qualifies = (smoothed > threshold) & (counts > p['min_ink_per_row'])

    bands = [
        Band(r0 + start, r0 + end)
        for start, end in _runs(qualifies)
        if end - start >= p['min_line_height']
    ]
    logger.debug("Band threshold %.2f over %d rows -> %d bands", threshold, counts.size, len(bands))
    return bands


def split_band_by_gaps(
    mask: np.ndarray,
    band: Band,
    col_range: Optional[Tuple[int, int]] = None,
    params: Optional[dict] = None
) -> List[Band]:
    """
    Split a band at runs of empty rows.

    A row counts as empty when it holds no more than min_ink_per_row ink
    pixels, or no more than gap_ink_ratio of the band's densest row;
    min_gap_rows consecutive empty rows separate two lines.

    Returns:
        Sub-bands taller than min_line_height (may be empty)
    """
    p = _merged(params)
    counts = row_profile(mask, (band.start_row, band.end_row), col_range)
    if counts.size == 0:
        return []

    floor = max(p['min_ink_per_row'], p['gap_ink_ratio'] * counts.max())
    inked = counts > floor
    runs = _runs(inked)

    # Join runs separated by gaps narrower than min_gap_rows
    joined: List[Tuple[int, int]] = []
    for start, end in runs:
        if joined and start - joined[-1][1] < p['min_gap_rows']:
            joined[-1] = (joined[-1][0], end)
        else:
            joined.append((start, end))

    return [
        Band(band.start_row + start, band.start_row + end)
        for start, end in joined
        if end - start > p['min_line_height']
    ]


def is_collapsed(bands: List[Band], window_height: int, params: Optional[dict] = None) -> bool:
    """True when a single band swallowed most of the window."""
    p = _merged(params)
    return (
        len(bands) == 1
        and window_height > 0
        and bands[0].height > p['collapsed_band_ratio'] * window_height
    )


def find_text_bands(
    mask: np.ndarray,
    row_range: Optional[Tuple[int, int]] = None,
    col_range: Optional[Tuple[int, int]] = None,
    params: Optional[dict] = None
) -> List[Band]:
    """
    Detect bands, falling back to a gap split when detection collapses.

    Args:
        mask: Boolean ink mask of the analysis window
        row_range: Rows to analyse
        col_range: Columns to count ink in
        params: Overrides for DEFAULT_BAND_PARAMS

    Returns:
        Bands in window-local rows, top to bottom
    """
    bands = detect_bands(mask, row_range, col_range, params)

    r0, r1 = row_range if row_range is not None else (0, mask.shape[0])
    window_height = min(mask.shape[0], r1) - max(0, r0)

    if is_collapsed(bands, window_height, params):
        split = split_band_by_gaps(mask, bands[0], col_range, params)
        logger.debug("Collapsed band %s split into %d bands", bands[0], len(split))
        if split:
            return split

    return bands
