"""Segmentation package - Highlight-to-region extraction engine."""

from .coordinates import (
    DisplaySurface,
    PixelRect,
    CoordinateMapper,
)

from .ink_mask import (
    compute_luminance,
    adjust_contrast,
    compute_threshold,
    denoise_mask,
    build_ink_mask,
)

from .bands import (
    row_profile,
    smooth_profile,
    detect_bands,
    split_band_by_gaps,
    find_text_bands,
)

from .components import (
    find_components,
    horizontal_overlap_ratio,
    refine_region,
)

from .masking import (
    draw_highlight_mask,
    build_masked_image,
)

from .regions import (
    RegionAssembler,
    merge_bands_to_limit,
    finalize_box,
)
