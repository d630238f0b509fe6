"""
Constants and configuration values for highlight extraction.
"""

# Ink mask builder defaults
DEFAULT_INK_MASK_PARAMS = {
    'contrast': 1.4,
    'adaptive': True,
    'adaptive_offset': 28.0,
    'fixed_threshold': 150.0,
    'denoise': True,
    'min_neighbors': 2,
}

# Adaptive threshold is clamped into this luminance range
THRESHOLD_BOUNDS = (40.0, 220.0)

# Rec. 709 luma coefficients (R, G, B)
LUMINANCE_WEIGHTS = (0.2126, 0.7152, 0.0722)

# Band detector defaults
DEFAULT_BAND_PARAMS = {
    'window_pad': 24,             # Rows/cols added around the stroke box
    'smooth_window': 5,           # Centered moving average width (rows)
    'relative_threshold': 0.35,   # Fraction of the profile peak
    'std_multiplier': 0.5,        # mean + k * std
    'min_ink_per_row': 2,         # Raw ink floor for a qualifying row
    'min_line_height': 6,         # Bands shorter than this are dropped
    'collapsed_band_ratio': 0.8,  # Single band covering this much of the window is suspect
    'min_gap_rows': 2,            # Empty rows that separate lines in the fallback split
    'gap_ink_ratio': 0.1,         # Rows under this share of the band's peak count are empty
}

# Component refiner defaults
DEFAULT_COMPONENT_PARAMS = {
    'min_pixels': 6,
    'min_overlap_ratio': 0.5,
    'roi_pad': 2,
}

# Region assembler defaults
DEFAULT_REGION_PARAMS = {
    'max_regions': 6,
    'selection_margin_px': 6,
    'stroke_pad_ratio': 0.5,      # Fraction of the native stroke width
    'small_stroke_ratio': 0.6,    # Stroke height / estimated line height
    'band_overlap_ratio': 0.3,    # Vertical overlap needed to select a band
    'min_rect_width': 24,
    'min_rect_height': 16,
    'max_expansion_px': 40,
    'min_ink_coverage': 0.002,
    'mask_extra_width': 12,       # Native px added to the stroke width when masking
    'densify_step': 2.0,
}

# Region assembler outcomes
REGION_STATUS_DETECTED = 'detected'
REGION_STATUS_NO_INK = 'no_ink'
REGION_STATUS_NO_TEXT = 'no_text'
REGION_STATUS_INVALID = 'invalid'

# Highlight output modes
HIGHLIGHT_MODE_TIGHT = 'tight'
HIGHLIGHT_MODE_MASKED = 'masked'

# Recognition prompts
OCR_PROMPTS = {
    'strict': (
        'Transcribe only the text that is visibly written or printed in this image. '
        'Do not guess or complete missing text. '
        'If only part of the text is legible, return only that partial text. '
        'Return plain text with line breaks preserved.'
    ),
    'default': 'Extract text from this image.',
}

# Default recognition parameters
DEFAULT_OCR_PARAMS = {
    'max_tokens': 2048,
    'temperature': 0.1,
    'mime_type': 'image/png',
}

# Recognition response patterns
CODE_FENCE_PATTERN = r'^```[A-Za-z0-9_-]*[ \t]*\n?|\n?```[ \t]*$'
TEXT_FIELD_PATTERN = r'"text"\s*:\s*"((?:[^"\\]|\\.)*)"'
