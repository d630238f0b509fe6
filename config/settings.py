"""
Configuration management using Pydantic Settings.

Environment variables:
- OCR_API_KEY: API key for the recognition endpoint
- OCR_SERVER_URL: Base URL of the OpenAI-compatible recognition endpoint
- OCR_MODEL: Vision model used for transcription
- OCR_MAX_TOKENS / OCR_TEMPERATURE: Generation parameters
- INK_* / BAND_* / REGION_*: Segmentation tuning
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Recognition service
    ocr_api_key: Optional[str] = Field(default=None)
    ocr_server_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/"
    )
    ocr_model: str = Field(default="gemini-2.5-flash")
    ocr_max_tokens: int = Field(default=2048)
    ocr_temperature: float = Field(default=0.1)

    # API Configuration
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8002)

    # Ink mask
    ink_contrast: float = Field(default=1.4)
    ink_adaptive: bool = Field(default=True)
    ink_adaptive_offset: float = Field(default=28.0)
    ink_fixed_threshold: float = Field(default=150.0)
    ink_denoise: bool = Field(default=True)
    ink_min_neighbors: int = Field(default=2)

    # Band detection
    band_window_pad: int = Field(default=24)
    band_smooth_window: int = Field(default=5)
    band_relative_threshold: float = Field(default=0.35)
    band_std_multiplier: float = Field(default=0.5)
    band_min_ink_per_row: int = Field(default=2)
    band_min_line_height: int = Field(default=6)
    band_collapsed_band_ratio: float = Field(default=0.8)
    band_min_gap_rows: int = Field(default=2)
    band_gap_ink_ratio: float = Field(default=0.1)

    # Components
    component_min_pixels: int = Field(default=6)
    component_min_overlap_ratio: float = Field(default=0.5)

    # Region assembly
    region_max_regions: int = Field(default=6)
    region_min_rect_width: int = Field(default=24)
    region_min_rect_height: int = Field(default=16)
    region_max_expansion_px: int = Field(default=40)
    region_min_ink_coverage: float = Field(default=0.002)
    region_mask_extra_width: int = Field(default=12)

    def get_ink_mask_params(self) -> dict:
        """Get ink mask parameters as dictionary."""
        return {
            'contrast': self.ink_contrast,
            'adaptive': self.ink_adaptive,
            'adaptive_offset': self.ink_adaptive_offset,
            'fixed_threshold': self.ink_fixed_threshold,
            'denoise': self.ink_denoise,
            'min_neighbors': self.ink_min_neighbors,
        }

    def get_band_params(self) -> dict:
        """Get band detector parameters as dictionary."""
        return {
            'window_pad': self.band_window_pad,
            'smooth_window': self.band_smooth_window,
            'relative_threshold': self.band_relative_threshold,
            'std_multiplier': self.band_std_multiplier,
            'min_ink_per_row': self.band_min_ink_per_row,
            'min_line_height': self.band_min_line_height,
            'collapsed_band_ratio': self.band_collapsed_band_ratio,
            'min_gap_rows': self.band_min_gap_rows,
            'gap_ink_ratio': self.band_gap_ink_ratio,
        }

    def get_component_params(self) -> dict:
        """Get component refiner parameters as dictionary."""
        return {
            'min_pixels': self.component_min_pixels,
            'min_overlap_ratio': self.component_min_overlap_ratio,
        }

    def get_region_params(self) -> dict:
        """Get region assembler parameters as dictionary."""
        return {
            'max_regions': self.region_max_regions,
            'min_rect_width': self.region_min_rect_width,
            'min_rect_height': self.region_min_rect_height,
            'max_expansion_px': self.region_max_expansion_px,
            'min_ink_coverage': self.region_min_ink_coverage,
            'mask_extra_width': self.region_mask_extra_width,
        }

    def get_ocr_params(self) -> dict:
        """Get recognition call parameters as dictionary."""
        return {
            'max_tokens': self.ocr_max_tokens,
            'temperature': self.ocr_temperature,
        }


# Global settings instance
settings = Settings()
