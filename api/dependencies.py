"""
API Dependencies - Dependency injection for FastAPI.

Provides reusable dependencies for the recognition client and the
segmentation engine.
"""
from fastapi import HTTPException
from openai import AsyncOpenAI

from config.settings import settings
from segmentation.regions import RegionAssembler
from services.ocr_service import OCRService


def get_ocr_client() -> AsyncOpenAI:
    """
    Dependency for OCR client.

    Returns:
        AsyncOpenAI client configured for the recognition endpoint
    """
    return AsyncOpenAI(
        api_key=settings.ocr_api_key,
        base_url=settings.ocr_server_url
    )


def get_ocr_service() -> OCRService:
    """Dependency for OCR service."""
    return build_ocr_service()


def build_ocr_service(client: AsyncOpenAI = None) -> OCRService:
    """
    Build the OCR service.

    Args:
        client: AsyncOpenAI client (optional, will create if not provided)

    Returns:
        OCRService instance

    Raises:
        HTTPException: 500 when no API key is configured
    """
    if not settings.ocr_api_key:
        raise HTTPException(status_code=500, detail="OCR_API_KEY is not set")

    if client is None:
        client = get_ocr_client()

    return OCRService(
        client=client,
        model=settings.ocr_model,
        **settings.get_ocr_params()
    )


def get_region_assembler() -> RegionAssembler:
    """
    Dependency for the region assembler.

    Returns:
        RegionAssembler tuned from settings
    """
    return RegionAssembler(
        ink_params=settings.get_ink_mask_params(),
        band_params=settings.get_band_params(),
        component_params=settings.get_component_params(),
        region_params=settings.get_region_params()
    )
