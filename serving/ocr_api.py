"""
OCR API for highlight extraction.

Provides endpoints for:
- Relaying an image and instruction to the recognition model
- Computing extraction regions for a selection or highlight
- Running a complete extraction session
"""
import binascii
import logging

from fastapi import Depends, FastAPI, HTTPException
from PIL import UnidentifiedImageError

from api.dependencies import get_ocr_service, get_region_assembler
from api.schemas import (
    AnnotationRequest,
    ExtractRequest,
    ExtractResponse,
    OCRRequest,
    OCRResponse,
    RegionModel,
    RegionsResponse,
)
from core.constants import OCR_PROMPTS
from segmentation.coordinates import CoordinateMapper, DisplaySurface
from segmentation.regions import RegionAssembler
from services.extraction_session import ExtractionKind, ExtractionSession, NothingToExtractError
from services.ocr_service import OCRService, RecognitionError
from utils.image_utils import bytes_to_base64, decode_base64_image, encode_png, load_image_bytes

logger = logging.getLogger(__name__)


ocr_app = FastAPI(
    title="Highlight OCR API",
    description="Region extraction for highlighted page photos and text recognition",
    version="1.0.0"
)


def _decode_image(payload: str) -> bytes:
    try:
        return decode_base64_image(payload)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Invalid imageBase64")


def _surface_for(request: AnnotationRequest, width: int, height: int) -> DisplaySurface:
    # No rendered size means the annotation was drawn over the native bitmap
    if request.renderedWidth is None or request.renderedHeight is None:
        return DisplaySurface(width, height)
    return DisplaySurface(request.renderedWidth, request.renderedHeight)


@ocr_app.post("/ai-ocr", response_model=OCRResponse)
async def recognize_image(
    request: OCRRequest,
    service: OCRService = Depends(get_ocr_service)
):
    """Send one image to the recognition model and return its text."""
    if not request.imageBase64 or not isinstance(request.imageBase64, str):
        raise HTTPException(status_code=400, detail="Missing imageBase64")

    image_bytes = _decode_image(request.imageBase64)
    prompt = request.prompt or OCR_PROMPTS['default']

    try:
        text = await service.recognize(image_bytes, request.mimeType, prompt)
    except RecognitionError:
        raise HTTPException(status_code=500, detail="AI request failed")

    return OCRResponse(text=text or "")


@ocr_app.post("/regions", response_model=RegionsResponse)
async def compute_regions(
    request: AnnotationRequest,
    assembler: RegionAssembler = Depends(get_region_assembler)
):
    """Compute normalized extraction regions for one annotation."""
    if not request.strokes and request.selection is None:
        raise HTTPException(status_code=400, detail="Provide strokes or a selection")

    try:
        image = load_image_bytes(_decode_image(request.imageBase64))
    except UnidentifiedImageError:
        raise HTTPException(status_code=400, detail="Unreadable image")

    mapper = CoordinateMapper(image.width, image.height, _surface_for(request, image.width, image.height))

    if request.strokes:
        strokes = [s.to_stroke() for s in request.strokes]
        result = assembler.assemble_highlight(strokes, image, mapper, request.mode)
    else:
        result = assembler.assemble_selection(request.selection.to_selection(), mapper)

    masked_b64 = None
    if result.masked_image is not None:
        masked_b64 = bytes_to_base64(encode_png(result.masked_image))

    return RegionsResponse(
        status=result.status,
        regions=[RegionModel(**r.to_dict()) for r in result.regions],
        maskedImageBase64=masked_b64
    )


@ocr_app.post("/extract", response_model=ExtractResponse)
async def extract_text(
    request: ExtractRequest,
    service: OCRService = Depends(get_ocr_service),
    assembler: RegionAssembler = Depends(get_region_assembler)
):
    """Run one extraction session and report its terminal state."""
    image_bytes = _decode_image(request.imageBase64)

    session = ExtractionSession(recognizer=service, assembler=assembler, highlight_mode=request.mode)
    session.set_image(image_bytes, request.mimeType)

    if request.renderedWidth is not None and request.renderedHeight is not None:
        session.resize_surface(request.renderedWidth, request.renderedHeight)
    else:
        try:
            image = load_image_bytes(image_bytes)
        except UnidentifiedImageError:
            raise HTTPException(status_code=400, detail="Unreadable image")
        session.resize_surface(image.width, image.height)

    kind = ExtractionKind(request.kind)
    if kind == ExtractionKind.HIGHLIGHT:
        session.commit_strokes([s.to_stroke() for s in request.strokes or []])
    elif kind == ExtractionKind.SELECTION and request.selection is not None:
        session.set_selection(request.selection.to_selection())

    try:
        if kind == ExtractionKind.HIGHLIGHT:
            outcome = await session.extract_highlight()
        elif kind == ExtractionKind.SELECTION:
            outcome = await session.extract_selection()
        else:
            outcome = await session.extract_full_image()
    except NothingToExtractError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ExtractResponse(
        state=outcome.state.value,
        text=outcome.text,
        reason=outcome.reason,
        regionCount=outcome.region_count
    )


@ocr_app.get("/")
async def root():
    """API root endpoint."""
    return {
        "name": "Highlight OCR API",
        "version": "1.0.0",
        "endpoints": {
            "recognize": "POST /ai-ocr",
            "regions": "POST /regions",
            "extract": "POST /extract"
        }
    }


# Export app for uvicorn
app = ocr_app
