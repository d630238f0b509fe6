"""
Pydantic schemas for API request/response validation.
"""
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from core.models import Point, SelectionRect, Stroke


class OCRRequest(BaseModel):
    """Request body for the recognition relay."""
    imageBase64: Optional[Any] = None
    mimeType: str = "image/png"
    prompt: Optional[str] = None


class OCRResponse(BaseModel):
    """Recognized text; empty when nothing was read."""
    text: str = ""


class PointModel(BaseModel):
    x: float
    y: float


class StrokeModel(BaseModel):
    """A highlighter stroke in normalized coordinates."""
    points: List[PointModel]
    lineWidth: float = 4.0

    def to_stroke(self) -> Stroke:
        return Stroke.from_points((Point(p.x, p.y) for p in self.points), line_width=self.lineWidth)


class SelectionModel(BaseModel):
    """A normalized selection rectangle."""
    x: float
    y: float
    width: float
    height: float

    def to_selection(self) -> SelectionRect:
        return SelectionRect(x=self.x, y=self.y, width=self.width, height=self.height)


class AnnotationRequest(BaseModel):
    """Image plus one annotation and the surface it was drawn on."""
    imageBase64: str
    mimeType: str = "image/png"
    renderedWidth: Optional[float] = Field(default=None, ge=0)
    renderedHeight: Optional[float] = Field(default=None, ge=0)
    strokes: Optional[List[StrokeModel]] = None
    selection: Optional[SelectionModel] = None
    mode: Literal["tight", "masked"] = "tight"


class RegionModel(BaseModel):
    x: float
    y: float
    width: float
    height: float


class RegionsResponse(BaseModel):
    """Regions computed for an annotation."""
    status: str
    regions: List[RegionModel] = []
    maskedImageBase64: Optional[str] = None


class ExtractRequest(AnnotationRequest):
    """Run a full extraction session for one annotation."""
    kind: Literal["full_image", "selection", "highlight"] = "highlight"


class ExtractResponse(BaseModel):
    """Terminal session state after an extraction."""
    state: str
    text: str = ""
    reason: Optional[str] = None
    regionCount: int = 0
