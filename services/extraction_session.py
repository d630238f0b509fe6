"""
Extraction Session - Per-capture state machine.

Tracks the drawing mode and the committed annotation for one captured
image, runs the region assembler, submits crops (or the masked image) to
the recognition service and normalizes what comes back.

    Idle -> Extracting -> Succeeded(text) | SucceededEmpty | Failed(reason)

Terminal states return to Idle when acknowledged, or to Extracting on
retry. Only one extraction may be in flight at a time.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from PIL import Image

from core.constants import (
    HIGHLIGHT_MODE_TIGHT,
    OCR_PROMPTS,
    REGION_STATUS_INVALID,
)
from core.models import CapturedImage, ExtractedRegion, Point, SelectionRect, Stroke
from segmentation.coordinates import CoordinateMapper, DisplaySurface
from segmentation.regions import RegionAssembler
from services.ocr_service import RecognitionError
from utils.bbox_utils import image_bounds
from utils.image_utils import crop_image, encode_png, load_image_bytes
from utils.text_utils import normalize_recognition_response

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Couldn't extract text. Check your connection and try again."
UNREADABLE_IMAGE_MESSAGE = "This image couldn't be read. Try another photo."


class SessionState(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    SUCCEEDED = "succeeded"
    SUCCEEDED_EMPTY = "succeeded_empty"
    FAILED = "failed"


class ExtractionKind(str, Enum):
    FULL_IMAGE = "full_image"
    SELECTION = "selection"
    HIGHLIGHT = "highlight"


class DrawingMode(str, Enum):
    NONE = "none"
    HIGHLIGHT = "highlight"
    SELECT = "select"


TERMINAL_STATES = (SessionState.SUCCEEDED, SessionState.SUCCEEDED_EMPTY, SessionState.FAILED)


class ExtractionBusyError(Exception):
    """An extraction is already in flight for this session."""


class NothingToExtractError(Exception):
    """No image, or no annotation for the requested extraction kind."""


@dataclass
class ExtractionOutcome:
    """Snapshot of the session after an extraction call."""
    state: SessionState
    kind: Optional[ExtractionKind] = None
    text: str = ""
    reason: Optional[str] = None
    region_count: int = 0


def _clamp_point(point: Point) -> Point:
    return Point(min(max(point.x, 0.0), 1.0), min(max(point.y, 0.0), 1.0))


class ExtractionSession:
    """State machine for extracting text from one captured image."""

    def __init__(
        self,
        recognizer,
        assembler: Optional[RegionAssembler] = None,
        highlight_mode: str = HIGHLIGHT_MODE_TIGHT,
        prompt: str = OCR_PROMPTS['strict']
    ):
        """
        Initialize extraction session.

        Args:
            recognizer: Object with ``async recognize(image_bytes, mime_type, prompt)``
            assembler: Region assembler (default parameters if omitted)
            highlight_mode: "tight" or "masked" output for highlights
            prompt: Instruction sent with every recognition call
        """
        self.recognizer = recognizer
        self.assembler = assembler or RegionAssembler()
        self.highlight_mode = highlight_mode
        self.prompt = prompt

        self.surface = DisplaySurface()
        self.image: Optional[CapturedImage] = None
        self.mode = DrawingMode.NONE
        self.strokes: Tuple[Stroke, ...] = ()
        self.selection: Optional[SelectionRect] = None

        self.state = SessionState.IDLE
        self.text = ""
        self.reason: Optional[str] = None
        self.last_kind: Optional[ExtractionKind] = None
        self.region_count = 0

        self._active_stroke: Optional[Stroke] = None
        self._selection_anchor: Optional[Point] = None

    # ------------------------------------------------------------------
    # Image and surface
    # ------------------------------------------------------------------

    def set_image(self, data: bytes, mime_type: str = "image/png", extracted_text: Optional[str] = None) -> None:
        """Replace the captured image; annotations and results are discarded."""
        self._ensure_not_busy()
        self.image = CapturedImage(data=data, mime_type=mime_type, extracted_text=extracted_text)
        self.clear_annotations()
        self.state = SessionState.IDLE
        self.text = ""
        self.reason = None
        self.last_kind = None
        self.region_count = 0

    def clear_image(self) -> None:
        self._ensure_not_busy()
        self.image = None
        self.clear_annotations()
        self.state = SessionState.IDLE
        self.last_kind = None

    def resize_surface(self, width: float, height: float) -> None:
        """Record the rendered size of the drawing surface."""
        self.surface.width = width
        self.surface.height = height

    def set_manual_text(self, text: str) -> None:
        """Store text typed by the user in place of recognition output."""
        if self.image is not None and text.strip():
            self.image.extracted_text = text.strip()

    # ------------------------------------------------------------------
    # Annotation gestures
    # ------------------------------------------------------------------

    def set_mode(self, mode: DrawingMode) -> None:
        """Switch drawing mode; the other mode's annotation is dropped."""
        self.mode = DrawingMode(mode)
        self._active_stroke = None
        self._selection_anchor = None
        if self.mode == DrawingMode.HIGHLIGHT:
            self.selection = None
        elif self.mode == DrawingMode.SELECT:
            self.strokes = ()

    def begin_stroke(self, point: Point, line_width: float = 4.0) -> None:
        if self.mode != DrawingMode.HIGHLIGHT or self.image is None:
            return
        self._active_stroke = Stroke(line_width=line_width)
        self._active_stroke.add_point(_clamp_point(point))

    def extend_stroke(self, point: Point) -> None:
        if self._active_stroke is not None:
            self._active_stroke.add_point(_clamp_point(point))

    def end_stroke(self) -> None:
        """Commit the active stroke."""
        stroke, self._active_stroke = self._active_stroke, None
        if stroke is not None and not stroke.is_empty:
            self.strokes = self.strokes + (stroke,)

    def begin_selection(self, point: Point) -> None:
        if self.mode != DrawingMode.SELECT or self.image is None:
            return
        self._selection_anchor = _clamp_point(point)
        self.selection = None

    def update_selection(self, point: Point) -> None:
        if self._selection_anchor is not None:
            self.selection = SelectionRect.from_corners(self._selection_anchor, _clamp_point(point))

    def end_selection(self, point: Optional[Point] = None) -> None:
        if point is not None:
            self.update_selection(point)
        self._selection_anchor = None
        if self.selection is not None and self.selection.is_empty:
            self.selection = None

    def commit_strokes(self, strokes: Sequence[Stroke]) -> None:
        """Replace the committed strokes in one step (non-interactive callers)."""
        self._ensure_not_busy()
        self.mode = DrawingMode.HIGHLIGHT
        self.selection = None
        self.strokes = tuple(s for s in strokes if not s.is_empty)

    def set_selection(self, selection: Optional[SelectionRect]) -> None:
        """Replace the selection in one step (non-interactive callers)."""
        self._ensure_not_busy()
        self.mode = DrawingMode.SELECT
        self.strokes = ()
        self.selection = selection if selection is not None and not selection.is_empty else None

    def clear_annotations(self) -> None:
        self.strokes = ()
        self.selection = None
        self._active_stroke = None
        self._selection_anchor = None

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    async def extract_full_image(self) -> ExtractionOutcome:
        return await self._start(ExtractionKind.FULL_IMAGE)

    async def extract_selection(self) -> ExtractionOutcome:
        return await self._start(ExtractionKind.SELECTION)

    async def extract_highlight(self) -> ExtractionOutcome:
        return await self._start(ExtractionKind.HIGHLIGHT)

    async def retry(self) -> ExtractionOutcome:
        """Replay the last attempted extraction with the stored annotation."""
        if self.last_kind is None:
            raise NothingToExtractError("Nothing has been extracted yet")
        return await self._start(self.last_kind)

    def acknowledge(self) -> None:
        """Return a terminal state to Idle."""
        if self.state in TERMINAL_STATES:
            self.state = SessionState.IDLE

    def outcome(self) -> ExtractionOutcome:
        return ExtractionOutcome(
            state=self.state,
            kind=self.last_kind,
            text=self.text,
            reason=self.reason,
            region_count=self.region_count
        )

    def _ensure_not_busy(self) -> None:
        if self.state == SessionState.EXTRACTING:
            raise ExtractionBusyError("An extraction is already running")

    async def _start(self, kind: ExtractionKind) -> ExtractionOutcome:
        self._ensure_not_busy()
        if self.image is None:
            raise NothingToExtractError("No image captured")
        if kind == ExtractionKind.SELECTION and self.selection is None:
            raise NothingToExtractError("No selection drawn")
        if kind == ExtractionKind.HIGHLIGHT and not self.strokes:
            raise NothingToExtractError("No highlight drawn")

        self.state = SessionState.EXTRACTING
        self.last_kind = kind
        self.text = ""
        self.reason = None
        self.region_count = 0
        logger.info("Extraction started: %s", kind.value)

        try:
            await self._run(kind)
        except RecognitionError as e:
            logger.warning("Extraction failed: %s", e)
            self._finish(SessionState.FAILED, reason=FAILURE_MESSAGE)
        except OSError as e:
            logger.warning("Captured image unreadable: %s", e)
            self._finish(SessionState.FAILED, reason=UNREADABLE_IMAGE_MESSAGE)
        except Exception:
            self._finish(SessionState.FAILED, reason=FAILURE_MESSAGE)
            raise

        return self.outcome()

    async def _run(self, kind: ExtractionKind) -> None:
        captured = self.image

        if kind == ExtractionKind.FULL_IMAGE:
            payloads = [(captured.data, captured.mime_type)]
        else:
            image = load_image_bytes(captured.data)
            mapper = CoordinateMapper(image.width, image.height, self.surface)

            if kind == ExtractionKind.SELECTION:
                result = self.assembler.assemble_selection(self.selection, mapper)
            else:
                result = self.assembler.assemble_highlight(self.strokes, image, mapper, self.highlight_mode)

            if result.status == REGION_STATUS_INVALID:
                logger.debug("Annotation could not be mapped; nothing to do")
                self.state = SessionState.IDLE
                return

            if not result.detected:
                logger.info("No ink detected under the annotation (%s)", result.status)
                self._finish(SessionState.SUCCEEDED_EMPTY)
                return

            if result.masked_image is not None:
                payloads = [(encode_png(result.masked_image), "image/png")]
                self.region_count = 1
            else:
                payloads = [
                    (encode_png(crop), "image/png")
                    for crop in self._crop_regions(image, mapper, result.regions)
                ]
                self.region_count = len(result.regions)

        texts = []
        for data, mime_type in payloads:
            raw = await self.recognizer.recognize(data, mime_type, self.prompt)
            text = normalize_recognition_response(raw)
            if text:
                texts.append(text)

        text = "\n".join(texts)
        if text:
            captured.extracted_text = text
            self._finish(SessionState.SUCCEEDED, text=text)
        else:
            self._finish(SessionState.SUCCEEDED_EMPTY)

    def _crop_regions(
        self,
        image: Image.Image,
        mapper: CoordinateMapper,
        regions: List[ExtractedRegion]
    ) -> List[Image.Image]:
        bounds = image_bounds(image.width, image.height)
        crops = []
        for region in regions:
            native = mapper.to_native(region)
            if native is None:
                continue
            box = native.to_box().intersect(bounds)
            if not box.is_empty:
                crops.append(crop_image(image, box))
        return crops

    def _finish(self, state: SessionState, text: str = "", reason: Optional[str] = None) -> None:
        self.state = state
        self.text = text
        self.reason = reason
        logger.info("Extraction finished: %s", state.value)
