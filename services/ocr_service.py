"""
OCR Service - Sends image payloads to the recognition model.

The model sits behind an OpenAI-compatible chat completions endpoint and
receives the image as a data URL next to a plain-language instruction.
"""
import logging
from typing import Optional

from openai import OpenAIError

from core.constants import DEFAULT_OCR_PARAMS, OCR_PROMPTS
from utils.image_utils import bytes_to_base64

logger = logging.getLogger(__name__)


class RecognitionError(Exception):
    """The recognition service could not be reached or refused the request."""


class OCRService:
    """Service for text recognition through a vision model."""

    def __init__(
        self,
        client,
        model: str = "gemini-2.5-flash",
        max_tokens: int = DEFAULT_OCR_PARAMS['max_tokens'],
        temperature: float = DEFAULT_OCR_PARAMS['temperature']
    ):
        """
        Initialize OCR service.

        Args:
            client: AsyncOpenAI client instance
            model: Vision model name
            max_tokens: Completion token limit
            temperature: Sampling temperature
        """
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def recognize(
        self,
        image_bytes: bytes,
        mime_type: str = DEFAULT_OCR_PARAMS['mime_type'],
        prompt: Optional[str] = None
    ) -> str:
        """
        Transcribe the text in one image payload.

        Args:
            image_bytes: Encoded image
            mime_type: MIME type of image_bytes
            prompt: Instruction for the model (default: generic extraction)

        Returns:
            Raw model text, trimmed; empty when the model returned nothing

        Raises:
            RecognitionError: On transport or service failure
        """
        if prompt is None:
            prompt = OCR_PROMPTS['default']

        img_b64 = bytes_to_base64(image_bytes)

        try:
            response = await self._call_model(img_b64, mime_type, prompt)
        except OpenAIError as e:
            logger.warning("Recognition request failed: %s", e)
            raise RecognitionError(str(e)) from e

        if not response.choices:
            return ''
        content = response.choices[0].message.content
        return content.strip() if content else ''

    async def _call_model(self, img_b64: str, mime_type: str, prompt: str):
        """Call the chat completions API with image and prompt."""
        return await self.client.chat.completions.create(
            model=self.model,
            messages=[{
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{img_b64}"}}
                ]
            }],
            max_tokens=self.max_tokens,
            temperature=self.temperature
        )
