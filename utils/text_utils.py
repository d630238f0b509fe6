"""
Text utilities for recognition responses.

The recognition model may answer with plain text, with text wrapped in a
markdown code fence, or with a JSON object carrying a ``text`` field.
"""
import json
import logging
import re

from core.constants import CODE_FENCE_PATTERN, TEXT_FIELD_PATTERN

logger = logging.getLogger(__name__)

_ESCAPES = {
    '\\\\': '\\',
    '\\"': '"',
    '\\n': '\n',
    '\\t': '\t',
}


def strip_code_fences(text: str) -> str:
    """
    Remove a leading and trailing markdown code fence.

    Args:
        text: Raw model output

    Returns:
        Content between the fences, or the input unchanged
    """
    return re.sub(CODE_FENCE_PATTERN, '', text.strip()).strip()


def unescape_text_field(value: str) -> str:
    """Undo the JSON escapes a model commonly emits inside a string."""
    return re.sub(r'\\[\\"nt]', lambda m: _ESCAPES[m.group(0)], value)


def extract_text_field(content: str) -> str:
    """
    Pull the ``text`` field out of a JSON-looking payload.

    Structured parsing is tried first; when the payload is not valid JSON
    a regex over ``"text": "..."`` is used instead.

    Args:
        content: Content starting with ``{`` or ``[``

    Returns:
        The text value, or an empty string when none is found
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        match = re.search(TEXT_FIELD_PATTERN, content, re.DOTALL)
        if match:
            return unescape_text_field(match.group(1))
        logger.warning("Recognition response looked like JSON but had no text field")
        return ''

    if isinstance(data, list):
        data = data[0] if data else {}
    if isinstance(data, dict):
        value = data.get('text')
        return value if isinstance(value, str) else ''
    return ''


def normalize_recognition_response(raw) -> str:
    """
    Normalize a recognition response into plain text.

    Args:
        raw: Model output (plain, fenced, or JSON with a text field)

    Returns:
        Trimmed text. An empty string means no text was recognized.
    """
    if not raw:
        return ''

    content = strip_code_fences(str(raw))

    if content.startswith('{') or content.startswith('['):
        content = extract_text_field(content)

    return content.strip()
