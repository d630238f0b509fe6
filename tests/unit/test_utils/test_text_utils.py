"""
Unit tests for utils.text_utils module.
"""
import pytest

from utils.text_utils import (
    extract_text_field,
    normalize_recognition_response,
    strip_code_fences,
    unescape_text_field,
)


class TestStripCodeFences:
    """Tests for strip_code_fences function."""

    def test_fenced_with_language(self):
        assert strip_code_fences('```json\n{"text": "a"}\n```') == '{"text": "a"}'

    def test_fenced_without_language(self):
        assert strip_code_fences('```\nHello\n```') == 'Hello'

    def test_plain_text_unchanged(self):
        assert strip_code_fences('Hello world') == 'Hello world'


class TestUnescapeTextField:
    """Tests for unescape_text_field function."""

    def test_common_escapes(self):
        assert unescape_text_field('a\\nb\\tc \\"q\\" \\\\') == 'a\nb\tc "q" \\'


class TestExtractTextField:
    """Tests for extract_text_field function."""

    def test_valid_json(self):
        assert extract_text_field('{"text": "Line 1\\nLine 2"}') == 'Line 1\nLine 2'

    def test_json_list(self):
        assert extract_text_field('[{"text": "first"}, {"text": "second"}]') == 'first'

    def test_json_without_text(self):
        assert extract_text_field('{"content": "x"}') == ''

    def test_malformed_json_uses_regex(self):
        """Test a trailing comma still yields the text field."""
        assert extract_text_field('{"text": "He said \\"hi\\"",}') == 'He said "hi"'

    def test_malformed_json_without_field(self):
        assert extract_text_field('{oops') == ''


class TestNormalizeRecognitionResponse:
    """Tests for normalize_recognition_response function."""

    def test_fenced_json(self):
        """Test fenced JSON with a text field becomes plain text."""
        raw = '```json\n{"text":"Hello\\nWorld"}\n```'

        assert normalize_recognition_response(raw) == 'Hello\nWorld'

    def test_plain_text_trimmed(self):
        assert normalize_recognition_response('  Some words \n') == 'Some words'

    def test_fenced_plain_text(self):
        assert normalize_recognition_response('```\nJust text\n```') == 'Just text'

    @pytest.mark.parametrize("raw", [None, '', '   ', '```\n```', '{"text": ""}'])
    def test_empty_results(self, raw):
        assert normalize_recognition_response(raw) == ''
