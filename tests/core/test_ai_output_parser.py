"""Tests for JSON extraction from AI output."""

from kaiban_board.core.ai_output_parser import extract_json_block


class TestExtractJsonBlock:
    """Test cases for extract_json_block."""

    def test_plain_json(self):
        assert extract_json_block('{"summary": "ok"}') == {"summary": "ok"}

    def test_json_inside_prose_and_fences(self):
        """Test JSON wrapped in markdown and text is found."""
        text = 'Here is my review:\n```json\n{"overallRating": "pass", "findings": []}\n```\nDone.'
        assert extract_json_block(text) == {"overallRating": "pass", "findings": []}

    def test_braces_inside_strings(self):
        """Test braces in string literals do not end the object early."""
        text = 'result: {"code": "if (x) { return \\"}\\"; }", "n": 1} trailing'
        assert extract_json_block(text) == {"code": 'if (x) { return "}"; }', "n": 1}

    def test_skips_invalid_candidates(self):
        """Test a non-JSON brace group is skipped in favour of a later object."""
        text = 'use {curly} syntax, then {"ok": true}'
        assert extract_json_block(text) == {"ok": True}

    def test_nested_objects(self):
        text = 'x {"a": {"b": {"c": 1}}} y'
        assert extract_json_block(text) == {"a": {"b": {"c": 1}}}

    def test_no_json(self):
        """Test None is returned instead of raising."""
        assert extract_json_block("no json here") is None
        assert extract_json_block("") is None
        assert extract_json_block('{"unterminated": ') is None
