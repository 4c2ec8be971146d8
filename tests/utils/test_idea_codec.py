"""Tests for idea description encoding."""

import logging

from roadmapper.utils.idea_codec import (
    FORMAT_JSON,
    FORMAT_TEXT,
    decode_idea,
    encode_idea,
    preview_idea,
)


class TestEncodeIdea:
    """SUT: encode_idea"""

    def test_plain_string_verbatim(self):
        """Strings are stored as-is with the text tag."""
        assert encode_idea("simple string") == ("simple string", FORMAT_TEXT)

    def test_structure_as_json(self):
        """Structured values become JSON text."""
        text, fmt = encode_idea({"summary": "AI architecture"})
        assert fmt == FORMAT_JSON
        assert text == '{"summary": "AI architecture"}'

    def test_none_is_empty_text(self):
        assert encode_idea(None) == ("", FORMAT_TEXT)


class TestDecodeIdea:
    """SUT: decode_idea"""

    def test_text_is_not_parsed(self):
        """A text-tagged value that looks like JSON stays a string."""
        assert decode_idea('{"a": 1}', FORMAT_TEXT) == '{"a": 1}'

    def test_numeric_text_stays_text(self):
        assert decode_idea("42", FORMAT_TEXT) == "42"

    def test_json_tag(self):
        assert decode_idea('{"key": "value"}', FORMAT_JSON) == {"key": "value"}

    def test_untagged_object_is_parsed(self):
        """Records without a tag are parsed when they look like JSON."""
        assert decode_idea('["a", "b"]') == ["a", "b"]

    def test_untagged_plain_text(self):
        assert decode_idea("a todo app") == "a todo app"

    def test_malformed_json_degrades(self, caplog):
        """Invalid JSON yields an empty placeholder and logs an error."""
        with caplog.at_level(logging.ERROR, logger="roadmapper"):
            value = decode_idea('{"invalid: json}', record_id="7")
        assert value == ""
        assert any("conversation 7" in r.getMessage() for r in caplog.records)


def test_preview_truncates_encoded_form():
    """Debug preview shows the first 100 characters of the encoded value."""
    assert preview_idea({"test": "object"}) == '{"test": "object"}'
    assert len(preview_idea("x" * 500)) == 100
