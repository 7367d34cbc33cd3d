"""Tests for JSON payload extraction from model output."""

import pytest

from llm.parsing import parse_json_payload, strip_fences


class TestStripFences:
    def test_json_fence(self):
        assert strip_fences('```json\n[1]\n```') == "[1]"

    def test_bare_fence(self):
        assert strip_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_fences("  [1]  ") == "[1]"


class TestParseJsonPayload:
    def test_plain_array(self):
        assert parse_json_payload('[{"a": 1}]') == [{"a": 1}]

    def test_fenced_with_prose(self):
        text = 'Sure!\n```json\n[{"a": 1}]\n```\nAnything else?'
        assert parse_json_payload(text) == [{"a": 1}]

    def test_array_in_prose(self):
        assert parse_json_payload("Result: [1, 2] as requested") == [1, 2]

    def test_object_in_prose(self):
        assert parse_json_payload('Here: {"k": "v"} ok') == {"k": "v"}

    @pytest.mark.parametrize("text", ["", "   ", "no json here", "[unclosed"])
    def test_unparseable(self, text):
        with pytest.raises(ValueError):
            parse_json_payload(text)
