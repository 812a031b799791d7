"""Tests for story_parser.py — code fence stripping, validation, fallback."""

import json

import pytest

from story_parser import (
    FALLBACK_CHOICES,
    FALLBACK_MEMORY_TIP,
    FALLBACK_STORY,
    Fallback,
    Parsed,
    parse_story_response,
    story_payload,
    strip_code_fences,
)


# ===================================================================
# strip_code_fences
# ===================================================================


class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'

    def test_none(self):
        assert strip_code_fences(None) == ""


# ===================================================================
# parse_story_response
# ===================================================================


class TestParse:
    def test_valid_returned_unchanged(self, sample_story, sample_story_text):
        result = parse_story_response(sample_story_text)
        assert isinstance(result, Parsed)
        assert result.data == sample_story

    def test_extra_fields_kept(self, sample_story):
        sample_story["mood"] = "solennel"
        result = parse_story_response(json.dumps(sample_story))
        assert isinstance(result, Parsed)
        assert result.data["mood"] == "solennel"

    def test_fenced_equals_unfenced(self, sample_story_text):
        fenced = parse_story_response(f"```json\n{sample_story_text}\n```")
        plain = parse_story_response(sample_story_text)
        assert isinstance(fenced, Parsed)
        assert fenced.data == plain.data

    def test_non_json_falls_back_with_raw_story(self):
        raw = "Le palais s'étend devant vous, mais je ne parle pas JSON."
        result = parse_story_response(raw)
        assert isinstance(result, Fallback)
        payload = result.to_payload()
        assert payload["story"] == raw
        assert payload["choices"] == FALLBACK_CHOICES
        assert payload["memoryTip"] == FALLBACK_MEMORY_TIP

    @pytest.mark.parametrize("count", [0, 2, 4])
    def test_wrong_choice_count(self, sample_story, count):
        sample_story["choices"] = [f"Choix {i}" for i in range(count)]
        raw = json.dumps(sample_story)
        result = parse_story_response(raw)
        assert isinstance(result, Fallback)
        assert result.to_payload()["story"] == raw

    def test_choices_not_list(self, sample_story):
        sample_story["choices"] = "a, b, c"
        assert isinstance(parse_story_response(json.dumps(sample_story)), Fallback)

    def test_missing_story(self, sample_story):
        sample_story["story"] = ""
        assert isinstance(parse_story_response(json.dumps(sample_story)), Fallback)

    def test_json_array_is_invalid(self):
        assert isinstance(parse_story_response("[1, 2, 3]"), Fallback)

    def test_empty_input_uses_canned_story(self):
        result = parse_story_response("")
        assert isinstance(result, Fallback)
        assert result.to_payload()["story"] == FALLBACK_STORY

    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    def test_non_standard_constants_fall_back(self, constant):
        raw = f'{{"story": "s", "choices": ["a", "b", {constant}], "memoryTip": "m"}}'
        result = parse_story_response(raw)
        assert isinstance(result, Fallback)
        assert result.to_payload()["story"] == raw

    def test_nan_story_falls_back(self):
        raw = '{"story": NaN, "choices": [1, 2, 3], "memoryTip": "m"}'
        assert isinstance(parse_story_response(raw), Fallback)

    @pytest.mark.parametrize("story", [42, ["a"], {"text": "a"}, True])
    def test_story_must_be_string(self, sample_story, story):
        sample_story["story"] = story
        assert isinstance(parse_story_response(json.dumps(sample_story)), Fallback)

    def test_deep_nesting_falls_back(self):
        raw = "[" * 5000
        result = parse_story_response(raw)
        assert isinstance(result, Fallback)
        assert result.to_payload()["story"] == raw

    def test_reason_recorded(self):
        result = parse_story_response('{"story": "x", "choices": ["a"]}')
        assert "got 1" in result.reason


# ===================================================================
# story_payload
# ===================================================================


class TestStoryPayload:
    def test_parsed(self, sample_story):
        assert story_payload(Parsed(sample_story)) is sample_story

    def test_fallback_always_three_choices(self):
        payload = story_payload(Fallback("brut"))
        assert payload["story"] == "brut"
        assert len(payload["choices"]) == 3

    def test_fallback_choices_are_copies(self):
        payload = story_payload(Fallback(""))
        payload["choices"].append("extra")
        assert len(FALLBACK_CHOICES) == 3
