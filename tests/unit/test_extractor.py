"""
Unit tests for turning model replies into verdicts.

The extractor must never raise for malformed input: every bad reply
comes back as None.
"""

import json

import pytest

from ai_content_detector.core.analysis.extractor import (
    ResponseExtractor,
    extract_verdict,
    strip_code_fence,
)
from ai_content_detector.core.analysis.models import Verdict


class TestStripCodeFence:
    """Tests for fence removal."""

    def test_json_tagged_fence(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_untagged_fence(self):
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_on_one_line(self):
        assert strip_code_fence('```{"a": 1}```') == '{"a": 1}'

    def test_surrounding_whitespace_is_trimmed(self):
        assert strip_code_fence('  \n```json\n{"a": 1}\n```\n  ') == '{"a": 1}'

    def test_unfenced_text_is_only_trimmed(self):
        assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'

    def test_fence_inside_prose_is_left_alone(self):
        text = 'Here you go:\n```json\n{"a": 1}\n```'
        assert strip_code_fence(text) == text


class TestExtractVerdict:
    """Tests for the full parse-and-validate path."""

    def test_plain_json_yields_unmodified_verdict(self):
        raw = '{"determination":"Likely AI-Generated","confidence":82,"rationale":"text"}'

        verdict = extract_verdict(raw)

        assert verdict == Verdict(
            determination="Likely AI-Generated",
            confidence=82,
            rationale="text",
        )

    def test_fenced_json_is_parsed(self, verdict_json):
        verdict = extract_verdict(f"```json\n{verdict_json}\n```")

        assert verdict is not None
        assert verdict.confidence == 82
        assert "\n" in verdict.rationale

    def test_not_json_yields_none(self):
        assert extract_verdict("not json") is None

    def test_missing_fields_yield_none(self):
        assert extract_verdict('```json\n{"determination":"X"}\n```') is None

    def test_empty_input_yields_none(self):
        assert extract_verdict("") is None
        assert extract_verdict("   ") is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"determination": "", "confidence": 50, "rationale": "r"},
            {"determination": "Inconclusive", "confidence": "50", "rationale": "r"},
            {"determination": "Inconclusive", "confidence": True, "rationale": "r"},
            {"determination": "Inconclusive", "confidence": None, "rationale": "r"},
            {"determination": "Inconclusive", "confidence": 50, "rationale": ""},
            {"determination": "Inconclusive", "confidence": 50},
            {"determination": "Inconclusive", "confidence": 50, "rationale": ["a", "b"]},
            {"determination": "Inconclusive", "confidence": 50, "rationale": {"summary": "r"}},
            {"determination": ["Inconclusive"], "confidence": 50, "rationale": "r"},
            {"determination": 1, "confidence": 50, "rationale": "r"},
        ],
    )
    def test_invalid_field_values_yield_none(self, payload):
        assert extract_verdict(json.dumps(payload)) is None

    def test_deeply_nested_json_yields_none(self):
        assert extract_verdict("[" * 100000) is None
        assert extract_verdict("{\"a\": " * 100000) is None

    @pytest.mark.parametrize("raw", ["[1, 2, 3]", '"a string"', "42", "null"])
    def test_non_object_json_yields_none(self, raw):
        assert extract_verdict(raw) is None

    def test_float_confidence_is_accepted(self):
        verdict = extract_verdict('{"determination":"Inconclusive","confidence":49.5,"rationale":"r"}')
        assert verdict is not None
        assert verdict.confidence == 49.5

    def test_out_of_range_confidence_passes_through(self):
        verdict = extract_verdict('{"determination":"Inconclusive","confidence":250,"rationale":"r"}')
        assert verdict.confidence == 250

    def test_extra_fields_are_dropped(self):
        raw = '{"determination":"Inconclusive","confidence":1,"rationale":"r","model":"x"}'
        assert extract_verdict(raw).to_dict() == {
            "determination": "Inconclusive",
            "confidence": 1,
            "rationale": "r",
        }

    def test_reextracting_refenced_output_gives_equal_verdict(self, verdict_json):
        """Wrapping a verdict's own JSON in a fresh fence round-trips."""
        first = extract_verdict(verdict_json)

        refenced = "```json\n" + json.dumps(first.to_dict()) + "\n```"

        assert extract_verdict(refenced) == first

    def test_same_input_same_output(self, verdict_json):
        assert extract_verdict(verdict_json) == extract_verdict(verdict_json)


class TestResponseExtractor:
    def test_delegates_to_extract_verdict(self, verdict_json):
        assert ResponseExtractor().extract(verdict_json) == extract_verdict(verdict_json)

    def test_bad_input_returns_none(self):
        assert ResponseExtractor().extract("```json\nnope\n```") is None
