"""
Tests for suggestion bundle parsing.
"""

import json
from datetime import datetime, timezone

import pytest

from capflow.capture.artifacts import ComplexityLevel, SuggestedPriority
from capflow.capture.suggestions import (
    REQUIRED_FIELDS,
    fallback_bundle,
    parse_emotional_analysis,
    parse_suggestion,
    parse_suggestion_json,
)
from capflow.errors import MalformedSuggestionError


def full_payload() -> dict:
    return {
        "intent": "create_task",
        "confidence": 0.92,
        "extracted_data": {
            "title": "Send the Q3 report",
            "description": "Finance needs it",
            "due_date": "2024-03-16T09:00:00Z",
            "priority": "simple",
            "tags": ["work", "finance"],
        },
        "context_analysis": {
            "urgency_level": "high",
            "complexity": "complex",
            "requires_focus": True,
        },
        "emotional_analysis": {
            "emotional_state": {"primary_emotion": "anxious", "intensity": 0.7},
            "adhd_indicators": {"overwhelm_level": 0.8},
            "recommendations": {"break_down_tasks": True},
        },
    }


class TestParseSuggestion:
    """Tests for the nested and flat payload shapes."""

    def test_full_payload(self):
        bundle = parse_suggestion(full_payload())
        assert bundle.title == "Send the Q3 report"
        assert bundle.description == "Finance needs it"
        assert bundle.due_date == datetime.fromisoformat("2024-03-16T09:00:00+00:00")
        assert bundle.priority == SuggestedPriority.IMPORTANT  # urgency high
        assert bundle.tags == ("work", "finance")
        assert bundle.confidence == 0.92
        assert bundle.intent == "create_task"
        assert bundle.requires_focus
        assert bundle.complexity == ComplexityLevel.COMPLEX
        assert bundle.emotional_context.is_overwhelmed
        assert bundle.emotional_context.needs_task_breakdown
        assert not bundle.is_degraded

    def test_flat_payload(self):
        bundle = parse_suggestion(
            {"title": "Call Noa", "priority": "later", "confidence": 0.7, "complexity": "simple"}
        )
        assert bundle.title == "Call Noa"
        assert bundle.priority == SuggestedPriority.LATER
        assert bundle.complexity == ComplexityLevel.SIMPLE
        assert not bundle.missing

    def test_confidence_clamped(self):
        payload = full_payload()
        payload["confidence"] = 4
        assert parse_suggestion(payload).confidence == 1.0

    def test_unparseable_confidence_is_no_signal(self):
        payload = full_payload()
        payload["confidence"] = "very"
        bundle = parse_suggestion(payload)
        assert bundle.confidence is None
        assert "confidence" not in bundle.missing

    def test_unknown_complexity_defaults(self):
        payload = full_payload()
        payload["context_analysis"]["complexity"] = "gnarly"
        assert parse_suggestion(payload).complexity == ComplexityLevel.MODERATE

    def test_bad_due_date_dropped(self):
        payload = full_payload()
        payload["extracted_data"]["due_date"] = "next-ish week"
        assert parse_suggestion(payload).due_date is None

    def test_due_date_without_offset_is_utc(self):
        payload = full_payload()
        payload["extracted_data"]["due_date"] = "2024-03-16T09:00:00"
        assert parse_suggestion(payload).due_date == datetime(2024, 3, 16, 9, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["false", "true", 1, None])
    def test_requires_focus_needs_a_real_boolean(self, value):
        payload = full_payload()
        payload["context_analysis"]["requires_focus"] = value
        assert not parse_suggestion(payload).requires_focus


class TestDegradedSuggestions:
    """Tests for the lenient and strict handling of missing fields."""

    def test_lenient_defaults(self):
        bundle = parse_suggestion({"intent": "create_task"})
        assert bundle.missing == REQUIRED_FIELDS
        assert bundle.is_degraded
        assert bundle.title is None
        assert bundle.priority == SuggestedPriority.SIMPLE
        assert bundle.complexity == ComplexityLevel.MODERATE
        assert not bundle.requires_focus
        assert bundle.confidence is None

    def test_urgency_counts_as_priority(self):
        payload = full_payload()
        del payload["extracted_data"]["priority"]
        assert "priority" not in parse_suggestion(payload).missing

    def test_strict_raises(self):
        payload = full_payload()
        del payload["context_analysis"]["complexity"]
        with pytest.raises(MalformedSuggestionError) as exc_info:
            parse_suggestion(payload, strict=True)
        assert exc_info.value.missing == ("complexity",)

    def test_strict_accepts_complete(self):
        assert not parse_suggestion(full_payload(), strict=True).is_degraded

    def test_non_object_raises(self):
        with pytest.raises(MalformedSuggestionError):
            parse_suggestion(["not", "an", "object"])


class TestParseSuggestionJson:
    """Tests for decoding raw JSON text."""

    def test_valid(self):
        assert parse_suggestion_json(json.dumps(full_payload())).title == "Send the Q3 report"

    def test_invalid_json_always_raises(self):
        with pytest.raises(MalformedSuggestionError):
            parse_suggestion_json("{not json")


class TestParseEmotionalAnalysis:
    """Tests for the emotional-analysis section."""

    def test_partial_section(self):
        analysis = parse_emotional_analysis({"cognitive_load": {"level": "high"}})
        assert analysis.cognitive_load.level == "high"
        assert analysis.emotional_state.primary_emotion == "calm"

    def test_unknown_keys_ignored(self):
        analysis = parse_emotional_analysis(
            {"mood_ring": {}, "adhd_indicators": {"overwhelm_level": 0.9, "sparkle": True}}
        )
        assert analysis.is_overwhelmed

    def test_invalid_values_fall_back_to_neutral(self):
        analysis = parse_emotional_analysis({"adhd_indicators": {"overwhelm_level": "lots"}})
        assert not analysis.is_overwhelmed

    def test_not_a_dict(self):
        assert parse_emotional_analysis("calm").emotional_state.primary_emotion == "calm"


class TestFallbackBundle:
    """Tests for the fallback bundle."""

    def test_fallback(self):
        bundle = fallback_bundle("Subject line")
        assert bundle.title == "Subject line"
        assert bundle.missing == REQUIRED_FIELDS
        assert bundle.confidence is None
        assert bundle.intent is None
