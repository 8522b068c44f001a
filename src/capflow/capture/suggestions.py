"""
Suggestion Bundles

Parses what the inference collaborator returns into a ``SuggestionBundle``.
The collaborator is not trusted: confidence is clamped, unknown labels are
mapped, and missing required fields fall back to defaults (or raise in
strict mode) so a flaky model never blocks capture.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from capflow.capture.artifacts import (
    ComplexityLevel,
    EmotionalAnalysis,
    SuggestedPriority,
    as_utc,
    clamp_unit,
)
from capflow.capture.scoring import classify_priority
from capflow.errors import MalformedSuggestionError
from capflow.utils.logging import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS = ("title", "priority", "confidence", "complexity")


@dataclass(frozen=True)
class SuggestionBundle:
    """Structured suggestion for one piece of captured text."""

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: SuggestedPriority = SuggestedPriority.SIMPLE
    tags: tuple[str, ...] = ()
    confidence: Optional[float] = None
    intent: Optional[str] = None
    requires_focus: bool = False
    complexity: ComplexityLevel = ComplexityLevel.MODERATE
    emotional_context: EmotionalAnalysis = field(default_factory=EmotionalAnalysis)
    missing: tuple[str, ...] = ()

    @property
    def is_degraded(self) -> bool:
        return bool(self.missing)


def parse_suggestion_json(text: str, strict: bool = False) -> SuggestionBundle:
    """Decode a JSON document and parse it as a suggestion bundle."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedSuggestionError(f"Suggestion is not valid JSON: {e}") from e
    return parse_suggestion(payload, strict=strict)


def parse_suggestion(payload: Any, strict: bool = False) -> SuggestionBundle:
    """
    Parse an inference payload.

    Accepts the nested shape the intent prompt asks for::

        {"intent": ..., "confidence": ...,
         "extracted_data": {"title", "description", "due_date", "priority", "tags"},
         "context_analysis": {"urgency_level", "complexity", "requires_focus"},
         "emotional_analysis": {...}}

    Flat payloads (the same keys at top level) are accepted too.
    """
    if not isinstance(payload, dict):
        raise MalformedSuggestionError(
            f"Suggestion payload must be an object, got {type(payload).__name__}"
        )

    extracted = _section(payload, "extracted_data")
    context = _section(payload, "context_analysis")

    missing = tuple(
        name
        for name, value in (
            ("title", extracted.get("title")),
            ("priority", extracted.get("priority") or context.get("urgency_level")),
            ("confidence", payload.get("confidence")),
            ("complexity", context.get("complexity")),
        )
        if value is None
    )

    if missing:
        if strict:
            raise MalformedSuggestionError(
                f"Suggestion is missing required fields: {', '.join(missing)}",
                missing=missing,
            )
        logger.warning("suggestion_malformed", missing=list(missing))

    return SuggestionBundle(
        title=_optional_str(extracted.get("title")),
        description=_optional_str(extracted.get("description")),
        due_date=_parse_datetime(extracted.get("due_date")),
        priority=classify_priority(extracted.get("priority"), context.get("urgency_level")),
        tags=tuple(str(tag) for tag in extracted.get("tags") or ()),
        confidence=clamp_unit(_optional_float(payload.get("confidence"))),
        intent=_optional_str(payload.get("intent")),
        requires_focus=context.get("requires_focus") is True,
        complexity=_parse_complexity(context.get("complexity")),
        emotional_context=parse_emotional_analysis(
            payload.get("emotional_analysis") or payload.get("emotional_context") or {}
        ),
        missing=missing,
    )


def parse_emotional_analysis(payload: Any) -> EmotionalAnalysis:
    """
    Parse the emotional-analysis section.

    Every field has a neutral default; a section that doesn't validate
    is logged and replaced by the neutral analysis.
    """
    if not isinstance(payload, dict):
        logger.warning("emotional_analysis_malformed", type=type(payload).__name__)
        return EmotionalAnalysis()

    sections = {
        key: value
        for key, value in payload.items()
        if key in EmotionalAnalysis.model_fields and isinstance(value, dict)
    }
    try:
        return EmotionalAnalysis.model_validate(
            {key: _known_keys(key, value) for key, value in sections.items()}
        )
    except ValidationError as e:
        logger.warning("emotional_analysis_malformed", errors=e.error_count())
        return EmotionalAnalysis()


def fallback_bundle(title: str) -> SuggestionBundle:
    """Bundle used when no usable suggestion could be obtained."""
    return SuggestionBundle(title=title, missing=REQUIRED_FIELDS)


def _known_keys(section: str, value: dict) -> dict:
    model = EmotionalAnalysis.model_fields[section].annotation
    fields = getattr(model, "model_fields", {})
    return {k: v for k, v in value.items() if k in fields and v is not None}


def _section(payload: dict, name: str) -> dict:
    section = payload.get(name)
    if isinstance(section, dict):
        return section
    return payload


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("suggestion_confidence_invalid", value=repr(value))
        return None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    try:
        return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        logger.warning("suggestion_due_date_invalid", value=str(value))
        return None


def _parse_complexity(value: Any) -> ComplexityLevel:
    try:
        return ComplexityLevel(value)
    except ValueError:
        return ComplexityLevel.MODERATE
