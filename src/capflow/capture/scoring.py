"""
Scoring Engine

Turns heuristic signals (and, for emails, the inference collaborator's
suggestions) into bounded scores and discrete classifications.

Drive files get an additive relevance score. Email priority is not a
weighted sum: any single strong signal is enough to surface an item.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from capflow.capture import extract
from capflow.capture.artifacts import (
    ComplexityLevel,
    DriveFile,
    EmailCapture,
    SuggestedPriority,
)

DEFAULT_RELEVANCE_THRESHOLD = 0.5
HIGH_PRIORITY_CONFIDENCE = 0.8
ACTIONABLE_INTENTS = ("create_task", "schedule_event")

# (signal name, weight); the sum may exceed 1.0 and is clamped
RELEVANCE_WEIGHTS = {
    "task_keyword": 0.30,
    "workspace_doc": 0.20,
    "plain_text": 0.10,
    "recently_modified": 0.20,
    "shared": 0.10,
    "linked": 0.30,
}


@dataclass(frozen=True)
class RelevanceScore:
    """A drive file's relevance, the derived flag and the signals that fired."""

    score: float
    is_task_relevant: bool
    signals: tuple[str, ...]


def _combine(signals: tuple[str, ...]) -> float:
    total = sum(RELEVANCE_WEIGHTS[name] for name in signals)
    # Round away float noise (0.3 + 0.2 + 0.1 != 0.6) before thresholding
    return max(0.0, min(1.0, round(total, 6)))


def relevance_signals(
    file: DriveFile,
    now: datetime,
    recent_window: timedelta = extract.RECENT_WINDOW,
) -> tuple[str, ...]:
    """Names of the relevance signals that fire for ``file`` at ``now``."""
    fired = []
    if file.has_task_keywords:
        fired.append("task_keyword")
    if file.is_google_workspace_doc:
        fired.append("workspace_doc")
    if file.mime_type == extract.PLAIN_TEXT_MIME:
        fired.append("plain_text")
    if extract.is_recent(file.modified_at, now, recent_window):
        fired.append("recently_modified")
    if file.is_shared:
        fired.append("shared")
    if file.is_linked_to_task:
        fired.append("linked")
    return tuple(fired)


def task_relevance_score(
    file: DriveFile,
    now: datetime,
    recent_window: timedelta = extract.RECENT_WINDOW,
) -> float:
    """Additive relevance in [0.0, 1.0]."""
    return _combine(relevance_signals(file, now, recent_window))


def score_drive_file(
    file: DriveFile,
    now: datetime,
    threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
    recent_window: timedelta = extract.RECENT_WINDOW,
) -> RelevanceScore:
    """Score a drive file and derive ``is_task_relevant`` from the same value."""
    signals = relevance_signals(file, now, recent_window)
    score = _combine(signals)
    return RelevanceScore(
        score=score,
        is_task_relevant=score >= threshold,
        signals=signals,
    )


def is_high_priority(
    email: EmailCapture,
    confidence_threshold: float = HIGH_PRIORITY_CONFIDENCE,
) -> bool:
    """
    Effective high priority.

    True if the suggestion says important, the (clamped) confidence is
    strictly above the threshold, or the reader is overwhelmed.
    """
    confidence = email.confidence
    return (
        email.suggested_priority == SuggestedPriority.IMPORTANT
        or (confidence is not None and confidence > confidence_threshold)
        or email.emotional_context.is_overwhelmed
    )


def should_simplify(email: EmailCapture) -> bool:
    return (
        email.emotional_context.needs_task_breakdown
        or email.complexity_level == ComplexityLevel.COMPLEX
        or email.requires_focus
    )


def classify_priority(priority: Optional[str], urgency_level: Optional[str]) -> SuggestedPriority:
    """Map a raw suggested priority plus urgency level onto the three labels."""
    if urgency_level == "high" or priority == SuggestedPriority.IMPORTANT.value:
        return SuggestedPriority.IMPORTANT
    if urgency_level == "low" or priority == SuggestedPriority.LATER.value:
        return SuggestedPriority.LATER
    return SuggestedPriority.SIMPLE


def is_actionable(
    intent: Optional[str],
    confidence: Optional[float],
    min_confidence: float,
) -> bool:
    """
    Whether an inferred suggestion is worth turning into a candidate.

    Missing intent or confidence is treated as no signal, not as a veto.
    """
    if confidence is not None and confidence < min_confidence:
        return False
    if intent is not None and intent not in ACTIONABLE_INTENTS:
        return False
    return True
