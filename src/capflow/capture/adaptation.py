"""
ADHD Adaptation Layer

Turns a scored capture into user-facing guidance: how to break it down,
when to act on it, and whether to simplify it. Everything here is a pure
function of the capture's fields and the injected ``now``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from capflow.capture import scoring
from capflow.capture.artifacts import (
    BrainDump,
    CaptureArtifact,
    ComplexityLevel,
    DriveFile,
    EmailCapture,
)
from capflow.config import PipelineConfig

# Breakdown guidance, in the order it is offered
SCHEDULE_FOCUS = "schedule focused time"
BREAK_INTO_SUBTASKS = "break into sub-tasks"
TAKE_A_BREAK = "take a break first"
START_EASY = "start with the easiest part"

# Recommended action times
WHEN_CALMER = "when feeling calmer"
DURING_FOCUS = "during current focus session"
WITHIN_TWO_HOURS = "within 2 hours"
TODAY = "today"
THIS_WEEK = "this week"
WHEN_ENERGY_ALLOWS = "when energy allows"


@dataclass(frozen=True)
class AnnotatedCandidate:
    """
    A capture ready to be offered for conversion into a task.

    ``score`` is the drive relevance score or the email's clamped
    confidence; brain dumps carry no score. ``is_task_relevant`` is only
    set for drive files and is computed from the same score.
    """

    artifact: CaptureArtifact
    title: str
    score: Optional[float]
    is_task_relevant: Optional[bool]
    is_high_priority: bool
    should_simplify: bool
    breakdown: tuple[str, ...]
    recommended_action_time: str
    potential_tasks: tuple[str, ...] = ()

    @property
    def artifact_id(self) -> str:
        return self.artifact.id

    @property
    def kind(self) -> str:
        return self.artifact.kind

    def summary(self) -> dict:
        """Flat view used for event payloads and CLI output."""
        return {
            "artifact_id": self.artifact_id,
            "kind": self.kind,
            "title": self.title,
            "score": self.score,
            "is_task_relevant": self.is_task_relevant,
            "is_high_priority": self.is_high_priority,
            "should_simplify": self.should_simplify,
            "breakdown": list(self.breakdown),
            "recommended_action_time": self.recommended_action_time,
            "potential_tasks": list(self.potential_tasks),
        }


def breakdown_suggestions(email: EmailCapture) -> list[str]:
    """Ordered breakdown guidance; empty unless the email should be simplified."""
    if not scoring.should_simplify(email):
        return []

    recommendations = email.emotional_context.recommendations
    suggestions = []
    if email.requires_focus:
        suggestions.append(SCHEDULE_FOCUS)
    if email.complexity_level == ComplexityLevel.COMPLEX:
        suggestions.append(BREAK_INTO_SUBTASKS)
    if recommendations.suggest_break:
        suggestions.append(TAKE_A_BREAK)
    if recommendations.provide_encouragement:
        suggestions.append(START_EASY)
    return suggestions


def recommended_action_time(email: EmailCapture, now: datetime) -> str:
    """
    First matching rule wins:

    1. overwhelmed                      -> when feeling calmer
    2. requires focus and hyperfocused  -> during current focus session
    3. urgent keywords                  -> within 2 hours
    4. due within 1 day (inclusive)     -> today
    5. due within 3 days (inclusive)    -> this week
    6. otherwise                        -> when energy allows
    """
    context = email.emotional_context
    if context.is_overwhelmed:
        return WHEN_CALMER
    if email.requires_focus and context.adhd_indicators.hyperfocus_state:
        return DURING_FOCUS
    if email.is_urgent:
        return WITHIN_TWO_HOURS

    due = email.suggested_due_date
    if due is not None:
        remaining = due - now
        if remaining <= timedelta(days=1):
            return TODAY
        if remaining <= timedelta(days=3):
            return THIS_WEEK

    return WHEN_ENERGY_ALLOWS


def annotate(
    artifact: CaptureArtifact,
    now: datetime,
    settings: Optional[PipelineConfig] = None,
) -> AnnotatedCandidate:
    """Score and adapt any capture variant into an ``AnnotatedCandidate``."""
    settings = settings or PipelineConfig()

    if isinstance(artifact, EmailCapture):
        return _annotate_email(artifact, now, settings)
    if isinstance(artifact, DriveFile):
        return _annotate_drive_file(artifact, now, settings)
    if isinstance(artifact, BrainDump):
        return _annotate_brain_dump(artifact)
    raise TypeError(f"Not a capture artifact: {type(artifact).__name__}")


def _annotate_email(email: EmailCapture, now: datetime, settings: PipelineConfig) -> AnnotatedCandidate:
    return AnnotatedCandidate(
        artifact=email,
        title=email.suggested_title or email.subject,
        score=email.confidence,
        is_task_relevant=None,
        is_high_priority=scoring.is_high_priority(email, settings.high_priority_confidence),
        should_simplify=scoring.should_simplify(email),
        breakdown=tuple(breakdown_suggestions(email)),
        recommended_action_time=recommended_action_time(email, now),
    )


def _annotate_drive_file(file: DriveFile, now: datetime, settings: PipelineConfig) -> AnnotatedCandidate:
    relevance = scoring.score_drive_file(
        file,
        now,
        threshold=settings.relevance_threshold,
        recent_window=timedelta(days=settings.recent_days),
    )
    return AnnotatedCandidate(
        artifact=file,
        title=file.name,
        score=relevance.score,
        is_task_relevant=relevance.is_task_relevant,
        is_high_priority=False,
        should_simplify=False,
        breakdown=(),
        recommended_action_time=WHEN_ENERGY_ALLOWS,
    )


def _annotate_brain_dump(dump: BrainDump) -> AnnotatedCandidate:
    items = tuple(dump.potential_tasks)
    first_line = dump.content.strip().splitlines()[0]
    return AnnotatedCandidate(
        artifact=dump,
        title=items[0] if items else first_line,
        score=None,
        is_task_relevant=None,
        is_high_priority=False,
        should_simplify=False,
        breakdown=(),
        recommended_action_time=WHEN_ENERGY_ALLOWS,
        potential_tasks=items,
    )
