"""
Capture Artifacts

Immutable value types for everything that enters the pipeline: brain
dumps, emails and Drive files. The three variants share a small
capability surface (content, timestamp, convertibility) through the
``Capturable`` protocol and are combined as a tagged union on ``kind``.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Protocol, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from capflow.capture import extract
from capflow.errors import InvalidCaptureError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Read a datetime without an offset as UTC."""
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class SourceType(str, Enum):
    """Where a capture came from. Values double as the union tag."""
    BRAIN_DUMP = "brain_dump"
    EMAIL = "email"
    DRIVE_FILE = "drive_file"


class SuggestedPriority(str, Enum):
    """Priority labels produced by the inference collaborator."""
    IMPORTANT = "important"
    SIMPLE = "simple"
    LATER = "later"


class ComplexityLevel(str, Enum):
    """How much effort a candidate is expected to take."""
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class Capturable(Protocol):
    """Capabilities every capture variant exposes."""

    id: str

    @property
    def kind(self) -> str: ...

    @property
    def content(self) -> str: ...

    @property
    def timestamp(self) -> datetime: ...

    @property
    def is_convertible(self) -> bool: ...


class _Frozen(BaseModel):
    """Shared pydantic config; carries no variant fields."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def with_changes(self, **changes: Any):
        """Return a re-validated copy with ``changes`` applied."""
        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(changes)
        return type(self).model_validate(values)


# =============================================================================
# Emotional analysis
# =============================================================================


class EmotionalState(_Frozen):
    primary_emotion: str = "calm"
    intensity: float = 0.5
    secondary_emotions: tuple[str, ...] = ()


class CognitiveLoad(_Frozen):
    level: str = "low"
    indicators: tuple[str, ...] = ()


class AdhdIndicators(_Frozen):
    hyperfocus_state: bool = False
    executive_dysfunction: bool = False
    emotional_dysregulation: bool = False
    overwhelm_level: float = 0.0


class Recommendations(_Frozen):
    break_down_tasks: bool = False
    suggest_break: bool = False
    prioritize_simple_tasks: bool = False
    provide_encouragement: bool = False


class EmotionalAnalysis(_Frozen):
    """
    Emotional/attention state inferred for a capture.

    Produced by the inference collaborator; every field has a neutral
    default so a partial analysis is still usable.
    """

    emotional_state: EmotionalState = Field(default_factory=EmotionalState)
    cognitive_load: CognitiveLoad = Field(default_factory=CognitiveLoad)
    adhd_indicators: AdhdIndicators = Field(default_factory=AdhdIndicators)
    recommendations: Recommendations = Field(default_factory=Recommendations)

    @property
    def is_overwhelmed(self) -> bool:
        return (
            self.adhd_indicators.overwhelm_level > 0.6
            or self.emotional_state.primary_emotion == "overwhelmed"
        )

    @property
    def needs_task_breakdown(self) -> bool:
        return (
            self.recommendations.break_down_tasks
            or self.cognitive_load.level == "high"
            or self.adhd_indicators.executive_dysfunction
        )


# =============================================================================
# Variants
# =============================================================================


class BrainDump(_Frozen):
    """
    A captured thought or stream of thoughts.

    Content is never blank. The only state change is the one-way move
    to processed (see ``capflow.capture.conversion``).
    """

    kind: Literal["brain_dump"] = "brain_dump"
    id: str
    content: str
    created_at: datetime
    tags: frozenset[str] = frozenset()
    is_processed: bool = False
    mood: Optional[str] = None
    linked_task_ids: tuple[str, ...] = ()
    processed_at: Optional[datetime] = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise InvalidCaptureError("Brain dump content cannot be empty")
        return v

    @classmethod
    def create(
        cls,
        content: str,
        mood: Optional[str] = None,
        tags: tuple[str, ...] | frozenset[str] = (),
        now: Optional[datetime] = None,
    ) -> "BrainDump":
        """Capture new content with a fresh id and timestamp."""
        return cls(
            id=str(uuid4()),
            content=content.strip(),
            created_at=now or utcnow(),
            tags=frozenset(tags),
            mood=mood,
        )

    @property
    def timestamp(self) -> datetime:
        return self.created_at

    @property
    def is_convertible(self) -> bool:
        return not self.is_processed

    @property
    def potential_tasks(self) -> list[str]:
        return extract.extract_line_items(self.content)

    @property
    def word_count(self) -> int:
        return extract.word_count(self.content)

    def __repr__(self) -> str:
        return f"<BrainDump {self.id!r} words={self.word_count} processed={self.is_processed}>"


class EmailCapture(_Frozen):
    """
    An incoming email with the inference collaborator's suggestions.

    ``action_confidence`` is stored exactly as received and is only
    trusted through ``confidence`` (clamped, None when absent/NaN).
    The conversion fields are all set or all unset.
    """

    kind: Literal["email"] = "email"
    id: str = ""
    message_id: str
    thread_id: str
    subject: str
    body: str
    sender: str
    received_at: datetime
    is_unread: bool = False
    labels: frozenset[str] = frozenset()

    # Suggestions
    suggested_title: str
    suggested_description: Optional[str] = None
    suggested_due_date: Optional[datetime] = None
    suggested_priority: SuggestedPriority = SuggestedPriority.SIMPLE
    suggested_tags: tuple[str, ...] = ()
    action_confidence: Optional[float] = None

    # ADHD context
    requires_focus: bool = False
    complexity_level: ComplexityLevel = ComplexityLevel.MODERATE
    emotional_context: EmotionalAnalysis = Field(default_factory=EmotionalAnalysis)

    # Conversion
    is_converted: bool = False
    linked_task_id: Optional[str] = None
    converted_at: Optional[datetime] = None

    @field_validator("suggested_due_date")
    @classmethod
    def due_date_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return None if v is None else as_utc(v)

    @model_validator(mode="before")
    @classmethod
    def default_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id"):
            data = {**data, "id": data.get("message_id", "")}
        return data

    @model_validator(mode="after")
    def check_conversion_state(self) -> "EmailCapture":
        linked = self.linked_task_id is not None
        stamped = self.converted_at is not None
        if not (self.is_converted == linked == stamped):
            raise InvalidCaptureError(
                f"Email {self.message_id!r} has a partial conversion state: "
                f"is_converted={self.is_converted}, linked_task_id={self.linked_task_id!r}, "
                f"converted_at={self.converted_at!r}"
            )
        return self

    @property
    def content(self) -> str:
        return f"{self.subject}\n{self.body}"

    @property
    def timestamp(self) -> datetime:
        return self.received_at

    @property
    def is_convertible(self) -> bool:
        return not self.is_converted

    @property
    def confidence(self) -> Optional[float]:
        return clamp_unit(self.action_confidence)

    @property
    def is_urgent(self) -> bool:
        return extract.has_urgent_keywords(self.subject, self.body)

    @property
    def sender_name(self) -> str:
        return extract.sender_display_name(self.sender)

    @property
    def body_preview(self) -> str:
        return extract.preview(self.body)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EmailCapture):
            return NotImplemented
        return self.message_id == other.message_id

    def __hash__(self) -> int:
        return hash(self.message_id)

    def __repr__(self) -> str:
        return (
            f"<EmailCapture {self.message_id!r} subject={self.subject[:30]!r} "
            f"priority={self.suggested_priority.value}>"
        )


class DriveFile(_Frozen):
    """
    A cloud file that may relate to a task.

    Identity is ``id`` alone so repeated fetches deduplicate. Task
    relevance is derived by ``capflow.capture.scoring`` and is never
    stored here.
    """

    kind: Literal["drive_file"] = "drive_file"
    id: str
    name: str
    mime_type: str
    created_at: datetime
    modified_at: datetime
    web_view_link: Optional[str] = None
    icon_link: Optional[str] = None
    size: Optional[int] = None
    is_folder: bool = False
    owners: tuple[str, ...] = ()
    is_shared: bool = False

    linked_task_id: Optional[str] = None
    linked_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_link_state(self) -> "DriveFile":
        if (self.linked_task_id is None) != (self.linked_at is None):
            raise InvalidCaptureError(
                f"Drive file {self.id!r} has a partial link: "
                f"linked_task_id={self.linked_task_id!r}, linked_at={self.linked_at!r}"
            )
        return self

    @property
    def content(self) -> str:
        return self.name

    @property
    def timestamp(self) -> datetime:
        return self.modified_at

    @property
    def is_convertible(self) -> bool:
        return self.linked_task_id is None

    @property
    def is_linked_to_task(self) -> bool:
        return self.linked_task_id is not None

    @property
    def has_task_keywords(self) -> bool:
        return extract.has_task_keywords(self.name)

    @property
    def is_google_workspace_doc(self) -> bool:
        return extract.is_workspace_mime(self.mime_type)

    @property
    def file_type(self) -> str:
        return extract.describe_mime(self.mime_type)

    @property
    def formatted_size(self) -> str:
        return extract.format_size(self.size)

    @property
    def can_preview(self) -> bool:
        return extract.can_preview(self.mime_type)

    @property
    def primary_owner(self) -> str:
        return self.owners[0] if self.owners else "Unknown"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DriveFile):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"<DriveFile {self.id!r} name={self.name!r} type={self.file_type}>"


CaptureArtifact = Annotated[
    Union[BrainDump, EmailCapture, DriveFile],
    Field(discriminator="kind"),
]

_artifact_adapter: TypeAdapter[CaptureArtifact] = TypeAdapter(CaptureArtifact)


def artifact_from_json(data: str | bytes) -> CaptureArtifact:
    """Rebuild any capture variant from its JSON form."""
    return _artifact_adapter.validate_json(data)


def artifact_to_json(artifact: CaptureArtifact) -> str:
    return _artifact_adapter.dump_json(artifact).decode()


def clamp_unit(value: Optional[float]) -> Optional[float]:
    """Clamp to [0, 1]; None and NaN mean "no signal"."""
    if value is None or math.isnan(value):
        return None
    return max(0.0, min(1.0, value))
