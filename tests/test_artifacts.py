"""
Tests for capture artifacts.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from capflow.capture.artifacts import (
    AdhdIndicators,
    BrainDump,
    CognitiveLoad,
    EmotionalAnalysis,
    EmotionalState,
    Recommendations,
    SuggestedPriority,
    artifact_from_json,
    artifact_to_json,
    clamp_unit,
)
from capflow.errors import InvalidCaptureError
from conftest import NOW, make_drive_file, make_email


class TestBrainDump:
    """Tests for brain dump construction and derived views."""

    def test_create(self):
        dump = BrainDump.create("  - buy milk\n- call mom  ", mood="tired", tags=["home"], now=NOW)
        assert dump.id
        assert dump.content == "- buy milk\n- call mom"
        assert dump.created_at == NOW
        assert dump.tags == frozenset({"home"})
        assert dump.mood == "tired"
        assert not dump.is_processed
        assert dump.is_convertible

    def test_create_generates_unique_ids(self):
        assert BrainDump.create("a", now=NOW).id != BrainDump.create("a", now=NOW).id

    @pytest.mark.parametrize("content", ["", "   ", "\n\t\n"])
    def test_blank_content_rejected(self, content):
        with pytest.raises(InvalidCaptureError):
            BrainDump.create(content, now=NOW)

    def test_blank_content_rejected_on_direct_construction(self):
        with pytest.raises(InvalidCaptureError):
            BrainDump(id="d1", content="  ", created_at=NOW)

    def test_derived_views(self):
        dump = BrainDump.create("- buy milk\nthinking about stuff\n2. pay rent", now=NOW)
        assert dump.potential_tasks == ["buy milk", "pay rent"]
        assert dump.word_count == 9
        assert dump.timestamp == NOW

    def test_frozen(self):
        dump = BrainDump.create("x", now=NOW)
        with pytest.raises(ValidationError):
            dump.content = "y"

    def test_with_changes_leaves_original(self):
        dump = BrainDump.create("x", now=NOW)
        changed = dump.with_changes(mood="calm")
        assert changed.mood == "calm"
        assert dump.mood is None
        assert changed.id == dump.id

    def test_with_changes_revalidates(self):
        dump = BrainDump.create("x", now=NOW)
        with pytest.raises(InvalidCaptureError):
            dump.with_changes(content=" ")


class TestEmailCapture:
    """Tests for email captures."""

    def test_id_defaults_to_message_id(self):
        assert make_email(message_id="abc").id == "abc"

    def test_equality_by_message_id(self):
        a = make_email(subject="one")
        b = make_email(subject="two")
        assert a == b
        assert len({a, b}) == 1
        assert a != make_email(message_id="other")

    def test_content_and_timestamp(self):
        email = make_email(subject="S", body="B")
        assert email.content == "S\nB"
        assert email.timestamp == email.received_at

    def test_urgency(self):
        assert make_email(subject="URGENT: invoice").is_urgent
        assert make_email(body="need this asap").is_urgent
        assert not make_email().is_urgent

    def test_sender_and_preview(self):
        email = make_email(body="a" * 250)
        assert email.sender_name == "Dana Levi"
        assert email.body_preview == "a" * 200 + "..."

    @pytest.mark.parametrize(
        "raw, expected",
        [(1.7, 1.0), (-0.3, 0.0), (0.42, 0.42), (None, None), (float("nan"), None)],
    )
    def test_confidence_is_clamped(self, raw, expected):
        assert make_email(action_confidence=raw).confidence == expected

    def test_raw_confidence_kept(self):
        assert make_email(action_confidence=1.7).action_confidence == 1.7

    @pytest.mark.parametrize(
        "fields",
        [
            {"is_converted": True},
            {"linked_task_id": "t1"},
            {"converted_at": NOW},
            {"is_converted": True, "linked_task_id": "t1"},
            {"linked_task_id": "t1", "converted_at": NOW},
        ],
    )
    def test_partial_conversion_rejected(self, fields):
        with pytest.raises(InvalidCaptureError):
            make_email(**fields)

    def test_full_conversion_accepted(self):
        email = make_email(is_converted=True, linked_task_id="t1", converted_at=NOW)
        assert not email.is_convertible

    def test_priority_enum(self):
        assert make_email(suggested_priority="important").suggested_priority == SuggestedPriority.IMPORTANT


class TestDriveFile:
    """Tests for drive files."""

    def test_identity_by_id(self):
        a = make_drive_file(name="one")
        b = make_drive_file(name="two")
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_partial_link_rejected(self):
        with pytest.raises(InvalidCaptureError):
            make_drive_file(linked_task_id="t1")
        with pytest.raises(InvalidCaptureError):
            make_drive_file(linked_at=NOW)

    def test_linked(self):
        file = make_drive_file(linked_task_id="t1", linked_at=NOW)
        assert file.is_linked_to_task
        assert not file.is_convertible

    def test_no_relevance_field(self):
        with pytest.raises(ValidationError):
            make_drive_file(is_task_relevant=True)

    def test_presentation(self):
        file = make_drive_file(
            mime_type="application/vnd.google-apps.document",
            size=2048,
            owners=("Noa", "Avi"),
        )
        assert file.file_type == "Google Doc"
        assert file.formatted_size == "2.0 KB"
        assert file.is_google_workspace_doc
        assert file.can_preview
        assert file.primary_owner == "Noa"

    def test_unknown_owner(self):
        assert make_drive_file().primary_owner == "Unknown"
        assert make_drive_file().formatted_size == "Unknown size"

    def test_content_is_name(self):
        assert make_drive_file(name="plan.txt").content == "plan.txt"


class TestEmotionalAnalysis:
    """Tests for the derived emotional flags."""

    def test_neutral_default(self):
        analysis = EmotionalAnalysis()
        assert not analysis.is_overwhelmed
        assert not analysis.needs_task_breakdown

    def test_overwhelmed_by_level(self):
        assert EmotionalAnalysis(adhd_indicators=AdhdIndicators(overwhelm_level=0.7)).is_overwhelmed
        assert not EmotionalAnalysis(adhd_indicators=AdhdIndicators(overwhelm_level=0.6)).is_overwhelmed

    def test_overwhelmed_by_emotion(self):
        state = EmotionalState(primary_emotion="overwhelmed")
        assert EmotionalAnalysis(emotional_state=state).is_overwhelmed

    def test_needs_breakdown(self):
        assert EmotionalAnalysis(recommendations=Recommendations(break_down_tasks=True)).needs_task_breakdown
        assert EmotionalAnalysis(cognitive_load=CognitiveLoad(level="high")).needs_task_breakdown
        assert EmotionalAnalysis(
            adhd_indicators=AdhdIndicators(executive_dysfunction=True)
        ).needs_task_breakdown


class TestSerialization:
    """Tests for the tagged-union JSON form."""

    @pytest.mark.parametrize(
        "artifact",
        [
            BrainDump.create("- a\n- b", tags=["x"], now=NOW),
            make_email(suggested_due_date=NOW + timedelta(days=2)),
            make_drive_file(owners=("Noa",), linked_task_id="t1", linked_at=NOW),
        ],
        ids=["brain_dump", "email", "drive_file"],
    )
    def test_variant_survives_json(self, artifact):
        restored = artifact_from_json(artifact_to_json(artifact))
        assert type(restored) is type(artifact)
        assert restored.model_dump() == artifact.model_dump()

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            artifact_from_json('{"kind": "tweet", "id": "1"}')


class TestClampUnit:
    """Tests for clamp_unit."""

    def test_values(self):
        assert clamp_unit(None) is None
        assert clamp_unit(float("nan")) is None
        assert clamp_unit(2.0) == 1.0
        assert clamp_unit(-1.0) == 0.0
        assert clamp_unit(0.5) == 0.5

    def test_infinities_clamp(self):
        assert clamp_unit(float("inf")) == 1.0
        assert clamp_unit(float("-inf")) == 0.0
