"""
Conversion State Machine

Brain dumps move Captured -> Processed. Emails and drive files move
Unlinked -> Linked. Both transitions are one-way; there is no unlink.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Iterable, Optional

from capflow.capture.artifacts import (
    BrainDump,
    CaptureArtifact,
    DriveFile,
    EmailCapture,
    utcnow,
)
from capflow.errors import AlreadyLinkedError


class ConversionState(enum.Enum):
    """Lifecycle position of a capture."""
    CAPTURED = "captured"
    PROCESSED = "processed"
    UNLINKED = "unlinked"
    LINKED = "linked"


def conversion_state(artifact: CaptureArtifact) -> ConversionState:
    if isinstance(artifact, BrainDump):
        return ConversionState.PROCESSED if artifact.is_processed else ConversionState.CAPTURED
    if isinstance(artifact, EmailCapture):
        return ConversionState.LINKED if artifact.is_converted else ConversionState.UNLINKED
    return ConversionState.LINKED if artifact.linked_task_id is not None else ConversionState.UNLINKED


def mark_as_processed(
    dump: BrainDump,
    task_ids: Iterable[str] = (),
    now: Optional[datetime] = None,
) -> BrainDump:
    """
    Mark a brain dump as converted into tasks.

    Applying it to an already processed dump returns the dump unchanged.
    """
    if dump.is_processed:
        return dump
    return dump.with_changes(
        is_processed=True,
        processed_at=now or utcnow(),
        linked_task_ids=tuple(task_ids),
    )


def link_email(email: EmailCapture, task_id: str, now: Optional[datetime] = None) -> EmailCapture:
    """Record that ``email`` became task ``task_id``."""
    if email.is_converted:
        _check_same_task(email.id, email.linked_task_id, task_id)
        return email
    return email.with_changes(
        is_converted=True,
        linked_task_id=task_id,
        converted_at=now or utcnow(),
    )


def link_drive_file(file: DriveFile, task_id: str, now: Optional[datetime] = None) -> DriveFile:
    """Record that ``file`` belongs to task ``task_id``."""
    if file.linked_task_id is not None:
        _check_same_task(file.id, file.linked_task_id, task_id)
        return file
    return file.with_changes(linked_task_id=task_id, linked_at=now or utcnow())


def link(artifact: CaptureArtifact, task_id: str, now: Optional[datetime] = None) -> CaptureArtifact:
    """Link any capture to a task; brain dumps are processed with that task."""
    if isinstance(artifact, EmailCapture):
        return link_email(artifact, task_id, now)
    if isinstance(artifact, DriveFile):
        return link_drive_file(artifact, task_id, now)
    if artifact.is_processed:
        if task_id not in artifact.linked_task_ids:
            raise AlreadyLinkedError(artifact.id, ",".join(artifact.linked_task_ids), task_id)
        return artifact
    return mark_as_processed(artifact, [task_id], now)


def linked_task_ids(artifact: CaptureArtifact) -> tuple[str, ...]:
    if isinstance(artifact, BrainDump):
        return artifact.linked_task_ids
    return (artifact.linked_task_id,) if artifact.linked_task_id is not None else ()


def _check_same_task(artifact_id: str, current: Optional[str], requested: str) -> None:
    if current != requested:
        raise AlreadyLinkedError(artifact_id, current or "", requested)


def carry_conversion(stored: CaptureArtifact, fresh: CaptureArtifact) -> CaptureArtifact:
    """
    Keep the conversion state of ``stored`` on a refetched copy of it.

    Sources return the same items on every fetch, always unlinked. A link
    already recorded must survive the refresh since there is no unlink.
    """
    if conversion_state(stored) in (ConversionState.CAPTURED, ConversionState.UNLINKED):
        return fresh
    if isinstance(stored, EmailCapture) and isinstance(fresh, EmailCapture):
        return fresh.with_changes(
            is_converted=True,
            linked_task_id=stored.linked_task_id,
            converted_at=stored.converted_at,
        )
    if isinstance(stored, DriveFile) and isinstance(fresh, DriveFile):
        return fresh.with_changes(linked_task_id=stored.linked_task_id, linked_at=stored.linked_at)
    if isinstance(stored, BrainDump) and isinstance(fresh, BrainDump):
        return fresh.with_changes(
            is_processed=True,
            processed_at=stored.processed_at,
            linked_task_ids=stored.linked_task_ids,
        )
    return fresh
