"""
Shared fixtures for capflow tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from capflow.capture.artifacts import DriveFile, EmailCapture

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_email(**overrides) -> EmailCapture:
    """An unconverted, unremarkable email; override what the test cares about."""
    fields = dict(
        message_id="msg-1",
        thread_id="thread-1",
        subject="Lunch on Friday?",
        body="Are you free for lunch on Friday.",
        sender="Dana Levi <dana@example.com>",
        received_at=NOW - timedelta(hours=1),
        suggested_title="Reply to Dana about lunch",
        action_confidence=0.5,
    )
    fields.update(overrides)
    return EmailCapture(**fields)


def make_drive_file(**overrides) -> DriveFile:
    """An old, private PDF that fires no relevance signal."""
    fields = dict(
        id="file-1",
        name="scan.pdf",
        mime_type="application/pdf",
        created_at=NOW - timedelta(days=60),
        modified_at=NOW - timedelta(days=30),
    )
    fields.update(overrides)
    return DriveFile(**fields)


@pytest.fixture
def now() -> datetime:
    return NOW
