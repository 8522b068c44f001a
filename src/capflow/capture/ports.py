"""
Capture Ports

Interfaces for the collaborators the pipeline talks to. All of them are
asynchronous, may be slow, and may fail; implementations raise
``CollaboratorUnavailableError`` (or let their own errors escape, which
the engine wraps).
"""

from __future__ import annotations

from typing import Any, Protocol

from capflow.capture.artifacts import CaptureArtifact, SourceType
from capflow.capture.suggestions import SuggestionBundle


class CaptureRepository(Protocol):
    """Persistence for capture artifacts."""

    async def save(self, artifact: CaptureArtifact) -> str:
        """Insert or replace an artifact. Returns its id."""
        ...

    async def fetch_by_id(self, artifact_id: str) -> CaptureArtifact:
        """Raises CaptureNotFoundError if there is no such artifact."""
        ...

    async def fetch_recent(self, source_type: SourceType, limit: int = 10) -> list[CaptureArtifact]:
        """Most recent artifacts of one kind, newest first."""
        ...

    async def fetch_unconverted(self, source_type: SourceType, limit: int = 10) -> list[CaptureArtifact]:
        """Like fetch_recent, restricted to artifacts not yet processed or linked."""
        ...


class InferenceService(Protocol):
    """Produces task suggestions and emotional analysis for raw text."""

    async def suggest(self, text: str) -> SuggestionBundle:
        ...


class EmailSource(Protocol):
    """Lists raw email messages (Gmail API message resources)."""

    async def fetch_messages(self, limit: int = 10) -> list[dict[str, Any]]:
        ...


class DriveSource(Protocol):
    """Lists raw Drive file resources."""

    async def fetch_files(self, limit: int = 10) -> list[dict[str, Any]]:
        ...


class TaskLookup(Protocol):
    """Resolves a weak ``linked_task_id`` against the external task store."""

    async def exists(self, task_id: str) -> bool:
        ...
