"""
Capflow Errors

Error taxonomy for the capture pipeline. Only the boundary adapters
(artifact construction, suggestion parsing, collaborators) raise these;
scoring and adaptation are total over well-typed input.
"""

from __future__ import annotations


class CaptureError(Exception):
    """Base error for the capture pipeline."""


class InvalidCaptureError(CaptureError):
    """Raised when a capture cannot be built from its input (e.g. empty brain dump)."""


class CollaboratorUnavailableError(CaptureError):
    """Raised when a repository, inference service or fetcher call fails."""

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator


class MalformedSuggestionError(CaptureError):
    """Raised when an inference payload is missing required fields or can't be decoded."""

    def __init__(self, message: str, missing: tuple[str, ...] = ()):
        super().__init__(message)
        self.missing = missing


class CaptureNotFoundError(CaptureError):
    """Raised when a repository has no artifact with the requested id."""

    def __init__(self, artifact_id: str):
        super().__init__(f"No capture with id {artifact_id!r}")
        self.artifact_id = artifact_id


class AlreadyLinkedError(CaptureError):
    """Raised when a linked artifact is linked again to a different task."""

    def __init__(self, artifact_id: str, linked_task_id: str, requested_task_id: str):
        super().__init__(
            f"Capture {artifact_id!r} is already linked to task {linked_task_id!r}, "
            f"refusing to link it to {requested_task_id!r}"
        )
        self.artifact_id = artifact_id
        self.linked_task_id = linked_task_id
        self.requested_task_id = requested_task_id
