"""
Capture Engine

Coordinates the pipeline: pulls raw captures from the sources, asks the
inference collaborator for suggestions, scores and adapts each capture,
stores it, and records conversions when a task gets created.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from capflow.capture import conversion
from capflow.capture.adaptation import AnnotatedCandidate, annotate
from capflow.capture.artifacts import BrainDump, CaptureArtifact, SourceType, utcnow
from capflow.capture.ports import (
    CaptureRepository,
    DriveSource,
    EmailSource,
    InferenceService,
    TaskLookup,
)
from capflow.capture.scoring import is_actionable
from capflow.capture.sources import (
    RawEmail,
    build_email_capture,
    parse_drive_file,
    parse_gmail_message,
)
from capflow.capture.suggestions import SuggestionBundle, fallback_bundle
from capflow.config import PipelineConfig
from capflow.errors import (
    CaptureError,
    CaptureNotFoundError,
    CollaboratorUnavailableError,
    InvalidCaptureError,
    MalformedSuggestionError,
)
from capflow.events import (
    CAPTURE_ANNOTATED,
    CAPTURE_LINKED,
    CAPTURE_PROCESSED,
    CAPTURE_SAVED,
    EventBus,
)
from capflow.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CaptureEngine:
    """
    Capture-to-task engine.

    Provides:
    - Brain dump capture
    - Email and Drive ingestion into annotated candidates
    - Conversion recording (the sink task creation calls back into)
    """

    def __init__(
        self,
        repository: CaptureRepository,
        inference: Optional[InferenceService] = None,
        email_source: Optional[EmailSource] = None,
        drive_source: Optional[DriveSource] = None,
        task_lookup: Optional[TaskLookup] = None,
        events: Optional[EventBus] = None,
        settings: Optional[PipelineConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the engine.

        Args:
            repository: Where captures are stored
            inference: Suggestion provider (required for email ingestion)
            email_source: Raw email listing
            drive_source: Raw Drive file listing
            task_lookup: Resolves linked task ids
            events: Bus that receives candidates and conversions
            settings: Thresholds and limits
            clock: Returns "now"; injected so scoring is reproducible
        """
        self.repository = repository
        self.inference = inference
        self.email_source = email_source
        self.drive_source = drive_source
        self.task_lookup = task_lookup
        self.events = events or EventBus()
        self.settings = settings or PipelineConfig()
        self._clock = clock

    # =========================================================================
    # Brain dumps
    # =========================================================================

    async def capture_brain_dump(
        self,
        content: str,
        mood: Optional[str] = None,
        tags: Iterable[str] = (),
    ) -> AnnotatedCandidate:
        """
        Capture a brain dump and return its annotation.

        Raises:
            InvalidCaptureError: if content is blank
        """
        dump = BrainDump.create(content, mood=mood, tags=tuple(tags), now=self._clock())
        await self._call("repository", self.repository.save(dump))
        logger.info("brain_dump_captured", artifact_id=dump.id, words=dump.word_count)
        await self.events.emit(CAPTURE_SAVED, {"artifact_id": dump.id, "kind": dump.kind})

        candidate = annotate(dump, self._clock(), self.settings)
        await self.events.emit(CAPTURE_ANNOTATED, candidate.summary())
        return candidate

    async def mark_processed(self, dump_id: str, task_ids: Iterable[str] = ()) -> BrainDump:
        """Mark a stored brain dump as converted into ``task_ids``."""
        artifact = await self._call("repository", self.repository.fetch_by_id(dump_id))
        if not isinstance(artifact, BrainDump):
            raise InvalidCaptureError(f"Capture {dump_id!r} is a {artifact.kind}, not a brain dump")

        if artifact.is_processed:
            return artifact

        processed = conversion.mark_as_processed(artifact, task_ids, now=self._clock())
        await self._call("repository", self.repository.save(processed))
        logger.info("brain_dump_processed", artifact_id=dump_id, tasks=len(processed.linked_task_ids))
        await self.events.emit(
            CAPTURE_PROCESSED,
            {"artifact_id": dump_id, "task_ids": list(processed.linked_task_ids)},
        )
        return processed

    # =========================================================================
    # Ingestion
    # =========================================================================

    async def ingest_emails(self, limit: Optional[int] = None) -> list[AnnotatedCandidate]:
        """
        Fetch emails, get suggestions, and return candidates for the actionable ones.

        A fetch returning fewer messages than requested is fine. Messages the
        source returned malformed are skipped and logged.
        """
        if self.email_source is None or self.inference is None:
            raise CollaboratorUnavailableError("email_source", "email ingestion is not configured")

        limit = limit or self.settings.fetch_limit
        messages = await self._call("email_source", self.email_source.fetch_messages(limit=limit))
        now = self._clock()

        raw_emails = []
        for message in messages:
            try:
                raw_emails.append(parse_gmail_message(message, now=now))
            except InvalidCaptureError as e:
                logger.warning("email_skipped", message_id=message.get("id"), error=str(e))

        bundles = await asyncio.gather(*(self._suggest(raw) for raw in raw_emails))

        candidates = []
        for raw, bundle in zip(raw_emails, bundles):
            if not is_actionable(bundle.intent, bundle.confidence, self.settings.min_action_confidence):
                logger.debug(
                    "email_not_actionable",
                    message_id=raw.message_id,
                    intent=bundle.intent,
                    confidence=bundle.confidence,
                )
                continue
            email = build_email_capture(raw, bundle)
            candidates.append(await self._store_and_annotate(email, now))

        logger.info("emails_ingested", fetched=len(messages), candidates=len(candidates))
        return candidates

    async def ingest_drive_files(self, limit: Optional[int] = None) -> list[AnnotatedCandidate]:
        """Fetch Drive files, deduplicate by id, and return their candidates."""
        if self.drive_source is None:
            raise CollaboratorUnavailableError("drive_source", "drive ingestion is not configured")

        limit = limit or self.settings.fetch_limit
        files = await self._call("drive_source", self.drive_source.fetch_files(limit=limit))
        now = self._clock()

        seen = set()
        candidates = []
        for data in files:
            try:
                file = parse_drive_file(data, now=now)
            except InvalidCaptureError as e:
                logger.warning("drive_file_skipped", error=str(e))
                continue
            if file in seen:
                continue
            seen.add(file)
            candidates.append(await self._store_and_annotate(file, now))

        logger.info("drive_files_ingested", fetched=len(files), candidates=len(candidates))
        return candidates

    async def candidate_for(self, artifact_id: str) -> AnnotatedCandidate:
        """Re-annotate a stored capture against the current clock."""
        artifact = await self._call("repository", self.repository.fetch_by_id(artifact_id))
        return annotate(artifact, self._clock(), self.settings)

    async def recent_candidates(
        self,
        source_type: SourceType,
        limit: Optional[int] = None,
        pending: bool = False,
    ) -> list[AnnotatedCandidate]:
        """Annotate the newest stored captures of one kind, optionally only unconverted ones."""
        fetch = self.repository.fetch_unconverted if pending else self.repository.fetch_recent
        artifacts = await self._call("repository", fetch(source_type, limit or self.settings.fetch_limit))
        now = self._clock()
        return [annotate(artifact, now, self.settings) for artifact in artifacts]

    # =========================================================================
    # Conversion sink
    # =========================================================================

    async def record_conversion(self, artifact_id: str, task_id: str) -> CaptureArtifact:
        """
        Record that a task was created from a capture.

        Raises:
            AlreadyLinkedError: if the capture is linked to a different task
        """
        artifact = await self._call("repository", self.repository.fetch_by_id(artifact_id))
        linked = conversion.link(artifact, task_id, now=self._clock())
        if linked is artifact:
            return artifact

        await self._call("repository", self.repository.save(linked))
        logger.info("capture_linked", artifact_id=artifact_id, kind=linked.kind, task_id=task_id)
        await self.events.emit(
            CAPTURE_LINKED,
            {"artifact_id": artifact_id, "kind": linked.kind, "task_id": task_id},
        )
        return linked

    async def linked_task_exists(self, artifact: CaptureArtifact) -> bool:
        """Whether every task the capture points at still exists."""
        task_ids = conversion.linked_task_ids(artifact)
        if not task_ids:
            return False
        if self.task_lookup is None:
            raise CollaboratorUnavailableError("task_lookup", "task lookup is not configured")

        results = await asyncio.gather(
            *(self._call("task_lookup", self.task_lookup.exists(task_id)) for task_id in task_ids)
        )
        return all(results)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _suggest(self, raw: RawEmail) -> SuggestionBundle:
        try:
            return await self._call("inference", self.inference.suggest(raw.text))
        except MalformedSuggestionError as e:
            logger.warning("suggestion_unusable", message_id=raw.message_id, error=str(e))
            return fallback_bundle(raw.subject)

    async def _store_and_annotate(self, artifact: CaptureArtifact, now: datetime) -> AnnotatedCandidate:
        try:
            stored = await self._call("repository", self.repository.fetch_by_id(artifact.id))
        except CaptureNotFoundError:
            pass
        else:
            artifact = conversion.carry_conversion(stored, artifact)

        candidate = annotate(artifact, now, self.settings)
        await self._call("repository", self.repository.save(artifact))
        await self.events.emit(CAPTURE_ANNOTATED, candidate.summary())
        return candidate

    async def _call(self, collaborator: str, call: Awaitable[T]) -> T:
        """Await a collaborator call; foreign errors become CollaboratorUnavailableError."""
        try:
            return await call
        except CaptureError:
            raise
        except Exception as e:
            logger.error("collaborator_failed", collaborator=collaborator, error=str(e))
            raise CollaboratorUnavailableError(collaborator, str(e)) from e
