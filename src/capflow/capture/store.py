"""
Capture Store

SQLite-backed capture repository. Uses SQLAlchemy async sessions so the
engine never blocks on disk access.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from capflow.capture.artifacts import (
    CaptureArtifact,
    SourceType,
    artifact_from_json,
    artifact_to_json,
)
from capflow.capture.conversion import ConversionState, conversion_state, linked_task_ids
from capflow.capture.models import Base, CaptureRecord
from capflow.errors import CaptureNotFoundError, CollaboratorUnavailableError
from capflow.utils.logging import get_logger

logger = get_logger(__name__)


class CaptureStore:
    """
    Database store for capture artifacts.

    Implements the ``CaptureRepository`` port. Call ``init()`` once before
    use and ``close()`` when done.
    """

    name = "capture_store"

    def __init__(self, url: Optional[str] = None, echo: bool = False):
        """
        Initialize the store.

        Args:
            url: SQLAlchemy async URL. Defaults to ~/.capflow/data/captures.db
        """
        if url is None:
            db_dir = Path.home() / ".capflow" / "data"
            db_dir.mkdir(parents=True, exist_ok=True)
            url = f"sqlite+aiosqlite:///{db_dir / 'captures.db'}"

        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo)
        self.SessionLocal = async_sessionmaker(self.engine, expire_on_commit=False)

    async def init(self) -> None:
        """Create tables if they don't exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.debug("capture_store_ready", url=self.url)

    async def close(self) -> None:
        await self.engine.dispose()

    def _get_session(self) -> AsyncSession:
        """Get a new database session."""
        return self.SessionLocal()

    # =========================================================================
    # Repository operations
    # =========================================================================

    async def save(self, artifact: CaptureArtifact) -> str:
        """Insert or replace an artifact."""
        try:
            async with self._get_session() as session:
                record = await session.get(CaptureRecord, artifact.id)
                if record is None:
                    record = CaptureRecord(id=artifact.id, kind=SourceType(artifact.kind))
                    session.add(record)

                linked = linked_task_ids(artifact)
                record.payload = artifact_to_json(artifact)
                # SQLite drops the offset, so order on UTC
                record.captured_at = _as_utc(artifact.timestamp)
                record.is_converted = conversion_state(artifact) in (
                    ConversionState.PROCESSED,
                    ConversionState.LINKED,
                )
                record.linked_task_id = linked[0] if linked else None
                await session.commit()
        except SQLAlchemyError as e:
            raise CollaboratorUnavailableError(self.name, f"save failed: {e}") from e

        logger.debug("capture_saved", artifact_id=artifact.id, kind=artifact.kind)
        return artifact.id

    async def fetch_by_id(self, artifact_id: str) -> CaptureArtifact:
        """Get an artifact by id."""
        try:
            async with self._get_session() as session:
                record = await session.get(CaptureRecord, artifact_id)
        except SQLAlchemyError as e:
            raise CollaboratorUnavailableError(self.name, f"fetch failed: {e}") from e

        if record is None:
            raise CaptureNotFoundError(artifact_id)
        return artifact_from_json(record.payload)

    async def fetch_recent(self, source_type: SourceType, limit: int = 10) -> list[CaptureArtifact]:
        """Get the newest artifacts of one kind."""
        query = (
            select(CaptureRecord)
            .where(CaptureRecord.kind == source_type)
            .order_by(CaptureRecord.captured_at.desc())
            .limit(limit)
        )
        try:
            async with self._get_session() as session:
                records = (await session.scalars(query)).all()
        except SQLAlchemyError as e:
            raise CollaboratorUnavailableError(self.name, f"fetch failed: {e}") from e

        return [artifact_from_json(record.payload) for record in records]

    async def fetch_unconverted(self, source_type: SourceType, limit: int = 10) -> list[CaptureArtifact]:
        """Get the newest artifacts of one kind that have not been converted yet."""
        query = (
            select(CaptureRecord)
            .where(CaptureRecord.kind == source_type, CaptureRecord.is_converted == False)  # noqa: E712
            .order_by(CaptureRecord.captured_at.desc())
            .limit(limit)
        )
        try:
            async with self._get_session() as session:
                records = (await session.scalars(query)).all()
        except SQLAlchemyError as e:
            raise CollaboratorUnavailableError(self.name, f"fetch failed: {e}") from e

        return [artifact_from_json(record.payload) for record in records]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
