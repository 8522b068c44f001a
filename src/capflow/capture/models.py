"""
Capture Store Models

SQLAlchemy models backing the capture repository. The artifact itself is
stored as its JSON form; the indexed columns are copies used for
filtering and ordering.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from capflow.capture.artifacts import SourceType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class CaptureRecord(Base):
    """
    One stored capture artifact.

    ``kind`` and ``captured_at`` mirror the artifact's tag and timestamp;
    ``linked_task_id`` mirrors its (first) linked task.
    """
    __tablename__ = "captures"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    kind: Mapped[SourceType] = mapped_column(Enum(SourceType), index=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)

    captured_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    is_converted: Mapped[bool] = mapped_column(Boolean, default=False)
    linked_task_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<CaptureRecord {self.kind.value}:{self.id!r}>"
