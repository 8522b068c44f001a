"""
Source Adapters

Wrap raw metadata from the email and Drive listing APIs into capture
artifacts. Input shapes follow the Gmail ``users.messages`` and Drive v3
``files`` resources; anything the fetcher could not fill in gets the
same fallbacks the fetchers have always used.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Optional

from capflow.capture.artifacts import DriveFile, EmailCapture, as_utc, utcnow
from capflow.capture.extract import FOLDER_MIME
from capflow.capture.suggestions import SuggestionBundle
from capflow.errors import InvalidCaptureError

UNREAD_LABEL = "UNREAD"


@dataclass(frozen=True)
class RawEmail:
    """Fields pulled out of a Gmail message before inference runs."""

    message_id: str
    thread_id: str
    subject: str
    body: str
    sender: str
    received_at: datetime
    is_unread: bool
    labels: tuple[str, ...]

    @property
    def text(self) -> str:
        """Text handed to the inference collaborator."""
        return f"{self.subject}\n{self.body}"


def parse_gmail_message(message: dict[str, Any], now: Optional[datetime] = None) -> RawEmail:
    """
    Parse a Gmail API message resource.

    Raises:
        InvalidCaptureError: if the message has no id
    """
    message_id = message.get("id")
    if not message_id:
        raise InvalidCaptureError("Gmail message has no id")

    payload = message.get("payload") or {}
    headers = {
        (h.get("name") or "").lower(): h.get("value") or ""
        for h in payload.get("headers") or []
    }
    labels = tuple(message.get("labelIds") or ())

    return RawEmail(
        message_id=message_id,
        thread_id=message.get("threadId") or message_id,
        subject=headers.get("subject", ""),
        body=_extract_body(payload),
        sender=headers.get("from", ""),
        received_at=_parse_mail_date(headers.get("date")) or now or utcnow(),
        is_unread=UNREAD_LABEL in labels,
        labels=labels,
    )


def build_email_capture(raw: RawEmail, bundle: SuggestionBundle) -> EmailCapture:
    """Combine a parsed email with its suggestion bundle."""
    return EmailCapture(
        message_id=raw.message_id,
        thread_id=raw.thread_id,
        subject=raw.subject,
        body=raw.body,
        sender=raw.sender,
        received_at=raw.received_at,
        is_unread=raw.is_unread,
        labels=frozenset(raw.labels),
        suggested_title=bundle.title or raw.subject,
        suggested_description=bundle.description,
        suggested_due_date=bundle.due_date,
        suggested_priority=bundle.priority,
        suggested_tags=bundle.tags,
        action_confidence=bundle.confidence,
        requires_focus=bundle.requires_focus,
        complexity_level=bundle.complexity,
        emotional_context=bundle.emotional_context,
    )


def parse_drive_file(data: dict[str, Any], now: Optional[datetime] = None) -> DriveFile:
    """
    Parse a Drive v3 file resource.

    Raises:
        InvalidCaptureError: if the file has no id
    """
    file_id = data.get("id")
    if not file_id:
        raise InvalidCaptureError("Drive file has no id")

    now = now or utcnow()
    mime_type = data.get("mimeType") or "unknown"
    size = data.get("size")

    return DriveFile(
        id=file_id,
        name=data.get("name") or "Unknown",
        mime_type=mime_type,
        created_at=_parse_iso(data.get("createdTime")) or now,
        modified_at=_parse_iso(data.get("modifiedTime")) or now,
        web_view_link=data.get("webViewLink"),
        icon_link=data.get("iconLink"),
        size=int(size) if size is not None else None,
        is_folder=mime_type == FOLDER_MIME,
        owners=tuple(o.get("displayName") or "" for o in data.get("owners") or ()),
        is_shared=bool(data.get("shared", False)),
    )


def _extract_body(payload: dict[str, Any]) -> str:
    parts = payload.get("parts")
    if parts:
        for part in parts:
            if part.get("mimeType") in ("text/plain", "text/html"):
                data = (part.get("body") or {}).get("data")
                if data:
                    return _decode_base64url(data)
        return ""

    data = (payload.get("body") or {}).get("data")
    return _decode_base64url(data) if data else ""


def _decode_base64url(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as e:
        raise InvalidCaptureError(f"Email body is not valid base64url: {e}") from e


def _parse_mail_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return as_utc(parsedate_to_datetime(value))
    except (TypeError, ValueError):
        return _parse_iso(value)


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None
