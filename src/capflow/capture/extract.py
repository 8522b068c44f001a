"""
Heuristic Extractor

Pure functions that derive structural signals from raw capture content.
Nothing here calls out to a collaborator or reads the clock; "now" is
always passed in.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Iterable, Optional

TASK_KEYWORDS = (
    "task",
    "todo",
    "action",
    "meeting",
    "project",
    "agenda",
    "notes",
    "deadline",
    "assignment",
    "work",
)

URGENT_KEYWORDS = (
    "urgent",
    "asap",
    "immediately",
    "deadline",
    "critical",
    "important",
    "emergency",
)

RECENT_WINDOW = timedelta(days=7)

WORKSPACE_MIME_PREFIX = "application/vnd.google-apps."
FOLDER_MIME = "application/vnd.google-apps.folder"
PLAIN_TEXT_MIME = "text/plain"

# Bullet lines: "-", "*", "•" or "12." followed by optional whitespace
_BULLET_RE = re.compile(r"^[-*•]\s*")
_NUMBERED_RE = re.compile(r"^\d+\.\s*")
_SENDER_NAME_RE = re.compile(r"^([^<]+)<")
_WHITESPACE_RE = re.compile(r"\s+")

_MIME_LABELS = {
    "application/vnd.google-apps.document": "Google Doc",
    "application/vnd.google-apps.spreadsheet": "Google Sheets",
    "application/vnd.google-apps.presentation": "Google Slides",
    FOLDER_MIME: "Folder",
    "application/pdf": "PDF",
    PLAIN_TEXT_MIME: "Text File",
}

_SIZE_UNITS = ("B", "KB", "MB", "GB")


def extract_line_items(content: str) -> list[str]:
    """
    Pull bulleted or numbered lines out of free-form text.

    Keeps source order and duplicates; the marker and the whitespace
    following it are stripped from each kept line.
    """
    items = []
    for line in content.splitlines():
        line = line.strip()
        if not line:
            continue
        if _BULLET_RE.match(line):
            items.append(_BULLET_RE.sub("", line, count=1))
        elif _NUMBERED_RE.match(line):
            items.append(_NUMBERED_RE.sub("", line, count=1))
    return items


def word_count(content: str) -> int:
    """Count whitespace-separated words. Display only, never used for scoring."""
    return len(content.split())


def contains_keyword(keywords: Iterable[str], *texts: str) -> bool:
    """True if any keyword appears (case-insensitive) in any of the texts."""
    lowered = [text.lower() for text in texts]
    return any(keyword in text for keyword in keywords for text in lowered)


def has_task_keywords(name: str) -> bool:
    return contains_keyword(TASK_KEYWORDS, name)


def has_urgent_keywords(subject: str, body: str) -> bool:
    return contains_keyword(URGENT_KEYWORDS, subject, body)


def is_recent(timestamp: datetime, now: datetime, window: timedelta = RECENT_WINDOW) -> bool:
    """Strictly after ``now - window``; exactly ``window`` ago is not recent."""
    return timestamp > now - window


def is_workspace_mime(mime_type: str) -> bool:
    return mime_type.startswith(WORKSPACE_MIME_PREFIX)


def describe_mime(mime_type: str) -> str:
    """Human-readable file type for a MIME type."""
    if mime_type in _MIME_LABELS:
        return _MIME_LABELS[mime_type]
    for prefix, label in (("image/", "Image"), ("video/", "Video"), ("audio/", "Audio")):
        if mime_type.startswith(prefix):
            return label
    return "File"


def can_preview(mime_type: str) -> bool:
    return (
        is_workspace_mime(mime_type)
        or mime_type == "application/pdf"
        or mime_type.startswith("image/")
        or mime_type.startswith("text/")
    )


def format_size(size: Optional[int]) -> str:
    """Format a byte count as B/KB/MB/GB with one decimal."""
    if size is None:
        return "Unknown size"

    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.1f} {_SIZE_UNITS[unit]}"


def sender_display_name(sender: str) -> str:
    """'Jane Doe <jane@x.com>' -> 'Jane Doe'; bare addresses lose the domain."""
    match = _SENDER_NAME_RE.match(sender)
    if match:
        return match.group(1).strip() or sender
    return sender.split("@")[0]


def preview(text: str, limit: int = 200) -> str:
    """Collapse whitespace and truncate to ``limit`` characters."""
    clean = _WHITESPACE_RE.sub(" ", text).strip()
    if len(clean) > limit:
        return clean[:limit] + "..."
    return clean
