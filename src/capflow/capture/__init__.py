"""
Capture-to-Task Pipeline

Turns brain dumps, emails and Drive files into scored, ADHD-adapted task
candidates, and records which task each capture became.
"""

from capflow.capture.adaptation import AnnotatedCandidate, annotate
from capflow.capture.artifacts import (
    BrainDump,
    Capturable,
    CaptureArtifact,
    ComplexityLevel,
    DriveFile,
    EmailCapture,
    EmotionalAnalysis,
    SourceType,
    SuggestedPriority,
)
from capflow.capture.conversion import (
    ConversionState,
    conversion_state,
    link,
    link_drive_file,
    link_email,
    mark_as_processed,
)
from capflow.capture.engine import CaptureEngine
from capflow.capture.scoring import RelevanceScore, score_drive_file
from capflow.capture.store import CaptureStore
from capflow.capture.suggestions import SuggestionBundle, parse_suggestion

__all__ = [
    # Engine
    "CaptureEngine",
    # Artifacts
    "BrainDump",
    "Capturable",
    "CaptureArtifact",
    "ComplexityLevel",
    "DriveFile",
    "EmailCapture",
    "EmotionalAnalysis",
    "SourceType",
    "SuggestedPriority",
    # Scoring & adaptation
    "AnnotatedCandidate",
    "RelevanceScore",
    "annotate",
    "score_drive_file",
    # Conversion
    "ConversionState",
    "conversion_state",
    "link",
    "link_drive_file",
    "link_email",
    "mark_as_processed",
    # Store & suggestions
    "CaptureStore",
    "SuggestionBundle",
    "parse_suggestion",
]
