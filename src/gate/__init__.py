"""
Comprehension Gate: demonstrated reading before resharing external content.

Components:
- text_mix: Decides whether a post is gated and how its quiz is composed
- reading: Per-block coverage/dwell tracking over a segmented article
- unlock: Read-ratio unlock rule with velocity violation detection
- quiz: Quiz composition from question pools and strict scoring
- session: GateSession state machine (the `can_share()` entry point)
- queue: One session per source for multi-source posts
- telemetry: Bounded event log for QA and tuning
"""

from .config import GateConfig
from .queue import GateQueue
from .quiz import GateQuizEngine, InsufficientContentError, Question, Quiz, QuizResult
from .reading import BlockSample, ReadingBlock, ReadingProgressTracker, ReadingState, segment_text
from .session import GateSession, GateState, InvalidTransitionError, ReplaySampleSource, SampleSource
from .telemetry import (
    BoundedTelemetryLog,
    TelemetryRecord,
    TelemetryRecorder,
    TelemetrySink,
    get_telemetry_log,
    reset_telemetry_log,
)
from .text_mix import (
    GateDecision,
    TestMode,
    classify,
    classify_intent_reshare,
    classify_media,
    classify_text,
    count_words,
)
from .unlock import UnlockDecision, UnlockPolicy, VelocityViolation

__all__ = [
    # Configuration
    "GateConfig",
    # Classification
    "GateDecision",
    "TestMode",
    "classify",
    "classify_text",
    "classify_intent_reshare",
    "classify_media",
    "count_words",
    # Reading
    "BlockSample",
    "ReadingBlock",
    "ReadingProgressTracker",
    "ReadingState",
    "segment_text",
    # Unlocking
    "UnlockPolicy",
    "UnlockDecision",
    "VelocityViolation",
    # Quiz
    "GateQuizEngine",
    "InsufficientContentError",
    "Question",
    "Quiz",
    "QuizResult",
    # Session
    "GateSession",
    "GateState",
    "GateQueue",
    "InvalidTransitionError",
    "ReplaySampleSource",
    "SampleSource",
    # Telemetry
    "BoundedTelemetryLog",
    "TelemetryRecord",
    "TelemetryRecorder",
    "TelemetrySink",
    "get_telemetry_log",
    "reset_telemetry_log",
]
