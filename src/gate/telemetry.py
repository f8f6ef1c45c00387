"""
Reader Telemetry.

Append-only, bounded log of comprehension gate events for QA and
anti-gaming analysis. Telemetry is best-effort: a failing sink is logged
and never affects the gating decision.

Event Types:
    - reader_view_opened: Article view opened with its block/word totals
    - reader_block_completed: A block met its coverage and dwell thresholds
    - reader_velocity_violation: A block completed at an implausible speed
    - reader_unlock_reached: Enough was read to unlock the quiz
    - gate_test_started: The comprehension quiz was presented
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from dataclasses import asdict, dataclass, fields
from datetime import UTC, datetime
from typing import Any, ClassVar, Protocol

from loguru import logger

DEFAULT_TELEMETRY_CAP = 100


# =============================================================================
# Event Schemas
# =============================================================================


@dataclass(frozen=True)
class ReaderViewOpened:
    event_type: ClassVar[str] = "reader_view_opened"

    article_id: str
    total_blocks: int
    total_words: int


@dataclass(frozen=True)
class ReaderBlockCompleted:
    event_type: ClassVar[str] = "reader_block_completed"

    article_id: str
    block_id: str
    block_index: int
    dwell_ms: int
    coverage: float
    words: int


@dataclass(frozen=True)
class ReaderVelocityViolation:
    event_type: ClassVar[str] = "reader_velocity_violation"

    article_id: str
    velocity: float
    threshold: float


@dataclass(frozen=True)
class ReaderUnlockReached:
    event_type: ClassVar[str] = "reader_unlock_reached"

    article_id: str
    read_ratio: float
    read_blocks: int
    total_blocks: int
    time_ms: int


@dataclass(frozen=True)
class GateTestStarted:
    event_type: ClassVar[str] = "gate_test_started"

    article_id: str
    final_read_ratio: float


TelemetryEvent = (
    ReaderViewOpened | ReaderBlockCompleted | ReaderVelocityViolation | ReaderUnlockReached | GateTestStarted
)

EVENT_TYPES: dict[str, type] = {
    cls.event_type: cls
    for cls in (ReaderViewOpened, ReaderBlockCompleted, ReaderVelocityViolation, ReaderUnlockReached, GateTestStarted)
}


def event_from_dict(event_type: str, payload: dict[str, Any]) -> TelemetryEvent:
    """Rebuild a typed event from its type tag and payload."""
    try:
        cls = EVENT_TYPES[event_type]
    except KeyError:
        raise ValueError(f"Unknown telemetry event type: {event_type}") from None
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in payload.items() if k in names})


@dataclass(frozen=True)
class TelemetryRecord:
    """A stored event, stamped when it was recorded."""

    event: TelemetryEvent
    recorded_at: datetime
    session_id: str | None = None

    @property
    def type(self) -> str:
        return self.event.event_type

    @property
    def article_id(self) -> str:
        return self.event.article_id

    def to_dict(self) -> dict[str, Any]:
        """Flat dictionary for JSON serialization."""
        return {
            "type": self.type,
            **asdict(self.event),
            "session_id": self.session_id,
            "timestamp": self.recorded_at.isoformat(),
        }


# =============================================================================
# Sinks
# =============================================================================


class TelemetrySink(Protocol):
    """Append-only store of telemetry records."""

    def record(self, record: TelemetryRecord) -> None:
        """Append a record, evicting the oldest beyond the cap."""
        ...

    def list(self) -> list[TelemetryRecord]:
        """All stored records, most recent last."""
        ...

    def clear(self) -> None:
        """Remove all records."""
        ...


class BoundedTelemetryLog:
    """
    In-memory telemetry sink keeping the most recent `cap` records.

    Shared by every session in the process; append and trim happen under
    one lock so concurrent writers neither lose nor duplicate entries.
    """

    def __init__(self, cap: int = DEFAULT_TELEMETRY_CAP):
        if cap <= 0:
            raise ValueError("cap must be positive")
        self.cap = cap
        self._lock = threading.Lock()
        self._records: deque[TelemetryRecord] = deque(maxlen=cap)

    def record(self, record: TelemetryRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list(self) -> list[TelemetryRecord]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


# =============================================================================
# Recorder
# =============================================================================


class TelemetryRecorder:
    """
    Stamps events and writes them to a sink.

    Sink errors are logged and swallowed.
    """

    def __init__(
        self,
        sink: TelemetrySink | None = None,
        session_id: str | None = None,
        debug: bool = False,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the recorder.

        Args:
            sink: Destination store (process-wide log if None)
            session_id: Tag written on every record
            debug: Log each event at INFO instead of DEBUG
            clock: Timestamp source (UTC now by default)
        """
        self.sink = sink if sink is not None else get_telemetry_log()
        self.session_id = session_id
        self.debug = debug
        self.clock = clock or (lambda: datetime.now(UTC))

    def record(self, event: TelemetryEvent) -> TelemetryRecord:
        """Record one event. Never raises on sink failure."""
        record = TelemetryRecord(event=event, recorded_at=self.clock(), session_id=self.session_id)

        level = "INFO" if self.debug else "DEBUG"
        logger.log(level, f"[Reader Telemetry] {record.to_dict()}")

        try:
            self.sink.record(record)
        except Exception as e:  # Telemetry must never break gating
            logger.error(f"Failed to store telemetry event {event.event_type}: {e}")

        return record


# =============================================================================
# Global Instance
# =============================================================================

_global_log: BoundedTelemetryLog | None = None
_global_lock = threading.Lock()


def get_telemetry_log(cap: int | None = None) -> BoundedTelemetryLog:
    """
    Get or create the process-wide telemetry log.

    Args:
        cap: Retention for a new log (DEFAULT_TELEMETRY_CAP if None).
            Must match the existing log's cap when one is already open.

    Raises:
        ValueError: If `cap` differs from the cap of the existing log
    """
    global _global_log
    with _global_lock:
        if _global_log is None:
            _global_log = BoundedTelemetryLog(cap=cap if cap is not None else DEFAULT_TELEMETRY_CAP)
        elif cap is not None and cap != _global_log.cap:
            raise ValueError(f"telemetry log already open with cap={_global_log.cap}, requested cap={cap}")
        return _global_log


def reset_telemetry_log() -> None:
    """Drop the process-wide telemetry log (for testing)."""
    global _global_log
    with _global_lock:
        _global_log = None
