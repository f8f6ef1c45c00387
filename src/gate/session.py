"""
Gate Session: lifecycle of the comprehension gate for one article view.

States:
    idle -> reading -> unlockable -> quizzing -> passed | failed | exempt
    failed -> reading (retry)
    idle -> exempt (no gate required)

The rest of the application only needs `can_share()`, which is true in
`passed` and `exempt`. Sessions are ephemeral: a fresh view starts at idle.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol

from loguru import logger

from .config import GateConfig
from .quiz import GateQuizEngine, InsufficientContentError, Question, Quiz, QuizResult
from .reading import BlockSample, ReadingBlock, ReadingProgressTracker, ReadingState
from .telemetry import (
    GateTestStarted,
    ReaderBlockCompleted,
    ReaderUnlockReached,
    ReaderVelocityViolation,
    ReaderViewOpened,
    TelemetryRecorder,
    get_telemetry_log,
)
from .text_mix import GateDecision
from .unlock import UnlockPolicy, VelocityViolation


class GateState(str, Enum):
    """Lifecycle state of a gate session."""

    IDLE = "idle"
    READING = "reading"
    UNLOCKABLE = "unlockable"
    QUIZZING = "quizzing"
    PASSED = "passed"
    FAILED = "failed"
    EXEMPT = "exempt"


TRANSITIONS: dict[GateState, set[GateState]] = {
    GateState.IDLE: {GateState.READING, GateState.EXEMPT},
    GateState.READING: {GateState.UNLOCKABLE},
    GateState.UNLOCKABLE: {GateState.QUIZZING},
    GateState.QUIZZING: {GateState.PASSED, GateState.FAILED, GateState.EXEMPT},
    GateState.FAILED: {GateState.READING},
    GateState.PASSED: set(),
    GateState.EXEMPT: set(),
}

SHAREABLE_STATES = {GateState.PASSED, GateState.EXEMPT}

# States in which viewport samples still feed the tracker
_TRACKING_STATES = {GateState.READING, GateState.UNLOCKABLE}


class InvalidTransitionError(RuntimeError):
    """An operation was called in a state that does not allow it."""


class SampleSource(Protocol):
    """Producer of viewport samples (intersection observer, replay, ...)."""

    def subscribe(self, callback: Callable[[BlockSample | Mapping[str, Any]], Any]) -> Callable[[], None]:
        """Start delivering samples to `callback`. Returns an unsubscribe function."""
        ...


class ReplaySampleSource:
    """Delivers a recorded sequence of samples synchronously on `play()`."""

    def __init__(self, samples: Iterable[BlockSample | Mapping[str, Any]]):
        self.samples = list(samples)
        self._callback: Callable[[BlockSample | Mapping[str, Any]], Any] | None = None

    def subscribe(self, callback: Callable[[BlockSample | Mapping[str, Any]], Any]) -> Callable[[], None]:
        self._callback = callback

        def unsubscribe() -> None:
            self._callback = None

        return unsubscribe

    @property
    def subscribed(self) -> bool:
        return self._callback is not None

    def play(self) -> int:
        """Deliver every sample while subscribed. Returns the number delivered."""
        delivered = 0
        for sample in self.samples:
            if self._callback is None:
                break
            self._callback(sample)
            delivered += 1
        return delivered


class GateSession:
    """
    Orchestrates the gate for one article view.

    Owns a ReadingProgressTracker and an UnlockPolicy, composes and scores
    the quiz through a GateQuizEngine, and records telemetry for every
    milestone.
    """

    def __init__(
        self,
        article_id: str,
        decision: GateDecision,
        blocks: list[ReadingBlock],
        config: GateConfig | None = None,
        quiz_engine: GateQuizEngine | None = None,
        recorder: TelemetryRecorder | None = None,
        clock: Callable[[], datetime] | None = None,
        session_id: str | None = None,
    ):
        """
        Initialize a session in the idle state.

        Args:
            article_id: Identifier of the source being read
            decision: Classifier output for the post
            blocks: Segmented article
            config: Gate thresholds (defaults if None)
            quiz_engine: Quiz composer/scorer (new engine if None)
            recorder: Telemetry recorder (process-wide log if None)
            clock: Time source for unlock timing (UTC now by default)
            session_id: Identifier for telemetry (random if None)
        """
        self.article_id = article_id
        self.decision = decision
        self.config = config or GateConfig()
        self.session_id = session_id or str(uuid.uuid4())[:12]
        self.clock = clock or (lambda: datetime.now(UTC))
        self.quiz_engine = quiz_engine or GateQuizEngine()
        self.recorder = recorder or TelemetryRecorder(
            get_telemetry_log(cap=self.config.telemetry_cap),
            session_id=self.session_id,
            debug=self.config.debug,
        )

        self.tracker = ReadingProgressTracker(blocks, self.config)
        self.policy = UnlockPolicy(self.config)

        self.quiz: Quiz | None = None
        self.quiz_result: QuizResult | None = None
        self.attempts = 0
        self.exempt_reason: str | None = None
        self.opened_at: datetime | None = None
        self.closed = False

        self._state = GateState.IDLE
        self.history: list[GateState] = [GateState.IDLE]
        self._reported_completions = 0
        self._unlock_recorded = False
        self._unsubscribe: Callable[[], None] | None = None

    # =========================================================================
    # Public API
    # =========================================================================

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def reading_state(self) -> ReadingState:
        return self.tracker.state

    @property
    def violations(self) -> list[VelocityViolation]:
        return self.policy.violations

    def can_share(self) -> bool:
        """Whether the share action is allowed for this article."""
        return self._state in SHAREABLE_STATES

    def open(self) -> GateState:
        """Open the article view. Posts that need no gate go straight to exempt."""
        self._require(GateState.IDLE, "open")
        self.opened_at = self.clock()

        if not self.decision.gate_required:
            self.exempt_reason = "gate_not_required"
            self._transition(GateState.EXEMPT)
            return self._state

        self._transition(GateState.READING)
        state = self.tracker.state
        self.recorder.record(
            ReaderViewOpened(
                article_id=self.article_id,
                total_blocks=state.total_blocks,
                total_words=state.total_words,
            )
        )
        self._evaluate()
        return self._state

    def observe(self, sample: BlockSample | Mapping[str, Any]) -> ReadingState:
        """
        Feed one viewport sample.

        Samples outside reading/unlockable (or after close) are dropped.
        """
        if self.closed or self._state not in _TRACKING_STATES:
            logger.debug(f"[{self.session_id}] Ignoring sample in state {self._state.value}")
            return self.tracker.state

        self.tracker.observe(sample)
        self._evaluate()
        return self.tracker.state

    def start_quiz(
        self,
        source_pool: Iterable[Question | Mapping[str, Any]] = (),
        user_pool: Iterable[Question | Mapping[str, Any]] = (),
    ) -> Quiz | None:
        """
        Present the quiz (user opted in).

        Returns:
            The composed quiz, or None when the pools are too small and the
            session became exempt
        """
        self._require(GateState.UNLOCKABLE, "start_quiz")
        self._transition(GateState.QUIZZING)

        try:
            quiz = self.quiz_engine.compose(self.decision, source_pool, user_pool)
        except InsufficientContentError as e:
            logger.info(f"[{self.session_id}] {e}; sharing allowed without a quiz")
            self.exempt_reason = "insufficient_content"
            self._transition(GateState.EXEMPT)
            return None

        self.quiz = quiz
        self.attempts += 1
        self.recorder.record(
            GateTestStarted(article_id=self.article_id, final_read_ratio=self.tracker.state.read_ratio)
        )
        return quiz

    def submit(self, answers: Mapping[str, int] | Sequence[int]) -> QuizResult:
        """Score the answers and resolve to passed or failed."""
        self._require(GateState.QUIZZING, "submit")

        result = self.quiz_engine.score(self.quiz, answers)
        self.quiz_result = result
        self._transition(GateState.PASSED if result.passed else GateState.FAILED)
        return result

    def retry(self) -> GateState:
        """
        Dismiss a failed attempt and return to reading.

        Unlocking is one-way, so a session that had unlocked is promoted
        back to unlockable right away.
        """
        self._require(GateState.FAILED, "retry")
        self.quiz = None
        self._transition(GateState.READING)
        self._evaluate()
        return self._state

    def attach(self, source: SampleSource) -> None:
        """Subscribe to a sample producer."""
        if self.closed:
            raise InvalidTransitionError("Cannot attach a sample source to a closed session")
        self._release()
        self._unsubscribe = source.subscribe(self.observe)

    def close(self) -> None:
        """Tear down the view: release the sample subscription and stop tracking."""
        self._release()
        if not self.closed:
            self.closed = True
            logger.debug(f"[{self.session_id}] Session closed in state {self._state.value}")

    # =========================================================================
    # Internals
    # =========================================================================

    def _evaluate(self) -> None:
        state = self.tracker.state

        for completion in state.completions[self._reported_completions :]:
            self.recorder.record(
                ReaderBlockCompleted(
                    article_id=self.article_id,
                    block_id=completion.block_id,
                    block_index=completion.block_index,
                    dwell_ms=completion.dwell_ms,
                    coverage=completion.coverage,
                    words=completion.words,
                )
            )
        self._reported_completions = len(state.completions)

        known = len(self.policy.violations)
        decision = self.policy.evaluate(state)
        for violation in self.policy.violations[known:]:
            self.recorder.record(
                ReaderVelocityViolation(
                    article_id=self.article_id,
                    velocity=violation.velocity,
                    threshold=violation.threshold,
                )
            )

        if decision.unlockable and self._state == GateState.READING:
            self._transition(GateState.UNLOCKABLE)
            if not self._unlock_recorded:
                self._unlock_recorded = True
                self.recorder.record(
                    ReaderUnlockReached(
                        article_id=self.article_id,
                        read_ratio=state.read_ratio,
                        read_blocks=state.read_blocks,
                        total_blocks=state.total_blocks,
                        time_ms=self._elapsed_ms(),
                    )
                )

    def _elapsed_ms(self) -> int:
        if self.opened_at is None:
            return 0
        return max(0, int((self.clock() - self.opened_at).total_seconds() * 1000))

    def _require(self, expected: GateState, operation: str) -> None:
        if self.closed:
            raise InvalidTransitionError(f"{operation}() called on a closed session")
        if self._state != expected:
            raise InvalidTransitionError(
                f"{operation}() requires state {expected.value}, session is {self._state.value}"
            )

    def _transition(self, new_state: GateState) -> None:
        if new_state not in TRANSITIONS[self._state]:
            raise InvalidTransitionError(f"Illegal transition {self._state.value} -> {new_state.value}")
        logger.debug(f"[{self.session_id}] {self.article_id}: {self._state.value} -> {new_state.value}")
        self._state = new_state
        self.history.append(new_state)

    def _release(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
