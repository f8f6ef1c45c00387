"""
Unlock Policy.

Decides when enough reading evidence exists to present the comprehension
quiz, and flags blocks read at an implausible speed.

A velocity violation never revokes a completed block. Instead the read
ratio needed to unlock is raised for the rest of the session.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from .config import GateConfig
from .reading import BlockCompletion, ReadingState


@dataclass(frozen=True)
class VelocityViolation:
    """A block completed faster than a plausible reading speed."""

    block_id: str
    velocity: float  # words/sec
    threshold: float


@dataclass(frozen=True)
class UnlockDecision:
    """Result of one policy evaluation."""

    unlockable: bool
    violation: VelocityViolation | None = None


@dataclass
class UnlockPolicy:
    """
    Evaluates reading state after each sample.

    Unlocking is one-way: once the read ratio has met the requirement the
    policy stays unlocked until the session is torn down.
    """

    config: GateConfig = field(default_factory=GateConfig)
    violations: list[VelocityViolation] = field(default_factory=list)
    unlocked: bool = False
    _assessed: int = 0

    @property
    def required_read_ratio(self) -> float:
        """Read ratio currently needed to unlock."""
        if self.violations:
            return self.config.elevated_read_ratio
        return self.config.required_read_ratio

    @property
    def effective_read_ratio(self) -> float:
        """Required read ratio less the configured grace."""
        return max(0.0, self.required_read_ratio - self.config.unlock_grace_ratio)

    def evaluate(self, state: ReadingState, elapsed_ms: int | None = None) -> UnlockDecision:
        """
        Assess new block completions and check the unlock condition.

        Args:
            state: Current reading state
            elapsed_ms: Wall-clock time the latest completed block was visible.
                Defaults to the time recorded by the tracker.

        Returns:
            UnlockDecision with the newest violation raised by this call, if any
        """
        violation = None
        new_completions = state.completions[self._assessed :]
        for position, completion in enumerate(new_completions):
            is_latest = position == len(new_completions) - 1
            wall_ms = elapsed_ms if is_latest and elapsed_ms is not None else completion.visible_ms
            found = self._check_velocity(completion, wall_ms)
            if found:
                self.violations.append(found)
                violation = found
        self._assessed = len(state.completions)

        if not self.unlocked and self._meets_requirement(state):
            self.unlocked = True
            logger.debug(
                f"Unlock reached: read_ratio={state.read_ratio:.2f} "
                f">= required={self.effective_read_ratio:.2f}"
            )

        return UnlockDecision(unlockable=self.unlocked, violation=violation)

    def _meets_requirement(self, state: ReadingState) -> bool:
        if state.total_words == 0:
            # Nothing readable: the reading requirement is vacuous
            return True
        return state.read_ratio >= self.effective_read_ratio

    def _check_velocity(self, completion: BlockCompletion, wall_ms: int) -> VelocityViolation | None:
        # Reported dwell cannot exceed the time the block was actually on screen
        dwell_ms = completion.dwell_ms
        if 0 < wall_ms < dwell_ms:
            dwell_ms = wall_ms

        if dwell_ms <= 0:
            velocity = float("inf")
        else:
            velocity = completion.words / (dwell_ms / 1000)

        if velocity <= self.config.max_plausible_velocity:
            return None

        logger.warning(
            f"Velocity violation on {completion.block_id}: "
            f"{velocity:.1f} w/s > {self.config.max_plausible_velocity:.1f} w/s"
        )
        return VelocityViolation(
            block_id=completion.block_id,
            velocity=velocity,
            threshold=self.config.max_plausible_velocity,
        )
