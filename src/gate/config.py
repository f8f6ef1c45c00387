"""
Tunable thresholds for the comprehension gate.

GateConfig is the typed view of the gate settings that the tracker,
unlock policy, classifier and telemetry recorder consume.
"""

from __future__ import annotations

from dataclasses import dataclass

from config import Settings, get_settings


@dataclass(frozen=True)
class GateConfig:
    """Configuration for reading tracking, unlocking and classification."""

    # Reading tracker
    visibility_floor: float = 0.25  # coverage needed for dwell to accrue
    completion_coverage: float = 0.8
    min_dwell_ms_per_word: int = 200
    min_dwell_base_ms: int = 1000
    max_dwell_ms: int | None = None
    visible_ahead_blocks: int = 2

    # Unlock policy
    max_plausible_velocity: float = 8.0  # words/sec
    required_read_ratio: float = 0.7
    elevated_read_ratio: float = 0.85
    unlock_grace_ratio: float = 0.0  # slack subtracted from whichever ratio applies

    # Text mix brackets (inclusive upper bounds)
    short_text_max_words: int = 30
    medium_text_max_words: int = 120

    # Telemetry
    telemetry_cap: int = 100
    debug: bool = False

    def __post_init__(self) -> None:
        for name in (
            "visibility_floor",
            "completion_coverage",
            "required_read_ratio",
            "elevated_read_ratio",
            "unlock_grace_ratio",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.elevated_read_ratio <= self.required_read_ratio:
            raise ValueError(
                "elevated_read_ratio must be strictly greater than required_read_ratio "
                f"({self.elevated_read_ratio} <= {self.required_read_ratio})"
            )
        if self.unlock_grace_ratio > self.required_read_ratio:
            raise ValueError(
                "unlock_grace_ratio cannot exceed required_read_ratio "
                f"({self.unlock_grace_ratio} > {self.required_read_ratio})"
            )
        if self.max_plausible_velocity <= 0:
            raise ValueError("max_plausible_velocity must be positive")
        if self.min_dwell_ms_per_word < 0 or self.min_dwell_base_ms < 0:
            raise ValueError("dwell floors must be non-negative")
        if self.max_dwell_ms is not None and self.max_dwell_ms <= 0:
            raise ValueError("max_dwell_ms must be positive when set")
        if self.short_text_max_words > self.medium_text_max_words:
            raise ValueError("short_text_max_words cannot exceed medium_text_max_words")
        if self.telemetry_cap <= 0:
            raise ValueError("telemetry_cap must be positive")

    def required_dwell_ms(self, word_count: int) -> int:
        """Dwell a block of `word_count` words needs before it can complete."""
        required = max(self.min_dwell_base_ms, word_count * self.min_dwell_ms_per_word)
        if self.max_dwell_ms is not None:
            required = min(required, self.max_dwell_ms)
        return required

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> GateConfig:
        """Build a config from application settings (cached settings by default)."""
        settings = settings or get_settings()
        return cls(**settings.get_reader_gate_config())
