"""
Configuration settings for the comprehension gate.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Reading Tracker
    # ========================================
    gate_visibility_floor: float = Field(
        default=0.25,
        ge=0.0,
        le=1.0,
        description="Minimum coverage for dwell time to accrue on a block",
    )
    gate_completion_coverage: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Max coverage a block must reach before it can complete",
    )
    gate_min_dwell_ms_per_word: int = Field(
        default=200,  # ~300 wpm
        ge=0,
        description="Dwell floor per word of a block (ms)",
    )
    gate_min_dwell_base_ms: int = Field(
        default=1000,
        ge=0,
        description="Dwell floor for any block regardless of length (ms)",
    )
    gate_max_dwell_ms: int | None = Field(
        default=None,
        description="Optional cap on the required dwell of a single block (ms)",
    )
    gate_visible_ahead_blocks: int = Field(
        default=2,
        ge=0,
        description="Blocks revealed past the first unread block",
    )

    # ========================================
    # Unlock Policy
    # ========================================
    gate_max_plausible_velocity: float = Field(
        default=8.0,
        gt=0.0,
        description="Reading speed ceiling in words/sec before a block is flagged",
    )
    gate_required_read_ratio: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Share of article words that must be read to unlock the quiz",
    )
    gate_elevated_read_ratio: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Required read ratio once a velocity violation was recorded",
    )
    gate_unlock_grace_ratio: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Slack subtracted from the required read ratio when checking unlock",
    )

    # ========================================
    # Text Mix Brackets
    # ========================================
    gate_short_text_max_words: int = Field(
        default=30,
        ge=0,
        description="Upper bound (inclusive) of the short-text bracket",
    )
    gate_medium_text_max_words: int = Field(
        default=120,
        ge=0,
        description="Upper bound (inclusive) of the medium-text bracket",
    )

    # ========================================
    # Telemetry
    # ========================================
    telemetry_cap: int = Field(
        default=100,
        gt=0,
        description="Number of most recent telemetry events kept",
    )
    telemetry_database_url: str = Field(
        default=f"sqlite:///{Path.home() / '.gate' / 'telemetry.db'}",
        description="SQLAlchemy URL of the durable telemetry store",
    )

    # ========================================
    # Logging
    # ========================================
    gate_debug: bool = Field(
        default=False,
        description="Log every telemetry event at INFO level",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    def get_reader_gate_config(self) -> dict[str, any]:
        """Get reading tracker and unlock policy thresholds as a dictionary."""
        return {
            "visibility_floor": self.gate_visibility_floor,
            "completion_coverage": self.gate_completion_coverage,
            "min_dwell_ms_per_word": self.gate_min_dwell_ms_per_word,
            "min_dwell_base_ms": self.gate_min_dwell_base_ms,
            "max_dwell_ms": self.gate_max_dwell_ms,
            "visible_ahead_blocks": self.gate_visible_ahead_blocks,
            "max_plausible_velocity": self.gate_max_plausible_velocity,
            "required_read_ratio": self.gate_required_read_ratio,
            "elevated_read_ratio": self.gate_elevated_read_ratio,
            "unlock_grace_ratio": self.gate_unlock_grace_ratio,
            "short_text_max_words": self.gate_short_text_max_words,
            "medium_text_max_words": self.gate_medium_text_max_words,
            "telemetry_cap": self.telemetry_cap,
            "debug": self.gate_debug,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
