"""
Reading Progress Tracking.

Consumes per-block visibility samples for a segmented article and keeps:
- Running maximum coverage per block
- Dwell time accrued while a block is visible enough
- Completed blocks and the read ratio (share of article words read)

A block completes once it has been covered far enough AND has been
dwelled on for a time proportional to its length. Scrolling past a block
satisfies coverage but not dwell.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import GateConfig
from .text_mix import count_words

# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class ReadingBlock:
    """A display segment of the article."""

    id: str
    index: int
    word_count: int
    text: str = ""


class BlockSample(BaseModel):
    """A visibility/dwell observation for one block, emitted by the viewport."""

    model_config = ConfigDict(frozen=True)

    block_id: str = Field(min_length=1)
    coverage: float = Field(ge=0.0, le=1.0)
    dwell_ms: int = Field(ge=0)  # accrued since the previous sample of this block
    timestamp: datetime


def segment_text(text: str, lines_per_block: int = 5) -> list[ReadingBlock]:
    """
    Split plain article text into reading blocks.

    Paragraphs are separated by blank lines. Text without paragraph breaks
    (e.g. lyrics) is grouped into chunks of `lines_per_block` lines.
    """
    if not text or not text.strip():
        return []

    paragraphs = [p.strip() for p in _split_paragraphs(text) if p.strip()]
    if len(paragraphs) <= 1:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        paragraphs = [
            "\n".join(lines[i : i + lines_per_block])
            for i in range(0, len(lines), lines_per_block)
        ]

    blocks = []
    for paragraph in paragraphs:
        words = count_words(paragraph)
        if words == 0:
            continue
        index = len(blocks)
        blocks.append(ReadingBlock(id=f"block-{index}", index=index, word_count=words, text=paragraph))
    return blocks


def _split_paragraphs(text: str) -> list[str]:
    paragraphs: list[str] = []
    current: list[str] = []
    for line in text.splitlines():
        if line.strip():
            current.append(line)
        elif current:
            paragraphs.append("\n".join(current))
            current = []
    if current:
        paragraphs.append("\n".join(current))
    return paragraphs


# =============================================================================
# State
# =============================================================================


@dataclass(frozen=True)
class BlockCompletion:
    """Snapshot of a block at the moment it completed."""

    block_id: str
    block_index: int
    words: int
    dwell_ms: int
    coverage: float
    visible_ms: int  # wall-clock time from the start of the first visible dwell to completion


@dataclass
class BlockProgress:
    """Per-block accumulation while the block is unread."""

    block: ReadingBlock
    required_dwell_ms: int
    max_coverage: float = 0.0
    dwell_ms: int = 0
    first_visible_at: datetime | None = None
    last_sample_at: datetime | None = None
    completed: bool = False


@dataclass
class ReadingState:
    """Aggregate reading progress for one article view."""

    total_blocks: int
    total_words: int
    completed_blocks: set[str] = field(default_factory=set)
    total_dwell_ms: int = 0
    read_ratio: float = 0.0
    completions: list[BlockCompletion] = field(default_factory=list)

    @property
    def read_blocks(self) -> int:
        return len(self.completed_blocks)

    @property
    def read_words(self) -> int:
        return sum(c.words for c in self.completions)


# =============================================================================
# Tracker
# =============================================================================


class ReadingProgressTracker:
    """
    Tracks reading progress over a fixed sequence of blocks.

    Samples that fail validation, reference unknown blocks, or go back in
    time are dropped without touching the state. Completed blocks ignore
    further samples, so the read ratio never decreases.
    """

    def __init__(self, blocks: list[ReadingBlock], config: GateConfig | None = None):
        """
        Initialize the tracker.

        Args:
            blocks: Article segments in display order
            config: Thresholds (uses defaults if None)
        """
        self.config = config or GateConfig()
        self._progress: dict[str, BlockProgress] = {}

        for block in sorted(blocks, key=lambda b: b.index):
            if block.word_count <= 0 or block.index < 0:
                logger.warning(f"Skipping block {block.id!r}: word_count={block.word_count}, index={block.index}")
                continue
            if block.id in self._progress:
                logger.warning(f"Skipping duplicate block id {block.id!r}")
                continue
            self._progress[block.id] = BlockProgress(
                block=block,
                required_dwell_ms=self.config.required_dwell_ms(block.word_count),
            )

        self.state = ReadingState(
            total_blocks=len(self._progress),
            total_words=sum(p.block.word_count for p in self._progress.values()),
        )

    @property
    def blocks(self) -> list[ReadingBlock]:
        return [p.block for p in self._progress.values()]

    def progress_for(self, block_id: str) -> BlockProgress | None:
        return self._progress.get(block_id)

    def observe(self, sample: BlockSample | Mapping[str, Any]) -> ReadingState:
        """
        Fold one sample into the reading state.

        Args:
            sample: A BlockSample, or a raw mapping to validate

        Returns:
            The (possibly updated) reading state
        """
        if not isinstance(sample, BlockSample):
            try:
                sample = BlockSample.model_validate(sample)
            except ValidationError as e:
                logger.warning(f"Dropping malformed block sample: {e.error_count()} validation error(s)")
                return self.state

        progress = self._progress.get(sample.block_id)
        if progress is None:
            logger.warning(f"Dropping sample for unknown block {sample.block_id!r}")
            return self.state

        if progress.completed:
            return self.state

        if progress.last_sample_at is not None and sample.timestamp < progress.last_sample_at:
            logger.warning(f"Dropping out-of-order sample for block {sample.block_id!r}")
            return self.state

        progress.last_sample_at = sample.timestamp
        progress.max_coverage = max(progress.max_coverage, sample.coverage)

        if sample.coverage >= self.config.visibility_floor:
            if progress.first_visible_at is None:
                # dwell_ms accrued before the sample was taken
                progress.first_visible_at = sample.timestamp - timedelta(milliseconds=sample.dwell_ms)
            progress.dwell_ms += sample.dwell_ms
            self.state.total_dwell_ms += sample.dwell_ms

        if (
            progress.max_coverage >= self.config.completion_coverage
            and progress.dwell_ms >= progress.required_dwell_ms
        ):
            self._complete(progress, sample.timestamp)

        return self.state

    def _complete(self, progress: BlockProgress, at: datetime) -> None:
        progress.completed = True
        block = progress.block

        visible_ms = 0
        if progress.first_visible_at is not None:
            visible_ms = int((at - progress.first_visible_at).total_seconds() * 1000)

        self.state.completed_blocks.add(block.id)
        self.state.completions.append(
            BlockCompletion(
                block_id=block.id,
                block_index=block.index,
                words=block.word_count,
                dwell_ms=progress.dwell_ms,
                coverage=progress.max_coverage,
                visible_ms=visible_ms,
            )
        )

        if self.state.total_words > 0:
            ratio = min(1.0, self.state.read_words / self.state.total_words)
            self.state.read_ratio = max(self.state.read_ratio, ratio)

        logger.debug(
            f"Block {block.id} completed: {block.word_count} words, "
            f"{progress.dwell_ms}ms dwell, read_ratio={self.state.read_ratio:.2f}"
        )

    # =========================================================================
    # Progressive reveal
    # =========================================================================

    @property
    def first_incomplete_index(self) -> int:
        """Position of the first unread block, or -1 when all are read."""
        for position, progress in enumerate(self._progress.values()):
            if not progress.completed:
                return position
        return -1

    def visible_up_to_index(self, ahead: int | None = None) -> int:
        """Last block position that may be shown: first unread block plus `ahead`."""
        ahead = self.config.visible_ahead_blocks if ahead is None else ahead
        last = len(self._progress) - 1
        first = self.first_incomplete_index
        if first == -1:
            return last
        return min(first + ahead, last)
