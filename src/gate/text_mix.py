"""
Text Mix Classifier.

Decides whether a post needs the comprehension gate and how the quiz is
composed, based on how much of the post the author wrote themselves:

With an external source:
- <= 30 words  -> SOURCE_ONLY (3 questions on the source)
- 31-120 words -> MIXED (1 question on the user text, 2 on the source)
- > 120 words  -> USER_ONLY (3 questions on the user text)

Without a source (originals):
- <= 30 words  -> no gate
- 31-120 words -> 1 question
- > 120 words  -> 3 questions
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .config import GateConfig

FULL_QUIZ_QUESTIONS = 3
LIGHT_QUIZ_QUESTIONS = 1

_URL_PATTERN = re.compile(r"https?://\S+")


class TestMode(str, Enum):
    """Which text population the quiz draws from when a source is present."""

    __test__ = False  # not a pytest class

    SOURCE_ONLY = "SOURCE_ONLY"
    MIXED = "MIXED"
    USER_ONLY = "USER_ONLY"


# (source questions, user-text questions) per test mode
TEST_MODE_SPLITS: dict[TestMode, tuple[int, int]] = {
    TestMode.SOURCE_ONLY: (3, 0),
    TestMode.MIXED: (2, 1),
    TestMode.USER_ONLY: (0, 3),
}


@dataclass(frozen=True)
class GateDecision:
    """
    Outcome of classifying a post.

    Exactly one of `test_mode` (posts with an external source) or
    `question_count` (originals) is set.
    """

    test_mode: TestMode | None = None
    question_count: int | None = None

    def __post_init__(self) -> None:
        if (self.test_mode is None) == (self.question_count is None):
            raise ValueError("GateDecision needs exactly one of test_mode or question_count")
        if self.question_count is not None and self.question_count < 0:
            raise ValueError("question_count cannot be negative")

    @classmethod
    def no_gate(cls) -> GateDecision:
        return cls(question_count=0)

    @property
    def source_questions(self) -> int:
        """Questions to draw from the source pool."""
        if self.test_mode is not None:
            return TEST_MODE_SPLITS[self.test_mode][0]
        return 0

    @property
    def user_questions(self) -> int:
        """Questions to draw from the user-text pool."""
        if self.test_mode is not None:
            return TEST_MODE_SPLITS[self.test_mode][1]
        return self.question_count or 0

    @property
    def total_questions(self) -> int:
        return self.source_questions + self.user_questions

    @property
    def gate_required(self) -> bool:
        return self.total_questions > 0

    def describe(self) -> str:
        """Short human-readable label."""
        if self.test_mode is not None:
            return f"{self.test_mode.value} ({self.source_questions} source + {self.user_questions} user)"
        if not self.question_count:
            return "no gate"
        return f"{self.question_count} question(s) on user text"


def count_words(text: str | None) -> int:
    """Count whitespace-separated words (Unicode whitespace, empty tokens dropped)."""
    if not text:
        return 0
    return len(text.split())


def extract_first_url(text: str | None) -> str | None:
    """Return the first http(s) link in `text`, if any."""
    if not text:
        return None
    match = _URL_PATTERN.search(text)
    return match.group(0) if match else None


def has_link(text: str | None) -> bool:
    """Whether a draft carries an external link (and therefore a source)."""
    return extract_first_url(text) is not None


def classify(
    user_word_count: int,
    has_external_source: bool,
    source_word_count: int | None = None,
    config: GateConfig | None = None,
) -> GateDecision:
    """
    Classify a post's text mix.

    Args:
        user_word_count: Words the author wrote
        has_external_source: Whether the post quotes/links external content
        source_word_count: Words of the source text, when known
        config: Bracket configuration (defaults if None)

    Returns:
        GateDecision with a TestMode (source present) or a QuestionCount
    """
    if user_word_count < 0 or (source_word_count is not None and source_word_count < 0):
        raise ValueError("word counts cannot be negative")

    config = config or GateConfig()

    # Nothing to read means nothing to test, source or not
    if user_word_count + (source_word_count or 0) == 0:
        return GateDecision.no_gate()

    if has_external_source:
        if user_word_count <= config.short_text_max_words:
            return GateDecision(test_mode=TestMode.SOURCE_ONLY)
        if user_word_count <= config.medium_text_max_words:
            return GateDecision(test_mode=TestMode.MIXED)
        return GateDecision(test_mode=TestMode.USER_ONLY)

    if user_word_count <= config.short_text_max_words:
        return GateDecision.no_gate()
    if user_word_count <= config.medium_text_max_words:
        return GateDecision(question_count=LIGHT_QUIZ_QUESTIONS)
    return GateDecision(question_count=FULL_QUIZ_QUESTIONS)


def classify_text(
    user_text: str | None,
    source_url: str | None = None,
    source_text: str | None = None,
    config: GateConfig | None = None,
    source_word_count: int | None = None,
) -> GateDecision:
    """
    Classify a composer draft directly from its text.

    A source is present when `source_url` or `source_text` is given, or when
    the draft itself contains a link (the link is not counted as user text).
    `source_word_count` stands in for `source_text` when only the length is known.
    """
    link = extract_first_url(user_text)
    own_text = _URL_PATTERN.sub(" ", user_text) if user_text else ""
    has_source = bool(source_url or source_text or link) or source_word_count is not None
    source_words = count_words(source_text) if source_text is not None else source_word_count
    return classify(count_words(own_text), has_source, source_words, config)


def classify_intent_reshare(original_word_count: int, config: GateConfig | None = None) -> GateDecision:
    """
    Classify a reshare of an intent post, whose original text is the source.

    Intent posts are at least 30 words long, so the gate is always on:
    1 question up to the medium bracket, 3 beyond it.
    """
    if original_word_count < 0:
        raise ValueError("word counts cannot be negative")
    config = config or GateConfig()
    if original_word_count <= config.medium_text_max_words:
        return GateDecision(question_count=LIGHT_QUIZ_QUESTIONS)
    return GateDecision(question_count=FULL_QUIZ_QUESTIONS)


def classify_media(
    user_word_count: int,
    has_extracted_text: bool,
    config: GateConfig | None = None,
) -> GateDecision:
    """
    Classify a post whose attachment is an image or video.

    Text extracted from the media (OCR, transcript) plays the role of the
    source. Without it only the author's own words can be tested, so short
    captions pass ungated and longer ones get a QuestionCount.
    """
    if user_word_count < 0:
        raise ValueError("word counts cannot be negative")
    config = config or GateConfig()

    if has_extracted_text:
        if user_word_count <= config.short_text_max_words:
            return GateDecision(test_mode=TestMode.SOURCE_ONLY)
        if user_word_count <= config.medium_text_max_words:
            return GateDecision(test_mode=TestMode.MIXED)
        return GateDecision(test_mode=TestMode.USER_ONLY)

    if user_word_count <= config.short_text_max_words:
        return GateDecision.no_gate()
    if user_word_count <= config.medium_text_max_words:
        return GateDecision(question_count=LIGHT_QUIZ_QUESTIONS)
    return GateDecision(question_count=FULL_QUIZ_QUESTIONS)
