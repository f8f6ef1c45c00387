"""
Gate Quiz Engine.

Composes the comprehension quiz from externally supplied question pools
and scores submitted answers.

Composition follows the classifier's decision:
- SOURCE_ONLY: 3 questions from the source pool
- MIXED: 2 from the source pool, 1 from the user-text pool
- USER_ONLY: 3 from the user-text pool
- QuestionCount n: n from the user-text pool

Scoring is strict: every question must be answered correctly.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .text_mix import GateDecision

INSUFFICIENT_CONTENT_MESSAGE = "Content too short to test: you may still share without a quiz."


class Question(BaseModel):
    """A multiple-choice question with exactly one correct option."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    text: str
    options: list[str] = Field(min_length=2)
    correct_index: int = Field(ge=0)

    @model_validator(mode="after")
    def _correct_index_in_range(self) -> Question:
        if self.correct_index >= len(self.options):
            raise ValueError(
                f"correct_index {self.correct_index} out of range for {len(self.options)} options"
            )
        return self


class InsufficientContentError(Exception):
    """A question pool is too small to build a fair quiz."""

    user_message = INSUFFICIENT_CONTENT_MESSAGE

    def __init__(self, pool: str, required: int, available: int):
        self.pool = pool
        self.required = required
        self.available = available
        super().__init__(f"{pool} pool has {available} usable question(s), {required} required")


@dataclass
class Quiz:
    """A composed quiz."""

    decision: GateDecision
    questions: list[Question]
    source_question_ids: list[str] = field(default_factory=list)
    user_question_ids: list[str] = field(default_factory=list)

    @property
    def question_count(self) -> int:
        return len(self.questions)


@dataclass(frozen=True)
class QuizResult:
    """Result of scoring a quiz attempt."""

    passed: bool
    correct_count: int
    total: int
    wrong_ids: tuple[str, ...] = ()


class GateQuizEngine:
    """
    Builds and scores gate quizzes.

    Draws are random within a pool but the source/user split is fixed by
    the decision. No attempt is made to avoid repeats between attempts.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def compose(
        self,
        decision: GateDecision,
        source_pool: Iterable[Question | Mapping[str, Any]] = (),
        user_pool: Iterable[Question | Mapping[str, Any]] = (),
    ) -> Quiz:
        """
        Compose a quiz for a gate decision.

        Args:
            decision: Classifier output
            source_pool: Questions about the external source
            user_pool: Questions about the user-authored text

        Returns:
            Quiz with source questions first, then user-text questions

        Raises:
            InsufficientContentError: A pool has fewer usable questions than required
        """
        sources = _usable_questions(source_pool, "source")
        users = _usable_questions(user_pool, "user_text")

        # Check both pools before drawing anything
        if len(sources) < decision.source_questions:
            raise InsufficientContentError("source", decision.source_questions, len(sources))
        if len(users) < decision.user_questions:
            raise InsufficientContentError("user_text", decision.user_questions, len(users))

        drawn_sources = self.rng.sample(sources, decision.source_questions)
        drawn_users = self.rng.sample(users, decision.user_questions)

        logger.debug(
            f"Composed quiz ({decision.describe()}): "
            f"{len(drawn_sources)} of {len(sources)} source, {len(drawn_users)} of {len(users)} user"
        )
        return Quiz(
            decision=decision,
            questions=drawn_sources + drawn_users,
            source_question_ids=[q.id for q in drawn_sources],
            user_question_ids=[q.id for q in drawn_users],
        )

    def score(self, quiz: Quiz, answers: Mapping[str, int] | Sequence[int]) -> QuizResult:
        """
        Score an attempt.

        Args:
            quiz: The quiz that was presented
            answers: Option index per question id, or per question position

        Returns:
            QuizResult; passed only if every question is answered correctly
        """
        if isinstance(answers, Mapping):
            given = [answers.get(q.id) for q in quiz.questions]
        else:
            given = list(answers)[: len(quiz.questions)]
            given += [None] * (len(quiz.questions) - len(given))

        wrong = [q.id for q, answer in zip(quiz.questions, given) if answer != q.correct_index]
        correct_count = len(quiz.questions) - len(wrong)

        return QuizResult(
            passed=bool(quiz.questions) and not wrong,
            correct_count=correct_count,
            total=len(quiz.questions),
            wrong_ids=tuple(wrong),
        )


def _usable_questions(pool: Iterable[Question | Mapping[str, Any]], name: str) -> list[Question]:
    """Validate pool entries, dropping malformed ones and duplicate ids."""
    questions: list[Question] = []
    seen: set[str] = set()
    for item in pool:
        if not isinstance(item, Question):
            try:
                item = Question.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Dropping malformed {name} question: {e.error_count()} validation error(s)")
                continue
        if item.id in seen:
            logger.warning(f"Dropping duplicate {name} question {item.id!r}")
            continue
        seen.add(item.id)
        questions.append(item)
    return questions
