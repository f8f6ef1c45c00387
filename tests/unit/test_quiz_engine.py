"""
Unit tests for gate quiz composition and scoring.
"""

import random

import pytest
from pydantic import ValidationError

from src.gate.quiz import INSUFFICIENT_CONTENT_MESSAGE, GateQuizEngine, InsufficientContentError, Question
from src.gate.text_mix import GateDecision, TestMode


@pytest.fixture
def engine():
    return GateQuizEngine(rng=random.Random(42))


class TestQuestion:
    def test_valid(self, make_question):
        question = Question.model_validate(make_question("q1", correct_index=3))

        assert question.correct_index == 3

    def test_correct_index_out_of_range(self, make_question):
        with pytest.raises(ValidationError):
            Question.model_validate(make_question("q1", correct_index=4))

    def test_needs_two_options(self):
        with pytest.raises(ValidationError):
            Question(id="q1", text="?", options=["only"], correct_index=0)


class TestCompose:
    def test_source_only(self, engine, source_pool, user_pool):
        quiz = engine.compose(GateDecision(test_mode=TestMode.SOURCE_ONLY), source_pool, user_pool)

        assert quiz.question_count == 3
        assert len(quiz.source_question_ids) == 3
        assert quiz.user_question_ids == []
        assert all(q.id.startswith("s") for q in quiz.questions)

    def test_mixed_puts_source_questions_first(self, engine, source_pool, user_pool):
        quiz = engine.compose(GateDecision(test_mode=TestMode.MIXED), source_pool, user_pool)

        assert [q.id[0] for q in quiz.questions] == ["s", "s", "u"]

    def test_user_only(self, engine, source_pool, user_pool):
        quiz = engine.compose(GateDecision(test_mode=TestMode.USER_ONLY), source_pool, user_pool)

        assert len(quiz.user_question_ids) == 3
        assert quiz.source_question_ids == []

    def test_question_count(self, engine, user_pool):
        quiz = engine.compose(GateDecision(question_count=1), user_pool=user_pool)

        assert quiz.question_count == 1
        assert quiz.questions[0].id.startswith("u")

    def test_no_duplicates(self, engine, source_pool):
        quiz = engine.compose(GateDecision(test_mode=TestMode.SOURCE_ONLY), source_pool)

        ids = [q.id for q in quiz.questions]
        assert len(ids) == len(set(ids))

    def test_insufficient_source_pool(self, engine, source_pool, user_pool):
        with pytest.raises(InsufficientContentError) as exc:
            engine.compose(GateDecision(test_mode=TestMode.MIXED), source_pool[:1], user_pool)

        assert exc.value.pool == "source"
        assert exc.value.required == 2
        assert exc.value.available == 1
        assert exc.value.user_message == INSUFFICIENT_CONTENT_MESSAGE

    def test_insufficient_user_pool(self, engine, source_pool):
        with pytest.raises(InsufficientContentError) as exc:
            engine.compose(GateDecision(test_mode=TestMode.MIXED), source_pool, [])

        assert exc.value.pool == "user_text"

    def test_malformed_and_duplicate_questions_do_not_count(self, engine, make_question):
        pool = [
            make_question("s1"),
            make_question("s1"),
            make_question("bad", correct_index=9),
            {"id": "s2"},
            make_question("s3"),
        ]

        with pytest.raises(InsufficientContentError) as exc:
            engine.compose(GateDecision(test_mode=TestMode.SOURCE_ONLY), pool)

        assert exc.value.available == 2

    def test_seeded_rng_is_reproducible(self, source_pool):
        decision = GateDecision(test_mode=TestMode.SOURCE_ONLY)

        first = GateQuizEngine(rng=random.Random(7)).compose(decision, source_pool)
        second = GateQuizEngine(rng=random.Random(7)).compose(decision, source_pool)

        assert [q.id for q in first.questions] == [q.id for q in second.questions]


class TestScore:
    @pytest.fixture
    def quiz(self, engine, source_pool, user_pool):
        return engine.compose(GateDecision(test_mode=TestMode.MIXED), source_pool, user_pool)

    def test_all_correct_passes(self, engine, quiz):
        answers = {q.id: q.correct_index for q in quiz.questions}

        result = engine.score(quiz, answers)

        assert result.passed
        assert result.correct_count == 3
        assert result.wrong_ids == ()

    def test_one_wrong_fails(self, engine, quiz):
        answers = {q.id: q.correct_index for q in quiz.questions}
        wrong = quiz.questions[1]
        answers[wrong.id] = (wrong.correct_index + 1) % len(wrong.options)

        result = engine.score(quiz, answers)

        assert not result.passed
        assert result.correct_count == 2
        assert result.wrong_ids == (wrong.id,)

    def test_missing_answer_fails(self, engine, quiz):
        answers = {q.id: q.correct_index for q in quiz.questions[:2]}

        assert not engine.score(quiz, answers).passed

    def test_positional_answers(self, engine, quiz):
        answers = [q.correct_index for q in quiz.questions]

        assert engine.score(quiz, answers).passed
        assert not engine.score(quiz, answers[:-1]).passed

    def test_empty_quiz_never_passes(self, engine):
        quiz = engine.compose(GateDecision.no_gate())

        assert quiz.question_count == 0
        assert not engine.score(quiz, {}).passed
