"""
Unit tests for the text mix classifier.
"""

import pytest

from src.gate.config import GateConfig
from src.gate.text_mix import (
    GateDecision,
    TestMode,
    classify,
    classify_intent_reshare,
    classify_media,
    classify_text,
    count_words,
    extract_first_url,
    has_link,
)


class TestCountWords:
    def test_counts_whitespace_separated_tokens(self):
        assert count_words("one two  three\nfour\tfive") == 5

    def test_empty_and_none(self):
        assert count_words("") == 0
        assert count_words("   \n ") == 0
        assert count_words(None) == 0

    def test_unicode_whitespace(self):
        assert count_words("alpha\u00a0beta\u2003gamma") == 3


class TestClassifyWithSource:
    @pytest.mark.parametrize(
        "words,expected",
        [
            (1, TestMode.SOURCE_ONLY),
            (30, TestMode.SOURCE_ONLY),
            (31, TestMode.MIXED),
            (120, TestMode.MIXED),
            (121, TestMode.USER_ONLY),
            (5000, TestMode.USER_ONLY),
        ],
    )
    def test_brackets(self, words, expected):
        decision = classify(words, has_external_source=True)

        assert decision.test_mode == expected
        assert decision.question_count is None
        assert decision.gate_required

    def test_source_only_with_no_user_text(self):
        decision = classify(0, has_external_source=True, source_word_count=800)

        assert decision.test_mode == TestMode.SOURCE_ONLY
        assert decision.source_questions == 3
        assert decision.user_questions == 0

    def test_mixed_split(self):
        decision = classify(60, has_external_source=True)

        assert decision.source_questions == 2
        assert decision.user_questions == 1
        assert decision.total_questions == 3

    def test_user_only_split(self):
        decision = classify(200, has_external_source=True)

        assert decision.source_questions == 0
        assert decision.user_questions == 3


class TestClassifyOriginals:
    @pytest.mark.parametrize(
        "words,expected_count",
        [
            (1, 0),
            (30, 0),
            (31, 1),
            (120, 1),
            (121, 3),
        ],
    )
    def test_brackets(self, words, expected_count):
        decision = classify(words, has_external_source=False)

        assert decision.test_mode is None
        assert decision.question_count == expected_count
        assert decision.user_questions == expected_count
        assert decision.source_questions == 0

    def test_short_original_is_not_gated(self):
        assert not classify(12, has_external_source=False).gate_required


class TestClassifyEdgeCases:
    def test_no_words_anywhere_means_no_gate(self):
        decision = classify(0, has_external_source=True, source_word_count=0)

        assert decision == GateDecision.no_gate()
        assert not decision.gate_required

    def test_empty_original(self):
        assert not classify(0, has_external_source=False).gate_required

    def test_negative_counts_rejected(self):
        with pytest.raises(ValueError):
            classify(-1, has_external_source=False)
        with pytest.raises(ValueError):
            classify(10, has_external_source=True, source_word_count=-5)

    def test_custom_brackets(self):
        config = GateConfig(short_text_max_words=10, medium_text_max_words=20)

        assert classify(10, True, config=config).test_mode == TestMode.SOURCE_ONLY
        assert classify(11, True, config=config).test_mode == TestMode.MIXED
        assert classify(21, True, config=config).test_mode == TestMode.USER_ONLY


class TestGateDecision:
    def test_requires_exactly_one_field(self):
        with pytest.raises(ValueError):
            GateDecision()
        with pytest.raises(ValueError):
            GateDecision(test_mode=TestMode.MIXED, question_count=1)

    def test_negative_question_count_rejected(self):
        with pytest.raises(ValueError):
            GateDecision(question_count=-1)

    def test_describe(self):
        assert GateDecision.no_gate().describe() == "no gate"
        assert "MIXED" in GateDecision(test_mode=TestMode.MIXED).describe()
        assert GateDecision(question_count=1).describe().startswith("1 question")


class TestClassifyText:
    def test_link_in_draft_marks_source(self):
        decision = classify_text("Worth a read https://example.com/story")

        assert decision.test_mode == TestMode.SOURCE_ONLY

    def test_link_is_not_counted_as_user_text(self):
        words = " ".join(["word"] * 30)

        decision = classify_text(f"{words} https://example.com/a/very/long/path")

        assert decision.test_mode == TestMode.SOURCE_ONLY

    def test_explicit_source_url(self):
        text = " ".join(["word"] * 50)

        decision = classify_text(text, source_url="https://example.com")

        assert decision.test_mode == TestMode.MIXED

    def test_no_source_uses_question_count(self):
        text = " ".join(["word"] * 50)

        assert classify_text(text).question_count == 1

    def test_empty_draft_with_empty_source_text(self):
        assert not classify_text("", source_text="").gate_required

    def test_known_source_length(self):
        assert classify_text("", source_word_count=500).test_mode == TestMode.SOURCE_ONLY
        assert not classify_text("", source_word_count=0).gate_required


class TestLinks:
    def test_extract_first_url(self):
        text = "see http://a.example/x and https://b.example/y"

        assert extract_first_url(text) == "http://a.example/x"

    def test_no_link(self):
        assert extract_first_url("plain words") is None
        assert extract_first_url(None) is None
        assert not has_link("plain words")
        assert has_link("https://example.com")


class TestIntentReshare:
    @pytest.mark.parametrize("words,expected", [(30, 1), (120, 1), (121, 3), (400, 3)])
    def test_question_counts(self, words, expected):
        assert classify_intent_reshare(words).question_count == expected

    def test_always_gated(self):
        assert classify_intent_reshare(0).gate_required

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            classify_intent_reshare(-3)


class TestClassifyMedia:
    @pytest.mark.parametrize(
        "words,expected_count",
        [
            (0, 0),
            (30, 0),
            (31, 1),
            (120, 1),
            (121, 3),
        ],
    )
    def test_without_extracted_text(self, words, expected_count):
        decision = classify_media(words, has_extracted_text=False)

        assert decision.test_mode is None
        assert decision.question_count == expected_count
        assert decision.gate_required == (expected_count > 0)

    @pytest.mark.parametrize(
        "words,expected",
        [
            (0, TestMode.SOURCE_ONLY),
            (30, TestMode.SOURCE_ONLY),
            (31, TestMode.MIXED),
            (120, TestMode.MIXED),
            (121, TestMode.USER_ONLY),
        ],
    )
    def test_with_extracted_text(self, words, expected):
        decision = classify_media(words, has_extracted_text=True)

        assert decision.test_mode == expected
        assert decision.total_questions == 3

    def test_custom_brackets(self):
        config = GateConfig(short_text_max_words=5, medium_text_max_words=10)

        assert classify_media(6, False, config=config).question_count == 1
        assert classify_media(11, True, config=config).test_mode == TestMode.USER_ONLY

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            classify_media(-1, has_extracted_text=True)
