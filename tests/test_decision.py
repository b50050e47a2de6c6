"""Tests for DecisionEngine."""

from __future__ import annotations

import pytest

from switchback.core.decision import DecisionEngine
from switchback.core.types import Decision, LanguagePrefix
from switchback.intelligence.spell_oracle import WordSetSpellOracle

EN = LanguagePrefix.EN
UK = LanguagePrefix.UK


@pytest.fixture
def engine(oracle):
    return DecisionEngine(oracle)


class TestMultiLetter:
    def test_wrong_layout_word_converts(self, engine):
        verdict = engine.decide("ghbdsn", EN)
        assert verdict.decision is Decision.CONVERT_NOW
        assert verdict.candidate.converted == "привіт"
        assert verdict.candidate.target is UK
        assert not verdict.low_confidence

    def test_wrong_layout_word_typed_on_uk(self, engine):
        verdict = engine.decide("руддщ", UK)
        assert verdict.decision is Decision.CONVERT_NOW
        assert verdict.candidate.converted == "hello"
        assert verdict.candidate.target is EN

    @pytest.mark.parametrize("word", ["hello", "world", "test", "dog", "cat", "best"])
    def test_correct_word_is_kept(self, engine, word):
        assert engine.decide(word, EN).decision is Decision.KEEP

    def test_valid_in_both_is_deferred(self, engine):
        verdict = engine.decide("the", EN)
        assert verdict.decision is Decision.DEFER
        assert verdict.candidate.original == "the"
        assert verdict.candidate.converted == "еру"

    def test_unknown_word_is_kept(self, engine):
        verdict = engine.decide("xyzzy", EN)
        assert verdict.decision is Decision.KEEP
        assert verdict.candidate is None

    def test_mapped_punctuation_word_found_in_dictionary(self, engine):
        verdict = engine.decide(";f,f", EN)
        assert verdict.decision is Decision.CONVERT_NOW
        assert verdict.candidate.converted == "жаба"
        assert not verdict.low_confidence

    def test_mapped_punctuation_fallback_without_dictionary_hit(self, engine):
        verdict = engine.decide("b[f", EN)
        assert verdict.decision is Decision.CONVERT_NOW
        assert verdict.candidate.converted == "иха"
        assert verdict.low_confidence

    def test_suspicious_word_is_not_trusted_as_typed(self):
        oracle = WordSetSpellOracle({"en_US": ["ab.cd"], "uk_UA": ["і"]})
        verdict = DecisionEngine(oracle).decide("ab.cd", EN)
        assert verdict.decision is Decision.CONVERT_NOW
        assert verdict.candidate.converted == "фиюсв"
        assert verdict.low_confidence

    def test_suspicious_rule_only_on_latin_layout(self, engine):
        assert engine.decide("кіт", UK).decision is Decision.KEEP


class TestSingleLetter:
    def test_both_valid_defers(self):
        oracle = WordSetSpellOracle({"en_US": ["a"], "uk_UA": ["ф"]})
        assert DecisionEngine(oracle).decide("a", EN).decision is Decision.DEFER

    def test_only_converted_valid_converts(self, engine):
        verdict = engine.decide("s", EN)
        assert verdict.decision is Decision.CONVERT_NOW
        assert verdict.candidate.converted == "і"

    def test_only_typed_valid_keeps(self, engine):
        assert engine.decide("a", EN).decision is Decision.KEEP

    def test_neither_valid_keeps(self, engine):
        assert engine.decide("q", EN).decision is Decision.KEEP


class TestUnavailable:
    def test_missing_language_keeps(self):
        oracle = WordSetSpellOracle({"en_US": ["hello"]})
        verdict = DecisionEngine(oracle).decide("ghbdsn", EN)
        assert verdict.decision is Decision.KEEP
        assert verdict.reason == "spell oracle unavailable"

    def test_empty_word_keeps(self, engine):
        assert engine.decide("", EN).decision is Decision.KEEP


def test_force_ignores_dictionary(engine):
    cand = engine.force("hello", EN)
    assert cand.converted == "руддщ"
    assert cand.source is EN
    assert cand.target is UK
