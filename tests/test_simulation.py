"""End-to-end scenarios through the simulated text field."""

from __future__ import annotations

import pytest

from switchback.core.engine import KeyVerdict
from switchback.core.event_bus import EventBus
from switchback.core.events import EventType
from switchback.core.types import LanguagePrefix
from switchback.simulation import SimulatedLayoutSwitch, Simulator, TextDocument, parse_script

EN = LanguagePrefix.EN
UK = LanguagePrefix.UK


def run(oracle, script, **kwargs):
    sim = Simulator(oracle, **kwargs)
    return sim.run(script), sim


# ------------------------------------------------------------------
# Script parsing
# ------------------------------------------------------------------

class TestParseScript:
    def test_chars_and_commands(self):
        assert list(parse_script("a{fix}b")) == [('char', 'a'), ('cmd', 'fix'), ('char', 'b')]

    def test_escaped_brace(self):
        assert list(parse_script("{{x")) == [('char', '{'), ('char', 'x')]

    def test_command_case_folded(self):
        assert list(parse_script("{BS}")) == [('cmd', 'bs')]

    def test_unknown_command(self, oracle):
        with pytest.raises(ValueError, match="nope"):
            Simulator(oracle).run("{nope}")


# ------------------------------------------------------------------
# Simulated collaborators
# ------------------------------------------------------------------

class TestTextDocument:
    def test_word_moves(self):
        doc = TextDocument("the best cat")
        assert doc.word_left(12) == 9
        assert doc.word_left(9) == 4
        assert doc.word_right(0) == 3
        assert doc.word_right(3) == 8

    def test_apostrophe_is_word_char(self):
        doc = TextDocument("п'ять")
        assert doc.word_left(5) == 0

    def test_backspace_deletes_selection(self):
        doc = TextDocument("hello")
        doc.anchor = 1
        doc.backspace()
        assert doc.text == "h"

    def test_replace_out_of_range(self):
        from switchback.platform.document import TextRange
        assert TextDocument("abc").replace(TextRange(2, 5), "x") is False


class TestSimulatedLayoutSwitch:
    def test_lag(self):
        layout = SimulatedLayoutSwitch(EN, lag=1)
        layout.switch_to(UK)
        assert layout.current_language() is EN
        assert layout.current_language() is UK

    def test_stuck(self):
        layout = SimulatedLayoutSwitch(EN, stuck=True)
        layout.switch_to(UK)
        assert layout.current_language() is EN
        assert layout.requests == [UK]


# ------------------------------------------------------------------
# Scenarios
# ------------------------------------------------------------------

class TestImmediateCorrection:
    def test_wrong_layout_word(self, oracle):
        text, sim = run(oracle, "ghbdsn ")
        assert text == "привіт "
        assert sim.layout.current_language() is UK

    def test_typing_continues_on_switched_layout(self, oracle):
        text, _ = run(oracle, "ghbdsn cdsn ")
        assert text == "привіт світ "

    def test_keys_typed_during_correction_replayed(self, oracle):
        sim = Simulator(oracle)
        for ch in "ghbdsn cd":
            sim.type_char(ch)
        assert sim.verdicts[-2:] == [KeyVerdict.SUPPRESS, KeyVerdict.SUPPRESS]
        sim.settle()
        assert sim.text == "привіт св"

    def test_trailing_comma(self, oracle):
        text, _ = run(oracle, "ghbdsn, ")
        assert text == "привіт, "

    def test_ukrainian_typed_on_english_word(self, oracle):
        text, sim = run(oracle, "руддщ ", layout=UK)
        assert text == "hello "
        assert sim.layout.current_language() is EN

    def test_correct_text_untouched(self, oracle):
        text, sim = run(oracle, "hello world ")
        assert text == "hello world "
        assert sim.layout.requests == []

    def test_backspace_corrected_word(self, oracle):
        text, _ = run(oracle, "ghbdsm{bs}n ")
        assert text == "привіт "

    def test_email_left_alone(self, oracle):
        text, _ = run(oracle, "mr.ghbdsn@gmail.com ")
        assert text == "mr.ghbdsn@gmail.com "

    def test_lagging_layout_switch(self, oracle):
        text, _ = run(oracle, "ghbdsn ", switch_lag=3)
        assert text == "привіт "

    def test_disabled(self, oracle):
        text, _ = run(oracle, "{toggle}ghbdsn ")
        assert text == "ghbdsn "

    def test_disabled_in_config(self, oracle):
        text, _ = run(oracle, "ghbdsn ", config={'enabled': False})
        assert text == "ghbdsn "

    def test_suspicious_punctuation_fallback(self, oracle):
        text, _ = run(oracle, "b[f ")
        assert text == "иха "


class TestDeferredCorrection:
    @pytest.mark.parametrize("accessible", [True, False])
    def test_fix_first_of_three_words(self, oracle, accessible):
        text, _ = run(oracle, "the best cat {fix}", accessible=accessible)
        assert text == "еру best cat "

    @pytest.mark.parametrize("accessible", [True, False])
    def test_fix_while_word_in_progress(self, oracle, accessible):
        text, _ = run(oracle, "the best ca{fix}", accessible=accessible)
        assert text == "еру best ca"

    def test_fix_is_lifo(self, oracle):
        sim = Simulator(oracle)
        assert sim.run("the the {fix}") == "the еру "
        assert sim.run("{fix}") == "еру еру "

    def test_fix_without_ambiguity_is_noop(self, oracle):
        text, _ = run(oracle, "hello {fix}")
        assert text == "hello "

    def test_fix_after_text_inserted_before(self, oracle):
        sim = Simulator(oracle)
        sim.run("the best ")
        doc = sim.document
        doc.text = "oh " + doc.text
        doc.caret = doc.anchor = len(doc.text)
        assert sim.run("{fix}") == "oh еру best "

    def test_event_bus_sees_capture_and_conversion(self, oracle):
        bus = EventBus()
        seen = []
        for et in EventType:
            bus.subscribe(et, lambda e: seen.append(e.type))
        Simulator(oracle, event_bus=bus).run("the {fix}")
        assert EventType.AMBIGUITY_CAPTURED in seen
        assert seen[-1] is EventType.CONVERSION_COMPLETE


class TestForceConvert:
    def test_force_word_in_progress(self, oracle):
        text, _ = run(oracle, "hello{force}")
        assert text == "руддщ"

    @pytest.mark.parametrize("accessible", [True, False])
    def test_force_last_word(self, oracle, accessible):
        text, _ = run(oracle, "hello {force}", accessible=accessible)
        assert text == "руддщ "

    def test_force_back_and_forth(self, oracle):
        text, _ = run(oracle, "hello {force}{force}")
        assert text == "hello "


class TestLifecycle:
    def test_stop_cancels_pending_correction(self, oracle):
        sim = Simulator(oracle)
        for ch in "ghbdsn ":
            sim.type_char(ch)
        sim.engine.stop()
        sim.settle()
        assert sim.text == "ghbdsn "

    def test_initial_text(self, oracle):
        text, _ = run(oracle, "ghbdsn ", text="say ")
        assert text == "say привіт "
