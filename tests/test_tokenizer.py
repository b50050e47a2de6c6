"""Tests for WordTokenizer."""

from __future__ import annotations

from switchback.core.tokenizer import TokenKind, WordTokenizer


def feed(tok: WordTokenizer, text: str, latin: bool = True):
    return [tok.consume(ch, latin_active=latin) for ch in text]


def completed(events):
    return [e.word for e in events if e.kind is TokenKind.WORD_COMPLETED]


# ----------------------------------------------------------------------
# Words and boundaries
# ----------------------------------------------------------------------

class TestWords:
    def test_space_completes_word(self):
        tok = WordTokenizer()
        events = feed(tok, "hello ")
        assert [e.kind for e in events[:5]] == [TokenKind.CONTINUE] * 5
        assert events[5].kind is TokenKind.WORD_COMPLETED
        assert events[5].word == "hello"
        assert events[5].preserve_boundary
        assert tok.buffer == ""

    def test_boundary_on_empty_buffer_resets(self):
        tok = WordTokenizer()
        event = tok.consume(" ", latin_active=True)
        assert event.kind is TokenKind.BUFFER_RESET
        assert event.crossed_boundary

    def test_digit_finalizes(self):
        tok = WordTokenizer()
        events = feed(tok, "abc1")
        assert completed(events) == ["abc"]
        assert tok.buffer == ""

    def test_control_character_does_not_preserve(self):
        tok = WordTokenizer()
        feed(tok, "abc")
        event = tok.consume("\x1b", latin_active=True)
        assert event.word == "abc"
        assert not event.preserve_boundary

    def test_mapped_punctuation_is_a_letter_on_latin_layout(self):
        tok = WordTokenizer()
        feed(tok, "k[fd.")
        assert tok.buffer == "k[fd."

    def test_mapped_punctuation_is_a_boundary_on_cyrillic_layout(self):
        tok = WordTokenizer()
        events = feed(tok, "кіт.", latin=False)
        assert completed(events) == ["кіт"]

    def test_apostrophe_inside_word(self):
        tok = WordTokenizer()
        assert completed(feed(tok, "п'ять ", latin=False)) == ["п'ять"]

    def test_leading_hyphen_ignored(self):
        tok = WordTokenizer()
        event = tok.consume("-", latin_active=True)
        assert event.kind is TokenKind.BUFFER_RESET
        assert tok.buffer == ""


# ----------------------------------------------------------------------
# Script changes
# ----------------------------------------------------------------------

class TestScriptChange:
    def test_latin_then_cyrillic_finalizes(self):
        tok = WordTokenizer()
        feed(tok, "hello")
        event = tok.consume("п", latin_active=False)
        assert event.kind is TokenKind.WORD_COMPLETED
        assert event.word == "hello"
        assert tok.buffer == "п"

    def test_cyrillic_then_latin_finalizes(self):
        tok = WordTokenizer()
        feed(tok, "при", latin=False)
        event = tok.consume("a", latin_active=True)
        assert event.word == "при"
        assert tok.buffer == "a"

    def test_leading_mapped_punctuation_counts_as_latin(self):
        tok = WordTokenizer()
        feed(tok, ";f,f")
        assert tok.buffer == ";f,f"


# ----------------------------------------------------------------------
# Email mode
# ----------------------------------------------------------------------

class TestEmail:
    def test_email_never_completes_a_word(self):
        tok = WordTokenizer()
        events = feed(tok, "mr.nicholas.x@gmail.com ")
        assert completed(events) == []
        assert tok.buffer == ""
        assert not tok.in_email

    def test_buffer_empty_after_at_sign(self):
        tok = WordTokenizer()
        feed(tok, "user@")
        for ch in "example.org":
            tok.consume(ch, latin_active=True)
            assert tok.buffer == ""

    def test_words_after_email_are_evaluated(self):
        tok = WordTokenizer()
        events = feed(tok, "a@b.c hello ")
        assert completed(events) == ["hello"]


# ----------------------------------------------------------------------
# Editing
# ----------------------------------------------------------------------

class TestEditing:
    def test_remove_last(self):
        tok = WordTokenizer()
        feed(tok, "helo")
        tok.remove_last()
        assert tok.buffer == "hel"

    def test_remove_last_on_empty(self):
        tok = WordTokenizer()
        tok.remove_last()
        assert len(tok) == 0

    def test_clear_word_keeps_email_mode(self):
        tok = WordTokenizer()
        feed(tok, "x@")
        tok.clear_word()
        assert tok.in_email

    def test_reset_leaves_email_mode(self):
        tok = WordTokenizer()
        feed(tok, "x@y")
        tok.reset()
        assert not tok.in_email
        assert tok.buffer == ""
