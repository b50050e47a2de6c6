"""WordTokenizer — turns the decoded character stream into completed words.

Owns the word buffer and the email-mode flag.  Rules, in priority order:

  1. In email mode, whitespace leaves email mode (BUFFER_RESET, no evaluation).
  2. ``@`` clears the buffer and enters email mode.
  3. Letters (Latin, Cyrillic, or mapped punctuation while the Latin layout is
     active) extend the word; a script change finalizes the old word first.
  4. Boundary characters finalize the word.
  5. Anything else (digits, unmapped symbols) finalizes the word as well.

Word-internal marks (apostrophes, hyphen) extend a non-empty word and are
ignored otherwise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto

import switchback.log  # registers TRACE level and logger.trace()
from switchback.core import script
from switchback.core.types import ScriptTag

logger = logging.getLogger(__name__)


class TokenKind(Enum):
    CONTINUE = auto()
    WORD_COMPLETED = auto()
    BUFFER_RESET = auto()


@dataclass(frozen=True)
class TokenEvent:
    kind: TokenKind
    word: str = ""
    preserve_boundary: bool = False   # the finalizing character stays after the word

    @property
    def crossed_boundary(self) -> bool:
        return self.kind is not TokenKind.CONTINUE


CONTINUE = TokenEvent(TokenKind.CONTINUE)
RESET = TokenEvent(TokenKind.BUFFER_RESET)


def _inserts_text(ch: str) -> bool:
    return ch.isspace() or ch.isprintable()


class WordTokenizer:
    """Accumulates the word being typed.  Not thread-safe; the engine locks."""

    def __init__(self):
        self._buffer: list[str] = []
        self.in_email = False

    # -- state ------------------------------------------------------------

    @property
    def buffer(self) -> str:
        return ''.join(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)

    def reset(self) -> None:
        """Clear the word buffer and leave email mode."""
        self._buffer.clear()
        self.in_email = False

    def clear_word(self) -> None:
        """Clear the word buffer only (modified delete)."""
        self._buffer.clear()

    def remove_last(self) -> None:
        if self._buffer:
            self._buffer.pop()

    # -- consumption --------------------------------------------------------

    def _effective_script(self, ch: str, latin_active: bool) -> ScriptTag | None:
        """Script *ch* counts as when typed now, or None if it is not a letter."""
        tag = script.classify(ch)
        if tag is not ScriptTag.NEUTRAL:
            return tag
        if latin_active and script.is_mapped_latin_punctuation(ch):
            return ScriptTag.LATIN
        return None

    def _buffer_script(self) -> ScriptTag:
        first = self._buffer[0]
        if script.is_latin(first) or script.is_mapped_latin_punctuation(first):
            return ScriptTag.LATIN
        return script.classify(first)

    def _finalize(self, preserve_boundary: bool) -> TokenEvent:
        if not self._buffer:
            return RESET
        word = self.buffer
        self._buffer.clear()
        return TokenEvent(TokenKind.WORD_COMPLETED, word, preserve_boundary)

    def consume(self, ch: str, latin_active: bool) -> TokenEvent:
        """Feed one decoded character typed while the Latin layout is/isn't active."""
        if self.in_email:
            if ch.isspace():
                self.in_email = False
                self._buffer.clear()
                logger.trace("email mode off")  # type: ignore[attr-defined]
                return RESET
            return CONTINUE

        if ch == '@':
            self._buffer.clear()
            self.in_email = True
            logger.trace("email mode on")  # type: ignore[attr-defined]
            return RESET

        tag = self._effective_script(ch, latin_active)
        if tag is not None:
            if self._buffer and self._buffer_script() is not tag:
                event = self._finalize(preserve_boundary=True)
                self._buffer.append(ch)
                return event
            self._buffer.append(ch)
            return CONTINUE

        if script.is_word_internal(ch):
            if self._buffer:
                self._buffer.append(ch)
                return CONTINUE
            return RESET

        # Rules 4 and 5: boundaries and any other character end the word
        return self._finalize(preserve_boundary=_inserts_text(ch))
