"""AmbiguityTracker — bounded stack of deferred (ambiguous) words.

Each entry ages by one every time a word boundary is crossed after it was
pushed.  ``relocate`` finds an entry's word in live document text: anchored
match near the last known position, then a backwards search for the word
alone.  ``None`` tells the caller to fall back to keystroke navigation.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field

from switchback.core.types import LanguagePrefix

logger = logging.getLogger(__name__)

CAPACITY = 5
ANCHOR_RADIUS = 8       # characters kept on each side of the word
RELOCATE_WINDOW = 128   # characters searched on each side of the last position
CAPTURE_LOOKBACK = 64   # characters before the caret searched at capture time


@dataclass(frozen=True)
class DocumentAnchor:
    focus: object        # identity of the focused element at capture time
    start: int           # offset of the word when captured


@dataclass
class AmbiguousEntry:
    original: str
    converted: str
    target: LanguagePrefix
    anchor_before: str = ""
    anchor_after: str = ""
    words_ahead: int = 0
    document_anchor: DocumentAnchor | None = None
    created_at: float = field(default_factory=time.monotonic)

    @property
    def is_blind(self) -> bool:
        """True when only keystroke navigation can find this word."""
        return self.document_anchor is None


class AmbiguityTracker:
    """Ring buffer of ambiguous entries; the oldest is evicted when full."""

    def __init__(self, capacity: int = CAPACITY):
        self.capacity = capacity
        self._entries: deque[AmbiguousEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def entries(self) -> list[AmbiguousEntry]:
        """Snapshot, oldest first."""
        with self._lock:
            return list(self._entries)

    def push(self, entry: AmbiguousEntry) -> None:
        with self._lock:
            if len(self._entries) == self.capacity:
                evicted = self._entries[0]
                logger.debug("Ambiguity stack full, evicting %r", evicted.original)
            self._entries.append(entry)

    def age_all(self) -> None:
        with self._lock:
            for entry in self._entries:
                entry.words_ahead += 1

    def pop_most_recent(self, max_age: float = 0.0, now: float | None = None) -> AmbiguousEntry | None:
        """Pop the newest entry.

        With *max_age* > 0, entries captured longer ago than that many seconds
        are discarded instead of returned.
        """
        if now is None:
            now = time.monotonic()
        with self._lock:
            while self._entries:
                entry = self._entries.pop()
                if max_age > 0 and now - entry.created_at > max_age:
                    logger.debug("Discarding expired ambiguity %r", entry.original)
                    continue
                return entry
            return None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


# ---------------------------------------------------------------------------
# Capture and relocation helpers (pure)
# ---------------------------------------------------------------------------

def anchors_for(text: str, start: int, length: int) -> tuple[str, str]:
    """Return up to ANCHOR_RADIUS characters before and after a word."""
    before = text[max(0, start - ANCHOR_RADIUS):start]
    after = text[start + length:start + length + ANCHOR_RADIUS]
    return before, after


def locate_before_caret(text: str, word: str, caret: int) -> int | None:
    """Find *word* ending at or just before *caret*.

    The word may be followed by the boundary that completed it.  Falls back to
    a backwards search within CAPTURE_LOOKBACK characters of the caret.
    """
    if not word or caret < len(word):
        return None
    caret = min(caret, len(text))
    for end in (caret, caret - 1):
        start = end - len(word)
        if start >= 0 and text[start:end] == word:
            return start
    lo = max(0, caret - len(word) - CAPTURE_LOOKBACK)
    found = text.rfind(word, lo, caret)
    return found if found >= 0 else None


def relocate(text: str, entry: AmbiguousEntry, window: int = RELOCATE_WINDOW) -> int | None:
    """Return the current offset of *entry*'s word in *text*, or None."""
    if entry.document_anchor is None or not entry.original:
        return None
    pos = entry.document_anchor.start
    word = entry.original
    before = entry.anchor_before
    lo = max(0, pos - len(before) - window)
    hi = min(len(text), pos + len(word) + len(entry.anchor_after) + window)

    # Anchored matches first; the closest one to the last known offset wins
    needle = before + word + entry.anchor_after
    best = None
    found = text.find(needle, lo, hi)
    while found >= 0:
        start = found + len(before)
        if best is None or abs(start - pos) < abs(best - pos):
            best = start
        found = text.find(needle, found + 1, hi)
    if best is not None:
        return best

    lo = max(0, pos - window)
    hi = min(len(text), pos + len(word) + window)

    found = text.rfind(word, lo, hi)
    if found >= 0:
        return found
    return None
