"""Character classification: scripts, word boundaries and mapped punctuation.

Every function here is pure and safe to call from any thread.
"""

from __future__ import annotations

from switchback.core.types import ScriptTag

# Cyrillic, Cyrillic Supplement, Cyrillic Extended-A, Cyrillic Extended-B
CYRILLIC_RANGES: tuple[tuple[int, int], ...] = (
    (0x0400, 0x04FF),
    (0x0500, 0x052F),
    (0x2DE0, 0x2DFF),
    (0xA640, 0xA69F),
)

WORD_INTERNAL = frozenset("'’-")

BOUNDARY_PUNCTUATION = frozenset(
    ".,;:!?()[]{}<>/\\\"“”‘’—–_|@#€$%^&*+=`~"
)

# ASCII punctuation sitting on keys that produce Ukrainian letters
MAPPED_LATIN_PUNCTUATION = frozenset("[];',.")

# Stripped from the end of a word before evaluation
TRAILING_MAPPED = frozenset(".,;")

# Mapped punctuation that makes a Latin word look mistyped.  The apostrophe
# is excluded because English contractions use it.
SUSPICIOUS_MAPPED = frozenset("[];,.")


def classify(ch: str) -> ScriptTag:
    """Return the script of a single character."""
    if not ch:
        return ScriptTag.NEUTRAL
    cp = ord(ch[0])
    if 0x41 <= cp <= 0x5A or 0x61 <= cp <= 0x7A:
        return ScriptTag.LATIN
    for lo, hi in CYRILLIC_RANGES:
        if lo <= cp <= hi:
            return ScriptTag.CYRILLIC
    return ScriptTag.NEUTRAL


def is_latin(ch: str) -> bool:
    return classify(ch) is ScriptTag.LATIN


def is_cyrillic(ch: str) -> bool:
    return classify(ch) is ScriptTag.CYRILLIC


def is_word_internal(ch: str) -> bool:
    return ch in WORD_INTERNAL


def is_boundary(ch: str) -> bool:
    """Whitespace or boundary punctuation.  Word-internal characters never count."""
    if not ch or ch in WORD_INTERNAL:
        return False
    return ch.isspace() or ch in BOUNDARY_PUNCTUATION


def is_mapped_latin_punctuation(ch: str) -> bool:
    return ch in MAPPED_LATIN_PUNCTUATION


def split_trailing_mapped(word: str) -> tuple[str, int]:
    """Split off a trailing run of ``. , ;``.

    Returns ``(core, trailing_count)``; ``core + word[len(core):] == word``.
    """
    end = len(word)
    while end > 0 and word[end - 1] in TRAILING_MAPPED:
        end -= 1
    return word[:end], len(word) - end


def contains_suspicious_mapped(word: str) -> bool:
    """True if ``[ ] ; , .`` appears anywhere except the trailing run."""
    core, _ = split_trailing_mapped(word)
    return any(ch in SUSPICIOUS_MAPPED for ch in core)


def is_all_cyrillic(word: str) -> bool:
    """True for a non-empty word whose letters are all Cyrillic.

    Word-internal characters (apostrophe, hyphen) are allowed between letters.
    """
    letters = [ch for ch in word if ch not in WORD_INTERNAL]
    return bool(letters) and all(is_cyrillic(ch) for ch in letters)
