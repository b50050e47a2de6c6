"""LayoutMapper — key-position translation between the EN and UK layouts."""

from __future__ import annotations

from switchback.core.types import LanguagePrefix

# Physical key positions: EN character → UK character (lowercase)
EN_TO_UK: dict[str, str] = {
    'q': 'й', 'w': 'ц', 'e': 'у', 'r': 'к', 't': 'е', 'y': 'н', 'u': 'г',
    'i': 'ш', 'o': 'щ', 'p': 'з', '[': 'х', ']': 'ї',
    'a': 'ф', 's': 'і', 'd': 'в', 'f': 'а', 'g': 'п', 'h': 'р', 'j': 'о',
    'k': 'л', 'l': 'д', ';': 'ж', "'": 'є',
    'z': 'я', 'x': 'ч', 'c': 'с', 'v': 'м', 'b': 'и', 'n': 'т', 'm': 'ь',
    ',': 'б', '.': 'ю', '/': '.',
}

UK_TO_EN: dict[str, str] = {v: k for k, v in EN_TO_UK.items()}
# Typographic apostrophe inside Ukrainian words maps back to ASCII
UK_TO_EN['’'] = "'"


def _table(src: LanguagePrefix, dst: LanguagePrefix) -> dict[str, str] | None:
    if src is dst:
        return None
    return EN_TO_UK if src is LanguagePrefix.EN else UK_TO_EN


def convert_char(ch: str, src: LanguagePrefix, dst: LanguagePrefix) -> str:
    """Translate a single character, preserving its case."""
    table = _table(src, dst)
    if table is None:
        return ch
    lower = ch.lower()
    mapped = table.get(lower)
    if mapped is None:
        return ch
    return mapped.upper() if ch != lower else mapped


def convert(word: str, src: LanguagePrefix, dst: LanguagePrefix) -> str:
    """Translate *word* typed on layout *src* to what layout *dst* would produce.

    Characters absent from the table pass through unchanged.
    """
    if _table(src, dst) is None:
        return word
    return ''.join(convert_char(ch, src, dst) for ch in word)

