"""evdev keycode constants and character → physical key lookup."""

from __future__ import annotations

from switchback.core.layout_mapper import convert_char
from switchback.core.script import is_cyrillic
from switchback.core.types import LanguagePrefix

# evdev keycodes (avoid hard dependency on evdev at import time)
EV_KEY = 1

KEY_ESC = 1
KEY_BACKSPACE = 14
KEY_TAB = 15
KEY_ENTER = 28
KEY_LEFTCTRL = 29
KEY_LEFTSHIFT = 42
KEY_RIGHTSHIFT = 54
KEY_LEFTALT = 56
KEY_SPACE = 57
KEY_RIGHTCTRL = 97
KEY_RIGHTALT = 100
KEY_HOME = 102
KEY_UP = 103
KEY_PAGEUP = 104
KEY_LEFT = 105
KEY_RIGHT = 106
KEY_END = 107
KEY_DOWN = 108
KEY_PAGEDOWN = 109
KEY_DELETE = 111
KEY_LEFTMETA = 125
KEY_RIGHTMETA = 126

DELETE_KEYS = {KEY_BACKSPACE, KEY_DELETE}
NAVIGATION_KEYS = {KEY_UP, KEY_DOWN, KEY_LEFT, KEY_RIGHT, KEY_HOME, KEY_END, KEY_PAGEUP, KEY_PAGEDOWN}
MOUSE_BUTTONS = {272, 273, 274}  # BTN_LEFT, BTN_RIGHT, BTN_MIDDLE

MODIFIER_KEYS: dict[int, str] = {
    KEY_LEFTCTRL: 'ctrl', KEY_RIGHTCTRL: 'ctrl',
    KEY_LEFTSHIFT: 'shift', KEY_RIGHTSHIFT: 'shift',
    KEY_LEFTALT: 'alt', KEY_RIGHTALT: 'alt',
    KEY_LEFTMETA: 'meta', KEY_RIGHTMETA: 'meta',
}

# US QWERTY keycode → char map (unshifted)
KEYCODE_TO_CHAR_EN: dict[int, str] = {
    2: "1", 3: "2", 4: "3", 5: "4", 6: "5", 7: "6", 8: "7", 9: "8", 10: "9", 11: "0",
    12: "-", 13: "=",
    16: "q", 17: "w", 18: "e", 19: "r", 20: "t", 21: "y", 22: "u", 23: "i", 24: "o",
    25: "p", 26: "[", 27: "]",
    30: "a", 31: "s", 32: "d", 33: "f", 34: "g", 35: "h", 36: "j", 37: "k", 38: "l",
    39: ";", 40: "'", 41: "`", 43: "\\",
    44: "z", 45: "x", 46: "c", 47: "v", 48: "b", 49: "n", 50: "m", 51: ",", 52: ".", 53: "/",
    KEY_SPACE: " ", KEY_ENTER: "\n", KEY_TAB: "\t",
}

# US QWERTY shifted symbols
SHIFTED_EN: dict[int, str] = {
    2: "!", 3: "@", 4: "#", 5: "$", 6: "%", 7: "^", 8: "&", 9: "*", 10: "(", 11: ")",
    12: "_", 13: "+", 26: "{", 27: "}", 39: ":", 40: '"', 41: "~", 43: "|",
    51: "<", 52: ">", 53: "?",
}

CHAR_TO_KEY_EN: dict[str, tuple[int, bool]] = {}
for _code, _ch in KEYCODE_TO_CHAR_EN.items():
    CHAR_TO_KEY_EN[_ch] = (_code, False)
    if _ch.isalpha():
        CHAR_TO_KEY_EN[_ch.upper()] = (_code, True)
for _code, _ch in SHIFTED_EN.items():
    CHAR_TO_KEY_EN[_ch] = (_code, True)

# Keys producing the same character on both layouts
SHARED_CHARS = frozenset("1234567890-= \n\t")

# Ukrainian (xkb "ua") punctuation that moved away from its US position
UK_PUNCTUATION: dict[str, tuple[int, bool]] = {
    '.': (53, False), ',': (53, True),
    '!': (2, True), '"': (3, True), '№': (4, True), ';': (5, True), '%': (6, True),
    ':': (7, True), '?': (8, True), '*': (9, True), '(': (10, True), ')': (11, True),
    '_': (12, True), '+': (13, True),
}


def keycode_to_char(keycode: int, shift: bool = False) -> str:
    """US layout character for *keycode*; empty string if unknown."""
    if shift and keycode in SHIFTED_EN:
        return SHIFTED_EN[keycode]
    ch = KEYCODE_TO_CHAR_EN.get(keycode, "")
    if ch and shift:
        ch = ch.upper()
    return ch


def key_for_char(ch: str, language: LanguagePrefix) -> tuple[int, bool] | None:
    """Return ``(keycode, shift)`` producing *ch* on *language*'s layout."""
    if language is LanguagePrefix.UK:
        if ch in UK_PUNCTUATION:
            return UK_PUNCTUATION[ch]
        if is_cyrillic(ch):
            en = convert_char(ch, LanguagePrefix.UK, LanguagePrefix.EN)
            if en == ch:
                return None
            code, _ = CHAR_TO_KEY_EN.get(en.lower(), (None, False))
            if code is None:
                return None
            return code, ch != ch.lower()
        if ch in SHARED_CHARS:
            return CHAR_TO_KEY_EN[ch]
        return None
    return CHAR_TO_KEY_EN.get(ch)


_UK_KEY_TO_CHAR: dict[tuple[int, bool], str] = {key: ch for ch, key in UK_PUNCTUATION.items()}


def char_for_key(keycode: int, shift: bool, language: LanguagePrefix) -> str:
    """Character *keycode* produces on *language*'s layout; empty if unknown.

    Static tables only; the live X keymap is consulted by the key source.
    """
    if language is LanguagePrefix.UK:
        ch = _UK_KEY_TO_CHAR.get((keycode, shift))
        if ch:
            return ch
        base = KEYCODE_TO_CHAR_EN.get(keycode, "")
        uk = convert_char(base, LanguagePrefix.EN, LanguagePrefix.UK) if base else ""
        if uk and is_cyrillic(uk):
            return uk.upper() if shift else uk
    return keycode_to_char(keycode, shift)
