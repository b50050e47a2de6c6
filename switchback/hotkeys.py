"""Hotkey parsing and matching.

Bindings are written like ``"Ctrl+Alt+A"``: modifier names followed by one
key name, joined with ``+``.  Matching compares the keycode and the exact set
of held modifiers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from switchback.input.key_mapper import (
    KEY_BACKSPACE, KEY_DELETE, KEY_ENTER, KEY_ESC, KEY_SPACE, KEY_TAB, KEYCODE_TO_CHAR_EN,
)


class HotkeyAction(Enum):
    TOGGLE = auto()
    FIX_AMBIGUOUS = auto()
    FORCE_CONVERT = auto()


MODIFIER_NAMES: dict[str, str] = {
    'ctrl': 'ctrl', 'control': 'ctrl',
    'alt': 'alt', 'option': 'alt',
    'shift': 'shift',
    'meta': 'meta', 'super': 'meta', 'win': 'meta', 'cmd': 'meta',
}

KEY_NAMES: dict[str, int] = {
    'space': KEY_SPACE, 'backspace': KEY_BACKSPACE, 'delete': KEY_DELETE,
    'tab': KEY_TAB, 'enter': KEY_ENTER, 'return': KEY_ENTER, 'esc': KEY_ESC, 'escape': KEY_ESC,
    'pause': 119, 'scrolllock': 70,
}
# F1..F10 are contiguous, F11/F12 are not
KEY_NAMES.update({f'f{i}': 58 + i for i in range(1, 11)})
KEY_NAMES.update({'f11': 87, 'f12': 88})
KEY_NAMES.update({ch: code for code, ch in KEYCODE_TO_CHAR_EN.items() if ch.strip()})

CONFIG_KEYS: dict[HotkeyAction, str] = {
    HotkeyAction.TOGGLE: 'toggle_hotkey',
    HotkeyAction.FIX_AMBIGUOUS: 'fix_hotkey',
    HotkeyAction.FORCE_CONVERT: 'force_hotkey',
}


@dataclass(frozen=True)
class Hotkey:
    code: int
    modifiers: frozenset = frozenset()

    @classmethod
    def parse(cls, text: str) -> "Hotkey":
        """Parse ``"Ctrl+Alt+A"``; raises ValueError on unknown names."""
        parts = [p.strip().lower() for p in (text or "").split('+')]
        if not parts or not parts[-1]:
            raise ValueError(f"Invalid hotkey: {text!r}")
        *mod_names, key_name = parts
        mods = set()
        for name in mod_names:
            if name not in MODIFIER_NAMES:
                raise ValueError(f"Unknown modifier {name!r} in hotkey {text!r}")
            mods.add(MODIFIER_NAMES[name])
        if key_name not in KEY_NAMES:
            raise ValueError(f"Unknown key {key_name!r} in hotkey {text!r}")
        return cls(KEY_NAMES[key_name], frozenset(mods))

    def matches(self, code: int, modifiers) -> bool:
        return code == self.code and frozenset(modifiers) == self.modifiers


class HotkeyMap:
    """Action bindings; an action may be unbound."""

    def __init__(self, bindings: dict[HotkeyAction, Hotkey] | None = None):
        self.bindings: dict[HotkeyAction, Hotkey] = dict(bindings or {})

    @classmethod
    def from_config(cls, config: dict) -> "HotkeyMap":
        bindings = {}
        for action, key in CONFIG_KEYS.items():
            text = config.get(key)
            if text:
                bindings[action] = Hotkey.parse(text)
        return cls(bindings)

    def match(self, code: int, modifiers) -> HotkeyAction | None:
        for action, hotkey in self.bindings.items():
            if hotkey.matches(code, modifiers):
                return action
        return None
