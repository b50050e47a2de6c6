"""ITextInjector interface and the UInput-backed implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING

import switchback.log  # registers TRACE level and logger.trace()
from switchback.input.key_mapper import (
    KEY_BACKSPACE, KEY_LEFT, KEY_RIGHT, KEY_LEFTCTRL, KEY_LEFTSHIFT, key_for_char,
)

if TYPE_CHECKING:
    from switchback.core.events import KeyEvent
    from switchback.input.virtual_keyboard import VirtualKeyboard
    from switchback.platform.layout_switch import ILayoutSwitch

logger = logging.getLogger(__name__)


class Direction(Enum):
    LEFT = "left"
    RIGHT = "right"


class ITextInjector(ABC):
    @abstractmethod
    def delete_backward(self, count: int) -> None: ...

    @abstractmethod
    def type_text(self, text: str) -> None: ...

    @abstractmethod
    def move_caret(self, direction: Direction, count: int = 1,
                   extend_selection: bool = False, by_word: bool = False) -> None: ...

    @abstractmethod
    def forward(self, event: "KeyEvent") -> None:
        """Re-emit a raw key event the user produced."""


class UInputTextInjector(ITextInjector):
    """Types through the virtual keyboard using physical key positions.

    Characters are translated to the key that produces them on the layout
    active at typing time, so the layout must be switched first.
    """

    def __init__(self, virtual_kb: "VirtualKeyboard", layout: "ILayoutSwitch"):
        self.virtual_kb = virtual_kb
        self.layout = layout

    def delete_backward(self, count: int) -> None:
        if count > 0:
            self.virtual_kb.tap_key(KEY_BACKSPACE, count)

    def type_text(self, text: str) -> None:
        language = self.layout.current_language()
        for ch in text:
            key = key_for_char(ch, language)
            if key is None:
                logger.warning("No key for %r on %s layout, skipped", ch, language.value)
                continue
            code, shift = key
            self.virtual_kb.press_combo([KEY_LEFTSHIFT] if shift else [], code)

    def move_caret(self, direction: Direction, count: int = 1,
                   extend_selection: bool = False, by_word: bool = False) -> None:
        code = KEY_LEFT if direction is Direction.LEFT else KEY_RIGHT
        mods = []
        if by_word:
            mods.append(KEY_LEFTCTRL)
        if extend_selection:
            mods.append(KEY_LEFTSHIFT)
        self.virtual_kb.press_combo(mods, code, n_times=count)

    def forward(self, event: "KeyEvent") -> None:
        logger.trace("forward code=%d value=%d", event.code, event.value)  # type: ignore[attr-defined]
        self.virtual_kb.write(event.code, event.value)
