"""In-memory simulation of a text field, keyboard and layout switch.

Used by ``switchback simulate`` to dry-run the engine against a typing
script, and by the tests.  Script characters name physical keys: a Latin
character is the key producing it on the English layout, a Cyrillic one the
key producing it on the Ukrainian layout.  What appears in the field depends
on the layout active when the key is pressed.  Brace commands:

    {fix}     fix-last-ambiguous hotkey      {force}   force-convert hotkey
    {toggle}  toggle hotkey                  {bs}      Backspace
    {left}    Left arrow                     {right}   Right arrow
    {en}/{uk} user switches the layout       {wait}    one idle second
    {{        a literal "{"
"""

from __future__ import annotations

import logging
import re
from typing import Iterator

from switchback.core.engine import Engine, KeyVerdict
from switchback.core.events import KeyEvent
from switchback.core.scheduler import ManualScheduler
from switchback.core.script import is_cyrillic
from switchback.core.types import LanguagePrefix
from switchback.hotkeys import HotkeyAction, HotkeyMap
from switchback.input.key_mapper import (
    KEY_BACKSPACE, KEY_DELETE, KEY_LEFT, KEY_RIGHT, char_for_key, key_for_char,
)
from switchback.platform.document import IAccessibleDocument, TextRange
from switchback.platform.layout_switch import ILayoutSwitch
from switchback.platform.text_injector import Direction, ITextInjector

logger = logging.getLogger(__name__)


def is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_'’"


class TextDocument(IAccessibleDocument):
    """A single-line-or-more text field with a caret and a selection."""

    def __init__(self, text: str = "", caret: int | None = None, focus: object = "document"):
        self.text = text
        self.caret = len(text) if caret is None else caret
        self.anchor = self.caret
        self.focus = focus
        self.accept_replace = True

    def __repr__(self) -> str:
        return f"TextDocument({self.text!r}, caret={self.caret})"

    @property
    def selection(self) -> tuple[int, int]:
        return min(self.anchor, self.caret), max(self.anchor, self.caret)

    # -- IAccessibleDocument -------------------------------------------------

    def focused_text(self) -> str | None:
        return self.text

    def selected_range(self) -> TextRange | None:
        lo, hi = self.selection
        return TextRange(lo, hi - lo)

    def replace(self, rng: TextRange, text: str) -> bool:
        if not self.accept_replace or rng.location < 0 or rng.end > len(self.text):
            return False
        self.text = self.text[:rng.location] + text + self.text[rng.end:]
        self.caret = self.anchor = rng.location + len(text)
        return True

    def set_selected_range(self, rng: TextRange) -> bool:
        if rng.location < 0 or rng.end > len(self.text):
            return False
        self.anchor = rng.location
        self.caret = rng.end
        return True

    def focus_token(self) -> object:
        return self.focus

    # -- editing ---------------------------------------------------------------

    def insert(self, s: str) -> None:
        lo, hi = self.selection
        self.text = self.text[:lo] + s + self.text[hi:]
        self.caret = self.anchor = lo + len(s)

    def backspace(self) -> None:
        lo, hi = self.selection
        if hi > lo:
            self.text = self.text[:lo] + self.text[hi:]
            self.caret = self.anchor = lo
        elif self.caret > 0:
            self.text = self.text[:self.caret - 1] + self.text[self.caret:]
            self.caret = self.anchor = self.caret - 1

    def word_left(self, pos: int) -> int:
        while pos > 0 and not is_word_char(self.text[pos - 1]):
            pos -= 1
        while pos > 0 and is_word_char(self.text[pos - 1]):
            pos -= 1
        return pos

    def word_right(self, pos: int) -> int:
        n = len(self.text)
        while pos < n and not is_word_char(self.text[pos]):
            pos += 1
        while pos < n and is_word_char(self.text[pos]):
            pos += 1
        return pos

    def move(self, direction: Direction, count: int = 1, extend: bool = False, by_word: bool = False) -> None:
        lo, hi = self.selection
        if not extend and not by_word and hi > lo:
            # Plain arrow collapses the selection to its edge first
            self.caret = lo if direction is Direction.LEFT else hi
            count -= 1
        pos = self.caret
        for _ in range(max(0, count)):
            if direction is Direction.LEFT:
                pos = self.word_left(pos) if by_word else max(0, pos - 1)
            else:
                pos = self.word_right(pos) if by_word else min(len(self.text), pos + 1)
        self.caret = pos
        if not extend:
            self.anchor = pos


class SimulatedKeyboard(ITextInjector):
    """Text injector that edits a TextDocument directly."""

    def __init__(self, document: TextDocument):
        self.document = document
        self.actions: list[tuple] = []

    def delete_backward(self, count: int) -> None:
        self.actions.append(("delete", count))
        for _ in range(count):
            self.document.backspace()

    def type_text(self, text: str) -> None:
        self.actions.append(("type", text))
        self.document.insert(text)

    def move_caret(self, direction: Direction, count: int = 1,
                   extend_selection: bool = False, by_word: bool = False) -> None:
        self.actions.append(("move", direction.value, count, extend_selection, by_word))
        self.document.move(direction, count, extend=extend_selection, by_word=by_word)

    def forward(self, event: KeyEvent) -> None:
        if not event.is_down:
            return
        if event.code in (KEY_BACKSPACE, KEY_DELETE):
            self.document.backspace()
        elif event.code == KEY_LEFT:
            self.document.move(Direction.LEFT)
        elif event.code == KEY_RIGHT:
            self.document.move(Direction.RIGHT)
        elif event.char:
            self.document.insert(event.char)


class SimulatedLayoutSwitch(ILayoutSwitch):
    """Layout state with an optional confirmation lag.

    A requested switch becomes visible after *lag* reads of
    ``current_language``; with ``stuck=True`` it never does.
    """

    def __init__(self, language: LanguagePrefix = LanguagePrefix.EN, lag: int = 0, stuck: bool = False):
        self.language = language
        self.lag = lag
        self.stuck = stuck
        self.requests: list[LanguagePrefix] = []
        self._pending: LanguagePrefix | None = None
        self._countdown = 0

    def current_language(self) -> LanguagePrefix:
        if self._pending is not None and not self.stuck:
            if self._countdown <= 0:
                self.language, self._pending = self._pending, None
            else:
                self._countdown -= 1
        return self.language

    def switch_to(self, language: LanguagePrefix) -> None:
        self.requests.append(language)
        if self.stuck:
            return
        if self.lag <= 0:
            self.language, self._pending = language, None
        elif self._pending is not language:
            self._pending = language
            self._countdown = self.lag


_COMMAND = re.compile(r"\{\{|\{(\w+)\}")

_CONTROL_KEYS = {
    'bs': (KEY_BACKSPACE, None),
    'left': (KEY_LEFT, None),
    'right': (KEY_RIGHT, None),
}

_HOTKEY_COMMANDS = {
    'fix': HotkeyAction.FIX_AMBIGUOUS,
    'force': HotkeyAction.FORCE_CONVERT,
    'toggle': HotkeyAction.TOGGLE,
}


def parse_script(script: str) -> Iterator[tuple[str, str]]:
    """Yield ``('char', c)`` and ``('cmd', name)`` items from a typing script."""
    pos = 0
    for m in _COMMAND.finditer(script):
        for ch in script[pos:m.start()]:
            yield 'char', ch
        if m.group(0) == '{{':
            yield 'char', '{'
        else:
            yield 'cmd', m.group(1).lower()
        pos = m.end()
    for ch in script[pos:]:
        yield 'char', ch


class Simulator:
    """Drives an Engine with simulated collaborators on a virtual clock."""

    KEY_INTERVAL = 0.03

    def __init__(
        self,
        oracle,
        text: str = "",
        layout: LanguagePrefix = LanguagePrefix.EN,
        accessible: bool = True,
        config: dict | None = None,
        switch_lag: int = 0,
        event_bus=None,
    ):
        self.scheduler = ManualScheduler()
        self.document = TextDocument(text)
        self.keyboard = SimulatedKeyboard(self.document)
        self.layout = SimulatedLayoutSwitch(layout, lag=switch_lag)
        cfg = dict(config or {})
        hotkeys = HotkeyMap.from_config({
            'toggle_hotkey': cfg.get('toggle_hotkey', 'Ctrl+Alt+0'),
            'fix_hotkey': cfg.get('fix_hotkey', 'Ctrl+Alt+A'),
            'force_hotkey': cfg.get('force_hotkey', 'Ctrl+Alt+F'),
        })
        self.engine = Engine(
            oracle=oracle,
            layout=self.layout,
            injector=self.keyboard,
            scheduler=self.scheduler,
            document=self.document if accessible else None,
            hotkeys=hotkeys,
            event_bus=event_bus,
            config=cfg,
        )
        self.engine.redecode = self._redecode
        self.verdicts: list[KeyVerdict] = []

    def _redecode(self, event: KeyEvent) -> KeyEvent:
        """The character the same physical key gives under the current layout."""
        if event.char is None:
            return event
        ch = char_for_key(event.code, 'shift' in event.modifiers, self.layout.current_language())
        return event.with_char(ch) if ch else event

    @property
    def text(self) -> str:
        return self.document.text

    def press(self, event: KeyEvent) -> KeyVerdict:
        verdict = self.engine.handle_key(event)
        self.verdicts.append(verdict)
        if verdict is KeyVerdict.PASS:
            self.keyboard.forward(event)
        self.scheduler.advance(self.KEY_INTERVAL)
        return verdict

    def type_char(self, ch: str) -> KeyVerdict:
        home = LanguagePrefix.UK if is_cyrillic(ch) else LanguagePrefix.EN
        key = key_for_char(ch, home)
        if key is None:
            return self.press(KeyEvent(code=0, value=1, char=ch, forward=True))
        code, shift = key
        produced = char_for_key(code, shift, self.layout.current_language()) or ch
        mods = frozenset({'shift'}) if shift else frozenset()
        return self.press(KeyEvent(code=code, value=1, char=produced, modifiers=mods, forward=True))

    def hotkey(self, action: HotkeyAction) -> KeyVerdict:
        binding = self.engine.hotkeys.bindings.get(action)
        if binding is None:
            raise ValueError(f"No hotkey bound for {action.name}")
        return self.press(KeyEvent(code=binding.code, value=1, modifiers=binding.modifiers, forward=True))

    def command(self, name: str) -> None:
        if name in _HOTKEY_COMMANDS:
            self.hotkey(_HOTKEY_COMMANDS[name])
        elif name in _CONTROL_KEYS:
            code, char = _CONTROL_KEYS[name]
            self.press(KeyEvent(code=code, value=1, char=char, forward=True))
        elif name in ('en', 'uk'):
            self.layout.switch_to(LanguagePrefix.parse(name))
        elif name == 'wait':
            self.scheduler.advance(1.0)
        else:
            raise ValueError(f"Unknown simulation command: {{{name}}}")

    def run(self, script: str) -> str:
        """Type *script*, let every pending correction finish, return the text."""
        for kind, value in parse_script(script):
            if kind == 'char':
                self.type_char(value)
            else:
                self.command(value)
        self.settle()
        return self.text

    def settle(self) -> None:
        self.scheduler.run_until_idle()
