"""EvdevKeySource — feeds evdev key events to the engine.

Each EV_KEY event is decoded to the character the active layout produces,
tagged with the held modifiers and handed to ``Engine.handle_key``.  Events
from grabbed keyboards that the engine passes are re-emitted through the
virtual keyboard; suppressed presses swallow their repeats and release.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable

import switchback.log  # registers TRACE level and logger.trace()
from switchback.core.events import KeyEvent
from switchback.core.engine import KeyVerdict
from switchback.input.key_mapper import (
    EV_KEY, KEYCODE_TO_CHAR_EN, KEY_ENTER, KEY_SPACE, KEY_TAB, MODIFIER_KEYS, char_for_key,
)

if TYPE_CHECKING:
    from switchback.core.engine import Engine
    from switchback.input.device_manager import DeviceManager
    from switchback.input.virtual_keyboard import VirtualKeyboard
    from switchback.platform.layout_switch import ILayoutSwitch

logger = logging.getLogger(__name__)

X11_KEYCODE_OFFSET = 8   # evdev → X11 keycode

# Legacy Cyrillic keysyms carry the KOI8-U code of their letter in the low byte
CYRILLIC_KEYSYMS = range(0x6a1, 0x700)

_WHITESPACE_KEYS = {KEY_SPACE, KEY_ENTER, KEY_TAB}


class KeysymDecoder:
    """Decodes evdev keycodes through the X server's keyboard mapping.

    Uses python-xlib; the core mapping lists two levels per XKB group, so
    the keysym index is ``group * 2 + shift``.  Without an X display the
    static EN/UK tables are used.
    """

    def __init__(self, layout: "ILayoutSwitch", display: Any = None):
        self.layout = layout
        self._lock = threading.Lock()
        self._display = display
        self._by_keysym: dict[int, str] = {}
        self._latin1: Callable[[int], str | None] = lambda keysym: None
        if self._display is None:
            self._display = self._open_display()
        if self._display is not None:
            from Xlib import XK
            self._latin1 = XK.keysym_to_string
            self._by_keysym = self._keysym_table()

    @staticmethod
    def _open_display() -> Any:
        try:
            from Xlib import display as xdisplay
            return xdisplay.Display()
        except Exception as exc:
            logger.warning("X display unavailable for key decoding (%s), using static tables", exc)
            return None

    @staticmethod
    def _keysym_table() -> dict[int, str]:
        from Xlib.keysymdef import cyrillic
        table = {}
        for keysym in CYRILLIC_KEYSYMS:
            ch = bytes([keysym & 0xFF]).decode("koi8_u")
            if ch.isalpha():
                table[keysym] = ch
        table[cyrillic.XK_numerosign] = "№"
        return table

    def _keysym_char(self, keysym: int) -> str:
        ch = self._latin1(keysym)
        if ch is not None and ch.isprintable():
            return ch
        if keysym in self._by_keysym:
            return self._by_keysym[keysym]
        if 0x1000100 <= keysym <= 0x110FFFF:
            # Direct Unicode keysym
            return chr(keysym - 0x1000000)
        return ""

    def _group(self) -> int:
        group = getattr(self.layout, "current_group", None)
        return group() if callable(group) else 0

    def char_for(self, code: int, shift: bool) -> str:
        """Character *code* produces under the layout active right now."""
        if code in _WHITESPACE_KEYS:
            return KEYCODE_TO_CHAR_EN[code]
        if self._display is None:
            return char_for_key(code, shift, self.layout.current_language())
        index = self._group() * 2 + (1 if shift else 0)
        with self._lock:
            keysym = self._display.keycode_to_keysym(code + X11_KEYCODE_OFFSET, index)
            if not keysym and index > 1:
                # Single-group key (digits on some layouts): use group 0
                keysym = self._display.keycode_to_keysym(code + X11_KEYCODE_OFFSET, index % 2)
        return self._keysym_char(keysym) if keysym else ""

    def close(self) -> None:
        if self._display is not None:
            try:
                self._display.close()
            except Exception as exc:
                logger.debug("Closing X display failed: %s", exc)
            self._display = None


class EvdevKeySource:
    """Bridges DeviceManager events to the engine and the virtual keyboard."""

    def __init__(
        self,
        engine: "Engine",
        device_manager: "DeviceManager",
        virtual_kb: "VirtualKeyboard",
        decoder: KeysymDecoder,
        debug: bool = False,
    ):
        self.engine = engine
        self.device_manager = device_manager
        self.virtual_kb = virtual_kb
        self.decoder = decoder
        self.debug = debug
        self._held: dict[int, str] = {}      # modifier keycode → name
        self._swallowed: set[int] = set()    # suppressed presses awaiting release
        engine.redecode = self.redecode

    @property
    def modifiers(self) -> frozenset:
        return frozenset(self._held.values())

    def redecode(self, event: KeyEvent) -> KeyEvent:
        if event.char is None:
            return event
        ch = self.decoder.char_for(event.code, "shift" in event.modifiers)
        return event.with_char(ch or None)

    def _track_modifier(self, code: int, value: int) -> None:
        name = MODIFIER_KEYS.get(code)
        if name is None:
            return
        if value == 0:
            self._held.pop(code, None)
        else:
            self._held[code] = name

    def build_event(self, code: int, value: int, device_name: str = "", forward: bool = False) -> KeyEvent:
        mods = self.modifiers
        char = None
        if value != 0 and code not in MODIFIER_KEYS:
            char = self.decoder.char_for(code, "shift" in mods) or None
        return KeyEvent(code=code, value=value, char=char, modifiers=mods,
                        forward=forward, device_name=device_name)

    def handle(self, device: Any, raw: Any) -> KeyVerdict | None:
        """Process one raw evdev event; returns the verdict for key events."""
        if getattr(raw, "type", None) != EV_KEY:
            return None
        code, value = raw.code, raw.value
        grabbed = self.device_manager.is_grabbed(device)

        if value != 1 and code in self._swallowed:
            if value == 0:
                self._swallowed.discard(code)
            return KeyVerdict.SUPPRESS

        self._track_modifier(code, value)
        event = self.build_event(code, value, getattr(device, "name", ""), forward=grabbed)
        if self.debug:
            logger.trace("key code=%d value=%d char=%r mods=%s", code, value,  # type: ignore[attr-defined]
                         event.char, sorted(event.modifiers))

        verdict = self.engine.handle_key(event)
        if verdict is KeyVerdict.PASS:
            if grabbed:
                self.virtual_kb.write(code, value)
        elif value == 1 and not self.engine.guard.busy:
            # Consumed outright (hotkey), not queued for replay
            self._swallowed.add(code)
        return verdict

    def poll(self, timeout: float = 0.1) -> int:
        """Read and dispatch ready events; returns how many were handled."""
        n = 0
        for device, raw in self.device_manager.get_events(timeout):
            if self.handle(device, raw) is not None:
                n += 1
        return n

    def release_all(self) -> None:
        """Release modifiers still held on the virtual keyboard."""
        for code in list(self._held):
            self.virtual_kb.write(code, 0)
        self._held.clear()
        self._swallowed.clear()
