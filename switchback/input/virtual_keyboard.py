"""VirtualKeyboard — wraps evdev.UInput for corrections and forwarding."""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable

from switchback.input.key_mapper import EV_KEY

logger = logging.getLogger(__name__)


class VirtualKeyboard:
    """Creates and manages a UInput virtual keyboard device.

    The device name contains "virtual" so the device filter never reads our
    own output back as user input.
    """

    DEVICE_NAME = "switchback virtual keyboard"

    # Without a pause many applications (GTK, Qt, X terminals) drop events
    # that arrive faster than their input loop runs.
    KEY_PRESS_DELAY = 0.001    # between press and release
    KEY_REPEAT_DELAY = 0.001   # between successive taps

    def __init__(self, uinput: Any = None, debug: bool = False):
        self.debug = debug
        self._uinput: Any = uinput
        if self._uinput is None:
            self._open()

    def _open(self) -> None:
        import evdev
        try:
            self._uinput = evdev.UInput(name=self.DEVICE_NAME)
        except (OSError, evdev.UInputError) as e:
            raise RuntimeError(f"Cannot create UInput device: {e}") from e

    @property
    def available(self) -> bool:
        return self._uinput is not None

    def write(self, code: int, value: int) -> None:
        """Emit one key event followed by a SYN report."""
        if self._uinput is None:
            return
        try:
            self._uinput.write(EV_KEY, code, value)
            self._uinput.syn()
        except OSError as e:
            logger.warning("VirtualKeyboard write error: %s", e)

    def tap_key(self, keycode: int, n_times: int = 1) -> None:
        """Press and release a keycode n times."""
        for i in range(n_times):
            self.write(keycode, 1)
            time.sleep(self.KEY_PRESS_DELAY)
            self.write(keycode, 0)
            if i < n_times - 1:
                time.sleep(self.KEY_REPEAT_DELAY)

    def press_combo(self, modifiers: Iterable[int], keycode: int, n_times: int = 1) -> None:
        """Hold *modifiers*, tap *keycode* n times, release modifiers in reverse."""
        mods = list(modifiers)
        for m in mods:
            self.write(m, 1)
        if mods:
            time.sleep(self.KEY_PRESS_DELAY)
        self.tap_key(keycode, n_times)
        for m in reversed(mods):
            self.write(m, 0)
        time.sleep(self.KEY_REPEAT_DELAY)

    def close(self) -> None:
        if self._uinput is not None:
            try:
                self._uinput.close()
            except OSError:
                pass
            self._uinput = None
