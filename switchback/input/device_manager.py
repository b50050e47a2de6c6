"""DeviceManager — opens physical evdev keyboards and mice for reading.

Keyboards can be grabbed (exclusive access) so that the engine decides
which key events reach applications; passed events are re-emitted through
the virtual keyboard by the key source.
"""

from __future__ import annotations

import logging
import selectors
import threading
from typing import Any, Callable, Iterator

import evdev
from evdev import ecodes

from switchback.input.device_filter import classify_capabilities, should_include_device

logger = logging.getLogger(__name__)


class DeviceManager:
    """Tracks readable input devices and multiplexes their events."""

    def __init__(
        self,
        grab_keyboards: bool = False,
        exclude_names: list[str] | None = None,
        on_device_added: Callable[[Any], None] | None = None,
        debug: bool = False,
    ):
        self.grab_keyboards = grab_keyboards
        self.exclude_names = list(exclude_names or [])
        self.on_device_added = on_device_added
        self.debug = debug
        self.devices: dict[str, Any] = {}
        self.grabbed: set[str] = set()
        self.selector = selectors.DefaultSelector()
        self._lock = threading.Lock()

    @property
    def device_count(self) -> int:
        return len(self.devices)

    def is_grabbed(self, device: Any) -> bool:
        return getattr(device, "path", None) in self.grabbed

    # ------------------------------------------------------------------
    # Device scanning
    # ------------------------------------------------------------------

    def scan_devices(self) -> int:
        """Register every suitable device under ``/dev/input``.

        Returns:
            Number of newly registered devices.
        """
        count = 0
        for path in evdev.list_devices():
            if self.add_device(path):
                count += 1
        logger.info("Monitoring %d input devices (%d grabbed)", self.device_count, len(self.grabbed))
        return count

    def _device_kind(self, device: Any) -> str | None:
        if not should_include_device(device.name, self.exclude_names):
            return None
        caps = device.capabilities()
        keys = set(caps.get(ecodes.EV_KEY, []))
        return classify_capabilities(keys, ecodes.KEY_A, ecodes.BTN_LEFT, ecodes.BTN_RIGHT)

    def add_device(self, path: str) -> bool:
        """Open and register the device at *path*; True if it was added."""
        with self._lock:
            if path in self.devices:
                return False
            try:
                device = evdev.InputDevice(path)
            except OSError as exc:
                logger.debug("Cannot open %s: %s", path, exc)
                return False

            kind = self._device_kind(device)
            if kind is None:
                device.close()
                return False

            if kind == "keyboard" and self.grab_keyboards:
                try:
                    device.grab()
                    self.grabbed.add(path)
                except OSError as exc:
                    logger.warning("Cannot grab %s (%s): %s", device.name, path, exc)

            self.devices[path] = device
            self.selector.register(device, selectors.EVENT_READ)
            logger.debug("Device added: %s (%s, %s)", device.name, path, kind)

        if self.on_device_added:
            try:
                self.on_device_added(device)
            except Exception:
                logger.exception("on_device_added callback failed")
        return True

    # ------------------------------------------------------------------
    # Device removal
    # ------------------------------------------------------------------

    def remove_device(self, path: str) -> bool:
        """Unregister and close the device at *path*; True if it was tracked."""
        with self._lock:
            device = self.devices.pop(path, None)
            if device is None:
                return False
            self._release(path, device)
            logger.debug("Device removed: %s (%s)", getattr(device, "name", "unknown"), path)
            return True

    def _release(self, path: str, device: Any) -> None:
        try:
            self.selector.unregister(device)
        except (KeyError, ValueError):
            pass
        if path in self.grabbed:
            self.grabbed.discard(path)
            try:
                device.ungrab()
            except OSError:
                pass
        try:
            device.close()
        except OSError:
            pass

    # ------------------------------------------------------------------
    # Event reading
    # ------------------------------------------------------------------

    def get_events(self, timeout: float = 0.1) -> Iterator[tuple]:
        """Yield ``(device, event)`` tuples from ready devices."""
        ready = self.selector.select(timeout=timeout)
        for key, _mask in ready:
            device = key.fileobj
            try:
                for event in device.read():
                    yield (device, event)
            except OSError as exc:
                logger.warning("Read error on %s: %s", getattr(device, "name", "?"), exc)
                self.remove_device(device.path)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Ungrab and close every device."""
        with self._lock:
            for path, device in list(self.devices.items()):
                self._release(path, device)
            self.devices.clear()
            try:
                self.selector.close()
            except OSError:
                pass

    def __enter__(self) -> "DeviceManager":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        self.close()
        return False
