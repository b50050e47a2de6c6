"""SwitchbackApp — wires configuration, platform adapters and the engine."""

from __future__ import annotations

import logging
import os
import signal

import switchback.log  # registers TRACE level and logger.trace()
from switchback.config import ConfigManager
from switchback.core.event_bus import EventBus
from switchback.core.events import EventType
from switchback.core.types import LanguagePrefix
from switchback.hotkeys import HotkeyMap

logger = logging.getLogger(__name__)


class SwitchbackApp:
    """Headless daemon: grabs keyboards, corrects words, re-emits the rest.

    ``_init_platform()`` is separated from ``__init__`` so that tests
    can inject mocks without touching real X11 / evdev resources.
    """

    def __init__(self, debug: bool = False, config_path: str | None = None):
        self.config = ConfigManager(config_path=config_path)
        self.debug = debug or bool(self.config.get('debug'))
        self._running = False
        self._quit_requested = False
        self._stopped = False

        self.event_bus = EventBus()
        self.event_bus.subscribe(EventType.APP_QUIT, self._on_quit)

        # Platform adapters — created by _init_platform()
        self.layout = None
        self.virtual_kb = None
        self.injector = None
        self.oracle = None
        self.scheduler = None
        self.device_manager = None
        self.decoder = None
        self.engine = None
        self.key_source = None

    # ------------------------------------------------------------------
    # Platform initialisation (lazy — for testability)
    # ------------------------------------------------------------------

    def _init_platform(self):
        from switchback.core.engine import Engine
        from switchback.core.scheduler import TaskScheduler
        from switchback.input.device_manager import DeviceManager
        from switchback.input.key_source import EvdevKeySource, KeysymDecoder
        from switchback.input.virtual_keyboard import VirtualKeyboard
        from switchback.intelligence.spell_oracle import DictionarySpellOracle
        from switchback.platform.layout_switch import X11LayoutSwitch
        from switchback.platform.text_injector import UInputTextInjector

        cfg = self.config.get_all()
        try:
            self.layout = X11LayoutSwitch(
                primary=cfg['primary_layout'], secondary=cfg['secondary_layout'], debug=self.debug,
            )
        except Exception as exc:
            raise RuntimeError(f"X11 unavailable, cannot read the keyboard layout: {exc}") from exc

        try:
            self.virtual_kb = VirtualKeyboard(debug=self.debug)
        except Exception as exc:
            raise RuntimeError(f"Cannot create the virtual keyboard: {exc}") from exc

        self.injector = UInputTextInjector(self.virtual_kb, self.layout)
        self.oracle = DictionarySpellOracle(cfg['dictionary_dirs'])
        for prefix in LanguagePrefix:
            if self.oracle.best_available_language(prefix) is None:
                logger.warning("No %s dictionary installed or listed in %s; such words are never converted",
                               prefix.value, ", ".join(cfg['dictionary_dirs']))

        self.scheduler = TaskScheduler()
        self.engine = Engine(
            oracle=self.oracle,
            layout=self.layout,
            injector=self.injector,
            scheduler=self.scheduler,
            hotkeys=HotkeyMap.from_config(cfg),
            event_bus=self.event_bus,
            config=cfg,
            debug=self.debug,
        )
        self.device_manager = DeviceManager(grab_keyboards=cfg['grab_keyboard'], debug=self.debug)
        self.decoder = KeysymDecoder(self.layout)
        self.key_source = EvdevKeySource(
            self.engine, self.device_manager, self.virtual_kb, self.decoder, debug=self.debug,
        )

    def _wire_event_bus(self):
        self.event_bus.subscribe(EventType.CONVERSION_TOGGLED, self._on_toggled)

    def _on_quit(self, event):
        logger.info("Quit requested")
        self._quit_requested = True
        self._running = False

    def _on_toggled(self, event):
        self.config.set('enabled', bool(event.data))

    def reload_config(self) -> bool:
        """Re-read the config file and push it into the running engine."""
        ok = self.config.reload()
        if self.engine is not None:
            self.engine.reconfigure(self.config.get_all())
        logger.info("Config reloaded from %s%s", self.config.config_path, "" if ok else " (rejected, defaults used)")
        return ok

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self):
        """Blocking main event loop."""
        if not os.environ.get('DISPLAY'):
            raise RuntimeError(
                "switchback requires X11 (DISPLAY is not set). "
                "For systemd add ImportEnvironment=DISPLAY to the service file."
            )

        self._init_platform()
        self._wire_event_bus()
        count = self.device_manager.scan_devices()
        if not count:
            logger.warning("No keyboards found; is the user in the 'input' group?")
        self._running = not self._quit_requested
        logger.info("switchback running (%d devices, conversion %s)",
                    count, "enabled" if self.engine.enabled else "disabled")

        def _reload_handler(signum, frame):
            self.reload_config()
        signal.signal(signal.SIGHUP, _reload_handler)

        try:
            while self._running:
                self.key_source.poll(timeout=0.1)
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def stop(self):
        """Graceful shutdown — safe to call multiple times."""
        self._running = False
        if self._stopped:
            return
        self._stopped = True
        if self.engine is not None:
            self.engine.stop()
        if self.scheduler is not None:
            self.scheduler.shutdown()
        if self.key_source is not None:
            self.key_source.release_all()
        for name in ('device_manager', 'decoder', 'virtual_kb', 'layout'):
            component = getattr(self, name)
            if component is None:
                continue
            try:
                component.close()
            except Exception as exc:
                logger.debug("Closing %s failed: %s", name, exc)
            setattr(self, name, None)
