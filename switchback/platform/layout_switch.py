"""ILayoutSwitch interface, LayoutInfo dataclass and X11LayoutSwitch implementation."""

from __future__ import annotations

import logging
import re
import subprocess
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

from switchback.core.types import LanguagePrefix
from switchback.platform import xkb_bindings

logger = logging.getLogger(__name__)

# xkb layout names that mean Ukrainian; anything unrecognised counts as EN
UKRAINIAN_LAYOUT_NAMES = frozenset({"ua", "uk", "ukr", "ukrainian"})


def language_for_layout(layout_name: str) -> LanguagePrefix:
    """Map an xkb layout name (``'us'``, ``'ua'``, ``'ua(winkeys)'``) to a prefix."""
    base = (layout_name or "").split("(", 1)[0].strip().lower()
    return LanguagePrefix.UK if base in UKRAINIAN_LAYOUT_NAMES else LanguagePrefix.EN


@dataclass
class LayoutInfo:
    name: str       # xkb layout name: 'us', 'ua'
    index: int      # XKB group index: 0, 1, ...

    @property
    def language(self) -> LanguagePrefix:
        return language_for_layout(self.name)


class ILayoutSwitch(ABC):
    @abstractmethod
    def current_language(self) -> LanguagePrefix: ...

    @abstractmethod
    def switch_to(self, language: LanguagePrefix) -> None:
        """Request a switch; completion is observed via ``current_language``."""


class X11LayoutSwitch(ILayoutSwitch):
    """XKB group switching on X11.

    Reads the group with XkbGetState via ctypes.  Switches through Cinnamon's
    D-Bus API when it is running (the WM would otherwise revert the group),
    else with XkbLockGroup.  Layout names come from Cinnamon or
    ``setxkbmap -query``.
    """

    def __init__(self, primary: str = "us", secondary: str = "ua", debug: bool = False):
        self.primary = primary
        self.secondary = secondary
        self.debug = debug
        self._lib = xkb_bindings.load_libx11()
        if self._lib is None:
            raise RuntimeError("libX11 not found")
        self._lib.XInitThreads()
        self._dpy = self._lib.XOpenDisplay(None)
        if not self._dpy:
            raise RuntimeError("Cannot open X display")
        self._lock = threading.Lock()
        self._layouts: list[LayoutInfo] | None = None
        self._cinnamon: bool | None = None

    # -- layout discovery ----------------------------------------------------

    @staticmethod
    def _query_setxkbmap() -> list[str]:
        """Layout list from ``setxkbmap -query``, e.g. ``['us', 'ua']``."""
        try:
            r = subprocess.run(
                ["setxkbmap", "-query"],
                capture_output=True, text=True, timeout=2,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("setxkbmap failed: %s", exc)
            return []
        for line in r.stdout.splitlines():
            if line.startswith("layout:"):
                raw = line.split(":", 1)[1].strip()
                return [name.strip() for name in raw.split(",") if name.strip()]
        return []

    @staticmethod
    def _gdbus(method: str, *args: str) -> str | None:
        try:
            r = subprocess.run(
                ["gdbus", "call", "--session",
                 "--dest", "org.Cinnamon",
                 "--object-path", "/org/Cinnamon",
                 "--method", f"org.Cinnamon.{method}", *args],
                capture_output=True, text=True, timeout=3,
            )
        except (OSError, subprocess.SubprocessError):
            return None
        if r.returncode != 0 or not r.stdout.strip():
            return None
        return r.stdout

    def _cinnamon_sources(self) -> list[LayoutInfo] | None:
        out = self._gdbus("GetInputSources")
        if out is None:
            return None
        # Each entry: ('xkb', 'name', index, 'Display (name)', ..., true|false)
        sources = [
            LayoutInfo(name=m.group(1), index=int(m.group(2)))
            for m in re.finditer(
                r"\('xkb',\s*'([\w()]+)',\s*(\d+),(?:[^()]|\([^)]*\))+,\s*(?:true|false)\)",
                out,
            )
        ]
        return sources or None

    def get_layouts(self) -> list[LayoutInfo]:
        if self._layouts is None:
            sources = self._cinnamon_sources()
            self._cinnamon = sources is not None
            if sources:
                self._layouts = sources
            else:
                names = self._query_setxkbmap() or [self.primary, self.secondary]
                self._layouts = [LayoutInfo(name=n, index=i) for i, n in enumerate(names)]
            logger.debug("Layouts: %s", ", ".join(f"{l.index}:{l.name}" for l in self._layouts))
        return self._layouts

    def layout_for(self, language: LanguagePrefix) -> LayoutInfo | None:
        """The configured layout for *language*, else the first one that matches."""
        layouts = self.get_layouts()
        for preferred in (self.primary, self.secondary):
            for info in layouts:
                if info.name == preferred and info.language is language:
                    return info
        for info in layouts:
            if info.language is language:
                return info
        return None

    # -- ILayoutSwitch -------------------------------------------------------

    def current_group(self) -> int:
        with self._lock:
            group = xkb_bindings.get_current_group(self._lib, self._dpy)
        return group or 0

    def current_layout(self) -> LayoutInfo:
        layouts = self.get_layouts()
        group = self.current_group()
        return layouts[group] if group < len(layouts) else layouts[0]

    def current_language(self) -> LanguagePrefix:
        return self.current_layout().language

    def switch_to(self, language: LanguagePrefix) -> None:
        target = self.layout_for(language)
        if target is None:
            logger.warning("No %s layout configured", language.value)
            return
        if self._cinnamon and self._gdbus("ActivateInputSourceIndex", str(target.index)) is not None:
            return
        with self._lock:
            xkb_bindings.lock_group(self._lib, self._dpy, target.index)

    def close(self) -> None:
        """Close the X display connection."""
        if self._dpy:
            self._lib.XCloseDisplay(self._dpy)
            self._dpy = None
