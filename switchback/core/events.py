"""Typed event definitions (dataclasses)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any


class EventType(Enum):
    # Tokenizer / decisions
    WORD_COMPLETED = auto()
    AMBIGUITY_CAPTURED = auto()
    # Conversion lifecycle
    CONVERSION_START = auto()
    CONVERSION_COMPLETE = auto()
    # Engine control
    CONVERSION_TOGGLED = auto()
    # Layout
    LAYOUT_SWITCH_TIMEOUT = auto()
    # App lifecycle
    APP_QUIT = auto()


@dataclass
class Event:
    type: EventType
    data: Any
    timestamp: float


@dataclass(frozen=True)
class KeyEvent:
    """One key event from the input source.

    *char* is the character the key produces under the layout active when it
    was decoded (``None`` for keys that produce none).  *forward* marks events
    the source will not deliver by itself (grabbed device, simulation), so
    they must be re-emitted if passed after being queued.
    """
    code: int
    value: int = 1              # 0=release, 1=press, 2=repeat
    char: str | None = None
    modifiers: frozenset = field(default_factory=frozenset)   # {'ctrl', 'alt', 'shift', 'meta'}
    synthetic: bool = False
    forward: bool = False
    device_name: str = ""

    @property
    def is_down(self) -> bool:
        return self.value in (1, 2)

    def with_char(self, char: str | None) -> "KeyEvent":
        return replace(self, char=char)


@dataclass
class WordEventData:
    word: str
    language: str
    verdict: str
    reason: str = ""


@dataclass
class ConversionEventData:
    original: str
    converted: str
    mode: str           # "retype" | "document" | "navigate"
    is_auto: bool = False
