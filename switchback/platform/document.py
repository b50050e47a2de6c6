"""IAccessibleDocument — optional read/write access to the focused text field."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class TextRange:
    location: int
    length: int = 0

    @property
    def end(self) -> int:
        return self.location + self.length


class IAccessibleDocument(ABC):
    """Best-effort access to the editable text that has keyboard focus.

    Every method may fail by returning ``None``/``False``; callers then fall
    back to keystroke navigation.
    """

    @abstractmethod
    def focused_text(self) -> str | None: ...

    @abstractmethod
    def selected_range(self) -> TextRange | None: ...

    @abstractmethod
    def replace(self, rng: TextRange, text: str) -> bool: ...

    @abstractmethod
    def set_selected_range(self, rng: TextRange) -> bool: ...

    @abstractmethod
    def focus_token(self) -> object:
        """Opaque identity of the focused element, compared for equality."""
