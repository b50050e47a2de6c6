"""Shared value types: scripts, languages, conversion candidates and verdicts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class ScriptTag(Enum):
    LATIN = auto()
    CYRILLIC = auto()
    NEUTRAL = auto()


class LanguagePrefix(Enum):
    EN = "en"
    UK = "uk"

    @property
    def other(self) -> "LanguagePrefix":
        return LanguagePrefix.UK if self is LanguagePrefix.EN else LanguagePrefix.EN

    @classmethod
    def parse(cls, value: str) -> "LanguagePrefix":
        """Return the prefix for ``'en'``/``'uk'`` (case-insensitive, ``'ua'`` accepted)."""
        v = (value or "").strip().lower()
        if v in ("uk", "ua"):
            return cls.UK
        if v == "en":
            return cls.EN
        raise ValueError(f"Unknown language prefix: {value!r}")


@dataclass(frozen=True)
class ConversionCandidate:
    original: str
    converted: str
    source: LanguagePrefix
    target: LanguagePrefix


class Decision(Enum):
    KEEP = auto()
    CONVERT_NOW = auto()
    DEFER = auto()


@dataclass(frozen=True)
class Verdict:
    decision: Decision
    candidate: ConversionCandidate | None = None
    reason: str = ""
    low_confidence: bool = False

    @property
    def should_convert(self) -> bool:
        return self.decision is Decision.CONVERT_NOW
