"""ISpellOracle interface and its implementations.

``DictionarySpellOracle`` asks the system spellchecker through Enchant
(pyenchant) and merges plain one-word-per-line ``.txt`` lists on top.
Dictionaries are opened lazily, on the first lookup for a language, to keep
start-up fast.
"""

from __future__ import annotations

import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Iterable

from switchback.core.types import LanguagePrefix

logger = logging.getLogger(__name__)

# Extra word lists; system dictionaries come from Enchant
DEFAULT_DICTIONARY_DIRS = [
    '~/.config/switchback/dicts',
]

# Preferred tags per prefix, tried before any other tag with the same prefix
PREFERRED_LANGUAGES: dict[LanguagePrefix, tuple[str, ...]] = {
    LanguagePrefix.EN: ('en_US', 'en_GB', 'en'),
    LanguagePrefix.UK: ('uk_UA', 'uk'),
}

WORD_LIST_SUFFIX = '.txt'


def normalize_word(word: str) -> str:
    return word.replace('’', "'").lower()


def tag_matches_prefix(tag: str, prefix: LanguagePrefix) -> bool:
    """True if a language tag such as ``en_US`` or ``uk`` belongs to *prefix*."""
    low = tag.lower().replace('-', '_')
    return low == prefix.value or low.startswith(prefix.value + '_')


class ISpellOracle(ABC):
    @abstractmethod
    def is_correct(self, word: str, language: str) -> bool: ...

    @abstractmethod
    def best_available_language(self, prefix: LanguagePrefix) -> str | None: ...


class WordSetSpellOracle(ISpellOracle):
    """Oracle over in-memory word sets keyed by language tag."""

    def __init__(self, words: dict[str, Iterable[str]] | None = None):
        self._words: dict[str, set[str]] = {}
        for tag, items in (words or {}).items():
            self._words[tag] = {normalize_word(w) for w in items if w}

    def available_languages(self) -> list[str]:
        return sorted(self._words)

    def _words_for(self, language: str) -> set[str]:
        return self._words.get(language, set())

    def best_available_language(self, prefix: LanguagePrefix) -> str | None:
        available = self.available_languages()
        for tag in PREFERRED_LANGUAGES.get(prefix, ()):
            if tag in available:
                return tag
        for tag in available:
            if tag_matches_prefix(tag, prefix):
                return tag
        return None

    def is_correct(self, word: str, language: str) -> bool:
        if not word:
            return False
        return normalize_word(word) in self._words_for(language)


class DictionarySpellOracle(WordSetSpellOracle):
    """Oracle backed by the system spellchecker plus optional word lists.

    Installed hunspell/aspell/nuspell dictionaries are reached through Enchant,
    which applies their affix rules, so inflected forms are recognised.
    ``*.txt`` files (one word per line) found in *dirs* add words for the tag
    named by the file stem; ``uk_UA.txt`` alone is enough to make ``uk_UA``
    available.  *broker* is an ``enchant.Broker``; one is created on first use
    unless *use_system* is False.
    """

    def __init__(self, dirs: Iterable[str] | None = None, broker=None, use_system: bool = True):
        super().__init__()
        self._dirs = [os.path.expanduser(d) for d in (dirs or DEFAULT_DICTIONARY_DIRS)]
        self._broker = broker
        self._use_system = use_system or broker is not None
        self._system_dicts: dict[str, object | None] = {}
        self._files: dict[str, list[str]] | None = None
        self._lock = threading.Lock()

    @staticmethod
    def _default_broker():
        import enchant
        return enchant.Broker()

    def _system(self):
        if self._broker is None and self._use_system:
            try:
                self._broker = self._default_broker()
            except ImportError as exc:
                logger.error("System spellchecker unavailable, using word lists only: %s", exc)
                self._use_system = False
        return self._broker

    def _system_dict(self, language: str):
        with self._lock:
            if language in self._system_dicts:
                return self._system_dicts[language]
            broker = self._system()
            d = None
            if broker is not None and broker.dict_exists(language):
                d = broker.request_dict(language)
                logger.info("Using system dictionary %s", language)
            self._system_dicts[language] = d
            return d

    def _discover(self) -> dict[str, list[str]]:
        if self._files is None:
            files: dict[str, list[str]] = {}
            for d in self._dirs:
                try:
                    names = sorted(os.listdir(d))
                except OSError:
                    continue
                for name in names:
                    stem, ext = os.path.splitext(name)
                    if ext != WORD_LIST_SUFFIX:
                        continue
                    files.setdefault(stem, []).append(os.path.join(d, name))
            logger.debug("Word lists found: %s", ", ".join(sorted(files)) or "none")
            self._files = files
        return self._files

    def available_languages(self) -> list[str]:
        tags = set(self._discover())
        with self._lock:
            broker = self._system()
        if broker is not None:
            tags.update(broker.list_languages())
        return sorted(tags)

    @staticmethod
    def _read_word_list(path: str) -> set[str]:
        words: set[str] = set()
        with open(path, encoding='utf-8', errors='replace') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#'):
                    words.add(normalize_word(line.split()[0]))
        return words

    def _words_for(self, language: str) -> set[str]:
        with self._lock:
            cached = self._words.get(language)
            if cached is not None:
                return cached
            words: set[str] = set()
            for path in self._discover().get(language, []):
                try:
                    words |= self._read_word_list(path)
                except OSError as exc:
                    logger.warning("Cannot read word list %s: %s", path, exc)
            if words:
                logger.info("Loaded %d extra words for %s", len(words), language)
            self._words[language] = words
            return words

    def is_correct(self, word: str, language: str) -> bool:
        if not word:
            return False
        if super().is_correct(word, language):
            return True
        d = self._system_dict(language)
        return d is not None and d.check(word.replace('’', "'"))
