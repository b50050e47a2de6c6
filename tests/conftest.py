import os
import signal
import sys

import pytest

from switchback.core.types import LanguagePrefix
from switchback.intelligence.spell_oracle import WordSetSpellOracle
from switchback.platform.layout_switch import ILayoutSwitch
from switchback.platform.text_injector import ITextInjector


def pytest_addoption(parser):
    parser.addoption(
        "--keyboard-watchdog",
        action="store",
        default="10",
        help="Timeout in seconds after which a hanging test is aborted"
    )


@pytest.fixture(autouse=True)
def mock_uinput(monkeypatch):
    """Replace real evdev.UInput with a Dummy so tests never open /dev/uinput."""
    try:
        import evdev
    except ImportError:
        yield
        return

    class DummyUInput:
        def __init__(self, *args, **kwargs):
            pass
        def write(self, *a, **k):
            pass
        def syn(self):
            pass
        def close(self):
            pass

    monkeypatch.setattr(evdev, 'UInput', DummyUInput)
    yield


@pytest.fixture(autouse=True)
def keyboard_watchdog(request):
    timeout = int(request.config.getoption('--keyboard-watchdog') or 10)

    def handler(signum, frame):
        print("Keyboard watchdog triggered; aborting test run.", file=sys.stderr)
        os._exit(70)

    old_handler = signal.signal(signal.SIGALRM, handler)
    signal.alarm(timeout)
    try:
        yield
    finally:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, old_handler)


# ---------------------------------------------------------------------------
# Shared test doubles
# ---------------------------------------------------------------------------

EN_WORDS = [
    "a", "i", "the", "best", "cat", "hello", "world", "is", "it", "test",
    "dog", "can't", "we", "go", "on", "in", "at",
]
UK_WORDS = [
    "і", "а", "в", "привіт", "світ", "кіт", "еру", "п'ять", "добре", "так",
    "ні", "мова", "слово", "ще", "юля", "жаба",
]


class MockLayoutSwitch(ILayoutSwitch):
    """Layout state that switches instantly and records requests."""

    def __init__(self, language=LanguagePrefix.EN):
        self.language = language
        self.requests = []

    def current_language(self):
        return self.language

    def switch_to(self, language):
        self.requests.append(language)
        self.language = language


class RecordingInjector(ITextInjector):
    def __init__(self):
        self.actions = []

    def delete_backward(self, count):
        self.actions.append(("delete", count))

    def type_text(self, text):
        self.actions.append(("type", text))

    def move_caret(self, direction, count=1, extend_selection=False, by_word=False):
        self.actions.append(("move", direction.value, count, extend_selection, by_word))

    def forward(self, event):
        self.actions.append(("forward", event.code, event.char))


@pytest.fixture
def oracle():
    return WordSetSpellOracle({"en_US": EN_WORDS, "uk_UA": UK_WORDS})


@pytest.fixture
def layout():
    return MockLayoutSwitch()


@pytest.fixture
def injector():
    return RecordingInjector()


class FakeEnchantDict:
    """Checks words against a set; knows one affix rule, a trailing 's'."""

    def __init__(self, words):
        self.words = {w.lower() for w in words}

    def check(self, word):
        low = word.lower()
        return low in self.words or (low.endswith('s') and low[:-1] in self.words)


class FakeBroker:
    """Stands in for ``enchant.Broker`` with a fixed set of dictionaries."""

    def __init__(self, dictionaries=None):
        self.dictionaries = dict(dictionaries or {})
        self.requested = []

    def list_languages(self):
        return sorted(self.dictionaries)

    def dict_exists(self, tag):
        return tag in self.dictionaries

    def request_dict(self, tag):
        self.requested.append(tag)
        return FakeEnchantDict(self.dictionaries[tag])


@pytest.fixture
def system_dicts(monkeypatch):
    """System spellchecker seen by oracles built without an explicit broker."""
    from switchback.intelligence.spell_oracle import DictionarySpellOracle

    broker = FakeBroker()
    monkeypatch.setattr(DictionarySpellOracle, '_default_broker', staticmethod(lambda: broker))
    return broker
