"""Tests for UInputTextInjector key sequences."""

from __future__ import annotations

from unittest.mock import MagicMock, call

from conftest import MockLayoutSwitch
from switchback.core.events import KeyEvent
from switchback.core.types import LanguagePrefix
from switchback.input.key_mapper import (
    KEY_BACKSPACE, KEY_LEFT, KEY_LEFTCTRL, KEY_LEFTSHIFT, KEY_RIGHT,
)
from switchback.platform.text_injector import Direction, UInputTextInjector


def make(language=LanguagePrefix.EN):
    vk = MagicMock()
    return UInputTextInjector(vk, MockLayoutSwitch(language)), vk


class TestDelete:
    def test_backspaces(self):
        inj, vk = make()
        inj.delete_backward(4)
        vk.tap_key.assert_called_once_with(KEY_BACKSPACE, 4)

    def test_zero_is_noop(self):
        inj, vk = make()
        inj.delete_backward(0)
        vk.tap_key.assert_not_called()


class TestTypeText:
    def test_english(self):
        inj, vk = make()
        inj.type_text("Hi!")
        assert vk.press_combo.call_args_list == [
            call([KEY_LEFTSHIFT], 35),
            call([], 23),
            call([KEY_LEFTSHIFT], 2),
        ]

    def test_ukrainian_uses_physical_keys(self):
        inj, vk = make(LanguagePrefix.UK)
        inj.type_text("Пр,")
        assert vk.press_combo.call_args_list == [
            call([KEY_LEFTSHIFT], 34),   # П on the G key
            call([], 35),                # р on the H key
            call([KEY_LEFTSHIFT], 53),   # comma is Shift+/ on ua
        ]

    def test_untypeable_char_skipped(self, caplog):
        inj, vk = make()
        inj.type_text("a€")
        assert vk.press_combo.call_count == 1
        assert "No key" in caplog.text


class TestMoveCaret:
    def test_plain(self):
        inj, vk = make()
        inj.move_caret(Direction.LEFT, 2)
        vk.press_combo.assert_called_once_with([], KEY_LEFT, n_times=2)

    def test_word_select(self):
        inj, vk = make()
        inj.move_caret(Direction.RIGHT, 1, extend_selection=True, by_word=True)
        vk.press_combo.assert_called_once_with([KEY_LEFTCTRL, KEY_LEFTSHIFT], KEY_RIGHT, n_times=1)


def test_forward_writes_raw_event():
    inj, vk = make()
    inj.forward(KeyEvent(code=30, value=2))
    vk.write.assert_called_once_with(30, 2)
