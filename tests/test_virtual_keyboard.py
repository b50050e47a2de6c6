"""Tests for switchback.input.virtual_keyboard with an injected UInput mock."""

from __future__ import annotations

from unittest.mock import MagicMock, call

import pytest

from switchback.input.virtual_keyboard import VirtualKeyboard


@pytest.fixture
def uinput():
    return MagicMock()


@pytest.fixture
def vk(uinput, monkeypatch):
    monkeypatch.setattr(VirtualKeyboard, "KEY_PRESS_DELAY", 0)
    monkeypatch.setattr(VirtualKeyboard, "KEY_REPEAT_DELAY", 0)
    return VirtualKeyboard(uinput=uinput)


class TestDeviceName:
    def test_name_marks_device_as_virtual(self):
        assert "virtual" in VirtualKeyboard.DEVICE_NAME.lower()


class TestWrite:
    def test_write_emits_syn(self, vk, uinput):
        vk.write(30, 1)
        assert uinput.mock_calls == [call.write(1, 30, 1), call.syn()]

    def test_write_error_logged(self, vk, uinput, caplog):
        uinput.write.side_effect = OSError("gone")
        vk.write(30, 1)
        assert "write error" in caplog.text

    def test_closed_device_ignored(self, vk, uinput):
        vk.close()
        uinput.reset_mock()
        vk.write(30, 1)
        assert uinput.mock_calls == []
        assert not vk.available


class TestTapKey:
    def test_press_release(self, vk, uinput):
        vk.tap_key(30)
        assert uinput.mock_calls == [
            call.write(1, 30, 1), call.syn(),
            call.write(1, 30, 0), call.syn(),
        ]

    def test_repeated(self, vk, uinput):
        vk.tap_key(14, n_times=3)
        presses = [c for c in uinput.write.call_args_list if c == call(1, 14, 1)]
        assert len(presses) == 3


class TestPressCombo:
    def test_modifiers_wrap_key(self, vk, uinput):
        vk.press_combo([29, 42], 105)
        writes = [c.args[1:] for c in uinput.write.call_args_list]
        assert writes == [(29, 1), (42, 1), (105, 1), (105, 0), (42, 0), (29, 0)]

    def test_no_modifiers(self, vk, uinput):
        vk.press_combo([], 30)
        writes = [c.args[1:] for c in uinput.write.call_args_list]
        assert writes == [(30, 1), (30, 0)]


class TestOpen:
    def test_uinput_failure_is_runtime_error(self, monkeypatch):
        evdev = pytest.importorskip("evdev")

        def fail(*args, **kwargs):
            raise OSError("no /dev/uinput")

        monkeypatch.setattr(evdev, "UInput", fail)
        with pytest.raises(RuntimeError, match="UInput"):
            VirtualKeyboard()

    def test_close_twice(self, vk, uinput):
        vk.close()
        vk.close()
        uinput.close.assert_called_once()
