"""Tests for device name and capability filtering."""

from __future__ import annotations

import pytest

from switchback.input.device_filter import classify_capabilities, should_include_device
from switchback.input.virtual_keyboard import VirtualKeyboard

KEY_A, BTN_LEFT, BTN_RIGHT = 30, 272, 273


@pytest.mark.parametrize("name,expected", [
    ("AT Translated Set 2 keyboard", True),
    ("Logitech USB Receiver", True),
    ("ydotoold virtual device", False),
    ("py-evdev-uinput", False),
    ("", True),
])
def test_should_include_device(name, expected):
    assert should_include_device(name) is expected


def test_own_virtual_keyboard_excluded():
    assert not should_include_device(VirtualKeyboard.DEVICE_NAME)


def test_extra_exclusions_case_insensitive():
    assert not should_include_device("Yubico YubiKey OTP", exclude=["yubikey"])


class TestClassify:
    def test_keyboard(self):
        assert classify_capabilities({KEY_A, 31}, KEY_A, BTN_LEFT, BTN_RIGHT) == "keyboard"

    def test_mouse(self):
        assert classify_capabilities({BTN_RIGHT}, KEY_A, BTN_LEFT, BTN_RIGHT) == "mouse"

    def test_other(self):
        assert classify_capabilities({116}, KEY_A, BTN_LEFT, BTN_RIGHT) is None
