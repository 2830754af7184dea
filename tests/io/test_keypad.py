"""Tests for the hexadecimal keypad."""

from __future__ import annotations

import pytest

from pychip8.io import KEY_MAP, Keypad, lookup_key


def test_press_and_release() -> None:
    keypad = Keypad()

    keypad.press(0xA)
    assert keypad.is_pressed(0xA)
    assert keypad.snapshot()[0xA]

    keypad.release(0xA)
    assert not keypad.is_pressed(0xA)


def test_first_pressed_is_lowest_index() -> None:
    keypad = Keypad()
    assert keypad.first_pressed() is None

    keypad.press(0xC)
    keypad.press(0x3)
    assert keypad.first_pressed() == 0x3


def test_out_of_range_key() -> None:
    keypad = Keypad()
    with pytest.raises(ValueError):
        keypad.press(16)


def test_reset_clears_all_keys() -> None:
    keypad = Keypad()
    keypad.press(0)
    keypad.press(0xF)
    keypad.reset()
    assert not any(keypad.snapshot())


def test_key_map_covers_all_sixteen_keys() -> None:
    assert sorted(KEY_MAP.values()) == list(range(16))
    assert lookup_key("X") == 0x0
    assert lookup_key("4") == 0xC
    assert lookup_key("v") == 0xF
    assert lookup_key("escape") is None
