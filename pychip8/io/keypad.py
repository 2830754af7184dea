"""CHIP-8 hexadecimal keypad handling."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from pychip8.utils import debug_enabled, debug_log

KEY_COUNT = 16

# Host key (pygame key name) to CHIP-8 key. The COSMAC VIP pad
#   1 2 3 C / 4 5 6 D / 7 8 9 E / A 0 B F
# is laid over the left-hand block of a QWERTY keyboard.
KEY_MAP: Mapping[str, int] = {
    "1": 0x1,
    "2": 0x2,
    "3": 0x3,
    "4": 0xC,
    "q": 0x4,
    "w": 0x5,
    "e": 0x6,
    "r": 0xD,
    "a": 0x7,
    "s": 0x8,
    "d": 0x9,
    "f": 0xE,
    "z": 0xA,
    "x": 0x0,
    "c": 0xB,
    "v": 0xF,
}


def lookup_key(key_name: str) -> int | None:
    return KEY_MAP.get(key_name.lower())


@dataclass
class Keypad:
    """Sixteen level-triggered keys; no edge latching."""

    _keys: list[bool] = field(default_factory=lambda: [False] * KEY_COUNT)

    def set(self, key: int, pressed: bool) -> None:
        index = self._check(key)
        self._keys[index] = pressed
        if debug_enabled("input"):
            debug_log("input", "key=%X pressed=%s", index, pressed)

    def press(self, key: int) -> None:
        self.set(key, True)

    def release(self, key: int) -> None:
        self.set(key, False)

    def is_pressed(self, key: int) -> bool:
        return self._keys[self._check(key)]

    def first_pressed(self) -> int | None:
        """Return the lowest-numbered key currently held, if any."""

        for index, pressed in enumerate(self._keys):
            if pressed:
                return index
        return None

    def reset(self) -> None:
        for index in range(KEY_COUNT):
            self._keys[index] = False

    def snapshot(self) -> tuple[bool, ...]:
        return tuple(self._keys)

    def _check(self, key: int) -> int:
        if not 0 <= key < KEY_COUNT:
            raise ValueError(f"key out of range: {key}")
        return key
