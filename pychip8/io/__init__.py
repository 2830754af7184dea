"""Input helpers for the CHIP-8 emulator."""

from .keypad import KEY_COUNT, KEY_MAP, Keypad, lookup_key

__all__ = [
    "Keypad",
    "KEY_COUNT",
    "KEY_MAP",
    "lookup_key",
]
