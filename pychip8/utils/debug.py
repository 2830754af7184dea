"""Category-filtered diagnostics for the CHIP-8 emulator.

Set ``CHIP8_DEBUG`` to a comma separated list of categories before starting,
e.g. ``CHIP8_DEBUG=cpu,opcode``. ``all`` turns every category on.

Categories in use:

``cpu``     each executed instruction and every fault
``opcode``  unknown opcodes
``timer``   delay / sound timer values after each 60 Hz tick
``input``   keypad level changes
``loader``  ROM loads
``audio``   mixer start-up and beeper state
``trace``   keep a ring buffer of recent cycles and dump it on a fault
``perf``    instruction rate of the CPU thread
"""

from __future__ import annotations

import os

ENV_VAR = "CHIP8_DEBUG"

_enabled: frozenset[str] | None = None


def parse_categories(value: str) -> frozenset[str]:
    return frozenset(name for name in (part.strip().lower() for part in value.split(",")) if name)


def _categories() -> frozenset[str]:
    global _enabled
    if _enabled is None:
        _enabled = parse_categories(os.environ.get(ENV_VAR, ""))
    return _enabled


def reload_categories() -> None:
    """Forget the cached categories so the environment is read again."""

    global _enabled
    _enabled = None


def debug_enabled(category: str | None = None) -> bool:
    """``category=None`` asks whether any diagnostics are on at all."""

    enabled = _categories()
    if not enabled:
        return False
    return category is None or "all" in enabled or category.lower() in enabled


def debug_log(category: str, message: str, *args) -> None:
    if not debug_enabled(category):
        return
    if args:
        try:
            message = message % args
        except (TypeError, ValueError):
            message = f"{message} {args!r}"
    print(f"[CHIP8][{category}] {message}")
