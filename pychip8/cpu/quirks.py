"""Behavioural variants of the CHIP-8 instruction set."""

from __future__ import annotations

from dataclasses import dataclass

from pychip8.bus import RESERVED_END
from pychip8.video.font import FONT_BYTES


@dataclass(frozen=True)
class Quirks:
    """Construction-time compatibility switches.

    ``shift_assigns_vy_to_vx``
        8xy6 / 8xyE shift ``Vy`` into ``Vx`` (COSMAC VIP) instead of shifting
        ``Vx`` in place. VF always comes from the value before the shift.
    ``overflow_on_add_i``
        Fx1E sets VF to 1 when ``I + Vx`` passes 0xFFF and to 0 otherwise.
        When disabled Fx1E leaves VF alone.
    ``auto_increment_i``
        Fx55 / Fx65 leave ``I`` pointing past the last transferred byte.
    ``font_base_address``
        Where the built-in hexadecimal font is stored; Fx29 points into it.
    """

    shift_assigns_vy_to_vx: bool = False
    overflow_on_add_i: bool = False
    auto_increment_i: bool = False
    font_base_address: int = 0x000

    def __post_init__(self) -> None:
        if not 0 <= self.font_base_address <= RESERVED_END - FONT_BYTES:
            raise ValueError(
                f"font base {self.font_base_address:#05x} must leave room for the font below {RESERVED_END:#05x}"
            )
