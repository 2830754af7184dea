"""Delay and sound timers.

Both count down at 60 Hz, driven by the caller rather than by instruction
execution.
"""

from __future__ import annotations

from dataclasses import dataclass

TIMER_HZ = 60


@dataclass
class TimerUnit:
    """8-bit delay and sound timers, clamped at zero."""

    delay: int = 0
    sound: int = 0
    sound_active: bool = False

    def set_delay(self, value: int) -> None:
        self.delay = value & 0xFF

    def set_sound(self, value: int) -> None:
        self.sound = value & 0xFF

    def decrement(self) -> bool:
        """Advance one 60 Hz tick and return whether the tone should sound."""

        if self.delay > 0:
            self.delay -= 1
        if self.sound > 0:
            self.sound -= 1
            if self.sound > 0:
                self.sound_active = True
        return self.sound > 0

    def reset(self) -> None:
        self.delay = 0
        self.sound = 0
        self.sound_active = False
