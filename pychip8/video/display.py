"""64x32 monochrome framebuffer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

DISPLAY_WIDTH: Final[int] = 64
DISPLAY_HEIGHT: Final[int] = 32
PIXEL_COUNT: Final[int] = DISPLAY_WIDTH * DISPLAY_HEIGHT


@dataclass
class DisplayBuffer:
    """One-bit-per-pixel framebuffer with XOR plotting.

    ``dirty`` is raised by every mutation and cleared by whoever renders the
    buffer, so rendering can run at its own cadence.
    """

    _pixels: bytearray = field(default_factory=lambda: bytearray(PIXEL_COUNT))
    dirty: bool = False

    def plot(self, x: int, y: int) -> bool:
        """Toggle the pixel at ``(x, y)`` and return its previous value."""

        index = self._index(x, y)
        previous = self._pixels[index]
        self._pixels[index] = previous ^ 1
        self.dirty = True
        return previous == 1

    def draw_sprite(self, x: int, y: int, rows: bytes) -> bool:
        """XOR ``rows`` (8 pixels wide, MSB first) at ``(x, y)``, wrapping per pixel.

        Returns ``True`` when any lit pixel was switched off.
        """

        collision = False
        for row_offset, bits in enumerate(rows):
            py = (y + row_offset) % DISPLAY_HEIGHT
            for column in range(8):
                if bits & (0x80 >> column):
                    px = (x + column) % DISPLAY_WIDTH
                    if self.plot(px, py):
                        collision = True
        self.dirty = True
        return collision

    def clear(self) -> None:
        self._pixels[:] = bytes(PIXEL_COUNT)
        self.dirty = True

    def get_pixel(self, x: int, y: int) -> bool:
        return self._pixels[self._index(x, y)] == 1

    def lit_count(self) -> int:
        return sum(self._pixels)

    def snapshot(self) -> bytes:
        return bytes(self._pixels)

    def _index(self, x: int, y: int) -> int:
        if not (0 <= x < DISPLAY_WIDTH and 0 <= y < DISPLAY_HEIGHT):
            raise ValueError(f"pixel ({x}, {y}) outside {DISPLAY_WIDTH}x{DISPLAY_HEIGHT} display")
        return y * DISPLAY_WIDTH + x
