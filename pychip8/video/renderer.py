"""Convert the framebuffer into RGB frames."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .display import DISPLAY_HEIGHT, DISPLAY_WIDTH, PIXEL_COUNT, DisplayBuffer
from .palette import MONOCHROME, RGBColor, validate_palette


@dataclass
class RenderResult:
    """A rendered RGB frame."""

    width: int
    height: int
    pixels: bytes

    def get_pixel(self, x: int, y: int) -> RGBColor:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise ValueError(f"pixel ({x}, {y}) outside {self.width}x{self.height} frame")
        offset = (y * self.width + x) * 3
        return (self.pixels[offset], self.pixels[offset + 1], self.pixels[offset + 2])

    def to_surface(self):
        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required to build surfaces") from exc
        return pygame.image.frombuffer(self.pixels, (self.width, self.height), "RGB")


class Renderer:
    """Scale the 64x32 framebuffer into an RGB frame."""

    def __init__(self, palette: Sequence[RGBColor] = MONOCHROME) -> None:
        background, foreground = validate_palette(palette)
        self._colours = (bytes(background), bytes(foreground))

    def render(self, display: DisplayBuffer, *, scale: int = 1) -> RenderResult:
        return self.render_pixels(display.snapshot(), scale=scale)

    def render_pixels(self, pixels: bytes, *, scale: int = 1) -> RenderResult:
        """Render a row-major buffer of 0/1 bytes such as ``DisplayBuffer.snapshot()``."""

        if scale <= 0:
            raise ValueError("scale must be positive")
        if len(pixels) != PIXEL_COUNT:
            raise ValueError(f"expected {PIXEL_COUNT} pixels, got {len(pixels)}")
        width = DISPLAY_WIDTH * scale
        height = DISPLAY_HEIGHT * scale
        frame = bytearray()
        for start in range(0, PIXEL_COUNT, DISPLAY_WIDTH):
            row = pixels[start : start + DISPLAY_WIDTH]
            line = b"".join(self._colours[pixel] * scale for pixel in row)
            frame.extend(line * scale)
        return RenderResult(width=width, height=height, pixels=bytes(frame))
