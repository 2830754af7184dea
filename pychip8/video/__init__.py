"""Framebuffer and rendering helpers for the CHIP-8 emulator."""

from __future__ import annotations

from .display import DISPLAY_HEIGHT, DISPLAY_WIDTH, DisplayBuffer
from .font import FONT_BYTES, FONTSET, GLYPH_BYTES
from .palette import MONOCHROME, PALETTES, validate_palette
from .renderer import RenderResult, Renderer

__all__ = [
    "DisplayBuffer",
    "DISPLAY_WIDTH",
    "DISPLAY_HEIGHT",
    "FONTSET",
    "FONT_BYTES",
    "GLYPH_BYTES",
    "Renderer",
    "RenderResult",
    "MONOCHROME",
    "PALETTES",
    "validate_palette",
]
