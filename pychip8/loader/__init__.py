"""Loaders for CHIP-8 program images."""

from __future__ import annotations

from .program import RomImage
from .rom import (
    MAX_ROM_SIZE,
    RomLoadError,
    load_rom,
    load_rom_from_path,
    load_rom_from_stream,
)

__all__ = [
    "RomImage",
    "RomLoadError",
    "MAX_ROM_SIZE",
    "load_rom",
    "load_rom_from_path",
    "load_rom_from_stream",
]
