"""Raw CHIP-8 ROM loader.

ROM files carry no header: the bytes are copied verbatim to ``0x200``.
Payloads that do not fit below ``0x1000`` are rejected outright; nothing is
written in that case, so a failed load leaves memory exactly as it was.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO

from pychip8.bus import MEMORY_SIZE, PROGRAM_START, Memory
from pychip8.utils import debug_log

from .program import RomImage

MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START


class RomLoadError(RuntimeError):
    """Raised when a ROM cannot be read or does not fit in memory."""


def load_rom(data: bytes, memory: Memory, *, name: str = "") -> RomImage:
    """Copy ``data`` into the program area of ``memory``."""

    payload = bytes(data)
    if len(payload) > MAX_ROM_SIZE:
        raise RomLoadError(
            f"ROM is {len(payload)} bytes; at most {MAX_ROM_SIZE} bytes fit at {PROGRAM_START:#05x}"
        )
    memory.clear(PROGRAM_START, MEMORY_SIZE)
    memory.write_block(PROGRAM_START, payload)
    debug_log("loader", "loaded %d bytes at %03x name=%s", len(payload), PROGRAM_START, name or "-")
    return RomImage(name=name, start=PROGRAM_START, data=payload)


def load_rom_from_stream(stream: BinaryIO, memory: Memory, *, name: str = "") -> RomImage:
    # Read one byte past the limit so oversize ROMs are detected without
    # slurping arbitrarily large files.
    try:
        data = stream.read(MAX_ROM_SIZE + 1)
    except OSError as exc:
        raise RomLoadError(f"failed to read ROM {name or '<stream>'}: {exc}") from exc
    if len(data) > MAX_ROM_SIZE:
        raise RomLoadError(f"ROM {name or '<stream>'} exceeds {MAX_ROM_SIZE} bytes")
    return load_rom(data, memory, name=name)


def load_rom_from_path(path: Path, memory: Memory) -> RomImage:
    """Load a ROM from the filesystem."""

    path = Path(path)
    try:
        handle = path.open("rb")
    except OSError as exc:
        raise RomLoadError(f"failed to open ROM file {path}: {exc}") from exc
    with handle:
        return load_rom_from_stream(handle, memory, name=path.name)
