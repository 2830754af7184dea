"""Bus-related helpers for the CHIP-8 emulator."""

from .memory import MEMORY_SIZE, PROGRAM_START, RESERVED_END, Memory, MemoryAccessError

__all__ = [
    "Memory",
    "MemoryAccessError",
    "MEMORY_SIZE",
    "PROGRAM_START",
    "RESERVED_END",
]
