"""Memory for the CHIP-8 address space.

The CHIP-8 sees a flat 4 KiB address space. The first 512 bytes are reserved
for the interpreter (the hexadecimal font lives there) and programs are loaded
from ``0x200`` upwards. Unlike most 8-bit machines there is no mirroring:
addresses outside ``0x000``-``0xFFF`` are rejected rather than wrapped.
"""

from __future__ import annotations

from dataclasses import dataclass

MEMORY_SIZE = 0x1000
RESERVED_END = 0x200
PROGRAM_START = 0x200


class MemoryAccessError(Exception):
    """Raised when an address falls outside the 4 KiB address space."""


@dataclass
class Memory:
    """Simple byte-addressable 4 KiB memory."""

    length: int = MEMORY_SIZE

    def __post_init__(self) -> None:
        if self.length <= 0:
            raise MemoryAccessError("memory must have a positive length")
        self._data = bytearray(self.length)

    def __len__(self) -> int:
        return self.length

    def get_end_address(self) -> int:
        return self.length - 1

    def _check(self, address: int, count: int = 1) -> None:
        if address < 0 or count < 0 or address + count > self.length:
            last = address + max(count, 1) - 1
            raise MemoryAccessError(
                f"access {address:#05x}-{last:#05x} outside address space 0x000-{self.get_end_address():#05x}"
            )

    def load8(self, address: int) -> int:
        self._check(address)
        return self._data[address]

    def store8(self, address: int, value: int) -> None:
        self._check(address)
        self._data[address] = value & 0xFF

    def load16(self, address: int) -> int:
        """Read a big-endian word (high byte first)."""

        self._check(address, 2)
        return (self._data[address] << 8) | self._data[address + 1]

    def read_block(self, address: int, length: int) -> bytes:
        self._check(address, length)
        return bytes(self._data[address : address + length])

    def write_block(self, address: int, payload: bytes) -> None:
        self._check(address, len(payload))
        self._data[address : address + len(payload)] = payload

    def clear(self, start: int = 0, end: int | None = None) -> None:
        """Zero ``[start, end)``; the whole space by default."""

        stop = self.length if end is None else end
        self._check(start, stop - start)
        self._data[start:stop] = bytes(stop - start)

    def snapshot(self) -> bytes:
        return bytes(self._data)
