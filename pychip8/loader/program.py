"""Metadata describing a loaded ROM."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RomImage:
    """A program image and where it was placed in memory."""

    name: str = ""
    start: int = 0x200
    data: bytes = b""

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def end(self) -> int:
        """Last address occupied by the image (``start - 1`` when empty)."""

        return self.start + self.size - 1
