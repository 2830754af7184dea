"""CHIP-8 virtual machine.

The interpreter core lives in :mod:`pychip8.cpu` and is assembled into a
:class:`~pychip8.system.Machine` by :func:`~pychip8.system.create_machine`.
The pygame frontend in :mod:`pychip8.ui` and the beeper in
:mod:`pychip8.audio` are thin collaborators around that core.
"""

from __future__ import annotations

from . import audio, bus, cpu, io, loader, system, ui, utils, video

__all__: list[str] = [
    "cpu",
    "bus",
    "video",
    "audio",
    "io",
    "loader",
    "system",
    "ui",
    "utils",
]
