"""CPU package for the CHIP-8 emulator."""

from .core import (
    CPUError,
    CPUState,
    Chip8CPU,
    CycleStatus,
    MemoryFaultError,
    StackOverflowError,
    StackUnderflowError,
    UnknownOpcodeError,
)
from .opcodes import Instruction, Operation, decode
from .quirks import Quirks
from .timers import TIMER_HZ, TimerUnit
from . import opcodes

__all__ = [
    "Chip8CPU",
    "CPUState",
    "CycleStatus",
    "CPUError",
    "StackOverflowError",
    "StackUnderflowError",
    "MemoryFaultError",
    "UnknownOpcodeError",
    "Instruction",
    "Operation",
    "decode",
    "Quirks",
    "TimerUnit",
    "TIMER_HZ",
    "opcodes",
]
