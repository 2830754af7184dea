"""CHIP-8 machine assembly."""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pychip8.bus import Memory
from pychip8.cpu import CPUError, Chip8CPU, CycleStatus, Quirks, TimerUnit
from pychip8.cpu.core import ByteSource
from pychip8.io import Keypad
from pychip8.loader import RomImage, load_rom, load_rom_from_path
from pychip8.utils import TraceRecorder, debug_enabled, debug_log
from pychip8.video import DisplayBuffer


@dataclass
class MachineConfig:
    """Runtime configuration for a CHIP-8 machine."""

    quirks: Quirks = field(default_factory=Quirks)
    seed: Optional[int] = None
    rng: Optional[ByteSource] = None
    strict: bool = False
    trace_capacity: int = 0


@dataclass
class Machine:
    """Aggregates the CHIP-8 components behind one coarse lock.

    The instruction clock calls :meth:`run_cycle`, the 60 Hz clock calls
    :meth:`decrement_timers`, and input handlers call :meth:`press_key` /
    :meth:`release_key`. Every public entry point holds :attr:`lock`, so the
    clocks may live on different threads.
    """

    memory: Memory
    cpu: Chip8CPU
    display: DisplayBuffer
    keypad: Keypad
    timers: TimerUnit
    quirks: Quirks
    lock: threading.RLock = field(default_factory=threading.RLock)
    trace: TraceRecorder | None = None
    rom: RomImage | None = None

    # ------------------------------------------------------------------
    # Clocks

    def run_cycle(self) -> CycleStatus:
        with self.lock:
            pc = self.cpu.state.pc
            try:
                status = self.cpu.run_cycle()
            except CPUError as exc:
                self._record(pc, CycleStatus.HALTED, note=type(exc).__name__)
                raise
            self._record(pc, status)
            return status

    def run_cycles(self, count: int) -> CycleStatus:
        """Run up to ``count`` instructions, stopping early once halted."""

        status = CycleStatus.OK
        for _ in range(count):
            status = self.run_cycle()
            if status is CycleStatus.HALTED:
                break
        return status

    def decrement_timers(self) -> bool:
        with self.lock:
            sounding = self.timers.decrement()
            if debug_enabled("timer"):
                debug_log("timer", "delay=%d sound=%d", self.timers.delay, self.timers.sound)
            return sounding

    # ------------------------------------------------------------------
    # Input

    def press_key(self, key: int) -> None:
        with self.lock:
            self.keypad.press(key)

    def release_key(self, key: int) -> None:
        with self.lock:
            self.keypad.release(key)

    # ------------------------------------------------------------------
    # Output flags

    @property
    def halted(self) -> bool:
        with self.lock:
            return self.cpu.halted

    @property
    def draw_flag(self) -> bool:
        with self.lock:
            return self.display.dirty

    def clear_draw_flag(self) -> None:
        with self.lock:
            self.display.dirty = False

    @property
    def sound_flag(self) -> bool:
        with self.lock:
            return self.timers.sound_active

    def clear_sound_flag(self) -> None:
        with self.lock:
            self.timers.sound_active = False

    def frame_snapshot(self) -> bytes:
        """Copy the framebuffer while no instruction is mid-draw."""

        with self.lock:
            return self.display.snapshot()

    # ------------------------------------------------------------------
    # Program loading

    def load_rom(self, data: bytes, *, name: str = "") -> RomImage:
        with self.lock:
            self.rom = load_rom(data, self.memory, name=name)
            return self.rom

    def load_rom_file(self, path: Path) -> RomImage:
        with self.lock:
            self.rom = load_rom_from_path(path, self.memory)
            return self.rom

    def reset(self) -> None:
        """Restore power-on state, keeping the loaded ROM and the generator."""

        with self.lock:
            self.memory.clear()
            self.cpu.load_font()
            if self.rom is not None:
                load_rom(self.rom.data, self.memory, name=self.rom.name)
            self.cpu.reset()
            self.display.clear()
            self.keypad.reset()
            self.timers.reset()

    def _record(self, pc: int, status: CycleStatus, note: str = "") -> None:
        if self.trace is None:
            return
        instruction = self.cpu.last_instruction
        state = self.cpu.state.clone()
        state.pc = pc
        self.trace.record_step(
            state,
            None if instruction is None else instruction.opcode,
            status=status.value,
            halted=self.cpu.halted,
            mnemonic="" if instruction is None else instruction.mnemonic(),
            note=note,
        )


def create_machine(config: MachineConfig | None = None) -> Machine:
    """Instantiate a CHIP-8 machine with the requested configuration."""

    config = config or MachineConfig()
    memory = Memory()
    display = DisplayBuffer()
    keypad = Keypad()
    timers = TimerUnit()
    rng = config.rng if config.rng is not None else random.Random(config.seed)

    cpu = Chip8CPU(
        memory=memory,
        display=display,
        keypad=keypad,
        timers=timers,
        quirks=config.quirks,
        rng=rng,
        strict=config.strict,
    )

    trace = TraceRecorder(config.trace_capacity) if config.trace_capacity > 0 else None

    return Machine(
        memory=memory,
        cpu=cpu,
        display=display,
        keypad=keypad,
        timers=timers,
        quirks=config.quirks,
        trace=trace,
    )
