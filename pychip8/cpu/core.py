"""CHIP-8 instruction execution engine."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from pychip8.bus import PROGRAM_START, Memory, MemoryAccessError
from pychip8.io import Keypad
from pychip8.utils import debug_enabled, debug_log
from pychip8.video import FONTSET, GLYPH_BYTES, DisplayBuffer

from .opcodes import OPERATION_TABLE, Instruction, decode
from .quirks import Quirks
from .timers import TimerUnit

STACK_DEPTH = 16
REGISTER_COUNT = 16
VF = 0xF


class CPUError(Exception):
    """Base error for CPU-related failures."""


class StackOverflowError(CPUError):
    """CALL with all sixteen stack slots in use."""


class StackUnderflowError(CPUError):
    """RET with an empty stack."""


class MemoryFaultError(CPUError):
    """An instruction addressed memory outside 0x000-0xFFF."""


class UnknownOpcodeError(CPUError):
    """Raised for undefined opcodes when the engine runs in strict mode."""


class CycleStatus(Enum):
    """Outcome of a single :meth:`Chip8CPU.run_cycle` call."""

    OK = "ok"
    WAITING_FOR_KEY = "waiting-for-key"
    UNKNOWN_OPCODE = "unknown-opcode"
    HALTED = "halted"


class ByteSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...


@dataclass
class CPUState:
    """Snapshot of the CHIP-8 register file."""

    v: list[int] = field(default_factory=lambda: [0] * REGISTER_COUNT)
    i: int = 0x000
    pc: int = PROGRAM_START
    sp: int = 0
    stack: list[int] = field(default_factory=lambda: [0] * STACK_DEPTH)

    def clone(self) -> "CPUState":
        return CPUState(list(self.v), self.i, self.pc, self.sp, list(self.stack))


@dataclass
class Chip8CPU:
    """Fetch/decode/execute engine operating on shared machine parts."""

    memory: Memory
    display: DisplayBuffer
    keypad: Keypad
    timers: TimerUnit
    quirks: Quirks = field(default_factory=Quirks)
    rng: ByteSource = field(default_factory=random.Random)
    strict: bool = False

    state: CPUState = field(default_factory=CPUState)
    cycle_count: int = 0
    unknown_opcodes: int = 0
    halted: bool = False
    fault: CPUError | None = None
    last_instruction: Instruction | None = None

    def __post_init__(self) -> None:
        self.load_font()

    def load_font(self) -> None:
        self.memory.write_block(self.quirks.font_base_address, FONTSET)

    def reset(self) -> None:
        """Return registers and fault state to power-on values."""

        self.state = CPUState()
        self.cycle_count = 0
        self.unknown_opcodes = 0
        self.halted = False
        self.fault = None
        self.last_instruction = None

    def fetch(self) -> int:
        return self._guard(self.memory.load16, self.state.pc)

    def run_cycle(self) -> CycleStatus:
        """Execute exactly one instruction."""

        if self.halted:
            return CycleStatus.HALTED

        self.last_instruction = None
        pc_before = self.state.pc
        opcode = self.fetch()
        instruction = decode(opcode)
        self.last_instruction = instruction
        if debug_enabled("cpu"):
            debug_log("cpu", "pc=%03x opcode=%04x %s", pc_before, opcode, instruction.mnemonic())

        self.state.pc += 2
        handler = getattr(self, OPERATION_TABLE[instruction.operation].handler)
        status = handler(instruction) or CycleStatus.OK
        self.cycle_count += 1
        return status

    # ------------------------------------------------------------------
    # Flow control

    def op_cls(self, _: Instruction) -> None:
        self.display.clear()

    def op_ret(self, _: Instruction) -> None:
        state = self.state
        if state.sp == 0:
            self._halt(StackUnderflowError(f"RET with empty stack at pc={state.pc - 2:#05x}"))
        state.sp -= 1
        state.pc = state.stack[state.sp]

    def op_jp(self, instruction: Instruction) -> None:
        self.state.pc = instruction.addr

    def op_call(self, instruction: Instruction) -> None:
        state = self.state
        if state.sp == STACK_DEPTH:
            self._halt(StackOverflowError(f"CALL {instruction.addr:#05x} with full stack at pc={state.pc - 2:#05x}"))
        state.stack[state.sp] = state.pc
        state.sp += 1
        state.pc = instruction.addr

    def op_jp_v0(self, instruction: Instruction) -> None:
        self.state.pc = self.state.v[0] + instruction.addr

    def op_se_byte(self, instruction: Instruction) -> None:
        self._skip_if(self.state.v[instruction.x] == instruction.kk)

    def op_sne_byte(self, instruction: Instruction) -> None:
        self._skip_if(self.state.v[instruction.x] != instruction.kk)

    def op_se_reg(self, instruction: Instruction) -> None:
        v = self.state.v
        self._skip_if(v[instruction.x] == v[instruction.y])

    def op_sne_reg(self, instruction: Instruction) -> None:
        v = self.state.v
        self._skip_if(v[instruction.x] != v[instruction.y])

    # ------------------------------------------------------------------
    # Register arithmetic

    def op_ld_byte(self, instruction: Instruction) -> None:
        self.state.v[instruction.x] = instruction.kk

    def op_add_byte(self, instruction: Instruction) -> None:
        v = self.state.v
        v[instruction.x] = (v[instruction.x] + instruction.kk) & 0xFF

    def op_ld_reg(self, instruction: Instruction) -> None:
        v = self.state.v
        v[instruction.x] = v[instruction.y]

    def op_or(self, instruction: Instruction) -> None:
        v = self.state.v
        v[instruction.x] |= v[instruction.y]

    def op_and(self, instruction: Instruction) -> None:
        v = self.state.v
        v[instruction.x] &= v[instruction.y]

    def op_xor(self, instruction: Instruction) -> None:
        v = self.state.v
        v[instruction.x] ^= v[instruction.y]

    def op_add_reg(self, instruction: Instruction) -> None:
        v = self.state.v
        total = v[instruction.x] + v[instruction.y]
        self._set_with_flag(instruction.x, total & 0xFF, total > 0xFF)

    def op_sub(self, instruction: Instruction) -> None:
        v = self.state.v
        vx, vy = v[instruction.x], v[instruction.y]
        self._set_with_flag(instruction.x, (vx - vy) & 0xFF, vx >= vy)

    def op_subn(self, instruction: Instruction) -> None:
        v = self.state.v
        vx, vy = v[instruction.x], v[instruction.y]
        self._set_with_flag(instruction.x, (vy - vx) & 0xFF, vy >= vx)

    def op_shr(self, instruction: Instruction) -> None:
        operand = self._shift_operand(instruction)
        self._set_with_flag(instruction.x, operand >> 1, operand & 0x01)

    def op_shl(self, instruction: Instruction) -> None:
        operand = self._shift_operand(instruction)
        self._set_with_flag(instruction.x, (operand << 1) & 0xFF, operand >> 7)

    def op_rnd(self, instruction: Instruction) -> None:
        self.state.v[instruction.x] = self.rng.randint(0, 0xFF) & instruction.kk

    # ------------------------------------------------------------------
    # Index register and memory transfers

    def op_ld_i(self, instruction: Instruction) -> None:
        self.state.i = instruction.addr

    def op_add_i_vx(self, instruction: Instruction) -> None:
        state = self.state
        total = state.i + state.v[instruction.x]
        state.i = total & 0xFFF
        if self.quirks.overflow_on_add_i:
            state.v[VF] = 1 if total > 0xFFF else 0

    def op_ld_f_vx(self, instruction: Instruction) -> None:
        self.state.i = self.quirks.font_base_address + self.state.v[instruction.x] * GLYPH_BYTES

    def op_ld_b_vx(self, instruction: Instruction) -> None:
        value = self.state.v[instruction.x]
        digits = bytes((value // 100, (value // 10) % 10, value % 10))
        self._guard(self.memory.write_block, self.state.i, digits)

    def op_ld_mem_vx(self, instruction: Instruction) -> None:
        state = self.state
        count = instruction.x + 1
        self._guard(self.memory.write_block, state.i, bytes(state.v[:count]))
        if self.quirks.auto_increment_i:
            state.i += count

    def op_ld_vx_mem(self, instruction: Instruction) -> None:
        state = self.state
        count = instruction.x + 1
        state.v[:count] = list(self._guard(self.memory.read_block, state.i, count))
        if self.quirks.auto_increment_i:
            state.i += count

    # ------------------------------------------------------------------
    # Display

    def op_drw(self, instruction: Instruction) -> None:
        v = self.state.v
        x = v[instruction.x]
        y = v[instruction.y]
        sprite = self._guard(self.memory.read_block, self.state.i, instruction.n)
        v[VF] = 0
        collision = self.display.draw_sprite(x, y, sprite)
        v[VF] = 1 if collision else 0

    # ------------------------------------------------------------------
    # Keypad and timers

    def op_skp(self, instruction: Instruction) -> None:
        self._skip_if(self.keypad.is_pressed(self.state.v[instruction.x] & 0xF))

    def op_sknp(self, instruction: Instruction) -> None:
        self._skip_if(not self.keypad.is_pressed(self.state.v[instruction.x] & 0xF))

    def op_ld_vx_k(self, instruction: Instruction) -> CycleStatus:
        key = self.keypad.first_pressed()
        if key is None:
            self.state.pc -= 2
            return CycleStatus.WAITING_FOR_KEY
        self.state.v[instruction.x] = key
        return CycleStatus.OK

    def op_ld_vx_dt(self, instruction: Instruction) -> None:
        self.state.v[instruction.x] = self.timers.delay

    def op_ld_dt_vx(self, instruction: Instruction) -> None:
        self.timers.set_delay(self.state.v[instruction.x])

    def op_ld_st_vx(self, instruction: Instruction) -> None:
        self.timers.set_sound(self.state.v[instruction.x])

    # ------------------------------------------------------------------
    # Undefined opcodes

    def op_unknown(self, instruction: Instruction) -> CycleStatus:
        self.unknown_opcodes += 1
        message = f"unknown opcode {instruction.opcode:#06x} at pc={self.state.pc - 2:#05x}"
        if self.strict:
            self._halt(UnknownOpcodeError(message))
        debug_log("opcode", message)
        return CycleStatus.UNKNOWN_OPCODE

    # ------------------------------------------------------------------
    # Helpers

    def _skip_if(self, condition: bool) -> None:
        if condition:
            self.state.pc += 2

    def _shift_operand(self, instruction: Instruction) -> int:
        source = instruction.y if self.quirks.shift_assigns_vy_to_vx else instruction.x
        return self.state.v[source]

    def _set_with_flag(self, register: int, value: int, flag) -> None:
        # VF is written after the result so it wins when register == VF.
        v = self.state.v
        v[register] = value
        v[VF] = 1 if flag else 0

    def _guard(self, access, *args):
        try:
            return access(*args)
        except MemoryAccessError as exc:
            self._halt(MemoryFaultError(str(exc)), cause=exc)

    def _halt(self, error: CPUError, cause: Exception | None = None):
        self.halted = True
        self.fault = error
        debug_log("cpu", "halted: %s", error)
        raise error from cause
