"""Opcode decoding for the CHIP-8 instruction set.

Every instruction is a 16-bit big-endian word. Decoding splits the word into
its nibble fields and classifies it into a closed :class:`Operation`; the
execution engine then looks the operation up in :data:`OPERATION_TABLE` to
find its handler. Decoding never touches machine state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Final, Iterable, Mapping


class Operation(Enum):
    """Closed set of CHIP-8 operations."""

    CLS = auto()
    RET = auto()
    JP = auto()
    CALL = auto()
    SE_BYTE = auto()
    SNE_BYTE = auto()
    SE_REG = auto()
    SNE_REG = auto()
    LD_BYTE = auto()
    ADD_BYTE = auto()
    LD_REG = auto()
    OR = auto()
    AND = auto()
    XOR = auto()
    ADD_REG = auto()
    SUB = auto()
    SHR = auto()
    SUBN = auto()
    SHL = auto()
    LD_I = auto()
    JP_V0 = auto()
    RND = auto()
    DRW = auto()
    SKP = auto()
    SKNP = auto()
    LD_VX_DT = auto()
    LD_VX_K = auto()
    LD_DT_VX = auto()
    LD_ST_VX = auto()
    ADD_I_VX = auto()
    LD_F_VX = auto()
    LD_B_VX = auto()
    LD_MEM_VX = auto()
    LD_VX_MEM = auto()
    UNKNOWN = auto()


@dataclass(frozen=True)
class OperationInfo:
    """Metadata describing how an operation is executed and displayed."""

    operation: Operation
    pattern: str
    template: str
    handler: str


@dataclass(frozen=True)
class Instruction:
    """A decoded 16-bit opcode."""

    opcode: int
    operation: Operation
    x: int
    y: int
    n: int
    kk: int
    addr: int

    def __post_init__(self) -> None:
        if not 0 <= self.opcode <= 0xFFFF:
            raise ValueError(f"opcode out of range: {self.opcode}")

    @property
    def family(self) -> int:
        return (self.opcode >> 12) & 0xF

    @property
    def info(self) -> OperationInfo:
        return OPERATION_TABLE[self.operation]

    def mnemonic(self) -> str:
        return self.info.template.format(
            opcode=self.opcode,
            x=self.x,
            y=self.y,
            n=self.n,
            kk=self.kk,
            addr=self.addr,
        )


def build_operation_table(entries: Iterable[OperationInfo]) -> Mapping[Operation, OperationInfo]:
    """Build the operation lookup, insisting on exactly one entry per operation."""

    table: Dict[Operation, OperationInfo] = {}
    for entry in entries:
        if entry.operation in table:
            raise ValueError(f"operation {entry.operation.name} already registered")
        table[entry.operation] = entry
    missing = [operation.name for operation in Operation if operation not in table]
    if missing:
        raise ValueError(f"operations without metadata: {', '.join(missing)}")
    return table


OPERATION_TABLE: Final[Mapping[Operation, OperationInfo]] = build_operation_table(
    (
        OperationInfo(Operation.CLS, "00E0", "CLS", "op_cls"),
        OperationInfo(Operation.RET, "00EE", "RET", "op_ret"),
        OperationInfo(Operation.JP, "1nnn", "JP {addr:#05x}", "op_jp"),
        OperationInfo(Operation.CALL, "2nnn", "CALL {addr:#05x}", "op_call"),
        OperationInfo(Operation.SE_BYTE, "3xkk", "SE V{x:X}, {kk:#04x}", "op_se_byte"),
        OperationInfo(Operation.SNE_BYTE, "4xkk", "SNE V{x:X}, {kk:#04x}", "op_sne_byte"),
        OperationInfo(Operation.SE_REG, "5xy0", "SE V{x:X}, V{y:X}", "op_se_reg"),
        OperationInfo(Operation.LD_BYTE, "6xkk", "LD V{x:X}, {kk:#04x}", "op_ld_byte"),
        OperationInfo(Operation.ADD_BYTE, "7xkk", "ADD V{x:X}, {kk:#04x}", "op_add_byte"),
        OperationInfo(Operation.LD_REG, "8xy0", "LD V{x:X}, V{y:X}", "op_ld_reg"),
        OperationInfo(Operation.OR, "8xy1", "OR V{x:X}, V{y:X}", "op_or"),
        OperationInfo(Operation.AND, "8xy2", "AND V{x:X}, V{y:X}", "op_and"),
        OperationInfo(Operation.XOR, "8xy3", "XOR V{x:X}, V{y:X}", "op_xor"),
        OperationInfo(Operation.ADD_REG, "8xy4", "ADD V{x:X}, V{y:X}", "op_add_reg"),
        OperationInfo(Operation.SUB, "8xy5", "SUB V{x:X}, V{y:X}", "op_sub"),
        OperationInfo(Operation.SHR, "8xy6", "SHR V{x:X}, V{y:X}", "op_shr"),
        OperationInfo(Operation.SUBN, "8xy7", "SUBN V{x:X}, V{y:X}", "op_subn"),
        OperationInfo(Operation.SHL, "8xyE", "SHL V{x:X}, V{y:X}", "op_shl"),
        OperationInfo(Operation.SNE_REG, "9xy0", "SNE V{x:X}, V{y:X}", "op_sne_reg"),
        OperationInfo(Operation.LD_I, "Annn", "LD I, {addr:#05x}", "op_ld_i"),
        OperationInfo(Operation.JP_V0, "Bnnn", "JP V0, {addr:#05x}", "op_jp_v0"),
        OperationInfo(Operation.RND, "Cxkk", "RND V{x:X}, {kk:#04x}", "op_rnd"),
        OperationInfo(Operation.DRW, "Dxyn", "DRW V{x:X}, V{y:X}, {n}", "op_drw"),
        OperationInfo(Operation.SKP, "Ex9E", "SKP V{x:X}", "op_skp"),
        OperationInfo(Operation.SKNP, "ExA1", "SKNP V{x:X}", "op_sknp"),
        OperationInfo(Operation.LD_VX_DT, "Fx07", "LD V{x:X}, DT", "op_ld_vx_dt"),
        OperationInfo(Operation.LD_VX_K, "Fx0A", "LD V{x:X}, K", "op_ld_vx_k"),
        OperationInfo(Operation.LD_DT_VX, "Fx15", "LD DT, V{x:X}", "op_ld_dt_vx"),
        OperationInfo(Operation.LD_ST_VX, "Fx18", "LD ST, V{x:X}", "op_ld_st_vx"),
        OperationInfo(Operation.ADD_I_VX, "Fx1E", "ADD I, V{x:X}", "op_add_i_vx"),
        OperationInfo(Operation.LD_F_VX, "Fx29", "LD F, V{x:X}", "op_ld_f_vx"),
        OperationInfo(Operation.LD_B_VX, "Fx33", "LD B, V{x:X}", "op_ld_b_vx"),
        OperationInfo(Operation.LD_MEM_VX, "Fx55", "LD [I], V{x:X}", "op_ld_mem_vx"),
        OperationInfo(Operation.LD_VX_MEM, "Fx65", "LD V{x:X}, [I]", "op_ld_vx_mem"),
        OperationInfo(Operation.UNKNOWN, "????", "DW {opcode:#06x}", "op_unknown"),
    )
)


# Families whose operation depends only on the top nibble.
_FAMILY_OPERATIONS: Final[Mapping[int, Operation]] = {
    0x1: Operation.JP,
    0x2: Operation.CALL,
    0x3: Operation.SE_BYTE,
    0x4: Operation.SNE_BYTE,
    0x6: Operation.LD_BYTE,
    0x7: Operation.ADD_BYTE,
    0xA: Operation.LD_I,
    0xB: Operation.JP_V0,
    0xC: Operation.RND,
    0xD: Operation.DRW,
}

_SYSTEM_OPERATIONS: Final[Mapping[int, Operation]] = {
    0x00E0: Operation.CLS,
    0x00EE: Operation.RET,
}

# 8xyN, keyed by N.
_ALU_OPERATIONS: Final[Mapping[int, Operation]] = {
    0x0: Operation.LD_REG,
    0x1: Operation.OR,
    0x2: Operation.AND,
    0x3: Operation.XOR,
    0x4: Operation.ADD_REG,
    0x5: Operation.SUB,
    0x6: Operation.SHR,
    0x7: Operation.SUBN,
    0xE: Operation.SHL,
}

# ExKK, keyed by KK.
_KEY_OPERATIONS: Final[Mapping[int, Operation]] = {
    0x9E: Operation.SKP,
    0xA1: Operation.SKNP,
}

# FxKK, keyed by KK.
_MISC_OPERATIONS: Final[Mapping[int, Operation]] = {
    0x07: Operation.LD_VX_DT,
    0x0A: Operation.LD_VX_K,
    0x15: Operation.LD_DT_VX,
    0x18: Operation.LD_ST_VX,
    0x1E: Operation.ADD_I_VX,
    0x29: Operation.LD_F_VX,
    0x33: Operation.LD_B_VX,
    0x55: Operation.LD_MEM_VX,
    0x65: Operation.LD_VX_MEM,
}


def classify(opcode: int) -> Operation:
    family = (opcode >> 12) & 0xF
    n = opcode & 0x000F
    kk = opcode & 0x00FF

    if family in _FAMILY_OPERATIONS:
        return _FAMILY_OPERATIONS[family]
    if family == 0x0:
        return _SYSTEM_OPERATIONS.get(opcode, Operation.UNKNOWN)
    if family == 0x5:
        return Operation.SE_REG if n == 0 else Operation.UNKNOWN
    if family == 0x9:
        return Operation.SNE_REG if n == 0 else Operation.UNKNOWN
    if family == 0x8:
        return _ALU_OPERATIONS.get(n, Operation.UNKNOWN)
    if family == 0xE:
        return _KEY_OPERATIONS.get(kk, Operation.UNKNOWN)
    return _MISC_OPERATIONS.get(kk, Operation.UNKNOWN)


def decode(opcode: int) -> Instruction:
    """Split ``opcode`` into its fields and classify it."""

    if not 0 <= opcode <= 0xFFFF:
        raise ValueError(f"opcode out of range: {opcode}")
    return Instruction(
        opcode=opcode,
        operation=classify(opcode),
        x=(opcode >> 8) & 0xF,
        y=(opcode >> 4) & 0xF,
        n=opcode & 0xF,
        kk=opcode & 0xFF,
        addr=opcode & 0x0FFF,
    )


def disassemble(program: bytes, origin: int = 0x200) -> list[str]:
    """Render a listing of ``program`` assuming it is loaded at ``origin``."""

    lines: list[str] = []
    for offset in range(0, len(program) - 1, 2):
        opcode = (program[offset] << 8) | program[offset + 1]
        lines.append(f"{origin + offset:03X}: {opcode:04X}  {decode(opcode).mnemonic()}")
    return lines


__all__ = [
    "Instruction",
    "Operation",
    "OperationInfo",
    "OPERATION_TABLE",
    "build_operation_table",
    "classify",
    "decode",
    "disassemble",
]
