"""Per-opcode tests for the CHIP-8 execution engine."""

from __future__ import annotations

import pytest

from pychip8.cpu import (
    CycleStatus,
    MemoryFaultError,
    Quirks,
    StackOverflowError,
    StackUnderflowError,
    UnknownOpcodeError,
)
from pychip8.system import Machine, MachineConfig, create_machine


class FixedBytes:
    """Deterministic stand-in for ``random.Random``."""

    def __init__(self, *values: int) -> None:
        self._values = list(values)
        self.calls: list[tuple[int, int]] = []

    def randint(self, a: int, b: int) -> int:
        self.calls.append((a, b))
        return self._values.pop(0)


def make_machine(*opcodes: int, quirks: Quirks | None = None, **kwargs) -> Machine:
    machine = create_machine(MachineConfig(quirks=quirks or Quirks(), **kwargs))
    program = b"".join(opcode.to_bytes(2, "big") for opcode in opcodes)
    machine.load_rom(program)
    return machine


def step(machine: Machine) -> CycleStatus:
    return machine.run_cycle()


def test_initial_state() -> None:
    machine = create_machine()
    state = machine.cpu.state

    assert state.pc == 0x200
    assert state.sp == 0
    assert state.i == 0
    assert state.v == [0] * 16
    assert machine.timers.delay == 0
    assert machine.timers.sound == 0
    assert machine.display.lit_count() == 0


def test_font_loaded_at_base_address() -> None:
    machine = create_machine(MachineConfig(quirks=Quirks(font_base_address=0x050)))

    assert machine.memory.read_block(0x050, 5) == bytes([0xF0, 0x90, 0x90, 0x90, 0xF0])
    assert machine.memory.read_block(0x050 + 15 * 5, 5) == bytes([0xF0, 0x80, 0xF0, 0x80, 0x80])
    assert machine.memory.load8(0x000) == 0


def test_cls_clears_display_and_sets_dirty() -> None:
    machine = make_machine(0x00E0)
    machine.display.plot(3, 4)
    machine.clear_draw_flag()

    assert step(machine) is CycleStatus.OK
    assert machine.display.lit_count() == 0
    assert machine.draw_flag
    assert machine.cpu.state.pc == 0x202


def test_jp_sets_pc() -> None:
    machine = make_machine(0x1ABC)
    step(machine)
    assert machine.cpu.state.pc == 0xABC


def test_call_pushes_return_address() -> None:
    machine = make_machine(0x2300)
    step(machine)

    state = machine.cpu.state
    assert state.pc == 0x300
    assert state.sp == 1
    assert state.stack[0] == 0x202


def test_ret_pops_return_address() -> None:
    machine = make_machine(0x2204, 0x0000, 0x00EE)
    step(machine)
    step(machine)

    assert machine.cpu.state.pc == 0x202
    assert machine.cpu.state.sp == 0


def test_ret_on_empty_stack_underflows_and_halts() -> None:
    machine = make_machine(0x00EE)

    with pytest.raises(StackUnderflowError):
        step(machine)

    assert machine.halted
    assert isinstance(machine.cpu.fault, StackUnderflowError)
    assert step(machine) is CycleStatus.HALTED


@pytest.mark.parametrize(
    ("opcode", "vx", "expected_pc"),
    [
        (0x3A42, 0x42, 0x204),
        (0x3A42, 0x41, 0x202),
        (0x4A42, 0x42, 0x202),
        (0x4A42, 0x41, 0x204),
    ],
)
def test_skip_on_byte(opcode: int, vx: int, expected_pc: int) -> None:
    machine = make_machine(opcode)
    machine.cpu.state.v[0xA] = vx
    step(machine)
    assert machine.cpu.state.pc == expected_pc


@pytest.mark.parametrize(
    ("opcode", "vy", "expected_pc"),
    [
        (0x5AB0, 0x10, 0x204),
        (0x5AB0, 0x11, 0x202),
        (0x9AB0, 0x10, 0x202),
        (0x9AB0, 0x11, 0x204),
    ],
)
def test_skip_on_register(opcode: int, vy: int, expected_pc: int) -> None:
    machine = make_machine(opcode)
    machine.cpu.state.v[0xA] = 0x10
    machine.cpu.state.v[0xB] = vy
    step(machine)
    assert machine.cpu.state.pc == expected_pc


def test_ld_byte_and_add_byte_wraps_without_flag() -> None:
    machine = make_machine(0x63F0, 0x7320)
    machine.cpu.state.v[0xF] = 0x07
    step(machine)
    assert machine.cpu.state.v[3] == 0xF0
    step(machine)
    assert machine.cpu.state.v[3] == 0x10
    assert machine.cpu.state.v[0xF] == 0x07


@pytest.mark.parametrize(
    ("opcode", "expected"),
    [
        (0x8120, 0b0000_1100),
        (0x8121, 0b1010_1110),
        (0x8122, 0b0000_1000),
        (0x8123, 0b1010_0110),
    ],
)
def test_logic_operations(opcode: int, expected: int) -> None:
    machine = make_machine(opcode)
    machine.cpu.state.v[1] = 0b1010_1010
    machine.cpu.state.v[2] = 0b0000_1100
    machine.cpu.state.v[0xF] = 0x55
    step(machine)
    assert machine.cpu.state.v[1] == expected
    assert machine.cpu.state.v[0xF] == 0x55


def test_add_reg_sets_carry() -> None:
    machine = make_machine(0x8124)
    machine.cpu.state.v[1] = 0xF0
    machine.cpu.state.v[2] = 0x20
    step(machine)
    assert machine.cpu.state.v[1] == 0x10
    assert machine.cpu.state.v[0xF] == 1


def test_add_reg_flag_exhaustive() -> None:
    machine = make_machine()
    for vx in range(256):
        for vy in range(0, 256, 3):
            machine.cpu.state.pc = 0x200
            machine.memory.write_block(0x200, (0x8124).to_bytes(2, "big"))
            machine.cpu.state.v[1] = vx
            machine.cpu.state.v[2] = vy
            step(machine)
            assert machine.cpu.state.v[1] == (vx + vy) % 256
            assert machine.cpu.state.v[0xF] == (1 if vx + vy > 255 else 0)


def test_sub_flag_exhaustive() -> None:
    machine = make_machine()
    for vx in range(256):
        for vy in range(0, 256, 5):
            machine.cpu.state.pc = 0x200
            machine.memory.write_block(0x200, (0x8125).to_bytes(2, "big"))
            machine.cpu.state.v[1] = vx
            machine.cpu.state.v[2] = vy
            step(machine)
            assert machine.cpu.state.v[1] == (vx - vy) % 256
            assert machine.cpu.state.v[0xF] == (1 if vx >= vy else 0)


def test_sub_equal_operands_reports_no_borrow() -> None:
    machine = make_machine(0x8125)
    machine.cpu.state.v[1] = 0x33
    machine.cpu.state.v[2] = 0x33
    step(machine)
    assert machine.cpu.state.v[1] == 0
    assert machine.cpu.state.v[0xF] == 1


def test_subn() -> None:
    machine = make_machine(0x8127, 0x8127)
    machine.cpu.state.v[1] = 0x10
    machine.cpu.state.v[2] = 0x30
    step(machine)
    assert machine.cpu.state.v[1] == 0x20
    assert machine.cpu.state.v[0xF] == 1

    machine.cpu.state.v[1] = 0x31
    step(machine)
    assert machine.cpu.state.v[1] == 0xFF
    assert machine.cpu.state.v[0xF] == 0


def test_shr_uses_vx_by_default() -> None:
    machine = make_machine(0x8126)
    machine.cpu.state.v[1] = 0b0000_0101
    machine.cpu.state.v[2] = 0b1000_0000
    step(machine)
    assert machine.cpu.state.v[1] == 0b0000_0010
    assert machine.cpu.state.v[0xF] == 1


def test_shr_with_shift_quirk_reads_vy() -> None:
    machine = make_machine(0x8126, quirks=Quirks(shift_assigns_vy_to_vx=True))
    machine.cpu.state.v[1] = 0b0000_0101
    machine.cpu.state.v[2] = 0b1000_0000
    step(machine)
    assert machine.cpu.state.v[1] == 0b0100_0000
    assert machine.cpu.state.v[0xF] == 0


def test_shl_flag_from_value_before_shift() -> None:
    machine = make_machine(0x812E)
    machine.cpu.state.v[1] = 0b1100_0001
    step(machine)
    assert machine.cpu.state.v[1] == 0b1000_0010
    assert machine.cpu.state.v[0xF] == 1


def test_shl_with_shift_quirk_reads_vy() -> None:
    machine = make_machine(0x812E, quirks=Quirks(shift_assigns_vy_to_vx=True))
    machine.cpu.state.v[1] = 0xFF
    machine.cpu.state.v[2] = 0b0100_0001
    step(machine)
    assert machine.cpu.state.v[1] == 0b1000_0010
    assert machine.cpu.state.v[0xF] == 0


@pytest.mark.parametrize("opcode", [0x8F14, 0x8F15, 0x8F16, 0x8F1E])
def test_flag_write_wins_when_vf_is_destination(opcode: int) -> None:
    machine = make_machine(opcode)
    machine.cpu.state.v[0xF] = 0xFF
    machine.cpu.state.v[1] = 0x01
    step(machine)
    # 0xFF + 1 carries, 0xFF - 1 does not borrow, and 0xFF has both end bits set.
    assert machine.cpu.state.v[0xF] == 1


def test_ld_i_and_jp_v0() -> None:
    machine = make_machine(0xA123, 0xB300)
    step(machine)
    assert machine.cpu.state.i == 0x123
    machine.cpu.state.v[0] = 0x10
    step(machine)
    assert machine.cpu.state.pc == 0x310


def test_jp_v0_past_address_space_faults_on_fetch() -> None:
    machine = make_machine(0xBFFF)
    machine.cpu.state.v[0] = 0x10
    step(machine)
    assert machine.cpu.state.pc == 0x100F

    with pytest.raises(MemoryFaultError):
        step(machine)
    assert machine.halted


def test_rnd_masks_generator_output() -> None:
    rng = FixedBytes(0xAB, 0xFF)
    machine = make_machine(0xC10F, 0xC2F0, rng=rng)
    step(machine)
    step(machine)
    assert machine.cpu.state.v[1] == 0x0B
    assert machine.cpu.state.v[2] == 0xF0
    assert rng.calls == [(0, 255), (0, 255)]


def test_rnd_generator_persists_between_calls() -> None:
    first = make_machine(0xC1FF, 0xC2FF, seed=1234)
    second = make_machine(0xC1FF, 0xC2FF, seed=1234)
    for machine in (first, second):
        step(machine)
        step(machine)
    assert first.cpu.state.v[1:3] == second.cpu.state.v[1:3]


def test_skp_and_sknp_follow_live_keypad() -> None:
    machine = make_machine(0xE59E, 0x0000, 0xE5A1)
    machine.cpu.state.v[5] = 0x7
    machine.press_key(0x7)
    step(machine)
    assert machine.cpu.state.pc == 0x204

    step(machine)
    assert machine.cpu.state.pc == 0x206

    machine.release_key(0x7)
    machine.cpu.state.pc = 0x204
    step(machine)
    assert machine.cpu.state.pc == 0x208


def test_timer_transfers() -> None:
    machine = make_machine(0x6A3C, 0xFA15, 0xFA18, 0xFB07)
    for _ in range(4):
        step(machine)
    assert machine.timers.delay == 0x3C
    assert machine.timers.sound == 0x3C
    assert machine.cpu.state.v[0xB] == 0x3C


def test_instructions_do_not_tick_timers() -> None:
    machine = make_machine(0xFA15, 0x1202)
    machine.cpu.state.v[0xA] = 10
    for _ in range(20):
        step(machine)
    assert machine.timers.delay == 10


def test_wait_for_key_polls_without_advancing() -> None:
    machine = make_machine(0xF30A)
    for _ in range(5):
        assert step(machine) is CycleStatus.WAITING_FOR_KEY
        assert machine.cpu.state.pc == 0x200

    machine.press_key(0xB)
    assert step(machine) is CycleStatus.OK
    assert machine.cpu.state.pc == 0x202
    assert machine.cpu.state.v[3] == 0xB


def test_wait_for_key_picks_lowest_key() -> None:
    machine = make_machine(0xF30A)
    machine.press_key(0xE)
    machine.press_key(0x4)
    step(machine)
    assert machine.cpu.state.v[3] == 0x4


def test_add_i_masks_to_twelve_bits_without_flag() -> None:
    machine = make_machine(0xF11E)
    machine.cpu.state.i = 0xFFE
    machine.cpu.state.v[1] = 0x05
    machine.cpu.state.v[0xF] = 0x42
    step(machine)
    assert machine.cpu.state.i == 0x003
    assert machine.cpu.state.v[0xF] == 0x42


@pytest.mark.parametrize(("start", "flag"), [(0xFFE, 1), (0x100, 0)])
def test_add_i_overflow_quirk_sets_flag(start: int, flag: int) -> None:
    machine = make_machine(0xF11E, quirks=Quirks(overflow_on_add_i=True))
    machine.cpu.state.i = start
    machine.cpu.state.v[1] = 0x05
    machine.cpu.state.v[0xF] = 0x42
    step(machine)
    assert machine.cpu.state.v[0xF] == flag


def test_ld_f_points_at_glyph() -> None:
    machine = make_machine(0xF429, quirks=Quirks(font_base_address=0x050))
    machine.cpu.state.v[4] = 0xA
    step(machine)
    assert machine.cpu.state.i == 0x050 + 0xA * 5
    assert machine.memory.read_block(machine.cpu.state.i, 5) == bytes([0xF0, 0x90, 0xF0, 0x90, 0x90])


def test_bcd() -> None:
    machine = make_machine(0xF233)
    machine.cpu.state.v[2] = 254
    machine.cpu.state.i = 0x300
    step(machine)
    assert machine.memory.read_block(0x300, 3) == bytes([2, 5, 4])
    assert machine.cpu.state.i == 0x300


def test_bcd_past_end_of_memory_faults() -> None:
    machine = make_machine(0xF233)
    machine.cpu.state.i = 0xFFE
    with pytest.raises(MemoryFaultError):
        step(machine)
    assert machine.memory.load8(0xFFE) == 0


def test_store_and_load_registers() -> None:
    machine = make_machine(0xF355, 0xF365)
    machine.cpu.state.v[:5] = [1, 2, 3, 4, 5]
    machine.cpu.state.i = 0x400
    step(machine)
    assert machine.memory.read_block(0x400, 5) == bytes([1, 2, 3, 4, 0])
    assert machine.cpu.state.i == 0x400

    machine.memory.write_block(0x400, bytes([9, 8, 7, 6]))
    machine.cpu.state.v[:5] = [0, 0, 0, 0, 0x55]
    step(machine)
    assert machine.cpu.state.v[:5] == [9, 8, 7, 6, 0x55]


def test_store_and_load_with_auto_increment() -> None:
    machine = make_machine(0xF255, 0xF165, quirks=Quirks(auto_increment_i=True))
    machine.cpu.state.v[:3] = [7, 8, 9]
    machine.cpu.state.i = 0x400
    step(machine)
    assert machine.cpu.state.i == 0x403
    step(machine)
    assert machine.cpu.state.i == 0x405


def test_draw_sprite_and_collision() -> None:
    machine = make_machine(0xD125, 0xD125)
    machine.cpu.state.v[1] = 10
    machine.cpu.state.v[2] = 5
    machine.cpu.state.i = 0x000  # glyph "0"
    step(machine)

    display = machine.display
    assert machine.cpu.state.v[0xF] == 0
    assert display.get_pixel(10, 5)
    assert display.get_pixel(13, 5)
    assert not display.get_pixel(14, 5)
    assert display.get_pixel(10, 6) and not display.get_pixel(11, 6)
    assert machine.draw_flag

    step(machine)
    assert machine.cpu.state.v[0xF] == 1
    assert display.lit_count() == 0


def test_draw_wraps_per_pixel() -> None:
    machine = make_machine(0xD011)
    machine.cpu.state.v[0] = 62
    machine.cpu.state.v[1] = 31
    machine.cpu.state.i = 0x300
    machine.memory.store8(0x300, 0b1111_0000)
    step(machine)

    display = machine.display
    for x in (62, 63, 0, 1):
        assert display.get_pixel(x, 31)
    assert display.lit_count() == 4


def test_draw_coordinates_read_before_flag_reset() -> None:
    machine = make_machine(0xDF01)
    machine.cpu.state.v[0xF] = 8
    machine.cpu.state.v[0] = 3
    machine.cpu.state.i = 0x300
    machine.memory.store8(0x300, 0x80)
    step(machine)
    assert machine.display.get_pixel(8, 3)
    assert machine.cpu.state.v[0xF] == 0


def test_draw_sprite_past_memory_end_faults() -> None:
    machine = make_machine(0xD01F)
    machine.cpu.state.i = 0xFF8
    with pytest.raises(MemoryFaultError):
        step(machine)
    assert machine.display.lit_count() == 0


@pytest.mark.parametrize("opcode", [0x0123, 0x5AB1, 0x800F, 0x9AB3, 0xE1FF, 0xF1FF])
def test_unknown_opcodes_share_one_policy(opcode: int) -> None:
    machine = make_machine(opcode)
    before = machine.cpu.state.clone()
    assert step(machine) is CycleStatus.UNKNOWN_OPCODE

    after = machine.cpu.state
    assert after.pc == 0x202
    assert after.v == before.v
    assert after.i == before.i
    assert after.sp == before.sp
    assert machine.cpu.unknown_opcodes == 1
    assert not machine.halted


def test_unknown_opcode_raises_in_strict_mode() -> None:
    machine = make_machine(0x800F, strict=True)
    with pytest.raises(UnknownOpcodeError):
        step(machine)
    assert machine.halted


def test_stack_discipline_sixteen_deep() -> None:
    machine = make_machine(0x2300)
    machine.memory.write_block(0x300, (0x2300).to_bytes(2, "big"))
    for _ in range(16):
        assert step(machine) is CycleStatus.OK
    assert machine.cpu.state.sp == 16

    machine.memory.write_block(0x300, (0x00EE).to_bytes(2, "big"))
    machine.memory.write_block(0x302, (0x00EE).to_bytes(2, "big"))
    for _ in range(16):
        step(machine)

    assert machine.cpu.state.sp == 0
    assert machine.cpu.state.pc == 0x202


def test_seventeenth_call_overflows() -> None:
    machine = make_machine(0x2300)
    machine.memory.write_block(0x300, (0x2300).to_bytes(2, "big"))
    for _ in range(16):
        step(machine)

    with pytest.raises(StackOverflowError):
        step(machine)

    assert machine.halted
    assert machine.cpu.state.sp == 16
    assert step(machine) is CycleStatus.HALTED


def test_fetch_at_last_byte_faults() -> None:
    machine = make_machine(0x1FFF)
    step(machine)
    with pytest.raises(MemoryFaultError):
        step(machine)
