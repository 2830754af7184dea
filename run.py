"""Command-line entry point for the CHIP-8 emulator."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pychip8.cpu import Quirks
from pychip8.cpu.opcodes import disassemble
from pychip8.loader import MAX_ROM_SIZE
from pychip8.ui.app import AppConfig, Chip8App
from pychip8.video import PALETTES


def parse_address(text: str) -> int:
    """Accept decimal or ``0x``-prefixed hexadecimal addresses."""

    base = 16 if text.lower().startswith("0x") else 10
    try:
        return int(text, base)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid memory address: {text!r}") from exc


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="run.py",
        description="CHIP-8 emulator",
    )
    parser.add_argument("rom", type=Path, help="Path to the CHIP-8 ROM image")
    parser.add_argument(
        "--scale",
        type=int,
        default=10,
        help="Integer window scale factor (default: 10)",
    )
    parser.add_argument(
        "--ips",
        type=int,
        default=500,
        help="Instructions executed per second (default: 500)",
    )
    parser.add_argument(
        "-f",
        "--font-addr",
        type=parse_address,
        default=0x000,
        help="Address of the built-in font, decimal or 0x-hex (default: 0x000)",
    )
    parser.add_argument(
        "-s",
        "--shift-vs",
        action="store_true",
        help="8xy6/8xyE shift Vy into Vx",
    )
    parser.add_argument(
        "-o",
        "--i-overflow",
        action="store_true",
        help="Fx1E sets VF when I overflows past 0xFFF",
    )
    parser.add_argument(
        "-i",
        "--increment-i",
        action="store_true",
        help="Fx55/Fx65 advance I past the transferred registers",
    )
    parser.add_argument(
        "--palette",
        choices=sorted(PALETTES),
        default="mono",
        help="Display colours (default: mono)",
    )
    parser.add_argument("--mute", action="store_true", help="Disable the beeper")
    parser.add_argument("--seed", type=int, help="Seed for the random number generator")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Halt on unknown opcodes instead of skipping them",
    )
    parser.add_argument(
        "--disassemble",
        action="store_true",
        help="Print a listing of the ROM and exit",
    )
    return parser


def build_config(args: argparse.Namespace) -> AppConfig:
    quirks = Quirks(
        shift_assigns_vy_to_vx=args.shift_vs,
        overflow_on_add_i=args.i_overflow,
        auto_increment_i=args.increment_i,
        font_base_address=args.font_addr,
    )
    return AppConfig(
        rom_path=args.rom,
        scale=args.scale,
        instructions_per_second=args.ips,
        quirks=quirks,
        palette=args.palette,
        mute=args.mute,
        seed=args.seed,
        strict=args.strict,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if not args.rom.exists():
        parser.error(f"ROM file not found: {args.rom}")

    try:
        config = build_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    if args.disassemble:
        try:
            data = args.rom.read_bytes()[:MAX_ROM_SIZE]
        except OSError as exc:
            parser.exit(1, f"run.py: cannot read ROM {args.rom}: {exc}\n")
        for line in disassemble(data):
            print(line)
        return 0

    app = Chip8App(config)
    try:
        app.run()
    except RuntimeError as exc:
        parser.exit(1, f"run.py: {exc}\n")
    if app.fault is not None:
        parser.exit(1, f"run.py: halted: {app.fault}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
