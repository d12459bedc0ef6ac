#!/usr/bin/env python3
"""
chip8kit - CHIP-8 VM Toolkit
============================

One CLI for everything:
    chip8kit run     - Run a ROM in a pygame window
    chip8kit trace   - Run a ROM headless, print trace / registers / screen
    chip8kit disasm  - Disassemble a ROM
    chip8kit info    - ROM summary

Usage:
    python chip8kit.py <command> [options]
    python chip8kit.py <command> --help

Examples:
    python chip8kit.py run games/TETRIS --scale 10
    python chip8kit.py run games/BLINKY --shift-vx --keep-index
    python chip8kit.py trace test_opcode.ch8 --steps 2000 --screen
    python chip8kit.py trace game.ch8 --break 0x23A --trace
    python chip8kit.py disasm games/PONG --range 0x200-0x240
    python chip8kit.py info games/PONG
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from chip8_vm import __version__
from chip8_vm.config import DEFAULT_IPS, DEFAULT_SCALE, EmulatorConfig, Quirks
from chip8_vm.cpu.decoder import UNKNOWN, decode, disassemble
from chip8_vm.emu import Emulator, StopReason
from chip8_vm.log import setup_logging
from chip8_vm.mem.memory import PROGRAM_BASE, PROGRAM_SIZE
from chip8_vm.rom import RomLoadError, load_rom, read_rom

log = logging.getLogger("chip8_vm.cli")

console = Console(highlight=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8kit",
        description="CHIP-8 VM toolkit - run, trace, disassemble",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  run        Run a ROM in a window
  trace      Run a ROM headless and dump state
  disasm     Disassemble a ROM
  info       Summarize a ROM file
""",
    )
    parser.add_argument("--version", action="version", version=f"chip8kit {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # Options shared by every command that executes code
    exec_opts = argparse.ArgumentParser(add_help=False)
    exec_opts.add_argument("rom", help="ROM image")
    exec_opts.add_argument("--shift-vx", action="store_true",
                           help="Quirk: 8xy6/8xyE shift Vx in place (ignore Vy)")
    exec_opts.add_argument("--keep-index", action="store_true",
                           help="Quirk: Fx55/Fx65 do not advance I")
    exec_opts.add_argument("--ips", type=int, default=DEFAULT_IPS,
                           help=f"Instructions per second (default: {DEFAULT_IPS})")
    exec_opts.add_argument("--seed", type=int, default=None,
                           help="Seed for RND (default: random)")
    exec_opts.add_argument("-v", "--verbose", action="count", default=0,
                           help="Console log level: -v INFO, -vv DEBUG")
    exec_opts.add_argument("-q", "--quiet", action="store_true",
                           help="Console shows errors only")
    exec_opts.add_argument("--log-file", default=None,
                           help="Write the full log here (default: logs/chip8_<ts>.log)")
    exec_opts.add_argument("--no-log-file", action="store_true",
                           help="Do not write a log file")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", parents=[exec_opts], help="Run a ROM in a pygame window")
    p_run.add_argument("--scale", type=int, default=DEFAULT_SCALE,
                       help=f"Window pixels per CHIP-8 pixel (default: {DEFAULT_SCALE})")

    # ── trace ────────────────────────────────────────────────────────────
    p_tr = sub.add_parser("trace", parents=[exec_opts], help="Run headless and dump state")
    p_tr.add_argument("--steps", type=int, default=10_000,
                      help="Maximum instructions to execute (default: 10000)")
    p_tr.add_argument("--break", dest="breakpoints", action="append", default=[],
                      help="Stop when PC reaches ADDR (hex, repeatable)")
    p_tr.add_argument("--keys", default="",
                      help="Comma-separated hex keys fed one per pause/key wait, e.g. 5,A")
    p_tr.add_argument("--trace", action="store_true", help="Print instruction trace")
    p_tr.add_argument("--screen", action="store_true", help="Print the final screen")

    # ── disasm ───────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", help="Disassemble a ROM")
    p_dis.add_argument("rom", help="ROM image")
    p_dis.add_argument("--range", help="Address range START-END (hex), e.g. 0x200-0x240")
    p_dis.add_argument("-o", "--output", help="Output file (default: stdout)")

    # ── info ─────────────────────────────────────────────────────────────
    p_info = sub.add_parser("info", help="Summarize a ROM file")
    p_info.add_argument("rom", help="ROM image")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    handler = COMMANDS[args.command]
    try:
        return handler(args)
    except RomLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

def _parse_hex(s):
    """Parse hex string with optional 0x or $ prefix."""
    if s is None:
        return None
    s = s.strip()
    if s.startswith("0x") or s.startswith("0X"):
        return int(s, 16)
    if s.startswith("$"):
        return int(s[1:], 16)
    return int(s, 16)


def _configure_logging(args):
    if args.quiet:
        console_level = logging.ERROR
    elif args.verbose >= 2:
        console_level = logging.DEBUG
    elif args.verbose == 1:
        console_level = logging.INFO
    else:
        console_level = logging.WARNING
    setup_logging(console_level=console_level,
                  log_file=Path(args.log_file) if args.log_file else None,
                  write_file=not args.no_log_file)


def _make_emulator(args, scale: int = DEFAULT_SCALE) -> Emulator:
    config = EmulatorConfig(
        quirks=Quirks(shift_uses_vx=args.shift_vx, load_store_keeps_index=args.keep_index),
        instructions_per_second=args.ips,
        scale=scale,
        seed=args.seed,
    )
    emu = Emulator(config)
    load_rom(emu, args.rom)
    return emu


# ── run ──────────────────────────────────────────────────────────────────
def cmd_run(args):
    _configure_logging(args)
    emu = _make_emulator(args, scale=args.scale)
    log.info("Running %s (%s, %d ips)", args.rom, emu.quirks.describe(), args.ips)

    from chip8_vm.frontend import PygameFrontend

    fault = PygameFrontend(emu).run()
    if fault is not None:
        print(f"Halted: {fault.describe()}", file=sys.stderr)
        return 1
    return 0


# ── trace ────────────────────────────────────────────────────────────────
def cmd_trace(args):
    _configure_logging(args)
    emu = _make_emulator(args)
    for bp in args.breakpoints:
        emu.add_breakpoint(_parse_hex(bp))
    emu.enable_trace(args.trace)
    log.info("Tracing %s for up to %d steps", args.rom, args.steps)

    keys = [int(k, 16) for k in args.keys.split(",") if k.strip()]
    ms_per_step = 1000.0 / args.ips
    remaining = args.steps

    while True:
        start = emu.regs.cycles
        reason = emu.run(max_steps=remaining, ms_per_step=ms_per_step)
        remaining -= emu.regs.cycles - start
        if reason in (StopReason.PAUSED, StopReason.KEY_WAIT) and keys and remaining > 0:
            key = keys.pop(0)
            emu.deliver_key_event(key, True)
            emu.deliver_key_event(key, False)
            continue
        break

    if args.trace:
        console.print(emu.get_trace(), markup=False)

    console.print(f"Stopped: {reason.value} after {emu.regs.cycles} instructions")
    if emu.fault is not None:
        console.print(f"Fault:   {emu.fault.describe()}", markup=False)
    if emu.mem.fault_count:
        console.print(f"Out-of-range accesses: {emu.mem.fault_count}")
    console.print(_register_table(emu))

    if args.screen:
        console.print(Panel(emu.display.render_text(), title="display", expand=False))

    return 1 if emu.is_halted() else 0


def _register_table(emu) -> Table:
    table = Table(title="registers", show_header=True)
    for i in range(16):
        table.add_column(f"V{i:X}", justify="right")
    table.add_row(*[f"{v:02X}" for v in emu.regs.V])
    summary = Table(show_header=True)
    for name in ("PC", "I", "SP", "DT", "ST", "stack"):
        summary.add_column(name, justify="right")
    frames = " ".join(f"{a:03X}" for a in emu.stack.frames()) or "-"
    summary.add_row(f"{emu.regs.PC:03X}", f"{emu.regs.I:03X}", f"{emu.regs.SP:02X}",
                    f"{emu.regs.DT:02X}", f"{emu.regs.ST:02X}", frames)
    outer = Table.grid()
    outer.add_row(table)
    outer.add_row(summary)
    return outer


# ── disasm ───────────────────────────────────────────────────────────────
def cmd_disasm(args):
    data = read_rom(args.rom)

    start, end = PROGRAM_BASE, PROGRAM_BASE + len(data)
    if args.range:
        parts = args.range.replace("-", " ").split()
        start = _parse_hex(parts[0])
        end = _parse_hex(parts[1]) if len(parts) > 1 else start + 64
    start = max(start, PROGRAM_BASE)
    end = min(end, PROGRAM_BASE + len(data))

    chunk = data[start - PROGRAM_BASE:end - PROGRAM_BASE]
    lines = []
    for addr, word, text in disassemble(chunk, start):
        raw = f"{word:02X}  " if text.startswith("DB") else f"{word:04X}"
        lines.append(f"{addr:03X}:  {raw}    {text}")

    output = "\n".join(lines)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output + "\n")
        print(f"Disassembled {len(chunk)} bytes -> {args.output}")
    else:
        print(output)
    return 0


# ── info ─────────────────────────────────────────────────────────────────
def cmd_info(args):
    import hashlib
    data = read_rom(args.rom)

    words = [(data[i] << 8) | data[i + 1] for i in range(0, len(data) - 1, 2)]
    unknown = sum(1 for w in words if decode(w).op == UNKNOWN)

    print(f"File:     {args.rom}")
    print(f"Size:     {len(data)} bytes ({len(data) * 100 // PROGRAM_SIZE}% of program space)")
    print(f"MD5:      {hashlib.md5(data).hexdigest()}")
    print(f"Words:    {len(words)} ({unknown} not valid instructions, likely data)")
    print(f"Entry:    {PROGRAM_BASE:03X}: {next(disassemble(data[:2], PROGRAM_BASE))[2]}")
    return 0


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND DISPATCH TABLE
# ═════════════════════════════════════════════════════════════════════════════

COMMANDS = {
    "run": cmd_run,
    "trace": cmd_trace,
    "disasm": cmd_disasm,
    "info": cmd_info,
}


if __name__ == "__main__":
    sys.exit(main())
