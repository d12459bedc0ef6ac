# chip8_vm - CHIP-8 interpreter core
#
# Layout:
#   mem/     4K address space with region-checked access, font table
#   cpu/     register file, call stack, decoder, ALU helpers
#   periph/  display buffer, countdown timers, keypad
#   emu.py   fetch/decode/execute state machine + host interface
#   pacing.py  wall-clock driven run loop helper
#
# Rendering, keyboard polling and ROM file access live in frontend.py,
# rom.py and the chip8kit.py CLI; they only talk to Emulator.

from .config import EmulatorConfig, Quirks
from .emu import Emulator, RunState, StepResult, StopReason
from .faults import Fault, FaultKind

__version__ = "0.4.0"

__all__ = [
    "Emulator",
    "EmulatorConfig",
    "Fault",
    "FaultKind",
    "Quirks",
    "RunState",
    "StepResult",
    "StopReason",
]
