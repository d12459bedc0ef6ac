"""
CHIP-8 VM - Main Emulator Class

This is the top-level class that integrates:
  - CPU registers (cpu/regs.py) and call stack (cpu/stack.py)
  - Memory map (mem/memory.py) and font table (mem/font.py)
  - Opcode decoder (cpu/decoder.py) and ALU helpers (cpu/alu.py)
  - Peripherals: display buffer, 60 Hz timers, keypad

Execution model (one step):
  1. Fetch the big-endian word at PC
  2. Advance PC by 2 (jumps and skips work from the advanced value)
  3. Decode into a tagged Instruction
  4. Execute the handler for that tag

Run states:
  RUNNING           step() executes instructions
  PAUSED_SELF_JUMP  a JP to its own address was executed; any key event
                    (press or release) resumes
  PAUSED_KEY_WAIT   Fx0A is waiting; the next key press lands in Vx
  HALTED            unknown opcode or stack fault; step() keeps
                    returning HALT and ``fault`` says why

Timers never run on their own thread: the host hands wall-clock deltas
to tick(), normally through pacing.Pacer.
"""

import logging
import random
from enum import Enum
from typing import Optional, Set

from .config import EmulatorConfig
from .cpu import alu
from .cpu.decoder import (
    decode, format_instruction, Instruction,
    CLS, RET, JP, CALL, SE_BYTE, SNE_BYTE, SE_REG, LD_BYTE, ADD_BYTE,
    LD_REG, OR, AND, XOR, ADD_REG, SUB, SHR, SUBN, SHL, SNE_REG,
    LD_I, JP_V0, RND, DRW, SKP, SKNP, LD_VX_DT, LD_VX_K, LD_DT_VX,
    LD_ST_VX, ADD_I, LD_F, LD_B, LD_MEM_VX, LD_VX_MEM, UNKNOWN,
)
from .cpu.regs import Registers, VF
from .cpu.stack import CallStack
from .faults import Fault, FaultKind
from .mem.font import glyph_address, install_font
from .mem.memory import (
    Memory, PROGRAM_BASE, PROGRAM_END, PROGRAM_SIZE, STACK_BASE, STACK_END,
)
from .periph.display import DisplayBuffer
from .periph.keypad import Keypad
from .periph.timer import TimerPeripheral

log = logging.getLogger(__name__)


class StepResult(Enum):
    CONTINUE = 'CONTINUE'
    HALT = 'HALT'


class RunState(Enum):
    RUNNING = 'RUNNING'
    PAUSED_SELF_JUMP = 'PAUSED_SELF_JUMP'
    PAUSED_KEY_WAIT = 'PAUSED_KEY_WAIT'
    HALTED = 'HALTED'


class StopReason(Enum):
    TIMEOUT = 'TIMEOUT'
    BREAK = 'BREAK'
    PAUSED = 'PAUSED'
    KEY_WAIT = 'KEY_WAIT'
    ILLEGAL = 'ILLEGAL'
    STACK_FAULT = 'STACK_FAULT'


class Emulator:
    """CHIP-8 interpreter.

    Usage:
        emu = Emulator(EmulatorConfig(quirks=Quirks(shift_uses_vx=True)))
        emu.load_program(rom_bytes)
        while emu.step() is StepResult.CONTINUE:
            emu.tick(elapsed_ms)
            ...
    """

    DEFAULT_MAX_STEPS = 1_000_000

    def __init__(self, config: Optional[EmulatorConfig] = None):
        self.config = config or EmulatorConfig()
        self.quirks = self.config.quirks

        # Core components
        self.regs = Registers()
        self.mem = Memory()
        self.stack = CallStack(self.mem, self.regs)

        # Peripherals
        self.display = DisplayBuffer(self.mem)
        self.timer = TimerPeripheral(self.regs)
        self.keypad = Keypad()

        self._rng = random.Random(self.config.seed)

        self.state = RunState.RUNNING
        self.fault: Optional[Fault] = None
        self.program_size = 0
        self._key_wait_register: Optional[int] = None

        # Address of the instruction being executed (PC before advance)
        self._ins_addr = PROGRAM_BASE

        # Breakpoints: set of PC addresses that stop run()
        self._breakpoints: Set[int] = set()

        # Trace output
        self._trace = False
        self._trace_output = []

        # Instruction dispatch table (built in _build_dispatch)
        self._dispatch = self._build_dispatch()

        self.reset()

    # ══════════════════════════════════════════════
    # Loading / reset
    # ══════════════════════════════════════════════

    def load_program(self, data: bytes) -> bool:
        """Copy a ROM image to $200. False if it does not fit.

        The rest of program space is zeroed so a smaller ROM does not
        inherit the tail of a previous one.
        """
        data = bytes(data)
        if len(data) > PROGRAM_SIZE:
            self.fault = Fault(FaultKind.RESOURCE_LOAD_FAILURE, PROGRAM_BASE,
                               detail=f"{len(data)} bytes, program space holds {PROGRAM_SIZE}")
            log.error("Program rejected: %s", self.fault.describe())
            return False
        self.mem.fill(PROGRAM_BASE, PROGRAM_END, 0x00)
        self.mem.load_region(PROGRAM_BASE, data)
        self.program_size = len(data)
        log.info("Loaded %d-byte program at 0x%03X", len(data), PROGRAM_BASE)
        return True

    def reset(self):
        """Reset everything except the program image.

        Font reinstalled, display and stack cleared, registers, timers and
        held keys zeroed, PC back at $200. Breakpoints are kept.
        """
        self.regs.reset()
        self.mem.fill(STACK_BASE, STACK_END, 0x00)
        install_font(self.mem)
        self.display.clear()
        self.timer.reset()
        self.keypad.reset()
        self.mem.clear_faults()
        self.state = RunState.RUNNING
        self.fault = None
        self._key_wait_register = None
        self._trace_output.clear()
        log.info("Reset (%s)", self.quirks.describe())

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> StepResult:
        """Execute one instruction.

        While paused nothing executes and CONTINUE is returned; once
        halted every call returns HALT.
        """
        if self.state is RunState.HALTED:
            return StepResult.HALT
        if self.state is not RunState.RUNNING:
            return StepResult.CONTINUE

        pc = self.regs.PC
        word = self.mem.read16(pc)
        self.regs.PC = (pc + 2) & 0xFFFF
        self._ins_addr = pc

        ins = decode(word)

        if self._trace:
            line = f"{pc:03X}: {word:04X}  {format_instruction(ins):20s} {self.regs.display()}"
            self._trace_output.append(line)
            log.debug(line)

        self._dispatch[ins.op](ins)
        self.regs.cycles += 1

        if self.state is RunState.HALTED:
            return StepResult.HALT
        return StepResult.CONTINUE

    def run(self, max_steps: int = None, ms_per_step: float = 0.0) -> StopReason:
        """Run until paused, halted, a breakpoint or max_steps.

        ``ms_per_step`` feeds simulated time to the timers after every
        instruction, for headless runs without a wall clock. A breakpoint
        on the starting PC is ignored so run() can resume from it.
        """
        if max_steps is None:
            max_steps = self.DEFAULT_MAX_STEPS

        for count in range(max_steps):
            if count and self.regs.PC in self._breakpoints:
                return StopReason.BREAK
            if self.state is RunState.PAUSED_SELF_JUMP:
                return StopReason.PAUSED
            if self.state is RunState.PAUSED_KEY_WAIT:
                return StopReason.KEY_WAIT
            if self.step() is StepResult.HALT:
                return self._halt_reason()
            if ms_per_step:
                self.tick(ms_per_step)

        if self.state is RunState.HALTED:
            return self._halt_reason()
        return StopReason.TIMEOUT

    def _halt_reason(self) -> StopReason:
        if self.fault is not None and self.fault.kind is FaultKind.UNKNOWN_OPCODE:
            return StopReason.ILLEGAL
        return StopReason.STACK_FAULT

    def tick(self, elapsed_ms: float) -> int:
        """Advance the 60 Hz timers by a wall-clock delta."""
        return self.timer.update(elapsed_ms)

    # ══════════════════════════════════════════════
    # Host interface
    # ══════════════════════════════════════════════

    def deliver_key_event(self, key: int, pressed: bool):
        """Update the keypad and resolve a pending pause.

        Any event ends a self-jump pause; only a press ends a key wait,
        and the pressed key is stored in the waiting register.
        """
        self.keypad.set_key(key, pressed)

        if self.state is RunState.PAUSED_SELF_JUMP:
            self.state = RunState.RUNNING
            log.info("Resumed from self-jump pause at 0x%03X", self.regs.PC)
        elif self.state is RunState.PAUSED_KEY_WAIT and pressed:
            self.regs[self._key_wait_register] = key
            log.info("Key %X delivered to V%X", key, self._key_wait_register)
            self._key_wait_register = None
            self.state = RunState.RUNNING

    def snapshot_display(self) -> bytes:
        return self.display.snapshot()

    def is_paused(self) -> bool:
        return self.state in (RunState.PAUSED_SELF_JUMP, RunState.PAUSED_KEY_WAIT)

    def is_awaiting_key(self) -> bool:
        return self.state is RunState.PAUSED_KEY_WAIT

    def is_halted(self) -> bool:
        return self.state is RunState.HALTED

    @property
    def key_wait_register(self) -> Optional[int]:
        return self._key_wait_register

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(ins). PC has already been advanced;
    # self._ins_addr holds the instruction's own address.

    def _build_dispatch(self) -> dict:
        """Build tag → handler dispatch table."""
        return {
            # ── Control flow ──
            CLS:       self._op_cls,
            RET:       self._op_ret,
            JP:        self._op_jp,
            CALL:      self._op_call,
            JP_V0:     self._op_jp_v0,

            # ── Skips ──
            SE_BYTE:   self._op_se_byte,
            SNE_BYTE:  self._op_sne_byte,
            SE_REG:    self._op_se_reg,
            SNE_REG:   self._op_sne_reg,
            SKP:       self._op_skp,
            SKNP:      self._op_sknp,

            # ── Register / immediate ──
            LD_BYTE:   self._op_ld_byte,
            ADD_BYTE:  self._op_add_byte,

            # ── Register / register ──
            LD_REG:    self._op_ld_reg,
            OR:        self._op_or,
            AND:       self._op_and,
            XOR:       self._op_xor,
            ADD_REG:   self._op_add_reg,
            SUB:       self._op_sub,
            SHR:       self._op_shr,
            SUBN:      self._op_subn,
            SHL:       self._op_shl,

            # ── Index register ──
            LD_I:      self._op_ld_i,
            ADD_I:     self._op_add_i,
            LD_F:      self._op_ld_f,

            # ── Misc ──
            RND:       self._op_rnd,
            DRW:       self._op_drw,

            # ── Timers / keys ──
            LD_VX_DT:  self._op_ld_vx_dt,
            LD_VX_K:   self._op_ld_vx_k,
            LD_DT_VX:  self._op_ld_dt_vx,
            LD_ST_VX:  self._op_ld_st_vx,

            # ── Memory ──
            LD_B:      self._op_ld_b,
            LD_MEM_VX: self._op_ld_mem_vx,
            LD_VX_MEM: self._op_ld_vx_mem,

            UNKNOWN:   self._op_unknown,
        }

    def _halt(self, kind: FaultKind, ins: Instruction, detail: str = ''):
        self.fault = Fault(kind, self._ins_addr, ins.word, detail)
        self.state = RunState.HALTED
        log.error("Halted: %s", self.fault.describe())

    def _skip_if(self, condition: bool):
        if condition:
            self.regs.PC = (self.regs.PC + 2) & 0xFFFF

    # ── Control flow handlers ──

    def _op_cls(self, ins):
        self.display.clear()

    def _op_ret(self, ins):
        address = self.stack.pop()
        if address is None:
            self._halt(FaultKind.STACK_UNDERRUN, ins, "RET with empty stack")
            return
        self.regs.PC = address

    def _op_jp(self, ins):
        """JP nnn. A jump onto itself is a busy-wait: pause instead of spinning."""
        self.regs.PC = ins.nnn
        if ins.nnn == self._ins_addr:
            self.state = RunState.PAUSED_SELF_JUMP
            log.info("Self-jump at 0x%03X, pausing until input", ins.nnn)

    def _op_call(self, ins):
        if not self.stack.push(self.regs.PC):
            self._halt(FaultKind.STACK_OVERFLOW, ins,
                       f"CALL 0x{ins.nnn:03X} with {self.stack.depth} frames in use")
            return
        self.regs.PC = ins.nnn

    def _op_jp_v0(self, ins):
        self.regs.PC = (ins.nnn + self.regs[0]) & 0xFFF

    # ── Skip handlers ──

    def _op_se_byte(self, ins):
        self._skip_if(self.regs[ins.x] == ins.kk)

    def _op_sne_byte(self, ins):
        self._skip_if(self.regs[ins.x] != ins.kk)

    def _op_se_reg(self, ins):
        self._skip_if(self.regs[ins.x] == self.regs[ins.y])

    def _op_sne_reg(self, ins):
        self._skip_if(self.regs[ins.x] != self.regs[ins.y])

    def _op_skp(self, ins):
        self._skip_if(self.keypad.is_pressed(self.regs[ins.x] & 0xF))

    def _op_sknp(self, ins):
        self._skip_if(not self.keypad.is_pressed(self.regs[ins.x] & 0xF))

    # ── Register / immediate handlers ──

    def _op_ld_byte(self, ins):
        self.regs[ins.x] = ins.kk

    def _op_add_byte(self, ins):
        self.regs[ins.x] = self.regs[ins.x] + ins.kk

    # ── Register / register handlers ──
    # Flag-setting forms write Vx first and VF last.

    def _op_ld_reg(self, ins):
        self.regs[ins.x] = self.regs[ins.y]

    def _op_or(self, ins):
        self.regs[ins.x] = self.regs[ins.x] | self.regs[ins.y]

    def _op_and(self, ins):
        self.regs[ins.x] = self.regs[ins.x] & self.regs[ins.y]

    def _op_xor(self, ins):
        self.regs[ins.x] = self.regs[ins.x] ^ self.regs[ins.y]

    def _op_add_reg(self, ins):
        result, carry = alu.add8(self.regs[ins.x], self.regs[ins.y])
        self.regs[ins.x] = result
        self.regs[VF] = carry

    def _op_sub(self, ins):
        result, no_borrow = alu.sub8(self.regs[ins.x], self.regs[ins.y])
        self.regs[ins.x] = result
        self.regs[VF] = no_borrow

    def _op_subn(self, ins):
        result, no_borrow = alu.sub8(self.regs[ins.y], self.regs[ins.x])
        self.regs[ins.x] = result
        self.regs[VF] = no_borrow

    def _shift_source(self, ins) -> int:
        return self.regs[ins.x] if self.quirks.shift_uses_vx else self.regs[ins.y]

    def _op_shr(self, ins):
        result, out = alu.shr8(self._shift_source(ins))
        self.regs[ins.x] = result
        self.regs[VF] = out

    def _op_shl(self, ins):
        result, out = alu.shl8(self._shift_source(ins))
        self.regs[ins.x] = result
        self.regs[VF] = out

    # ── Index register handlers ──

    def _op_ld_i(self, ins):
        self.regs.I = ins.nnn

    def _op_add_i(self, ins):
        self.regs.I = (self.regs.I + self.regs[ins.x]) & 0xFFFF

    def _op_ld_f(self, ins):
        self.regs.I = glyph_address(self.regs[ins.x])

    # ── Misc handlers ──

    def _op_rnd(self, ins):
        self.regs[ins.x] = self._rng.randrange(256) & ins.kk

    def _op_drw(self, ins):
        collision = self.display.draw_sprite(self.regs[ins.x], self.regs[ins.y],
                                             self.regs.I, ins.n)
        self.regs[VF] = 1 if collision else 0

    # ── Timer / key handlers ──

    def _op_ld_vx_dt(self, ins):
        self.regs[ins.x] = self.regs.DT

    def _op_ld_vx_k(self, ins):
        """Fx0A: block until a key press; deliver_key_event() finishes it."""
        self._key_wait_register = ins.x
        self.state = RunState.PAUSED_KEY_WAIT
        log.info("Waiting for key into V%X", ins.x)

    def _op_ld_dt_vx(self, ins):
        self.regs.DT = self.regs[ins.x]

    def _op_ld_st_vx(self, ins):
        self.regs.ST = self.regs[ins.x]

    # ── Memory handlers ──

    def _op_ld_b(self, ins):
        """Fx33: BCD of Vx to I, I+1, I+2."""
        for offset, digit in enumerate(alu.bcd(self.regs[ins.x])):
            self.mem.write8(self.regs.I + offset, digit)

    def _op_ld_mem_vx(self, ins):
        for r in range(ins.x + 1):
            self.mem.write8(self.regs.I + r, self.regs[r])
        if not self.quirks.load_store_keeps_index:
            self.regs.I = (self.regs.I + ins.x + 1) & 0xFFFF

    def _op_ld_vx_mem(self, ins):
        for r in range(ins.x + 1):
            self.regs[r] = self.mem.read8(self.regs.I + r)
        if not self.quirks.load_store_keeps_index:
            self.regs.I = (self.regs.I + ins.x + 1) & 0xFFFF

    def _op_unknown(self, ins):
        if not self.mem.is_mapped(self._ins_addr, 2):
            self._halt(FaultKind.UNKNOWN_OPCODE, ins, "fetch from unmapped address")
            return
        self._halt(FaultKind.UNKNOWN_OPCODE, ins)

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        """Add a breakpoint at PC address. run() stops when PC hits this."""
        self._breakpoints.add(addr & 0xFFF)

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr & 0xFFF)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Enable instruction trace logging."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()
