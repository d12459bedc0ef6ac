"""
CHIP-8 VM - Pacing Controller

Decouples wall-clock time from instruction speed. Each advance():

  1. samples the clock and hands the delta to Emulator.tick() (timers)
  2. adds ``instructions_per_second * delta`` to an instruction budget
  3. steps the emulator while at least one whole instruction is owed

The budget is capped at MAX_BURST so a stalled host (window drag,
debugger) does not replay seconds of instructions in one go. While the
emulator is paused the budget is dropped instead of saved up.

The clock is injectable; tests pass a fake one.
"""

import logging
import time
from typing import Callable

from .config import DEFAULT_IPS, MAX_BURST
from .emu import StepResult

log = logging.getLogger(__name__)


class Pacer:
    def __init__(self, emu, instructions_per_second: int = DEFAULT_IPS,
                 clock: Callable[[], float] = time.monotonic,
                 max_burst: int = MAX_BURST):
        if instructions_per_second <= 0:
            raise ValueError("instructions_per_second must be positive")
        self.emu = emu
        self.ips = instructions_per_second
        self.clock = clock
        self.max_burst = max_burst
        self._last = None
        self._budget = 0.0
        self.executed = 0

    def advance(self) -> StepResult:
        """Catch the emulator up with the clock. HALT once it has halted."""
        now = self.clock()
        if self._last is None:
            self._last = now
            return StepResult.HALT if self.emu.is_halted() else StepResult.CONTINUE

        elapsed_ms = max(0.0, (now - self._last) * 1000.0)
        self._last = now
        self.emu.tick(elapsed_ms)

        self._budget = min(self._budget + elapsed_ms * self.ips / 1000.0,
                           float(self.max_burst))
        while self._budget >= 1.0:
            if self.emu.is_paused():
                self._budget = 0.0
                break
            self._budget -= 1.0
            if self.emu.step() is StepResult.HALT:
                return StepResult.HALT
            self.executed += 1

        return StepResult.HALT if self.emu.is_halted() else StepResult.CONTINUE

    def restart(self):
        """Forget the last sample, e.g. after a reset or a long pause."""
        log.debug("Pacer restarted after %d instructions", self.executed)
        self._last = None
        self._budget = 0.0
