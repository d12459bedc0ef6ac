"""
CHIP-8 VM - Timer decay and pacing tests

The pacer is driven by a fake clock so every test is deterministic.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from chip8_vm.config import FRAME_MS
from chip8_vm.cpu.regs import Registers
from chip8_vm.emu import Emulator, StepResult
from chip8_vm.pacing import Pacer
from chip8_vm.periph.timer import TimerPeripheral


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def _timer(dt=0, st=0):
    regs = Registers()
    regs.DT = dt
    regs.ST = st
    return TimerPeripheral(regs), regs


class TestTimers:
    def test_one_second_is_sixty_frames(self):
        timer, regs = _timer(dt=100, st=100)
        assert timer.update(1000.0) == 60
        assert regs.DT == 40
        assert regs.ST == 40

    def test_remainder_carries(self):
        timer, regs = _timer(dt=10)
        assert timer.update(10.0) == 0
        assert timer.update(10.0) == 1
        assert regs.DT == 9

    def test_many_small_deltas_add_up(self):
        timer, regs = _timer(dt=255)
        for _ in range(100):
            timer.update(10.0)
        assert timer.frames == 60
        assert regs.DT == 255 - 60

    def test_frame_sized_deltas_never_fall_behind(self):
        """N deltas of 1000/60 ms are exactly N frames."""
        timer, _ = _timer()
        for k in range(1, 5001):
            timer.update(FRAME_MS)
            assert timer.frames == k

    def test_third_of_a_second_deltas(self):
        timer, regs = _timer(dt=100)
        for _ in range(3):
            timer.update(1000.0 / 3)
        assert timer.frames == 60
        assert regs.DT == 40

    def test_floor_at_zero(self):
        timer, regs = _timer(dt=3, st=1)
        timer.update(1000.0)
        assert regs.DT == 0
        assert regs.ST == 0
        assert not timer.sound_active

    def test_non_positive_delta(self):
        timer, regs = _timer(dt=5)
        assert timer.update(0) == 0
        assert timer.update(-50.0) == 0
        assert regs.DT == 5

    def test_never_increases(self):
        timer, regs = _timer(dt=50)
        last = regs.DT
        for ms in (3.0, 17.0, 40.0, 1.0, 100.0):
            timer.update(ms)
            assert regs.DT <= last
            last = regs.DT

    def test_sound_active(self):
        timer, regs = _timer(st=2)
        assert timer.sound_active


# 6001  7001  1202 : V0 = 1, then V0 += 1 forever
COUNTER = bytes([0x60, 0x01, 0x70, 0x01, 0x12, 0x02])


def _pacer(program=COUNTER, ips=1000, max_burst=64):
    emu = Emulator()
    emu.load_program(program)
    clock = FakeClock()
    return Pacer(emu, ips, clock=clock, max_burst=max_burst), emu, clock


class TestPacer:
    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            Pacer(Emulator(), 0)

    def test_first_advance_only_samples(self):
        pacer, emu, _ = _pacer()
        assert pacer.advance() is StepResult.CONTINUE
        assert emu.regs.cycles == 0

    def test_budget_follows_clock(self):
        pacer, emu, clock = _pacer(ips=1000)
        pacer.advance()
        clock.advance(0.010)
        pacer.advance()
        assert pacer.executed == 10
        assert emu.regs.cycles == 10

    def test_fractional_budget_carries(self):
        pacer, emu, clock = _pacer(ips=2)
        pacer.advance()
        clock.advance(0.25)   # half an instruction
        pacer.advance()
        assert pacer.executed == 0
        clock.advance(0.25)
        pacer.advance()
        assert pacer.executed == 1

    def test_burst_cap(self):
        pacer, emu, clock = _pacer(ips=1000, max_burst=64)
        pacer.advance()
        clock.advance(5.0)
        pacer.advance()
        assert pacer.executed == 64

    def test_timers_follow_clock_not_instructions(self):
        pacer, emu, clock = _pacer(ips=10)
        emu.regs.DT = 100
        pacer.advance()
        clock.advance(0.5)
        pacer.advance()
        assert emu.regs.DT == 70

    def test_paused_drops_budget(self):
        # 1200: self-jump at $200
        pacer, emu, clock = _pacer(program=bytes([0x12, 0x00]), ips=1000)
        pacer.advance()
        clock.advance(0.050)
        pacer.advance()
        assert emu.is_paused()
        assert pacer.executed == 1
        emu.deliver_key_event(0x1, True)
        clock.advance(0.002)
        pacer.advance()
        assert pacer.executed == 2   # resumed, re-ran the jump, paused again

    def test_halt(self):
        pacer, emu, clock = _pacer(program=bytes([0x51, 0x23]))
        pacer.advance()
        clock.advance(0.010)
        assert pacer.advance() is StepResult.HALT
        assert emu.is_halted()

    def test_restart(self):
        pacer, emu, clock = _pacer(ips=1000)
        pacer.advance()
        pacer.restart()
        clock.advance(1.0)
        pacer.advance()
        assert pacer.executed == 0
