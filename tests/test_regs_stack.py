"""
CHIP-8 VM - Register file and call stack tests
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from chip8_vm.cpu.regs import Registers, VF
from chip8_vm.cpu.stack import CallStack, MAX_DEPTH, STACK_TOP
from chip8_vm.mem.memory import Memory, STACK_BASE


class TestRegisters:
    def test_power_on(self):
        regs = Registers()
        assert regs.PC == 0x200
        assert regs.SP == 0xE0
        assert regs.I == 0
        assert regs.V == (0,) * 16

    def test_index_and_mask(self):
        regs = Registers()
        regs[0x3] = 0x1FF
        assert regs[0x3] == 0xFF

    @pytest.mark.parametrize("index", [16, -1, 0x20])
    def test_bad_index(self, index):
        regs = Registers()
        with pytest.raises(IndexError):
            regs[index]
        with pytest.raises(IndexError):
            regs[index] = 1

    def test_flag_is_vf(self):
        regs = Registers()
        regs[VF] = 1
        assert regs.flag == 1

    def test_display(self):
        regs = Registers()
        regs[0xA] = 0x5C
        text = regs.display()
        assert text.startswith("PC=200 I=000 SP=E0")
        assert "VA=5C" in text

    def test_reset(self):
        regs = Registers()
        regs[0] = 9
        regs.PC = 0x300
        regs.cycles = 12
        regs.reset()
        assert regs[0] == 0
        assert regs.PC == 0x200
        assert regs.cycles == 0


def _stack():
    mem = Memory()
    regs = Registers()
    return CallStack(mem, regs), mem, regs


class TestCallStack:
    def test_push_pop(self):
        stack, mem, regs = _stack()
        assert stack.push(0x202)
        assert regs.SP == 0xE2
        assert mem.read16(0xE2) == 0x202
        assert stack.pop() == 0x202
        assert regs.SP == STACK_BASE

    def test_lifo(self):
        stack, _, _ = _stack()
        stack.push(0x210)
        stack.push(0x320)
        assert stack.frames() == [0x210, 0x320]
        assert stack.peek() == 0x320
        assert stack.pop() == 0x320
        assert stack.pop() == 0x210

    def test_underrun(self):
        stack, _, regs = _stack()
        assert stack.is_empty()
        assert stack.pop() is None
        assert stack.peek() is None
        assert regs.SP == STACK_BASE

    def test_fifteen_slots(self):
        """Slot $0E0 marks the empty stack, so 15 of the 16 slots are usable."""
        assert MAX_DEPTH == 15
        stack, _, regs = _stack()
        for i in range(15):
            assert stack.push(0x200 + i * 2)
        assert regs.SP == STACK_TOP == 0xFE
        assert stack.depth == 15

    def test_overflow_writes_nothing(self):
        stack, mem, regs = _stack()
        for i in range(15):
            stack.push(0x200 + i * 2)
        before = mem.snapshot(0xE0, 0xFF)
        assert stack.push(0x400) is False
        assert regs.SP == 0xFE
        assert mem.snapshot(0xE0, 0xFF) == before
        assert mem.fault_count == 0
