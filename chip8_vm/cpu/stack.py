"""
CHIP-8 VM - Call Stack

Return addresses live in the $0E0-$0FF memory region. SP always points
at the most recently pushed 2-byte slot:

  push:  SP += 2, then write16(SP, addr)
  pop:   addr = read16(SP), then SP -= 2

SP == $0E0 means empty, so slot $0E0 itself is never written and the
deepest usable slot is $0FE. The region has 16 slots but only 15 hold
return addresses (MAX_DEPTH): the base slot is given up so that SP at
the base can mark an empty stack while push still advances before it
writes. The 16th nested CALL is an overflow. Overflow and underrun are
reported to the caller, which halts the program.
"""

from typing import Optional

from ..mem.memory import STACK_BASE, STACK_END

SLOT_SIZE = 2
STACK_TOP = STACK_END - SLOT_SIZE + 1   # $0FE, last slot that fits
MAX_DEPTH = (STACK_TOP - STACK_BASE) // SLOT_SIZE   # 15


class CallStack:
    def __init__(self, memory, regs):
        self.mem = memory
        self.regs = regs

    @property
    def depth(self) -> int:
        return (self.regs.SP - STACK_BASE) // SLOT_SIZE

    def is_empty(self) -> bool:
        return self.regs.SP <= STACK_BASE

    def push(self, address: int) -> bool:
        """Push a return address. False on overflow (nothing written)."""
        sp = self.regs.SP + SLOT_SIZE
        if sp > STACK_TOP:
            return False
        self.regs.SP = sp
        return self.mem.write16(sp, address & 0xFFFF)

    def pop(self) -> Optional[int]:
        """Pop a return address. None on underrun."""
        if self.is_empty():
            return None
        address = self.mem.read16(self.regs.SP)
        self.regs.SP -= SLOT_SIZE
        return address

    def peek(self) -> Optional[int]:
        if self.is_empty():
            return None
        return self.mem.read16(self.regs.SP)

    def frames(self) -> list:
        """Return addresses from oldest to newest."""
        return [self.mem.read16(sp)
                for sp in range(STACK_BASE + SLOT_SIZE, self.regs.SP + 1, SLOT_SIZE)]
