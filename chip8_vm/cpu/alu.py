"""
CHIP-8 VM - ALU Operations

Each flag-producing operation returns ``(result_byte, flag)`` computed
from the operands as they were before the instruction. The executor
stores the result first and VF last, so ``8xF4`` and friends leave the
flag (not the sum) in VF.
"""


def add8(a: int, b: int) -> tuple:
    """a + b. Flag = 1 on carry out of bit 7."""
    result = a + b
    return (result & 0xFF, 1 if result > 0xFF else 0)


def sub8(a: int, b: int) -> tuple:
    """a - b. Flag = 1 when no borrow (a >= b)."""
    return ((a - b) & 0xFF, 1 if a >= b else 0)


def shr8(value: int) -> tuple:
    """value >> 1. Flag = bit shifted out (bit 0)."""
    return (value >> 1, value & 0x01)


def shl8(value: int) -> tuple:
    """value << 1. Flag = bit shifted out (bit 7)."""
    return ((value << 1) & 0xFF, (value >> 7) & 0x01)


def bcd(value: int) -> tuple:
    """Split an 8-bit value into (hundreds, tens, ones)."""
    value &= 0xFF
    return (value // 100, (value // 10) % 10, value % 10)
