"""
CHIP-8 VM - CPU Register File

Register model:
  V0-VF  8-bit general purpose. VF doubles as the carry / no-borrow /
         shifted-out-bit / sprite collision flag; any instruction that
         names VF as destination overwrites the flag.
  I      16-bit index register (memory pointer)
  PC     16-bit program counter, $200 at reset
  SP     8-bit stack pointer, $E0 (stack region base) at reset
  DT     8-bit delay timer, counts down at 60 Hz
  ST     8-bit sound timer, counts down at 60 Hz
"""

from ..mem.memory import PROGRAM_BASE, STACK_BASE

NUM_V = 16
VF = 0xF


class Registers:
    """CHIP-8 register set.

    General registers are indexed: ``regs[0x3]`` / ``regs[0x3] = 7``.
    Indices come from 4-bit instruction fields, so anything outside
    0..15 is a caller bug and raises IndexError.
    """

    __slots__ = ('_v', 'I', 'PC', 'SP', 'DT', 'ST', 'cycles')

    def __init__(self):
        self._v = [0] * NUM_V
        self.I: int = 0
        self.PC: int = PROGRAM_BASE
        self.SP: int = STACK_BASE
        self.DT: int = 0
        self.ST: int = 0
        self.cycles: int = 0   # instructions executed since reset

    # --- General registers ---

    @staticmethod
    def _check(index: int):
        if not 0 <= index < NUM_V:
            raise IndexError(f"register index {index!r} outside V0-VF")

    def __getitem__(self, index: int) -> int:
        self._check(index)
        return self._v[index]

    def __setitem__(self, index: int, value: int):
        self._check(index)
        self._v[index] = value & 0xFF

    def __len__(self) -> int:
        return NUM_V

    @property
    def flag(self) -> int:
        return self._v[VF]

    @property
    def V(self) -> tuple:
        """Read-only copy of V0-VF."""
        return tuple(self._v)

    # --- Display ---

    def display(self) -> str:
        """Format register state for debugging."""
        v = ' '.join(f"V{i:X}={val:02X}" for i, val in enumerate(self._v))
        return (f"PC={self.PC:03X} I={self.I:03X} SP={self.SP:02X} "
                f"DT={self.DT:02X} ST={self.ST:02X} {v}")

    def reset(self):
        """Reset CPU to power-on state."""
        self._v = [0] * NUM_V
        self.I = 0
        self.PC = PROGRAM_BASE
        self.SP = STACK_BASE
        self.DT = 0
        self.ST = 0
        self.cycles = 0
