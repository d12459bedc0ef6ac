"""
CHIP-8 VM - Fault taxonomy

Core components report failures as values, never by raising:

  OUT_OF_RANGE           memory access outside the mapped regions.
                         Recovered: sentinel returned, execution continues.
  STACK_OVERFLOW         CALL with all stack slots in use.      Fatal.
  STACK_UNDERRUN         RET with an empty stack.               Fatal.
  UNKNOWN_OPCODE         word matched no instruction family.    Fatal.
  RESOURCE_LOAD_FAILURE  ROM too large / empty / unreadable.    Fatal,
                         surfaced before the run loop starts.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FaultKind(Enum):
    OUT_OF_RANGE = 'OUT_OF_RANGE'
    STACK_OVERFLOW = 'STACK_OVERFLOW'
    STACK_UNDERRUN = 'STACK_UNDERRUN'
    UNKNOWN_OPCODE = 'UNKNOWN_OPCODE'
    RESOURCE_LOAD_FAILURE = 'RESOURCE_LOAD_FAILURE'

    @property
    def fatal(self) -> bool:
        return self is not FaultKind.OUT_OF_RANGE


@dataclass(frozen=True)
class Fault:
    """One diagnosed failure.

    ``address`` is the memory address involved (for UNKNOWN_OPCODE and
    stack faults, the address of the offending instruction). ``word`` is
    the raw instruction word when one was being executed.
    """
    kind: FaultKind
    address: int
    word: Optional[int] = None
    detail: str = ''

    def describe(self) -> str:
        text = f"{self.kind.value} at 0x{self.address:03X}"
        if self.word is not None:
            text += f" (instruction 0x{self.word:04X})"
        if self.detail:
            text += f": {self.detail}"
        return text
