"""
CHIP-8 VM - 4K Memory Map with Region Checking

Memory map (4095 addressable bytes, $000-$FFE):
  $000-$08F  unmapped - every access is refused
  $090-$0DF  FONT     16 glyphs x 5 bytes (digits 0-F)
  $0E0-$0FF  STACK    16 x 2-byte return address slots
  $100-$1FF  DISPLAY  64x32 1-bit bitmap, MSB = left-most pixel
  $200-$FFE  PROGRAM  ROM image + program data
  $FFF       unmapped

Accesses outside the four regions never touch the array. Reads return an
all-ones sentinel, writes return False, and the access is logged and
recorded as an OUT_OF_RANGE fault so a broken ROM keeps running in a
defined state. 16-bit accesses are big-endian and must fit inside a
single region.
"""

import logging
from typing import Dict, List, Optional

from ..faults import Fault, FaultKind

log = logging.getLogger(__name__)

MEMORY_SIZE = 0xFFF          # $000-$FFE

FONT_BASE = 0x090
FONT_END = 0x0DF
STACK_BASE = 0x0E0
STACK_END = 0x0FF
DISPLAY_BASE = 0x100
DISPLAY_END = 0x1FF
PROGRAM_BASE = 0x200
PROGRAM_END = 0xFFE
PROGRAM_SIZE = PROGRAM_END - PROGRAM_BASE + 1

SENTINEL8 = 0xFF
SENTINEL16 = 0xFFFF


class MemoryRegion:
    """A named region in the 4K address space."""
    def __init__(self, name: str, start: int, end: int):
        self.name = name
        self.start = start
        self.end = end  # inclusive

    def contains(self, addr: int) -> bool:
        return self.start <= addr <= self.end

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def __repr__(self) -> str:
        return f"MemoryRegion({self.name!r}, 0x{self.start:03X}, 0x{self.end:03X})"


class Memory:
    """Byte-addressable CHIP-8 memory with region-checked access.

    The font table is read-only by convention only: the interpreter never
    writes there, but a ROM that does is not stopped.
    """

    REGIONS = [
        MemoryRegion('FONT',    FONT_BASE,    FONT_END),
        MemoryRegion('STACK',   STACK_BASE,   STACK_END),
        MemoryRegion('DISPLAY', DISPLAY_BASE, DISPLAY_END),
        MemoryRegion('PROGRAM', PROGRAM_BASE, PROGRAM_END),
    ]

    def __init__(self):
        self._mem = bytearray(MEMORY_SIZE)

        # addr -> region, None where unmapped
        self._region_map: List[Optional[MemoryRegion]] = [None] * MEMORY_SIZE
        for region in self.REGIONS:
            for addr in range(region.start, region.end + 1):
                self._region_map[addr] = region

        self.fault_count = 0
        self.last_fault: Optional[Fault] = None

    # --- Region lookup ---

    def region_at(self, addr: int) -> Optional[MemoryRegion]:
        if 0 <= addr < MEMORY_SIZE:
            return self._region_map[addr]
        return None

    def is_mapped(self, addr: int, width: int = 1) -> bool:
        """True if ``width`` bytes starting at addr lie in one region."""
        region = self.region_at(addr)
        if region is None:
            return False
        return region.contains(addr + width - 1)

    def _out_of_range(self, addr: int, width: int, access: str):
        self.fault_count += 1
        self.last_fault = Fault(FaultKind.OUT_OF_RANGE, addr & 0xFFFF,
                                detail=f"{width * 8}-bit {access}")
        log.warning("Out-of-range %d-bit %s at 0x%03X", width * 8, access, addr)

    # --- Core read/write ---

    def read8(self, addr: int) -> int:
        """Read an 8-bit value. Unmapped addresses read as 0xFF."""
        if not self.is_mapped(addr):
            self._out_of_range(addr, 1, 'read')
            return SENTINEL8
        return self._mem[addr]

    def write8(self, addr: int, value: int) -> bool:
        """Write an 8-bit value. Returns False if the address is unmapped."""
        if not self.is_mapped(addr):
            self._out_of_range(addr, 1, 'write')
            return False
        self._mem[addr] = value & 0xFF
        return True

    def read16(self, addr: int) -> int:
        """Read a big-endian 16-bit value. Straddling reads return 0xFFFF."""
        if not self.is_mapped(addr, 2):
            self._out_of_range(addr, 2, 'read')
            return SENTINEL16
        return (self._mem[addr] << 8) | self._mem[addr + 1]

    def write16(self, addr: int, value: int) -> bool:
        """Write a big-endian 16-bit value. Both bytes or neither."""
        if not self.is_mapped(addr, 2):
            self._out_of_range(addr, 2, 'write')
            return False
        self._mem[addr] = (value >> 8) & 0xFF
        self._mem[addr + 1] = value & 0xFF
        return True

    # --- Bulk access ---

    def load_region(self, base_addr: int, data: bytes) -> bool:
        """Copy ``data`` to base_addr. The whole span must fit one region.

        Used for font install and program load; nothing is written when
        the span does not fit.
        """
        if not data:
            return self.is_mapped(base_addr)
        if not self.is_mapped(base_addr, len(data)):
            self._out_of_range(base_addr, len(data), 'load')
            return False
        self._mem[base_addr:base_addr + len(data)] = data
        return True

    def fill(self, start: int, end: int, value: int = 0x00):
        """Fill [start, end] inclusive. Only used on whole regions."""
        self._mem[start:end + 1] = bytes([value & 0xFF]) * (end - start + 1)

    def snapshot(self, start: int, end: int) -> bytes:
        """Bytes copy of [start, end] inclusive, no region checks."""
        return bytes(self._mem[start:end + 1])

    def diff_snapshots(self, snap_a: bytes, snap_b: bytes,
                       base_addr: int = PROGRAM_BASE) -> Dict[int, tuple]:
        """Compare two snapshots, return {addr: (old, new)} for changes."""
        changes = {}
        for i in range(min(len(snap_a), len(snap_b))):
            if snap_a[i] != snap_b[i]:
                changes[base_addr + i] = (snap_a[i], snap_b[i])
        return changes

    def clear_faults(self):
        self.fault_count = 0
        self.last_fault = None

    # --- Hex dump ---

    def hexdump(self, start: int, length: int = 256) -> str:
        """Produce a hex dump of memory for debugging. Unmapped bytes show as --."""
        lines = []
        for offset in range(0, length, 16):
            addr = start + offset
            cells = []
            text = []
            for i in range(16):
                a = addr + i
                if self.region_at(a) is None:
                    cells.append('--')
                    text.append(' ')
                else:
                    b = self._mem[a]
                    cells.append(f'{b:02X}')
                    text.append(chr(b) if 0x20 <= b < 0x7F else '.')
            lines.append(f'{addr:03X}  {" ".join(cells)}  {"".join(text)}')
        return '\n'.join(lines)
