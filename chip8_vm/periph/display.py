"""
CHIP-8 VM - Display Buffer

64x32 monochrome bitmap stored in the $100-$1FF memory region:
  - row-major, 8 bytes per row, 32 rows = 256 bytes
  - bit 7 of each byte is the left-most of its 8 pixels

The only mutations are clear() and draw_sprite(). Sprites are XORed in;
a pixel going 1 -> 0 anywhere in the sprite is a collision. Both axes
wrap, and the wrap is applied before any address is computed, so drawing
can never write outside the region.
"""

from typing import List

from ..mem.memory import DISPLAY_BASE, DISPLAY_END

WIDTH = 64
HEIGHT = 32
ROW_BYTES = WIDTH // 8
BUFFER_SIZE = ROW_BYTES * HEIGHT   # 256


class DisplayBuffer:
    def __init__(self, memory):
        self.mem = memory
        self.dirty = True   # renderer has not seen the current bitmap

    def clear(self):
        self.mem.fill(DISPLAY_BASE, DISPLAY_END, 0x00)
        self.dirty = True

    def _xor(self, offset: int, bits: int) -> bool:
        """XOR bits into one display byte. True if any set pixel was erased."""
        addr = DISPLAY_BASE + offset
        old = self.mem.read8(addr)
        self.mem.write8(addr, old ^ bits)
        return bool(old & bits)

    def draw_sprite(self, x: int, y: int, sprite_addr: int, rows: int) -> bool:
        """XOR ``rows`` sprite bytes from sprite_addr onto the screen at (x, y).

        Returns True if any pixel was turned off (collision). The result
        covers the whole sprite, not just the last row.
        """
        x %= WIDTH
        y %= HEIGHT
        col = x // 8
        shift = x % 8
        collision = False

        for row in range(rows):
            sprite = self.mem.read8(sprite_addr + row)
            line = ((y + row) % HEIGHT) * ROW_BYTES
            if self._xor(line + col, sprite >> shift):
                collision = True
            if shift:
                spill = (sprite << (8 - shift)) & 0xFF
                if self._xor(line + (col + 1) % ROW_BYTES, spill):
                    collision = True

        self.dirty = True
        return collision

    # --- Observation ---

    def snapshot(self) -> bytes:
        return self.mem.snapshot(DISPLAY_BASE, DISPLAY_END)

    def consume_dirty(self) -> bool:
        """Return and clear the dirty flag (renderer side)."""
        was_dirty = self.dirty
        self.dirty = False
        return was_dirty

    def pixel(self, x: int, y: int) -> bool:
        x %= WIDTH
        y %= HEIGHT
        byte = self.mem.snapshot(DISPLAY_BASE + y * ROW_BYTES + x // 8,
                                 DISPLAY_BASE + y * ROW_BYTES + x // 8)[0]
        return bool(byte & (0x80 >> (x % 8)))

    def rows(self) -> List[List[bool]]:
        return bitmap_rows(self.snapshot())

    def render_text(self, on: str = '█', off: str = ' ') -> str:
        return '\n'.join(''.join(on if p else off for p in row) for row in self.rows())


def bitmap_rows(bitmap: bytes) -> List[List[bool]]:
    """Unpack a 256-byte bitmap into 32 rows of 64 booleans."""
    rows = []
    for r in range(HEIGHT):
        row = []
        for byte in bitmap[r * ROW_BYTES:(r + 1) * ROW_BYTES]:
            row.extend(bool(byte & (0x80 >> bit)) for bit in range(8))
        rows.append(row)
    return rows
