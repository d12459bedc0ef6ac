"""
CHIP-8 VM - Display buffer tests

Sprite XOR, collision over the whole sprite, wrap on both axes.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from chip8_vm.mem.memory import Memory, DISPLAY_BASE
from chip8_vm.periph.display import DisplayBuffer, BUFFER_SIZE, bitmap_rows

SPRITE = 0x300


def _display(*sprite_rows):
    mem = Memory()
    mem.load_region(SPRITE, bytes(sprite_rows))
    return DisplayBuffer(mem), mem


class TestDraw:
    def test_byte_aligned(self):
        disp, mem = _display(0xF0)
        assert disp.draw_sprite(0, 0, SPRITE, 1) is False
        assert mem.read8(DISPLAY_BASE) == 0xF0
        assert disp.pixel(0, 0) and disp.pixel(3, 0) and not disp.pixel(4, 0)

    def test_shifted(self):
        """x=4: high nibble lands in the low half of byte 0, rest spills into byte 1."""
        disp, mem = _display(0xFF)
        disp.draw_sprite(4, 0, SPRITE, 1)
        assert mem.read8(DISPLAY_BASE) == 0x0F
        assert mem.read8(DISPLAY_BASE + 1) == 0xF0

    def test_horizontal_wrap(self):
        disp, mem = _display(0xFF)
        disp.draw_sprite(60, 0, SPRITE, 1)
        assert mem.read8(DISPLAY_BASE + 7) == 0x0F
        assert mem.read8(DISPLAY_BASE + 0) == 0xF0
        assert mem.read8(DISPLAY_BASE + 8) == 0x00   # stays on row 0

    def test_vertical_wrap(self):
        disp, mem = _display(0x80, 0x80)
        disp.draw_sprite(0, 31, SPRITE, 2)
        assert disp.pixel(0, 31)
        assert disp.pixel(0, 0)

    def test_coordinates_wrap_before_drawing(self):
        disp, _ = _display(0x80)
        disp.draw_sprite(64 + 2, 32 + 1, SPRITE, 1)
        assert disp.pixel(2, 1)

    def test_double_draw_erases_with_collision(self):
        disp, mem = _display(0x3C, 0x42, 0x3C)
        assert disp.draw_sprite(10, 5, SPRITE, 3) is False
        assert disp.draw_sprite(10, 5, SPRITE, 3) is True
        assert disp.snapshot() == bytes(BUFFER_SIZE)

    def test_collision_in_early_row_is_kept(self):
        """A hit in row 0 counts even when the last row hits nothing."""
        disp, mem = _display(0x80, 0x00)
        mem.write8(DISPLAY_BASE, 0x80)
        assert disp.draw_sprite(0, 0, SPRITE, 2) is True

    def test_no_collision_when_only_setting(self):
        disp, mem = _display(0x0F)
        mem.write8(DISPLAY_BASE, 0xF0)
        assert disp.draw_sprite(0, 0, SPRITE, 1) is False
        assert mem.read8(DISPLAY_BASE) == 0xFF

    def test_zero_rows(self):
        disp, _ = _display(0xFF)
        assert disp.draw_sprite(0, 0, SPRITE, 0) is False
        assert disp.snapshot() == bytes(BUFFER_SIZE)


class TestClearAndDirty:
    def test_clear(self):
        disp, _ = _display(0xFF)
        disp.draw_sprite(0, 0, SPRITE, 1)
        disp.clear()
        assert disp.snapshot() == bytes(BUFFER_SIZE)

    def test_dirty_flag(self):
        disp, _ = _display(0xFF)
        assert disp.consume_dirty() is True
        assert disp.consume_dirty() is False
        disp.draw_sprite(0, 0, SPRITE, 1)
        assert disp.consume_dirty() is True


class TestObservation:
    def test_bitmap_rows_shape(self):
        rows = bitmap_rows(bytes([0x81]) + bytes(BUFFER_SIZE - 1))
        assert len(rows) == 32
        assert all(len(r) == 64 for r in rows)
        assert rows[0][0] and rows[0][7] and not rows[0][1]

    def test_render_text(self):
        disp, _ = _display(0xC0)
        disp.draw_sprite(0, 0, SPRITE, 1)
        lines = disp.render_text(on='#', off='.').splitlines()
        assert len(lines) == 32
        assert lines[0].startswith('##..')
        assert lines[1] == '.' * 64
