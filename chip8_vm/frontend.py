"""
CHIP-8 VM - pygame Frontend

Thin adapter around Emulator: polls pygame events into
deliver_key_event(), drives a pacing.Pacer, and repaints the window
whenever the display buffer is dirty. Everything runs on the calling
thread.

Host keys:
  1 2 3 4 / Q W E R / A S D F / Z X C V   CHIP-8 keypad (see periph/keypad.py)
  Backspace                                reset (program image kept)
  Escape / window close                    quit

Usage (programmatic):
    from chip8_vm.frontend import PygameFrontend
    PygameFrontend(emu, config).run()
"""

import logging
from typing import Optional

import pygame

from .config import EmulatorConfig
from .emu import StepResult
from .faults import Fault
from .pacing import Pacer
from .periph.display import HEIGHT, WIDTH, bitmap_rows

log = logging.getLogger(__name__)

KEY_MAP = {
    pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
    pygame.K_q: 0x4, pygame.K_w: 0x5, pygame.K_e: 0x6, pygame.K_r: 0xD,
    pygame.K_a: 0x7, pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
    pygame.K_z: 0xA, pygame.K_x: 0x0, pygame.K_c: 0xB, pygame.K_v: 0xF,
}

FG = (255, 255, 255)
BG = (0, 0, 0)
LOOP_FPS = 240       # event poll / pacing rate; instructions are paced separately


class PygameFrontend:
    def __init__(self, emu, config: Optional[EmulatorConfig] = None):
        self.emu = emu
        self.config = config or emu.config
        self.scale = max(1, self.config.scale)
        self.pacer = Pacer(emu, self.config.instructions_per_second)
        self._screen = None

    def run(self) -> Optional[Fault]:
        """Open the window and loop until quit or halt.

        Returns the fault that halted the program, None if the user quit.
        """
        pygame.init()
        try:
            pygame.display.set_caption(self.config.title)
            self._screen = pygame.display.set_mode((WIDTH * self.scale, HEIGHT * self.scale))
            clock = pygame.time.Clock()
            self._paint()

            while True:
                if not self._pump_events():
                    return None

                if self.pacer.advance() is StepResult.HALT:
                    self._paint()
                    return self.emu.fault

                if self.emu.display.consume_dirty():
                    self._paint()

                clock.tick(LOOP_FPS)
        finally:
            pygame.quit()

    def _pump_events(self) -> bool:
        """Forward input to the emulator. False when the user wants out."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            if event.type not in (pygame.KEYDOWN, pygame.KEYUP):
                continue
            pressed = event.type == pygame.KEYDOWN
            if pressed and event.key == pygame.K_ESCAPE:
                return False
            if pressed and event.key == pygame.K_BACKSPACE:
                log.info("Reset requested from keyboard")
                self.emu.reset()
                self.pacer.restart()
                continue
            key = KEY_MAP.get(event.key)
            if key is not None:
                self.emu.deliver_key_event(key, pressed)
        return True

    def _paint(self):
        self._screen.fill(BG)
        s = self.scale
        for y, row in enumerate(bitmap_rows(self.emu.snapshot_display())):
            for x, lit in enumerate(row):
                if lit:
                    self._screen.fill(FG, (x * s, y * s, s, s))
        pygame.display.flip()
