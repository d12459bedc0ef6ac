"""
CHIP-8 VM - Delay / Sound Timers

Both timers count down at 60 Hz regardless of how fast instructions run.
Decay is driven by wall-clock deltas handed to update(). Frames are
counted against the total time seen since reset, so the part of a frame
left over from one delta is carried into the next:

  update(elapsed_ms):
      elapsed += elapsed_ms
      frames = floor(elapsed * hz / 1000) - frames_so_far
      DT = max(0, DT - frames);  ST = max(0, ST - frames)

The running total is a Fraction. Each delta is snapped to the nearest
fraction with a denominator of at most 1000, so float deltas such as
1000/60 or 1000/3 count as the exact intervals they stand for and N
frame-sized deltas always give N frames.

Only the sound timer's value is modeled; nothing is played.
"""

from fractions import Fraction

from ..config import TIMER_HZ

MAX_DENOMINATOR = 1000


class TimerPeripheral:
    """60 Hz countdown for the DT and ST registers."""

    def __init__(self, regs, hz: int = TIMER_HZ):
        self.regs = regs
        self.hz = hz
        self._elapsed_ms = Fraction(0)
        self.frames = 0         # whole frames elapsed since reset

    def update(self, elapsed_ms: float) -> int:
        """Advance by elapsed wall-clock time. Returns frames elapsed."""
        if elapsed_ms <= 0:
            return 0
        self._elapsed_ms += Fraction(elapsed_ms).limit_denominator(MAX_DENOMINATOR)
        frames = int(self._elapsed_ms * self.hz // 1000) - self.frames
        if frames <= 0:
            return 0
        self.frames += frames
        self.regs.DT = max(0, self.regs.DT - frames)
        self.regs.ST = max(0, self.regs.ST - frames)
        return frames

    @property
    def sound_active(self) -> bool:
        return self.regs.ST > 0

    def reset(self):
        self._elapsed_ms = Fraction(0)
        self.frames = 0
