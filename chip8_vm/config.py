"""
CHIP-8 VM - Runtime configuration

Quirk toggles are fixed for the lifetime of a run and chosen before the
first instruction executes. Both default to the original COSMAC VIP
interpreter behavior.

  shift_uses_vx           8xy6/8xyE shift Vx in place instead of Vy
  load_store_keeps_index  Fx55/Fx65 leave I unchanged instead of I += x+1
"""

from dataclasses import dataclass, field
from typing import Optional


# =============================================================================
#  DEFAULTS
# =============================================================================
DEFAULT_IPS = 700            # instructions per wall-clock second
DEFAULT_SCALE = 4            # host pixels per CHIP-8 pixel
DEFAULT_TITLE = "CHIP-8"
MAX_BURST = 64               # instructions run in one pacing pass at most

TIMER_HZ = 60
FRAME_MS = 1000.0 / TIMER_HZ  # 16.67 ms


@dataclass(frozen=True)
class Quirks:
    shift_uses_vx: bool = False
    load_store_keeps_index: bool = False

    def describe(self) -> str:
        return (f"shift={'Vx' if self.shift_uses_vx else 'Vy'} "
                f"load/store={'keep I' if self.load_store_keeps_index else 'advance I'}")


@dataclass
class EmulatorConfig:
    """Everything the core and its adapters need to start a run.

    ``seed`` makes Cxkk reproducible; None seeds from the OS.
    """
    quirks: Quirks = field(default_factory=Quirks)
    instructions_per_second: int = DEFAULT_IPS
    scale: int = DEFAULT_SCALE
    seed: Optional[int] = None
    title: str = DEFAULT_TITLE
