"""
CHIP-8 VM - 16-key Hex Keypad

Tracks which of the keys 0-F are held. Physical layout of the original
keypad, and the host keys the pygame frontend maps onto it:

  1 2 3 C        1 2 3 4
  4 5 6 D   <-   Q W E R
  7 8 9 E        A S D F
  A 0 B F        Z X C V
"""

NUM_KEYS = 16


class Keypad:
    def __init__(self):
        self._held = [False] * NUM_KEYS

    @staticmethod
    def _check(key: int):
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"key {key!r} outside 0-F")

    def set_key(self, key: int, pressed: bool):
        self._check(key)
        self._held[key] = bool(pressed)

    def is_pressed(self, key: int) -> bool:
        return self._held[key & 0xF]

    @property
    def held(self) -> tuple:
        return tuple(k for k in range(NUM_KEYS) if self._held[k])

    def reset(self):
        self._held = [False] * NUM_KEYS
