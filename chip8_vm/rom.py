"""
CHIP-8 VM - ROM loader

Reads a raw ROM image from disk and checks it before anything runs:
empty, unreadable and oversize files are rejected with RomLoadError.
"""

import logging
from pathlib import Path

from .faults import Fault, FaultKind
from .mem.memory import PROGRAM_BASE, PROGRAM_SIZE

log = logging.getLogger(__name__)


class RomLoadError(Exception):
    """ROM could not be used; ``fault`` carries the RESOURCE_LOAD_FAILURE."""

    def __init__(self, path, detail: str):
        self.path = Path(path)
        self.fault = Fault(FaultKind.RESOURCE_LOAD_FAILURE, PROGRAM_BASE, detail=detail)
        super().__init__(f"{self.path}: {detail}")


def read_rom(path) -> bytes:
    """Return the bytes of a ROM file that fits in program space."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise RomLoadError(path, f"unreadable ({e.strerror or e})") from e

    if not data:
        raise RomLoadError(path, "file is empty")
    if len(data) > PROGRAM_SIZE:
        raise RomLoadError(path, f"{len(data)} bytes, program space holds {PROGRAM_SIZE}")

    log.info("Read ROM %s (%d bytes)", path, len(data))
    return data


def load_rom(emu, path) -> bytes:
    """read_rom() then Emulator.load_program()."""
    data = read_rom(path)
    if not emu.load_program(data):
        raise RomLoadError(path, emu.fault.detail if emu.fault else "load failed")
    return data
