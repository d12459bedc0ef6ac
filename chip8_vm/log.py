"""
CHIP-8 VM - Logging setup

Same two-handler layout as the rest of the toolkit:
  - file handler captures everything (DEBUG+) under ``logs/``
  - rich console handler shows only important stuff (WARNING+ default)

Library modules only call ``logging.getLogger(__name__)``; handlers are
attached once, by whatever drives the run loop (normally chip8kit.py).
"""

from __future__ import annotations
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

LOG_DIR = Path.cwd() / "logs"
ROOT_LOGGER = "chip8_vm"


def setup_logging(
    level: int = logging.DEBUG,
    console_level: int = logging.WARNING,
    log_file: Optional[Path] = None,
    log_dir: Optional[Path] = None,
    write_file: bool = True,
) -> logging.Logger:
    """
    Configure and return the package logger.

    Log files: ``<log_dir>/chip8_YYYYMMDD_HHMMSS.log`` unless ``log_file``
    names one explicitly. Calling this twice is a no-op.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    if logger.handlers:
        return logger
    logger.setLevel(level)

    # ── File handler: captures everything (DEBUG+) ──
    if write_file:
        if log_file is None:
            log_dir = log_dir or LOG_DIR
            log_dir.mkdir(parents=True, exist_ok=True)
            ts = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = log_dir / f"chip8_{ts}.log"
        else:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)
        file_fmt = logging.Formatter(
            "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        fh = logging.FileHandler(str(log_file), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(file_fmt)
        logger.addHandler(fh)

    # ── Console handler: only important stuff (WARNING+ default) ──
    ch = RichHandler(
        level=console_level,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    ch.setLevel(console_level)
    logger.addHandler(ch)

    logger.info("Logger initialized: %s", ROOT_LOGGER)
    if write_file:
        logger.info("Log file: %s", log_file)
    logger.info("Console level: %s", logging.getLevelName(console_level))
    return logger
