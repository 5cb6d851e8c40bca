"""Logging setup for CLI invocations."""

from __future__ import annotations

import logging
from pathlib import Path

FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(log_file: Path | None = None, *, verbose: bool = False) -> logging.Logger:
    """Configure the ``tlsmem`` logger to write to the console and, optionally, a file."""
    logger = logging.getLogger("tlsmem")
    formatter = logging.Formatter(FORMAT)

    # Avoid duplicate handlers when invoked repeatedly in one process.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG)
    if log_file is not None:
        logger.info("Logging initialized. Output file: %s", log_file)
    return logger


__all__ = ["FORMAT", "setup_logging"]
