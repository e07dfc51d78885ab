"""
Logging setup for the library CLI.

``setup_logging`` attaches a console handler (and optionally a file handler)
to the root logger, once per process.
"""

import logging
from pathlib import Path
from typing import Optional


def setup_logging(level: str = "WARNING", logfile: Optional[str] = None) -> None:
    """Configure the root logger.

    Parameters
    ----------
    level : str
        Logging level name, case insensitive. Unknown names fall back to
        ``WARNING``.
    logfile : Optional[str]
        Extra file to write log records to.
    """
    logger = logging.getLogger()
    if logger.handlers:
        return

    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if logfile:
        file_handler = logging.FileHandler(Path(logfile).resolve(), encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
