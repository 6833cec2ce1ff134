"""
Logging for the auction core.

Every subsystem logs through a child of the "cricauction" logger
(cricauction.session, cricauction.service, ...). Console output is
coloured; a plain-text cricauction.log is added when a log directory is
given.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

import colorlog

ROOT = "cricauction"
LOG_FILE = "cricauction.log"

CONSOLE_FORMAT = "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s"
FILE_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

_configured = False


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    (Re)configure the cricauction logger tree.

    Replaces any handlers installed earlier, so the CLI can raise the
    level after modules have already logged with the defaults.

    Args:
        level: Threshold for every handler
        log_dir: If set, also write LOG_FILE into this directory
    """
    global _configured

    root = logging.getLogger(ROOT)
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = colorlog.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(
        colorlog.ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT, log_colors=LOG_COLORS)
    )
    root.addHandler(console)

    if log_dir is not None:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path / LOG_FILE)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(file_handler)

    _configured = True
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger for one subsystem, e.g. get_logger("session")."""
    if not _configured:
        setup_logging()
    return logging.getLogger(f"{ROOT}.{name}")
