"""Logging configuration for git-workon

Diagnostics go to stderr through the ``logging`` module; command results are
printed with rich. ``--debug`` also keeps a log of the last run on disk.
"""
import logging
import sys
from pathlib import Path

LOG_DIR = Path.home() / ".git-workon"
LOG_FILE_NAME = "git-workon.log"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
SHORT_FORMAT = "[%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_PACKAGE_PREFIXES = ("git_workon.", "services.")


class ColoredFormatter(logging.Formatter):
    """Colors the level name when stderr is a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt=None, datefmt=None, use_color=None):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = sys.stderr.isatty() if use_color is None else use_color

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno)
        if not self.use_color or color is None:
            return super().format(record)
        # Don't leak the escape codes into other handlers sharing the record
        original = record.levelname
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def _level_for(verbose: bool, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """
    Configure the root logger for one invocation.

    Args:
        verbose: Show INFO messages (git commands being run, hooks, copies)
        debug: Show DEBUG messages with timestamps and write them to
            ~/.git-workon/git-workon.log, replaced on every run
    """
    level = _level_for(verbose, debug)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    if debug:
        stderr_handler.setFormatter(ColoredFormatter(DETAILED_FORMAT, DATE_FORMAT))
    else:
        stderr_handler.setFormatter(ColoredFormatter(SHORT_FORMAT))
    root_logger.addHandler(stderr_handler)

    if debug:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(LOG_DIR / LOG_FILE_NAME, mode="w")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, DATE_FORMAT))
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, named without the package prefix (``core.workon``, ``git.worktrees``)."""
    for prefix in _PACKAGE_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix):]
    return logging.getLogger(name)
