import logging
import os
import sys
from typing import Optional

LOGGER_NAME = "actions_runner"
FORMAT_STR = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Custom formatter to add colors to console output."""

    cyan = "\x1b[36m"
    green = "\x1b[32m"
    yellow = "\x1b[33m"
    red = "\x1b[31m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    FORMATS = {
        logging.DEBUG: cyan + FORMAT_STR + reset,
        logging.INFO: green + FORMAT_STR + reset,
        logging.WARNING: yellow + FORMAT_STR + reset,
        logging.ERROR: red + FORMAT_STR + reset,
        logging.CRITICAL: bold_red + FORMAT_STR + reset,
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__(FORMAT_STR, datefmt=DATE_FMT)
        self.use_colors = use_colors

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno) if self.use_colors else None
        # Handle cases where level might be outside standard range
        if not log_fmt:
            log_fmt = FORMAT_STR
        formatter = logging.Formatter(log_fmt, datefmt=DATE_FMT)
        return formatter.format(record)


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Build the runner's logger for one invocation and return it.

    The level is decided here, once, from `verbose`; callers pass the returned
    logger to the components they construct instead of touching global state.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.DEBUG if verbose else logging.INFO

    # Clear existing handlers to prevent duplicate logs
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(level)
    logger.propagate = False

    # 1. Console handler on stderr, colored only for terminals
    stream = sys.stderr
    console_handler = logging.StreamHandler(stream)
    console_handler.setFormatter(ColoredFormatter(use_colors=stream.isatty()))
    logger.addHandler(console_handler)

    # 2. Optional file handler for persistence
    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FORMAT_STR, datefmt=DATE_FMT))
        logger.addHandler(file_handler)

    logger.debug("Logging initialized (level=%s)", logging.getLevelName(level))
    return logger
