"""Logging configuration for git-branch-steward"""
import logging
import sys
from pathlib import Path
from typing import Optional, Union

DEFAULT_LOG_FILE = Path.home() / '.git-branch-steward' / 'git-branch-steward.log'

DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Colors level names when stderr is a terminal."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname)
        if color and sys.stderr.isatty():
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(verbose: bool = False, debug: bool = False,
                  log_file: Optional[Union[str, Path]] = None) -> None:
    """
    Configure logging for the application.

    Console output goes to stderr: WARNING by default, INFO with ``verbose``,
    DEBUG with ``debug``. A log file receives every DEBUG record; it is
    written when ``log_file`` is given (long-running ``watch`` sessions) and
    always in debug mode.

    Args:
        verbose: If True, show INFO level messages
        debug: If True, show DEBUG level messages and write the default log file
        log_file: Explicit log file path
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    if debug and log_file is None:
        log_file = DEFAULT_LOG_FILE

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.DEBUG if log_file else level)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode='w' if debug else 'a')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=DETAILED_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    if debug:
        console_handler.setFormatter(ColoredFormatter(fmt=DETAILED_FORMAT, datefmt=DATE_FORMAT))
    else:
        console_handler.setFormatter(ColoredFormatter(fmt='[%(name)s] %(levelname)s %(message)s'))
    root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, named without the package prefix."""
    for prefix in ('git_branch_steward.', 'services.'):
        if name.startswith(prefix):
            name = name[len(prefix):]
    return logging.getLogger(name)
