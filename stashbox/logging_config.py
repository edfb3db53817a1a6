"""Logging configuration for StashBox."""

import logging
from pathlib import Path
from typing import Optional

import colorlog


CONSOLE_FORMAT = '%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s'
PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

# Third-party loggers that are chatty at DEBUG/INFO
QUIET_LOGGERS = ('boto3', 'botocore', 's3transfer', 'urllib3')


def _console_handler(colorize: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    if colorize:
        handler.setFormatter(colorlog.ColoredFormatter(
            CONSOLE_FORMAT, datefmt=DATE_FORMAT, log_colors=LOG_COLORS
        ))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(log_file: str) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None, colorize: bool = True):
    """Setup logging configuration for StashBox.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file (optional)
        colorize: Whether to colorize console output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    root_logger.addHandler(_console_handler(colorize))
    if log_file:
        root_logger.addHandler(_file_handler(log_file))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)
