"""
Logging configuration for broadcast-verifier.

Console output goes to stdout so progress lines and the final report share
one stream. A log file can be added for CI artifacts.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
SIMPLE_FORMAT = "%(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str = "broadcast_verifier",
    level: int = logging.INFO,
    log_file: Optional[Union[Path, str]] = None,
    detailed: bool = False,
) -> logging.Logger:
    """
    Set up the package logger with a console handler and an optional file handler.

    Args:
        name: Logger name (the package logger covers every module)
        level: Logging level for the console
        log_file: Optional path; the file always receives DEBUG and the detailed format
        detailed: Whether the console uses the detailed format (includes file/line)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if log_file else level)

    # Prevent duplicate handlers when called more than once (tests, repeated runs)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter(DETAILED_FORMAT if detailed else SIMPLE_FORMAT, datefmt=DATE_FORMAT)
    )
    logger.addHandler(console_handler)

    if log_file is not None:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    # Output is owned by this logger; don't duplicate through the root logger
    logger.propagate = False
    return logger
