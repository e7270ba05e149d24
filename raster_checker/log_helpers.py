"""Logging setup for the raster checker scripts."""

import logging
import sys
from pathlib import Path
from typing import Optional

CONSOLE_FORMAT = '%(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(log_file: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Route the root logger to stdout and, optionally, a fresh log file.

    The console gets bare messages so the text report reads as printed.
    The file also records the time, logger name and level of each line.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode='w')
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    # GDAL messages are forwarded through these at DEBUG/INFO
    logging.getLogger('rasterio').setLevel(logging.WARNING)

    return logger


def shutdown_logger(logger: Optional[logging.Logger]) -> None:
    """Close and detach every handler, releasing the log file."""
    if logger is None:
        return
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
