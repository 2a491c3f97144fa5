# utils/logging_config.py
"""
Console + optional file logging for the canvas backend.
"""

import logging
import os
import sys
from datetime import datetime


def setup_logging(
    level: int = logging.INFO,
    log_to_file: bool = False,
    log_dir: str = "logs",
    log_filename_prefix: str = "knn_canvas",
):
    """
    Configures the root logger.

    Logs to stdout and, when log_to_file is set, to a timestamped file
    inside log_dir.

    Args:
        level (int): Logging level (e.g., logging.INFO, logging.DEBUG).
        log_to_file (bool): If True, also log to log_dir/<prefix>_<timestamp>.log.
        log_dir (str): Directory for log files.
        log_filename_prefix (str): Prefix for the log file name.
    """
    log_formatter = logging.Formatter(
        "%(asctime)s [%(levelname)-5.5s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Re-running setup (app factory in tests) must not stack handlers
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = os.path.join(log_dir, f"{log_filename_prefix}_{timestamp}.log")

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(log_formatter)
        root_logger.addHandler(file_handler)
        logging.getLogger(__name__).info("Logging to console and %s", log_file)
    else:
        logging.getLogger(__name__).info("Logging to console only")
