# config.py
"""
Runtime configuration, read from the environment once at import time.
Pass a subclass to create_app() to override values (tests do this).
"""

import logging
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # "dataset:<name>" for a built-in dataset, otherwise a CSV path
    DATA_SOURCE = os.environ.get("KNN_CANVAS_DATA", "dataset:moons")

    MARGIN = float(os.environ.get("KNN_CANVAS_MARGIN", 1.0))
    STEP = float(os.environ.get("KNN_CANVAS_STEP", 0.1))

    K_MIN = 1
    K_MAX = int(os.environ.get("KNN_CANVAS_K_MAX", 100))
    DEFAULT_K = int(os.environ.get("KNN_CANVAS_DEFAULT_K", 5))

    LOG_LEVEL = getattr(logging, os.environ.get("KNN_CANVAS_LOG_LEVEL", "INFO").upper(), logging.INFO)
    LOG_TO_FILE = _env_bool("KNN_CANVAS_LOG_TO_FILE", False)
    LOG_DIR = os.environ.get("KNN_CANVAS_LOG_DIR", "logs")
