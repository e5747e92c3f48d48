"""Logging configuration for the dojo CLI."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | int = logging.WARNING) -> logging.Logger:
    """Attach one stderr handler to the package logger."""
    logger = logging.getLogger("katadojo")
    logger.setLevel(level)
    if not any(getattr(handler, "_katadojo", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._katadojo = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
