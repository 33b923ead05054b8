# fleetwatch/utils/logger.py
"""
Centralised logging configuration for the entire application.
Everything goes to the console and logs/fleetwatch.log; ENTRY/EXIT transitions
are additionally written to logs/transitions.log as a plain audit trail.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from fleetwatch.config import settings

LOG_LEVEL = settings.LOG_LEVEL.upper()
LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs")
os.makedirs(LOG_DIR, exist_ok=True)

TRANSITION_LOGGER = "fleetwatch.transitions"
_QUIET_LOGGERS = ("httpx", "httpcore", "urllib3")

_configured = False


def _rotating_handler(filename: str, fmt: logging.Formatter, level) -> RotatingFileHandler:
    # 10 × 5MB per file
    handler = RotatingFileHandler(
        filename=os.path.join(LOG_DIR, filename),
        maxBytes=5 * 1024 * 1024,
        backupCount=10,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setLevel(LOG_LEVEL)
    console.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    root.addHandler(console)
    root.addHandler(_rotating_handler("fleetwatch.log", fmt, LOG_LEVEL))

    audit_fmt = logging.Formatter(fmt="%(asctime)s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    logging.getLogger(TRANSITION_LOGGER).addHandler(
        _rotating_handler("transitions.log", audit_fmt, logging.INFO)
    )

    # Provider polling every few seconds floods INFO otherwise
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Call this at the top of every module."""
    _configure_root_logger()
    return logging.getLogger(name)


def get_transition_logger() -> logging.Logger:
    """Logger whose records also land in transitions.log."""
    _configure_root_logger()
    return logging.getLogger(TRANSITION_LOGGER)
