"""Shared logger accessor.

``get_logger`` falls back to a plain-text configuration when nothing has
installed the JSON handler yet (scripts, REPL sessions, unit tests).
"""

from __future__ import annotations

import logging

_configured = False


def get_logger(name: str, auto_configure: bool = True) -> logging.Logger:
    """Get a named logger, configuring a minimal fallback on first use.

    Args:
        name: Logger name (dotted component path, e.g. ``scheduler.traffic``)
        auto_configure: Whether to install the fallback configuration

    Returns:
        Logger instance
    """
    global _configured

    if auto_configure and not _configured:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        _configured = True

    logger = logging.getLogger(name)
    logger.propagate = True
    return logger


def is_configured() -> bool:
    return _configured


def mark_configured() -> None:
    """Called by ``shared.logging.json.configure_logging``."""
    global _configured
    _configured = True
