"""Logging configuration for skill_dispatch."""

from __future__ import annotations

import logging

_configured = False


def configure_logging(level: str | int = "INFO") -> None:
    """Attach one formatted stream handler to the package logger.

    Safe to call more than once; only the first call installs the handler,
    later calls only adjust the level.
    """

    global _configured

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger("skill_dispatch")
    package_logger.setLevel(level)
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    package_logger.addHandler(handler)
    _configured = True
