"""Logging utilities for tplforge commands."""

from __future__ import annotations

import logging

_LOGGER_NAME = "tplforge"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the tplforge hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def log_prefix(command: str | None = None) -> str:
    """``[tplforge dist]`` style tag shown in front of every console line."""
    return f"[{_LOGGER_NAME} {command}]" if command else f"[{_LOGGER_NAME}]"


def configure_logging(*, verbose: bool = False, command: str | None = None) -> logging.Logger:
    """Send tplforge records to stderr, tagged with the running subcommand.

    Extraction warnings (unresolved imports, skipped files) are the main
    output at the default INFO level; ``verbose`` adds per-file and
    per-command DEBUG lines.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked multiple times.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(f"{log_prefix(command)} %(levelname)s %(message)s"))
    logger.addHandler(handler)
    return logger


__all__ = ["configure_logging", "get_logger", "log_prefix"]
