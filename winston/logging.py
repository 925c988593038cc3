"""Logging utilities for winston commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

_LOGGER_NAME = "winston"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a component logger under the winston hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    levels: Mapping[str, str] | None = None,
) -> logging.Logger:
    """Configure the winston logger with console output and an optional file sink.

    ``levels`` maps component names (``"fetch.git"``, ``"llm"``) to level
    names and overrides the package level for that component only.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers so repeated CLI invocations in one process do not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    _reset_component_levels()

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter("[winston] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    for component, component_level in (levels or {}).items():
        get_logger(component).setLevel(component_level.upper())

    return logger


def _reset_component_levels() -> None:
    prefix = f"{_LOGGER_NAME}."
    for name, existing in list(logging.Logger.manager.loggerDict.items()):
        if name.startswith(prefix) and isinstance(existing, logging.Logger):
            existing.setLevel(logging.NOTSET)


__all__ = ["configure_logging", "get_logger"]
