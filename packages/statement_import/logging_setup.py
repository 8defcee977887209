"""Centralized logging configuration for the ``statement_import`` package.

- ``configure_logging(...)``: attach a single ``StreamHandler`` to the package
  root logger (``"statement_import"``). Called once by entrypoints (the CLI).
- ``get_logger(name)``: acquire a logger by name, attaching a ``NullHandler``
  to the package root when nothing has been configured yet.

Library modules never attach their own handlers; they call
``get_logger("statement_import.<module>")`` and leave output decisions to the
host application.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "statement_import"
_LEVEL_ENV = "STATEMENT_IMPORT_LOG_LEVEL"
_CONFIGURED = False


def _level_from_name(name: str) -> int | None:
    name = name.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = getattr(logging, name, None)
    return numeric if isinstance(numeric, int) else None


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        parsed = _level_from_name(level)
        if parsed is not None:
            return parsed
    # Env override when no usable explicit level was given
    env_val = os.getenv(_LEVEL_ENV)
    if env_val:
        parsed = _level_from_name(env_val)
        if parsed is not None:
            return parsed
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package root logger exactly once.

    ``level`` accepts an ``int`` or a level name. When ``None``, the
    ``STATEMENT_IMPORT_LOG_LEVEL`` environment variable is used, falling back
    to ``logging.INFO``.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(
        logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s")
    )

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name with library-safe defaults."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
