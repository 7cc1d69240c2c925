"""Centralized logging configuration for the ``pl_analysis`` package.

Library modules call ``get_logger("pl_analysis.<module>")`` and never attach
handlers of their own; until an entrypoint runs :func:`configure_logging` the
package logger only carries a ``NullHandler``.

The level comes from the caller, else from ``PL_ANALYSIS_LOG_LEVEL``, else
``INFO``. Level names are validated: a typo such as ``--log-level DEBG`` is an
error rather than a silent fallback.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

LOG_LEVEL_ENV = "PL_ANALYSIS_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_PKG_LOGGER_NAME = "pl_analysis"
_CONFIGURED = False


def resolve_level(level: int | str | None = None) -> int:
    """Translate ``level`` (or the environment override) into a numeric level.

    Accepts ints, numeric strings and standard level names in any case.
    Raises :class:`ValueError` for anything else.
    """

    source = ""
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.INFO
        source = f" (from {LOG_LEVEL_ENV})"
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelNamesMapping().get(name)
    if numeric is None:
        raise ValueError(f"Unknown log level {level!r}{source}")
    return numeric


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Attach a single ``StreamHandler`` to the package logger (once per process).

    Later calls are no-ops. Records do not propagate to the root logger.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved = resolve_level(level)
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
