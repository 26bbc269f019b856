"""Logging for the ``finporter_fido`` package.

Library modules only ever call :func:`get_logger` and never attach handlers.
The CLI calls :func:`configure_logging` once per invocation with the
``--log-level`` value, falling back to ``FINPORTER_FIDO_LOG_LEVEL`` and then
INFO.

Importers log each rejected row, with the reason, at DEBUG, and a per-document
summary at DEBUG. ``--log-level DEBUG`` is therefore the way to find out why a
row ended up in the reject sink.
"""

from __future__ import annotations

import logging
import os
import sys

PACKAGE_LOGGER = "finporter_fido"
LOG_LEVEL_ENV = "FINPORTER_FIDO_LOG_LEVEL"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or the environment when ``None``) into a logging level.

    Accepts ints, numeric strings and level names in any case. Unknown names
    raise ``ValueError`` so a typo on the command line is not silently ignored.
    """

    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level

    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    try:
        return logging.getLevelNamesMapping()[name]
    except KeyError:
        raise ValueError(f"unknown log level: {level!r}") from None


def configure_logging(level: int | str | None = None) -> int:
    """Send package records to the current ``sys.stderr`` at ``level``.

    Safe to call repeatedly: the previously installed handler is replaced, so
    the stream always follows the process's current stderr. Returns the
    resolved level.
    """

    global _handler

    resolved = resolve_level(level)
    pkg = logging.getLogger(PACKAGE_LOGGER)
    for h in list(pkg.handlers):
        if h is _handler or isinstance(h, logging.NullHandler):
            pkg.removeHandler(h)

    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    pkg.addHandler(_handler)
    pkg.setLevel(resolved)
    # stdout carries decoded records; keep package output off the root logger.
    pkg.propagate = False
    return resolved


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger, giving the package a ``NullHandler`` until configured."""

    pkg = logging.getLogger(PACKAGE_LOGGER)
    if not pkg.handlers:
        pkg.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["LOG_LEVEL_ENV", "PACKAGE_LOGGER", "configure_logging", "get_logger", "resolve_level"]
