"""Shared logging configuration helpers for the API process."""

from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_SQL_LOGGERS = ("sqlalchemy.engine", "aiosqlite")


def resolve_log_level(level: str) -> int:
    """Map a level name to its numeric value, falling back to INFO."""

    normalized_level = level.strip().upper() or "INFO"
    resolved = getattr(logging, normalized_level, logging.INFO)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(*, level: str) -> None:
    """Configure process logging with consistent format and runtime level.

    Statement-level SQL logging stays at WARNING unless DEBUG is requested, so
    bound lookup parameters only reach the log when explicitly asked for.
    """

    resolved_level = resolve_log_level(level)
    logging.basicConfig(level=resolved_level, format=_LOG_FORMAT)

    sql_level = logging.DEBUG if resolved_level <= logging.DEBUG else logging.WARNING
    for name in _SQL_LOGGERS:
        logging.getLogger(name).setLevel(sql_level)
