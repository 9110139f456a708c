"""Structured logging configuration for tuikit.

Provides JSON or text logging. A full-screen terminal UI owns stderr while it
runs, so hosts usually pass ``log_file`` to keep records off the display.
"""

from __future__ import annotations

import logging
from typing import Optional

from pythonjsonlogger import jsonlogger


def _build_json_formatter() -> logging.Formatter:
    fields = [
        "asctime",
        "levelname",
        "name",
        "message",
        "module",
        "funcName",
        "lineno",
    ]
    fmt = " ".join([f"%({f})s" for f in fields])
    return jsonlogger.JsonFormatter(fmt=fmt)


def _build_text_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )


def configure_logging(
    level: str = "WARNING", fmt: str = "text", log_file: Optional[str] = None
) -> logging.Handler:
    level_upper = level.upper()
    log_level = getattr(logging, level_upper, logging.WARNING)

    root = logging.getLogger()
    root.setLevel(log_level)

    # Remove default handlers to avoid duplicate logs
    for h in list(root.handlers):
        root.removeHandler(h)

    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler()

    if fmt.lower() == "json":
        handler.setFormatter(_build_json_formatter())
    else:
        handler.setFormatter(_build_text_formatter())
    root.addHandler(handler)

    logging.getLogger("tuikit").setLevel(log_level)
    return handler


def configure_from_settings(settings=None) -> logging.Handler:
    """Apply logging options from :class:`~tuikit.settings.TuikitSettings`."""
    if settings is None:
        from .settings import get_settings

        settings = get_settings()
    return configure_logging(settings.log_level, settings.log_format, settings.log_file)
