"""Structured logging setup.

Modules log through ``structlog.get_logger(__name__)`` with dotted event
names (``export.started``, ``mixdown.clip_skipped``). Until
``configure_logging`` runs, structlog's defaults print to stdout.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Optional

import structlog

from .config import LogLevel, get_config


def configure_logging(
    level: Optional[LogLevel] = None,
    json_output: Optional[bool] = None,
    log_file: Optional[Path] = None,
) -> None:
    """Configure structlog on top of stdlib logging.

    Console output goes to stderr so it never interleaves with command
    output on stdout. Safe to call more than once.

    Args:
        level: Minimum level (defaults to LOCALCUT_LOG_LEVEL, or DEBUG when
            LOCALCUT_DEBUG is set)
        json_output: Force JSON (True) or coloured console (False) rendering;
            defaults to JSON in production or when stderr is not a TTY
        log_file: Optional file receiving JSON lines
    """
    config = get_config()
    level = level or config.effective_log_level
    numeric_level = getattr(logging, level.value)

    if json_output is None:
        json_output = config.is_production or not sys.stderr.isatty()

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    console_renderer: Any
    if json_output:
        console_renderer = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                console_renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.JSONRenderer(),
                ],
            )
        )
        root_logger.addHandler(file_handler)

    structlog.get_logger(__name__).debug(
        "logging.configured",
        level=level.value,
        renderer="json" if json_output else "console",
        log_file=str(log_file) if log_file else None,
    )
