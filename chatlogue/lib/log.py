"""Structured logging for chatlogue.

Log output always goes to stderr so that command output on stdout (JSON
summaries, event lines) stays machine-readable.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog._config import BoundLoggerLazyProxy
from structlog.types import EventDict, Processor, WrappedLogger


def _stderr_logger(*_: Any) -> structlog.PrintLogger:
    # Looked up per logger build, so a swapped sys.stderr (CliRunner, capsys) is honoured.
    return structlog.PrintLogger(file=sys.stderr)


def _drop_empty_source(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    if event_dict.get("source") == "":
        del event_dict["source"]
    return event_dict


def configure_logging(verbose: bool = False, json_logs: bool = False) -> None:
    """Configure structlog once per process (the CLI calls this at startup)."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _drop_empty_source,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if verbose else logging.INFO),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Lazy logger; it picks up whatever configuration is active when it logs."""
    if name:
        # `logger` collides with wrap_logger's first parameter, so build the lazy proxy directly.
        return BoundLoggerLazyProxy(None, initial_values={"logger": name})
    return structlog.get_logger()
