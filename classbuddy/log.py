"""
Logging.

Diagnostics (skipped ledger rows, unreadable attendance files, failed sync
requests) are structlog events written to stderr. stdout belongs to the
command output, so `classbuddy stats > report.txt` never picks up a warning.

Defaults to WARNING: a normal CLI run prints nothing extra. Set
CLASSBUDDY_LOG_LEVEL=DEBUG to see everything, CLASSBUDDY_LOG_JSON=1 for one
JSON object per line.
"""

from __future__ import annotations

import logging
import sys

import structlog

DEFAULT_LEVEL = "WARNING"


def _level(name: str) -> int:
    level = logging.getLevelName(str(name or DEFAULT_LEVEL).upper())
    # getLevelName returns "Level X" for unknown names
    return level if isinstance(level, int) else logging.WARNING


def _renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(json_output: bool = False, log_level: str = DEFAULT_LEVEL) -> None:
    level = _level(log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            _renderer(json_output),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # requests/urllib3 log through the standard library
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr, level=level)


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Logger carrying the module name as `logger`."""
    # structlog.get_logger(logger=...) collides with wrap_logger's `logger`
    # parameter, so build the same lazy proxy it would return.
    return structlog._config.BoundLoggerLazyProxy(
        None, initial_values={"logger": name}, logger_factory_args=()
    )
