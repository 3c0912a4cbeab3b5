"""botwire — Structured logging configuration.

Uses structlog for structured, levelled logging with consistent key names
across all layers.  All log entries include:
    - timestamp (ISO-8601)
    - level
    - module (Python logger name)
    - robot (bound via a context variable while a Robot is being built,
      started or halted)
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar, Token
from pathlib import Path
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

from botwire.config import Settings, get_settings

_ctx_robot: ContextVar[str | None] = ContextVar("robot", default=None)


def bind_robot_context(robot: str | None) -> Token[str | None]:
    """Bind the name of the robot being worked on to the current task / thread.

    Returns a token for :func:`reset_robot_context`.
    """
    return _ctx_robot.set(robot)


def reset_robot_context(token: Token[str | None]) -> None:
    _ctx_robot.reset(token)


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


def _inject_context_vars(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    """Add ContextVar values to every log record."""
    if (robot := _ctx_robot.get()) is not None:
        event_dict.setdefault("robot", robot)
    return event_dict

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        _inject_context_vars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def _build_formatter(format: str) -> structlog.stdlib.ProcessorFormatter:
    if format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def configure_logging(
    level: str | None = None,
    format: str | None = None,
    log_file: str | Path | None = None,
    settings: Settings | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Call once at program startup, before any robot is built.  Arguments left
    as ``None`` are read from the ``logging`` block of the settings
    (``BOTWIRE_LOGGING__LEVEL``, ``BOTWIRE_LOGGING__FORMAT``,
    ``BOTWIRE_LOGGING__FILE``).

    Args:
        level:    One of debug, info, warning, error, critical.
        format:   ``"console"`` for human-readable output, ``"json"`` for
                  machine-readable structured logs.
        log_file: Optional path to write logs to in addition to stdout.
        settings: Settings to read defaults from (default: the process-wide settings).
    """
    config = (settings or get_settings()).logging
    level = level or config.level
    log_file = log_file or config.file
    formatter = _build_formatter(format or config.format)

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(level.upper())


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger for *name*.

    Usage::

        log = get_logger(__name__)
        log.info("connection_starting", connection="arduino", port="/dev/ttyACM0")
    """
    return structlog.get_logger(name)
