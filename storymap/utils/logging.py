"""Structured logging setup using structlog.

Implements a **dual-renderer pattern**: one shared processor chain
(context vars, log level, timestamps, stack info) feeds either a coloured
ConsoleRenderer for local development or a JSONRenderer for production.
The renderer follows ``app_env`` (falling back to the ``APP_ENV``
environment variable), or is forced via ``json_output``.

Standard-library ``logging`` is rewired through the same formatter so
that httpx, uvicorn and aiosqlite output is formatted identically.

``story_context`` binds the story being worked on (and the view mode) to
every log line emitted inside it, which is how request handlers and the
view orchestrator tag their output without threading ids through calls.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.StackInfoRenderer(),
    structlog.dev.set_exc_info,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _select_renderer(app_env: str, json_output: bool) -> structlog.types.Processor:
    if json_output or app_env == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    app_env: str | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON output regardless of environment.
        app_env: Deployment environment; ``"production"`` selects JSON.
                 Defaults to the ``APP_ENV`` environment variable.

    Returns:
        A configured structlog BoundLogger.
    """
    env = app_env or os.environ.get("APP_ENV", "development")
    renderer = _select_renderer(env, json_output)
    level = logging.getLevelName(log_level.upper())

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_SHARED_PROCESSORS,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a named structlog logger, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)


@contextmanager
def story_context(story_id: str | None, mode: str | None = None) -> Iterator[None]:
    """Bind ``story_id`` (and optionally ``mode``) to all log lines in scope."""
    bindings: dict[str, str] = {}
    if story_id:
        bindings["story_id"] = story_id
    if mode:
        bindings["mode"] = mode
    with structlog.contextvars.bound_contextvars(**bindings):
        yield
