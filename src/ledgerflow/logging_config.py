"""structlog configuration for ledgerflow."""

import logging
import sys
import threading
from typing import Any, Optional, TextIO

import structlog

_configured = False
_lock = threading.Lock()


class _StreamLoggerFactory:
    """Create print loggers bound to the stream current at call time.

    The CLI swaps ``sys.stderr`` under test runners, so the stream is looked
    up per logger instead of once at configuration time.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    def __call__(self, *args: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file=self._stream or sys.stderr)


def configure_logging(level: str = "INFO", json: bool = False, stream: Optional[TextIO] = None) -> None:
    """Configure structlog once per process.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        json: Render one JSON object per line instead of console output
        stream: Output stream, defaults to stderr so CLI output stays clean
    """
    global _configured
    with _lock:
        if _configured:
            return

        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            numeric_level = logging.INFO

        renderer: Any
        if json:
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(colors=False)

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                renderer,
            ],
            wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
            context_class=dict,
            logger_factory=_StreamLoggerFactory(stream),
            cache_logger_on_first_use=False,
        )
        _configured = True


def reset_logging() -> None:
    """Forget the current configuration. Used by tests."""
    global _configured
    with _lock:
        structlog.reset_defaults()
        _configured = False


def get_logger(name: str) -> Any:
    """Return a logger bound to the given module name."""
    return structlog.get_logger(logger_name=name)
