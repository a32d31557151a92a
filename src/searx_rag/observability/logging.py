"""Structured logging with per-query context using structlog and contextvars."""

import logging
import sys
from contextvars import ContextVar

import structlog

# Id of the query being answered; the mode is only carried in structlog context
current_query_id: ContextVar[str | None] = ContextVar("current_query_id", default=None)

_configured = False

# Dependencies that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def setup_logging(level: str = "WARNING", json_output: bool = False) -> None:
    """Configure structlog and stdlib logging to write to stderr.

    stdout carries the streamed answer, so log lines never go there.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Render JSON lines instead of console text
    """
    global _configured
    if _configured:
        return

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,  # Inject query context
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s" if json_output else "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level.upper(), logging.WARNING),
        stream=sys.stderr,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def bind_query_context(query_id: str, mode: str) -> None:
    """Bind query context for all subsequent logs in this async context.

    Args:
        query_id: Unique identifier for one query iteration
        mode: Routing mode chosen for the query (web_search or general)
    """
    current_query_id.set(query_id)
    structlog.contextvars.bind_contextvars(query_id=query_id, mode=mode)


def clear_query_context() -> None:
    """Clear query context after the answer has been produced."""
    current_query_id.set(None)
    structlog.contextvars.clear_contextvars()


def get_query_logger(name: str = "searx_rag") -> structlog.stdlib.BoundLogger:
    """Get a structlog logger that carries the current query context."""
    return structlog.get_logger(name)


def get_current_query_id() -> str | None:
    """Get the current query ID from context."""
    return current_query_id.get()
