"""Structured logging setup using structlog."""

import logging
import sys
from pathlib import Path
from typing import Any, Optional

import structlog

# Third-party loggers that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Configure structlog on top of the standard library.

    Args:
        verbose: DEBUG level when True, otherwise CRITICAL (silent)
        log_file: Also write events to this file, without colors
    """
    log_level = logging.DEBUG if verbose else logging.CRITICAL

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(colors=log_file is None),
    ]

    structlog.configure(
        processors=processors,  # type: ignore[arg-type]
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        root = logging.getLogger()
        root.addHandler(file_handler)
        # The file gets every event even when the console is silent
        root.setLevel(logging.DEBUG)
        for handler in root.handlers:
            if handler is not file_handler:
                handler.setLevel(log_level)


def get_logger(name: Optional[str] = None) -> Any:
    """Get a structlog logger, optionally named."""
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    """
    Replace the context attached to every subsequent log event.

    Args:
        **kwargs: Key-value pairs to bind (e.g. language, database)
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
