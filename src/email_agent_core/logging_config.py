"""Structured logging configuration using structlog.

Library modules only call ``structlog.get_logger(__name__)``. Nothing is
configured on import: the application embedding the library (or the
``email-agent-core`` command) calls ``configure_logging`` once.

By default output goes to a handler on the ``email_agent_core`` logger, so
the host application's root logging setup is left alone. Pass
``root=True`` to route every stdlib logger through the same renderer.
"""

import logging
import sys
from typing import IO, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger


PACKAGE_LOGGER = "email_agent_core"
NOISY_LOGGERS = ("httpx", "httpcore")


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application context to all log events."""
    event_dict["app"] = "email-agent-core"
    return event_dict


def build_processors(environment: str) -> tuple[list[Processor], Processor]:
    """
    Processor chain and final renderer for an environment.

    Production renders JSON with formatted exceptions; anything else
    renders colored console output.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]
    if environment.lower() == "production":
        processors.append(structlog.processors.format_exc_info)
        return processors, structlog.processors.JSONRenderer()
    return processors, structlog.dev.ConsoleRenderer(colors=True)


def configure_logging(
    log_level: str = "INFO",
    environment: str = "development",
    *,
    stream: Optional[IO[str]] = None,
    root: bool = False,
) -> logging.Handler:
    """Configure structlog on top of stdlib logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Environment name (development, production)
        stream: Output stream (default: stderr, leaving stdout to the CLI)
        root: Install the handler on the root logger instead of the
            package logger

    Calling it again replaces the handler installed by the previous call.

    Returns:
        The installed handler
    """
    log_level_int = getattr(logging, log_level.upper(), logging.INFO)
    processors, renderer = build_processors(environment)

    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=processors)
    )
    handler.setLevel(log_level_int)
    handler.set_name(PACKAGE_LOGGER)

    target = logging.getLogger() if root else logging.getLogger(PACKAGE_LOGGER)
    for existing in list(target.handlers):
        if existing.get_name() == PACKAGE_LOGGER:
            target.removeHandler(existing)
    target.addHandler(handler)
    target.setLevel(log_level_int)
    if not root:
        # Events are rendered here; the host's root handlers would repeat them
        target.propagate = False

    # Backend adapters log each request themselves
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "Logging configured",
        log_level=log_level,
        environment=environment,
        renderer="json" if environment.lower() == "production" else "console",
    )
    return handler
