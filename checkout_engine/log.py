"""
Logging setup.

    from checkout_engine.log import configure_logging
    configure_logging("INFO", json=False)

Modules obtain loggers with structlog.get_logger(__name__) and log key/value events.
"""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: str = "INFO", *, json: bool = False) -> None:
    """Configure structlog with a console or JSON renderer."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=True,
    )

    # Quiet transport chatter
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ("configure_logging",)
