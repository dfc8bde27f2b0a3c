"""Observability – JsonLoggerFactory."""
from __future__ import annotations

import logging
from typing import Any

import structlog

from tagcache.observability.logging.processors import CacheKeyTruncator, ServiceNameProcessor


class JsonLoggerFactory:
    """Configure structlog to render JSON through the stdlib root handler."""

    @staticmethod
    def configure(
        level: int = logging.INFO,
        *,
        service: str = "tagcache",
        max_key_length: int = 200,
        renderer: Any | None = None,
    ) -> None:
        """Install structlog processors and a single JSON stream handler.

        Parameters
        ----------
        level:
            Root log level.
        service:
            Value of the ``service`` field added to every event.
        max_key_length:
            Cache keys in ``key`` / ``keys`` fields are cut to this length.
        renderer:
            Final renderer; defaults to :class:`structlog.processors.JSONRenderer`.
            Pass ``structlog.dev.ConsoleRenderer()`` for local development.
        """
        shared_processors: list[Any] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            ServiceNameProcessor(service),
            CacheKeyTruncator(max_key_length),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
        ]

        structlog.configure(
            processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        formatter = structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer or structlog.processors.JSONRenderer(),
            ],
        )
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        root = logging.getLogger()
        root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(level)


__all__ = ["JsonLoggerFactory"]
