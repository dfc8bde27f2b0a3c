"""Observability – structured logging ports and helpers."""
from tagcache.observability.logging.factory import JsonLoggerFactory
from tagcache.observability.logging.processors import (
    CacheKeyTruncator,
    ServiceNameProcessor,
    get_logger,
)
from tagcache.observability.logging.protocol import Logger

__all__ = [
    "CacheKeyTruncator",
    "JsonLoggerFactory",
    "Logger",
    "ServiceNameProcessor",
    "get_logger",
]
