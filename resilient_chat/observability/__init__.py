"""Observability helpers: structured logging and retry metrics."""

from .logging import ChatLogger
from .metrics import RetryMetrics

__all__ = [
    "ChatLogger",
    "RetryMetrics",
]
