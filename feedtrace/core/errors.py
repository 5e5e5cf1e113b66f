"""Exception hierarchy for FeedTrace."""

from __future__ import annotations


class FeedTraceError(Exception):
    """Base class for all FeedTrace errors."""


class ConfigurationError(FeedTraceError, ValueError):
    """Raised when a network or run is configured with invalid settings."""


class ShapeMismatchError(FeedTraceError, ValueError):
    """Raised when a vector's length disagrees with what a layer expects."""


class PersistenceError(FeedTraceError, OSError):
    """Raised when a trace document cannot be written to its destination."""


__all__ = [
    "FeedTraceError",
    "ConfigurationError",
    "ShapeMismatchError",
    "PersistenceError",
]
