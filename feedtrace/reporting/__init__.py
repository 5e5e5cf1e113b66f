"""Reporting utilities for FeedTrace."""

from .artifacts import write_manifest
from .progress import ConsoleProgress, NullProgress, ProgressCapture
from .trace import load_trace, persist, record_trace, serialize, trace_from_document

__all__ = [
    "write_manifest",
    "ConsoleProgress",
    "NullProgress",
    "ProgressCapture",
    "serialize",
    "persist",
    "load_trace",
    "trace_from_document",
    "record_trace",
]
