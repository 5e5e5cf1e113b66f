"""FeedTrace public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.errors import (
    ConfigurationError,
    FeedTraceError,
    PersistenceError,
    ShapeMismatchError,
)
from .core.network import Layer, Network, Unit
from .core.params import ConstantSource, GaussianSource, SequenceSource, build_source
from .reporting.trace import load_trace, persist, record_trace, serialize
from .runs.pipelines import load_preset, presets, run_pipeline

__version__ = "0.1.0"

__all__ = [
    "Unit",
    "Layer",
    "Network",
    "GaussianSource",
    "ConstantSource",
    "SequenceSource",
    "build_source",
    "serialize",
    "persist",
    "load_trace",
    "record_trace",
    "run_pipeline",
    "load_preset",
    "presets",
    "activations",
    "types",
    "FeedTraceError",
    "ConfigurationError",
    "ShapeMismatchError",
    "PersistenceError",
]
