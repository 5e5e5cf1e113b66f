"""Core numerical primitives for FeedTrace."""

from . import activations, errors, network, params, types

__all__ = ["activations", "errors", "network", "params", "types"]
