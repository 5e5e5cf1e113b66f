"""Activation utilities for FeedTrace."""

from __future__ import annotations

import numpy as np

from .types import Array

_EPS = np.finfo(np.float64).eps


def sigmoid(x: Array) -> Array:
    """Return ``1 / (1 + exp(-x))`` strictly inside ``(0, 1)``.

    Both tails are evaluated without overflowing ``exp`` and the result is
    clipped by machine epsilon so large magnitudes never round to 0 or 1.
    """

    x = np.asarray(x, dtype=np.float64)
    flat = np.atleast_1d(x)
    out = np.empty_like(flat)
    pos = flat >= 0.0
    out[pos] = 1.0 / (1.0 + np.exp(-flat[pos]))
    exp_neg = np.exp(flat[~pos])
    out[~pos] = exp_neg / (1.0 + exp_neg)
    return np.clip(out, _EPS, 1.0 - _EPS).reshape(x.shape)
