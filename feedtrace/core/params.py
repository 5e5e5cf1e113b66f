"""Parameter sources used to initialise network units."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol, Sequence

import numpy as np

from .errors import ConfigurationError
from .types import Array


class ParameterSource(Protocol):
    """Protocol implemented by weight and bias initialisers."""

    def spawn(self) -> "ParameterSource":
        """Return the stream a single unit draws its parameters from."""

    def weights(self, n: int) -> Array:
        """Draw ``n`` weights."""

    def bias(self) -> float:
        """Draw one bias."""


@dataclass
class _GaussianStream:
    """Normal draws from one unit's own generator."""

    mean: float
    stddev: float
    rng: np.random.Generator

    def spawn(self) -> "_GaussianStream":
        return self

    def weights(self, n: int) -> Array:
        return self.rng.normal(self.mean, self.stddev, size=n)

    def bias(self) -> float:
        return float(self.rng.normal(self.mean, self.stddev))


@dataclass
class GaussianSource:
    """Normal initialiser where every spawned unit owns an independent generator.

    With ``seed=None`` the root seed comes from OS entropy, so no two runs are
    expected to agree. An integer seed makes the whole network reproducible.
    """

    mean: float = 0.0
    stddev: float = 1.0
    seed: Optional[int] = None
    _seed_seq: np.random.SeedSequence = field(init=False, repr=False)
    _rng: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not np.isfinite(self.mean) or not np.isfinite(self.stddev):
            raise ConfigurationError("Gaussian mean and stddev must be finite")
        if self.stddev < 0:
            raise ConfigurationError(f"stddev must be >= 0, got {self.stddev}")
        self._seed_seq = np.random.SeedSequence(self.seed)
        self._rng = np.random.default_rng(self._seed_seq)

    def spawn(self) -> _GaussianStream:
        child = self._seed_seq.spawn(1)[0]
        return _GaussianStream(self.mean, self.stddev, np.random.default_rng(child))

    def weights(self, n: int) -> Array:
        return self._rng.normal(self.mean, self.stddev, size=n)

    def bias(self) -> float:
        return float(self._rng.normal(self.mean, self.stddev))


@dataclass
class ConstantSource:
    """Every weight and every bias take a fixed value."""

    weight: float = 0.5
    bias_value: float = 0.0

    def __post_init__(self) -> None:
        if not np.isfinite(self.weight) or not np.isfinite(self.bias_value):
            raise ConfigurationError("Constant weight and bias must be finite")

    def spawn(self) -> "ConstantSource":
        return self

    def weights(self, n: int) -> Array:
        return np.full(n, float(self.weight), dtype=np.float64)

    def bias(self) -> float:
        return float(self.bias_value)


class SequenceSource:
    """Replay ``values`` cyclically in draw order (weights, then bias, per unit)."""

    def __init__(self, values: Sequence[float]) -> None:
        self.values = [float(v) for v in values]
        if not self.values:
            raise ConfigurationError("SequenceSource requires at least one value")
        if not np.all(np.isfinite(self.values)):
            raise ConfigurationError(f"SequenceSource values must be finite, got {self.values}")
        self._cycle = itertools.cycle(self.values)

    def spawn(self) -> "SequenceSource":
        return self

    def weights(self, n: int) -> Array:
        return np.array([next(self._cycle) for _ in range(n)], dtype=np.float64)

    def bias(self) -> float:
        return next(self._cycle)


def build_source(config: Mapping[str, object] | None) -> ParameterSource:
    """Build a parameter source from an ``init`` config mapping."""

    config = dict(config or {})
    kind = str(config.pop("kind", "gaussian"))
    try:
        if kind == "gaussian":
            seed = config.get("seed")
            return GaussianSource(
                mean=float(config.get("mean", 0.0)),
                stddev=float(config.get("stddev", 1.0)),
                seed=int(seed) if seed is not None else None,
            )
        if kind == "constant":
            return ConstantSource(
                weight=float(config.get("weight", 0.5)),
                bias_value=float(config.get("bias", 0.0)),
            )
        if kind == "sequence":
            return SequenceSource(config.get("values", []))  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        if isinstance(exc, ConfigurationError):
            raise
        raise ConfigurationError(f"Invalid '{kind}' init settings: {exc}") from exc
    raise ConfigurationError(f"Unknown parameter source: {kind}")


__all__ = [
    "ParameterSource",
    "GaussianSource",
    "ConstantSource",
    "SequenceSource",
    "build_source",
]
