"""Fully-connected feed-forward network built from sigmoid units."""

from __future__ import annotations

import logging
import operator
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .activations import sigmoid
from .errors import ConfigurationError, ShapeMismatchError
from .params import GaussianSource, ParameterSource
from .types import ActivationTrace, Array, ModelDescription

logger = logging.getLogger("feedtrace.core.network")

DEFAULT_LAYER_SIZES: Tuple[int, ...] = (3, 3, 3)


def _check_size(value: object, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    try:
        size = operator.index(value)  # type: ignore[arg-type]
    except TypeError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
    if size < 0:
        raise ConfigurationError(f"{name} must be >= 0, got {size}")
    return size


def _as_vector(values: Iterable[float], name: str = "inputs") -> Array:
    try:
        vector = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ShapeMismatchError(f"{name} must be a vector of numbers: {exc}") from exc
    if vector.ndim != 1:
        raise ShapeMismatchError(f"{name} must be one-dimensional, got shape {vector.shape}")
    return vector


def _check_parameters(weights: Array, bias: float) -> None:
    if not np.all(np.isfinite(weights)) or not np.isfinite(bias):
        raise ConfigurationError(
            f"Unit parameters must be finite, got weights={weights.tolist()} bias={bias}"
        )


def _frozen(values: Array) -> Array:
    out = np.array(values, dtype=np.float64)
    out.setflags(write=False)
    return out


class Unit:
    """A single neuron: one weight per input connection plus a bias."""

    def __init__(self, num_inputs: int, source: ParameterSource) -> None:
        num_inputs = _check_size(num_inputs, "num_inputs")
        stream = source.spawn()
        weights = np.asarray(stream.weights(num_inputs), dtype=np.float64)
        if weights.shape != (num_inputs,):
            raise ConfigurationError(
                f"Parameter source returned {weights.shape} weights, expected ({num_inputs},)"
            )
        bias = float(stream.bias())
        _check_parameters(weights, bias)
        self.weights = _frozen(weights)
        self.bias = bias

    @classmethod
    def from_parameters(cls, weights: Iterable[float], bias: float) -> "Unit":
        """Build a unit from explicit weights and bias."""

        unit = cls.__new__(cls)
        try:
            vector = _as_vector(weights, "weights")
        except ShapeMismatchError as exc:
            raise ConfigurationError(f"Invalid unit weights: {exc}") from exc
        try:
            value = float(bias)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid unit bias: {bias!r}") from exc
        _check_parameters(vector, value)
        unit.weights = _frozen(vector)
        unit.bias = value
        return unit

    @property
    def num_inputs(self) -> int:
        return int(self.weights.shape[0])

    def activate(self, inputs: Iterable[float]) -> float:
        values = _as_vector(inputs)
        if values.shape[0] != self.num_inputs:
            raise ShapeMismatchError(
                f"Number of inputs ({values.shape[0]}) must match number of weights "
                f"({self.num_inputs})"
            )
        total = self.bias + float(np.dot(self.weights, values))
        return float(sigmoid(total))

    def __repr__(self) -> str:
        return f"Unit(num_inputs={self.num_inputs}, bias={self.bias:.6g})"


class Layer:
    """Ordered units that all read the same input vector."""

    def __init__(self, num_units: int, num_inputs: int, source: ParameterSource) -> None:
        num_units = _check_size(num_units, "num_units")
        self.num_inputs = _check_size(num_inputs, "num_inputs")
        self.units: Tuple[Unit, ...] = tuple(
            Unit(self.num_inputs, source) for _ in range(num_units)
        )

    @classmethod
    def from_units(cls, units: Sequence[Unit], num_inputs: int) -> "Layer":
        """Wrap existing units; every unit must take ``num_inputs`` inputs."""

        layer = cls.__new__(cls)
        layer.num_inputs = _check_size(num_inputs, "num_inputs")
        for idx, unit in enumerate(units):
            if unit.num_inputs != layer.num_inputs:
                raise ConfigurationError(
                    f"Unit {idx} has {unit.num_inputs} weights, layer expects {layer.num_inputs}"
                )
        layer.units = tuple(units)
        return layer

    @property
    def num_units(self) -> int:
        return len(self.units)

    def activate(self, inputs: Iterable[float]) -> Array:
        values = _as_vector(inputs)
        if values.shape[0] != self.num_inputs:
            raise ShapeMismatchError(
                f"Layer expects {self.num_inputs} inputs, got {values.shape[0]}"
            )
        return np.array([unit.activate(values) for unit in self.units], dtype=np.float64)

    def __repr__(self) -> str:
        return f"Layer(num_units={self.num_units}, num_inputs={self.num_inputs})"


class Network:
    """Sequence of layers where each layer reads the previous layer's outputs.

    Layer 0 has no incoming connections: its units only carry a bias, so its
    output is ``sigmoid(bias)`` per unit whatever the external input is. The
    external input is recorded at the head of the trace and its length must
    match the width of layer 0.
    """

    def __init__(
        self,
        layer_sizes: Sequence[int] = DEFAULT_LAYER_SIZES,
        source: Optional[ParameterSource] = None,
    ) -> None:
        sizes = self._validate_sizes(layer_sizes)
        source = source if source is not None else GaussianSource()
        layers: List[Layer] = [Layer(sizes[0], 0, source)]
        for prev, size in zip(sizes[:-1], sizes[1:]):
            layers.append(Layer(size, prev, source))
        self.layers: Tuple[Layer, ...] = tuple(layers)
        logger.debug(
            "Built network %s with %d parameters", sizes, self.parameter_count()
        )

    @staticmethod
    def _validate_sizes(layer_sizes: Sequence[int]) -> List[int]:
        if isinstance(layer_sizes, (str, bytes)):
            raise ConfigurationError("layer_sizes must be a sequence of integers")
        try:
            raw = list(layer_sizes)
        except TypeError:
            raise ConfigurationError("layer_sizes must be a sequence of integers") from None
        if not raw:
            raise ConfigurationError("Neural network needs at least one layer")
        return [_check_size(size, f"layer_sizes[{idx}]") for idx, size in enumerate(raw)]

    @classmethod
    def from_layers(cls, layers: Sequence[Layer]) -> "Network":
        """Assemble a network from pre-built layers, checking connectivity."""

        if not layers:
            raise ConfigurationError("Neural network needs at least one layer")
        expected = 0
        for idx, layer in enumerate(layers):
            if layer.num_inputs != expected:
                raise ConfigurationError(
                    f"Layer {idx} takes {layer.num_inputs} inputs, expected {expected}"
                )
            expected = layer.num_units
        network = cls.__new__(cls)
        network.layers = tuple(layers)
        return network

    @classmethod
    def from_document(cls, document: Mapping[str, object]) -> "Network":
        """Rebuild the network recorded in a serialized trace document."""

        layers: List[Layer] = []
        num_inputs = 0
        index = 1
        while f"layer_{index}_neurons" in document:
            records = document[f"layer_{index}_neurons"]
            try:
                units = [
                    Unit.from_parameters(record["weights"], record["bias"])  # type: ignore[index]
                    for record in records  # type: ignore[union-attr]
                ]
            except (KeyError, TypeError) as exc:
                raise ConfigurationError(f"Malformed neurons for layer {index}: {exc}") from exc
            layers.append(Layer.from_units(units, num_inputs))
            num_inputs = len(units)
            index += 1
        return cls.from_layers(layers)

    @property
    def layer_sizes(self) -> List[int]:
        return [layer.num_units for layer in self.layers]

    @property
    def input_size(self) -> int:
        return self.layers[0].num_units

    def describe(self) -> ModelDescription:
        return ModelDescription(layer_dims=self.layer_sizes)

    def parameter_count(self) -> int:
        return int(sum((layer.num_inputs + 1) * layer.num_units for layer in self.layers))

    def forward(self, inputs: Iterable[float]) -> ActivationTrace:
        """Propagate ``inputs`` layer by layer and return every vector produced."""

        values = _as_vector(inputs)
        if values.shape[0] != self.input_size:
            raise ShapeMismatchError(
                f"Input size ({values.shape[0]}) must match the first layer size "
                f"({self.input_size})"
            )
        if not np.all(np.isfinite(values)):
            raise ShapeMismatchError("Input values must be finite")

        outputs: List[Array] = [values.copy()]
        # Layer 0 has no incoming connections; the input is recorded, not consumed.
        current = np.empty(0, dtype=np.float64)
        for layer in self.layers:
            current = layer.activate(current)
            outputs.append(current)
        return ActivationTrace(outputs=outputs)

    def __repr__(self) -> str:
        return f"Network(layer_sizes={self.layer_sizes})"


__all__ = ["DEFAULT_LAYER_SIZES", "Unit", "Layer", "Network"]
