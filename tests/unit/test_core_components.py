import math

import numpy as np
import pytest

from feedtrace.core.activations import sigmoid
from feedtrace.core.errors import ConfigurationError, ShapeMismatchError
from feedtrace.core.network import Layer, Network, Unit
from feedtrace.core.params import (
    ConstantSource,
    GaussianSource,
    SequenceSource,
    build_source,
)


def test_sigmoid_stays_inside_open_interval():
    x = np.array([-1e6, -800.0, -50.0, 0.0, 50.0, 800.0, 1e6])
    out = sigmoid(x)
    assert out.shape == x.shape
    assert np.all(out > 0.0)
    assert np.all(out < 1.0)
    assert np.all(np.isfinite(out))
    assert out[3] == 0.5


def test_sigmoid_scalar_matches_formula():
    assert float(sigmoid(1.0)) == pytest.approx(1.0 / (1.0 + math.exp(-1.0)))
    assert float(sigmoid(-2.0)) == pytest.approx(1.0 / (1.0 + math.exp(2.0)))


def test_unit_draws_weights_then_bias():
    unit = Unit(3, SequenceSource([0.1, 0.2, 0.3, -0.4]))
    assert np.allclose(unit.weights, [0.1, 0.2, 0.3])
    assert unit.bias == pytest.approx(-0.4)
    expected = 1.0 / (1.0 + math.exp(-(-0.4 + 0.1 * 1.0 + 0.2 * 2.0 + 0.3 * 3.0)))
    assert unit.activate([1.0, 2.0, 3.0]) == pytest.approx(expected)


def test_unit_without_inputs_is_sigmoid_of_bias():
    unit = Unit(0, ConstantSource(weight=0.5, bias_value=0.25))
    assert unit.weights.shape == (0,)
    assert unit.activate([]) == pytest.approx(1.0 / (1.0 + math.exp(-0.25)))


def test_unit_parameters_are_read_only():
    unit = Unit(2, ConstantSource())
    with pytest.raises(ValueError):
        unit.weights[0] = 3.0


@pytest.mark.parametrize("inputs", [[1.0], [1.0, 2.0, 3.0], [[1.0, 2.0]]])
def test_unit_rejects_wrong_input_shape(inputs):
    unit = Unit(2, ConstantSource())
    with pytest.raises(ShapeMismatchError):
        unit.activate(inputs)


def test_unit_extreme_inputs_stay_in_range():
    unit = Unit.from_parameters([1e3, 1e3], 0.0)
    high = unit.activate([1e3, 1e3])
    low = unit.activate([-1e3, -1e3])
    assert 0.0 < low < high < 1.0


def test_unit_from_parameters_rejects_matrix():
    with pytest.raises(ConfigurationError):
        Unit.from_parameters([[1.0, 2.0]], 0.0)


def test_layer_builds_requested_units():
    layer = Layer(4, 3, ConstantSource())
    assert layer.num_units == 4
    assert all(unit.num_inputs == 3 for unit in layer.units)


def test_layer_activate_outputs_one_value_per_unit():
    layer = Layer(2, 2, ConstantSource(weight=1.0, bias_value=0.0))
    inputs = np.array([0.5, -0.5])
    out = layer.activate(inputs)
    assert out.shape == (2,)
    assert np.allclose(out, [0.5, 0.5])
    assert np.array_equal(inputs, [0.5, -0.5])


def test_layer_rejects_wrong_input_length():
    layer = Layer(3, 2, ConstantSource())
    with pytest.raises(ShapeMismatchError):
        layer.activate([0.1, 0.2, 0.3])


def test_layer_from_units_checks_fan_in():
    units = [Unit.from_parameters([1.0], 0.0), Unit.from_parameters([1.0, 2.0], 0.0)]
    with pytest.raises(ConfigurationError):
        Layer.from_units(units, 1)


@pytest.mark.parametrize("sizes", [[3], [4, 3, 2], [2, 5, 1, 3], [0, 2]])
def test_network_layer_counts_and_widths(sizes):
    network = Network(sizes, source=ConstantSource())
    assert len(network.layers) == len(sizes)
    assert network.layer_sizes == sizes
    assert network.layers[0].num_inputs == 0
    for prev, layer in zip(network.layers[:-1], network.layers[1:]):
        assert layer.num_inputs == prev.num_units


def test_network_default_sizes():
    network = Network()
    assert network.layer_sizes == [3, 3, 3]
    assert network.parameter_count() == 3 + 12 + 12


@pytest.mark.parametrize("sizes", [[], [3, -1], [2.5, 3], ["3"], [True, 2], "33"])
def test_network_rejects_bad_sizes(sizes):
    with pytest.raises(ConfigurationError):
        Network(sizes)


def test_network_forward_rejects_wrong_input_length():
    network = Network([4, 3, 2], source=ConstantSource())
    with pytest.raises(ShapeMismatchError):
        network.forward([0.1, 0.2, 0.3])


@pytest.mark.parametrize("inputs", [[0.1, float("nan")], [0.1, float("inf")], ["a", "b"], [None, 0.2]])
def test_network_forward_rejects_malformed_input(inputs):
    network = Network([2, 1], source=ConstantSource())
    with pytest.raises(ShapeMismatchError):
        network.forward(inputs)


def test_network_describe_reports_layer_dims():
    network = Network([4, 3, 2], source=ConstantSource())
    assert network.describe().layer_dims == [4, 3, 2]


def test_first_layer_ignores_input_values():
    network = Network([3, 2], source=GaussianSource(seed=3))
    a = network.forward([0.0, 0.0, 0.0])
    b = network.forward([5.0, -5.0, 1.0])
    assert np.array_equal(a[1], b[1])
    assert np.array_equal(a.final_output, b.final_output)


def test_gaussian_units_get_independent_streams():
    network = Network([2, 3], source=GaussianSource(seed=11))
    first, second, third = network.layers[1].units
    assert not np.array_equal(first.weights, second.weights)
    assert not np.array_equal(second.weights, third.weights)


def test_gaussian_seed_reproduces_parameters():
    a = Network([2, 3, 2], source=GaussianSource(seed=42))
    b = Network([2, 3, 2], source=GaussianSource(seed=42))
    for layer_a, layer_b in zip(a.layers, b.layers):
        for unit_a, unit_b in zip(layer_a.units, layer_b.units):
            assert np.array_equal(unit_a.weights, unit_b.weights)
            assert unit_a.bias == unit_b.bias


def test_gaussian_source_rejects_negative_stddev():
    with pytest.raises(ConfigurationError):
        GaussianSource(stddev=-1.0)


def test_sequence_source_cycles_and_rejects_empty():
    source = SequenceSource([1.0, 2.0])
    assert source.weights(3).tolist() == [1.0, 2.0, 1.0]
    assert source.bias() == 2.0
    with pytest.raises(ConfigurationError):
        SequenceSource([])


def test_build_source_kinds():
    assert isinstance(build_source(None), GaussianSource)
    constant = build_source({"kind": "constant", "weight": 0.5, "bias": 0.0})
    assert isinstance(constant, ConstantSource)
    assert constant.weights(2).tolist() == [0.5, 0.5]
    assert isinstance(build_source({"kind": "sequence", "values": [1, 2]}), SequenceSource)
    with pytest.raises(ConfigurationError):
        build_source({"kind": "uniform"})
    with pytest.raises(ConfigurationError):
        build_source({"kind": "gaussian", "stddev": "wide"})


@pytest.mark.parametrize(
    "weight, bias", [(float("inf"), 0.0), (0.5, float("-inf")), (float("nan"), 0.0)]
)
def test_constant_source_rejects_non_finite_values(weight, bias):
    with pytest.raises(ConfigurationError):
        ConstantSource(weight=weight, bias_value=bias)


def test_sequence_source_rejects_non_finite_values():
    with pytest.raises(ConfigurationError):
        SequenceSource([0.1, float("nan")])
    with pytest.raises(ConfigurationError):
        SequenceSource([float("inf")])


def test_build_source_rejects_infinite_constant():
    with pytest.raises(ConfigurationError):
        build_source({"kind": "constant", "weight": float("inf"), "bias": float("-inf")})


@pytest.mark.parametrize(
    "weights, bias",
    [([1.0, float("nan")], 0.0), ([1.0, 2.0], float("inf")), ([1.0], "heavy")],
)
def test_unit_from_parameters_rejects_bad_values(weights, bias):
    with pytest.raises(ConfigurationError):
        Unit.from_parameters(weights, bias)


def test_unit_rejects_non_finite_draws():
    class _Broken:
        def spawn(self):
            return self

        def weights(self, n):
            return np.full(n, np.nan)

        def bias(self):
            return 0.0

    with pytest.raises(ConfigurationError):
        Unit(2, _Broken())


def test_network_from_document_rejects_non_finite_parameters():
    document = {
        "layer_1_neurons": [{"weights": [], "bias": 0.0}],
        "layer_2_neurons": [{"weights": [float("inf")], "bias": 0.0}],
    }
    with pytest.raises(ConfigurationError):
        Network.from_document(document)
