"""
test_strategies.py
~~~~~~~~~~~~~~~~~~

Unit tests for activation, cost, regularization and initialization
strategies.
"""

import math
import pytest
import os
import sys

import numpy as np

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from neuralnet.activation import (
    ActivationType,
    ReLUActivationFunction,
    SigmoidActivationFunction,
    TanhActivationFunction,
    activation_for
)
from neuralnet.cost import CostType, CrossEntropyCostFunction, QuadraticCostFunction, cost_for
from neuralnet.exceptions import ShapeMismatchError
from neuralnet.initialization import (
    DumbInitialization,
    InitializationType,
    SmartInitialization,
    initialization_for
)
from neuralnet.matrix import Matrix
from neuralnet.regularization import (
    L2Regularization,
    NoRegularization,
    RegularizationType,
    regularization_for
)


@pytest.mark.unit
class TestActivation:
    """Test activation functions and their derivatives."""

    def test_sigmoid_values(self):
        """Test sigmoid at the origin and in the tails."""
        sigmoid = SigmoidActivationFunction()
        assert sigmoid.value(0.0) == 0.5
        assert sigmoid.derivative(0.0) == 0.25
        assert sigmoid.value(800.0) == 1.0
        assert sigmoid.value(-800.0) == 0.0

    def test_relu(self):
        """Test ReLU and its derivative, including the kink at 0."""
        relu = ReLUActivationFunction()
        assert relu.value(-2.0) == 0.0
        assert relu.value(3.0) == 3.0
        assert relu.derivative(-2.0) == 0.0
        assert relu.derivative(0.0) == 0.0
        assert relu.derivative(3.0) == 1.0

    def test_tanh(self):
        """Test tanh and its derivative at the origin."""
        tanh = TanhActivationFunction()
        assert tanh.value(0.0) == 0.0
        assert tanh.derivative(0.0) == 1.0

    @pytest.mark.parametrize('activation_type', list(ActivationType))
    def test_derivative_matches_finite_difference(self, activation_type):
        """Test every derivative against a centered difference."""
        activation = activation_for(activation_type)
        eps = 1e-6
        for z in (-1.3, -0.2, 0.4, 2.1):
            numeric = (activation.value(z + eps) - activation.value(z - eps)) / (2 * eps)
            assert activation.derivative(z) == pytest.approx(numeric, abs=1e-6)

    def test_factory_accepts_strings(self):
        """Test that persisted string tags map to strategies."""
        assert isinstance(activation_for('relu'), ReLUActivationFunction)
        with pytest.raises(ValueError):
            activation_for('softplus')


@pytest.mark.unit
class TestCost:
    """Test cost functions."""

    def test_quadratic(self):
        """Test quadratic cost and derivative."""
        cost = QuadraticCostFunction()
        expected = Matrix([1.0, 0.0])
        actual = Matrix([0.5, 0.5])
        assert cost.cost(expected, actual) == pytest.approx(0.25)
        assert cost.derivative(expected, actual).to_list() == [-0.5, 0.5]

    def test_cross_entropy(self):
        """Test cross-entropy cost at a known point."""
        cost = CrossEntropyCostFunction()
        expected = Matrix([1.0, 0.0])
        actual = Matrix([0.5, 0.5])
        assert cost.cost(expected, actual) == pytest.approx(2 * math.log(2))
        assert cost.derivative(expected, actual).to_list() == pytest.approx([-2.0, 2.0])

    def test_cross_entropy_is_finite_when_saturated(self):
        """Test that clipping keeps saturated outputs finite."""
        cost = CrossEntropyCostFunction()
        expected = Matrix([1.0])
        assert math.isfinite(cost.cost(expected, Matrix([0.0])))
        assert math.isfinite(cost.derivative(expected, Matrix([0.0])).get_scalar(0))

    @pytest.mark.parametrize('cost_type', list(CostType))
    def test_mismatched_vectors_fail(self, cost_type):
        """Test that costs reject outputs of the wrong length."""
        cost = cost_for(cost_type)
        with pytest.raises(ShapeMismatchError):
            cost.cost(Matrix([1.0]), Matrix([0.5, 0.5]))
        with pytest.raises(ShapeMismatchError):
            cost.derivative(Matrix([1.0]), Matrix([0.5, 0.5]))


@pytest.mark.unit
class TestRegularization:
    """Test regularization penalties and gradients."""

    def test_l2(self):
        """Test the L2 penalty and its gradient."""
        weights = Matrix([[1.0, -2.0], [3.0]])
        l2 = L2Regularization()
        assert l2.penalty(weights) == 7.0
        gradient = l2.gradient(weights)
        assert gradient == weights
        assert gradient is not weights

    def test_none(self):
        """Test that no regularization contributes nothing."""
        weights = Matrix([[1.0, -2.0], [3.0]])
        none = NoRegularization()
        assert none.penalty(weights) == 0.0
        assert none.gradient(weights) == weights.shape()

    def test_factory(self):
        """Test mapping tags to strategies."""
        assert isinstance(regularization_for(RegularizationType.L2), L2Regularization)
        assert isinstance(regularization_for('none'), NoRegularization)


@pytest.mark.unit
class TestInitialization:
    """Test random initialization strategies."""

    def test_dumb_range(self):
        """Test that dumb weights and biases lie in (-1, 1)."""
        rng = np.random.default_rng(0)
        init = DumbInitialization()
        values = [init.weight(rng, 100) for _ in range(200)]
        values += [init.bias(rng, 100) for _ in range(200)]
        assert all(-1.0 < v < 1.0 for v in values)

    def test_smart_scales_weights(self):
        """Test that smart weights shrink by sqrt(fan_in) but biases do not."""
        rng = np.random.default_rng(0)
        init = SmartInitialization()
        weights = [init.weight(rng, 100) for _ in range(200)]
        assert all(-0.1 < w < 0.1 for w in weights)
        biases = [init.bias(rng, 100) for _ in range(200)]
        assert max(abs(b) for b in biases) > 0.1

    def test_same_seed_same_values(self):
        """Test that draws are determined by the generator seed."""
        init = initialization_for(InitializationType.SMART)
        first = [init.weight(np.random.default_rng(7), 4) for _ in range(3)]
        second = [init.weight(np.random.default_rng(7), 4) for _ in range(3)]
        assert first == second
