"""
layers.py
~~~~~~~~~

Layer variants of a feedforward network.

Every layer owns one weight matrix (one row per neuron, one column per
neuron of the previous layer) and one bias vector, and shares the
contract ``initialize / feedforward / update / size / check``.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

import numpy as np

from neuralnet.activation import ActivationFunction
from neuralnet.exceptions import (
    ConfigurationError,
    UnsupportedLayerOperationError
)
from neuralnet.initialization import InitializationFunction
from neuralnet.matrix import Matrix

logger = logging.getLogger(__name__)


class LayerRole(Enum):
    INPUT = 'input'
    FEEDFORWARD = 'feedforward'
    OUTPUT = 'output'
    CONVOLUTIONAL = 'convolutional'


class Layer(ABC):
    """
    Base class for all layer roles.

    Attributes:
        width: Columns of the neuron grid (1 for dense layers)
        height: Rows of the neuron grid
        weights: Matrix of incoming weights, one row per neuron
        biases: Vector of biases, one per neuron
    """

    role: LayerRole

    def __init__(self, height: int, width: int = 1):
        if height < 1 or width < 1:
            raise ConfigurationError(
                f"layer dimensions must be positive, got {width}x{height}"
            )
        self.width = width
        self.height = height
        self.weights = Matrix()
        self.biases = Matrix()

    def size(self) -> int:
        """Number of neurons in this layer."""
        return self.width * self.height

    @abstractmethod
    def initialize(
        self,
        init: InitializationFunction,
        previous: 'Layer',
        rng: np.random.Generator,
        fan_in: int
    ) -> None:
        """
        Populate weights and biases.

        Args:
            init: Initialization strategy
            previous: The preceding layer (the layer itself for the first one)
            rng: Network-owned random generator
            fan_in: Scale parameter passed to the strategy
        """

    @abstractmethod
    def feedforward(
        self,
        activations: Matrix,
        activation: ActivationFunction,
        zs: Matrix,
        activations_record: Matrix
    ) -> Matrix:
        """
        Propagate the previous layer's activations through this layer.

        Args:
            activations: Output vector of the previous layer
            activation: Activation strategy
            zs: History of weighted inputs, appended to
            activations_record: History of activations, appended to

        Returns:
            This layer's activation vector
        """

    @abstractmethod
    def update(self, bias_step: Matrix, weight_step: Matrix) -> None:
        """Replace biases and weights by ``biases - bias_step`` and ``weights - weight_step``."""

    @abstractmethod
    def check(self, previous: Optional['Layer']) -> None:
        """
        Verify the weight and bias shapes.

        Raises:
            ConfigurationError: If the shapes do not match the topology
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(height={self.height}, width={self.width})"


class InputLayer(Layer):
    """Identity layer that passes the network input through unchanged."""

    role = LayerRole.INPUT

    def initialize(self, init, previous, rng, fan_in) -> None:
        size = self.size()
        self.weights = Matrix(
            [[1.0 if row == col else 0.0 for col in range(size)]
             for row in range(size)]
        )
        self.biases = Matrix([0.0] * size)

    def feedforward(self, activations, activation, zs, activations_record) -> Matrix:
        zs.append(activations)
        activations_record.append(activations)
        return activations

    def update(self, bias_step, weight_step) -> None:
        # Input parameters are fixed after initialization
        return

    def check(self, previous) -> None:
        size = self.size()
        if self.weights.size() != size or self.biases.size() != size:
            raise ConfigurationError(
                f"input layer of size {size} has "
                f"{self.weights.size()} weight rows and "
                f"{self.biases.size()} biases"
            )
        for row in range(size):
            weights = self.weights.get(row)
            if not isinstance(weights, Matrix) or weights.size() != size:
                raise ConfigurationError(
                    f"input layer weight row {row} is not of length {size}"
                )


class FeedforwardLayer(Layer):
    """Fully connected layer."""

    role = LayerRole.FEEDFORWARD

    def initialize(self, init, previous, rng, fan_in) -> None:
        self.weights = Matrix()
        self.biases = Matrix()
        for neuron in range(self.size()):
            self.weights.append(
                [init.weight(rng, fan_in) for _ in range(previous.size())]
            )
            self.biases.append(init.bias(rng, fan_in))
        logger.debug(
            f"Initialized {self!r} with {self.size()}x{previous.size()} weights"
        )

    def feedforward(self, activations, activation, zs, activations_record) -> Matrix:
        z = Matrix()
        for neuron in range(self.size()):
            z.append(
                self.weights.get_row(neuron).product(activations).sum()
                + self.biases.get_scalar(neuron)
            )
        a = z.apply(activation.value)
        zs.append(z)
        activations_record.append(a)
        return a

    def update(self, bias_step, weight_step) -> None:
        self.biases = self.biases.subtract(bias_step)
        self.weights = self.weights.subtract(weight_step)

    def check(self, previous) -> None:
        if previous is None:
            raise ConfigurationError(f"{self!r} cannot be the first layer")
        if self.weights.size() != self.size():
            raise ConfigurationError(
                f"{self!r} has {self.weights.size()} weight rows, "
                f"expected {self.size()}"
            )
        if self.biases.size() != self.size():
            raise ConfigurationError(
                f"{self!r} has {self.biases.size()} biases, "
                f"expected {self.size()}"
            )
        for neuron in range(self.size()):
            weights = self.weights.get(neuron)
            if not isinstance(weights, Matrix):
                raise ConfigurationError(
                    f"{self!r} neuron {neuron} has a scalar instead of a weight row"
                )
            columns = weights.size()
            if columns != previous.size():
                raise ConfigurationError(
                    f"{self!r} neuron {neuron} has {columns} weights, "
                    f"expected {previous.size()}"
                )


class OutputLayer(FeedforwardLayer):
    """Final fully connected layer; must come last."""

    role = LayerRole.OUTPUT


class ConvolutionalLayer(Layer):
    """Declared for configuration completeness; not implemented."""

    role = LayerRole.CONVOLUTIONAL

    def _unsupported(self, operation: str):
        raise UnsupportedLayerOperationError(
            f"convolutional layers do not support {operation}"
        )

    def initialize(self, init, previous, rng, fan_in) -> None:
        self._unsupported('initialize')

    def feedforward(self, activations, activation, zs, activations_record) -> Matrix:
        self._unsupported('feedforward')

    def update(self, bias_step, weight_step) -> None:
        self._unsupported('update')

    def check(self, previous) -> None:
        self._unsupported('check')


_LAYERS = {
    LayerRole.INPUT: InputLayer,
    LayerRole.FEEDFORWARD: FeedforwardLayer,
    LayerRole.OUTPUT: OutputLayer,
    LayerRole.CONVOLUTIONAL: ConvolutionalLayer,
}


def layer_for(role: LayerRole, height: int, width: int = 1) -> Layer:
    """Create an empty layer of the given role."""
    return _LAYERS[LayerRole(role)](height, width)
