"""
network.py
~~~~~~~~~~

Feedforward neural network trained with mini-batch stochastic gradient
descent and backpropagation.

The network owns an ordered list of layers (the first is always an input
layer), the type tags of its activation, cost and regularization
strategies together with the live strategy objects derived from them, and
a single random generator seeded at construction. A seed therefore fully
determines initialization and shuffling.
"""

import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple, Union

import numpy as np

from neuralnet.activation import ActivationType, activation_for
from neuralnet.cost import CostType, cost_for
from neuralnet.exceptions import ConfigurationError, ShapeMismatchError
from neuralnet.initialization import InitializationFunction
from neuralnet.layers import InputLayer, Layer
from neuralnet.matrix import Matrix
from neuralnet.regularization import RegularizationType, regularization_for

logger = logging.getLogger(__name__)

Dataset = Union[Matrix, Iterable[Any]]


class GradientNormalization(Enum):
    """Divisor applied to summed batch gradients."""
    DATASET = 'dataset'
    BATCH = 'batch'


class Gradient(NamedTuple):
    """
    Per-layer gradient of the cost.

    Entry ``k`` of ``biases`` and ``weights`` belongs to ``layers[k + 1]``;
    the input layer has no trainable parameters.
    """
    biases: Matrix
    weights: Matrix


def _as_matrix(values: Dataset) -> Matrix:
    return values if isinstance(values, Matrix) else Matrix(values)


class Network:
    """
    A feedforward network of dense layers.

    Args:
        layers: Ordered layers, the first of which must be an ``InputLayer``
        eta: Learning rate
        lmbda: Regularization coefficient
        cost: Cost type tag
        activation: Activation type tag
        regularization: Regularization type tag
        seed: Seed of the network-owned random generator
        normalization: Whether batch gradients are divided by the dataset
            size (default) or by the batch size
    """

    def __init__(
        self,
        layers: List[Layer],
        eta: float = 1.0,
        lmbda: float = 0.0,
        cost: CostType = CostType.QUADRATIC,
        activation: ActivationType = ActivationType.SIGMOID,
        regularization: RegularizationType = RegularizationType.NONE,
        seed: int = 0,
        normalization: GradientNormalization = GradientNormalization.DATASET
    ):
        if not layers:
            raise ConfigurationError("a network needs at least one layer")
        if not isinstance(layers[0], InputLayer):
            raise ConfigurationError(
                f"the first layer must be an input layer, got {layers[0]!r}"
            )
        self.layers = list(layers)
        self.eta = eta
        self.lmbda = lmbda
        self.seed = seed
        self.normalization = GradientNormalization(normalization)
        self.rng = np.random.default_rng(seed)
        self._cost_type = CostType(cost)
        self._activation_type = ActivationType(activation)
        self._regularization_type = RegularizationType(regularization)
        self.refresh()

    # ------------------------------------------------------------------
    # Strategy tags
    # ------------------------------------------------------------------

    @property
    def cost_type(self) -> CostType:
        return self._cost_type

    @cost_type.setter
    def cost_type(self, value: CostType) -> None:
        self._cost_type = CostType(value)
        self.refresh()

    @property
    def activation_type(self) -> ActivationType:
        return self._activation_type

    @activation_type.setter
    def activation_type(self, value: ActivationType) -> None:
        self._activation_type = ActivationType(value)
        self.refresh()

    @property
    def regularization_type(self) -> RegularizationType:
        return self._regularization_type

    @regularization_type.setter
    def regularization_type(self, value: RegularizationType) -> None:
        self._regularization_type = RegularizationType(value)
        self.refresh()

    def refresh(self) -> 'Network':
        """
        Re-derive the strategy objects from their type tags.

        Must run after any tag change and after reconstruction from a
        persisted document. Once the layers hold parameters their shapes
        are checked as well.

        Returns:
            The network itself
        """
        self.cost_function = cost_for(self._cost_type)
        self.activation_function = activation_for(self._activation_type)
        self.regularization_function = regularization_for(
            self._regularization_type
        )
        if self.is_initialized():
            self.check()
        return self

    # ------------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------------

    def size(self) -> int:
        """Product of every layer's neuron count, used as the fan-in scale."""
        total = 1
        for layer in self.layers:
            total *= layer.size()
        return total

    def architecture(self) -> List[int]:
        return [layer.size() for layer in self.layers]

    def is_initialized(self) -> bool:
        return all(layer.weights.size() > 0 for layer in self.layers)

    def check(self) -> None:
        """
        Verify every layer's weight and bias shapes against the topology.

        Raises:
            ConfigurationError: On the first layer whose shapes are wrong
        """
        previous: Optional[Layer] = None
        for layer in self.layers:
            layer.check(previous)
            previous = layer

    def initialize(self, init: InitializationFunction) -> None:
        """
        Populate every layer's weights and biases.

        Args:
            init: Initialization strategy drawing from the network's generator
        """
        fan_in = self.size()
        for index, layer in enumerate(self.layers):
            previous = self.layers[index - 1] if index > 0 else layer
            layer.initialize(init, previous, self.rng, fan_in)
        logger.debug(
            f"Initialized network {self.architecture()} "
            f"with {type(init).__name__}, fan-in scale {fan_in}"
        )

    # ------------------------------------------------------------------
    # Inference and gradients
    # ------------------------------------------------------------------

    def feedforward(
        self,
        inputs: Dataset,
        zs: Optional[Matrix] = None,
        activations: Optional[Matrix] = None
    ) -> Matrix:
        """
        Thread an input vector through every layer.

        Args:
            inputs: Input vector
            zs: Optional matrix receiving each layer's weighted inputs
            activations: Optional matrix receiving each layer's activations

        Returns:
            The output layer's activations

        Raises:
            ShapeMismatchError: If the input does not fit the input layer
        """
        current = _as_matrix(inputs)
        if current.size() != self.layers[0].size():
            raise ShapeMismatchError(
                f"input of size {current.size()} does not fit an input "
                f"layer of size {self.layers[0].size()}"
            )
        if zs is None:
            zs = Matrix()
        if activations is None:
            activations = Matrix()
        for layer in self.layers:
            current = layer.feedforward(
                current, self.activation_function, zs, activations
            )
        return current

    def compute_gradient(self, example: Dataset, expected: Dataset) -> Gradient:
        """
        Backpropagate one example.

        Args:
            example: Input vector
            expected: Desired output vector

        Returns:
            The bias and weight gradients of every non-input layer
        """
        zs = Matrix()
        activations = Matrix()
        output = self.feedforward(example, zs, activations)
        error = self.cost_function.derivative(_as_matrix(expected), output)

        deltas: List[Matrix] = []
        for index in range(len(self.layers) - 1, 0, -1):
            layer = self.layers[index]
            delta = error.product(
                zs.get_row(index).apply(self.activation_function.derivative)
            )
            deltas.insert(0, delta)
            if index > 1:
                previous = self.layers[index - 1]
                error = Matrix([
                    delta.product(layer.weights.column(neuron)).sum()
                    for neuron in range(previous.size())
                ])

        nabla_w = Matrix()
        for index, delta in enumerate(deltas, start=1):
            incoming = activations.get_row(index - 1)
            nabla_w.append([
                [incoming.get_scalar(weight) * delta.get_scalar(neuron)
                 for weight in range(incoming.size())]
                for neuron in range(delta.size())
            ])
        return Gradient(Matrix(deltas), nabla_w)

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def batch(
        self,
        data: Dataset,
        expected: Dataset,
        divisor: int,
        regularize: bool = False
    ) -> None:
        """
        Apply one gradient descent step for a mini-batch.

        Per-example gradients are summed and scaled by ``eta / divisor``.
        With ``regularize`` the regularization gradient, scaled by
        ``lmbda * eta / divisor``, is added to each weight step.

        Args:
            data: Input vectors of the batch
            expected: Desired output vectors of the batch
            divisor: Normalisation of the summed gradient
            regularize: Whether to include the regularization gradient
        """
        data = _as_matrix(data)
        expected = _as_matrix(expected)
        if data.size() != expected.size():
            raise ShapeMismatchError(
                f"{data.size()} examples but {expected.size()} expected outputs"
            )
        if data.size() == 0:
            return

        nabla_b = nabla_w = None
        for example, target in zip(data, expected):
            gradient = self.compute_gradient(example, target)
            if nabla_b is None:
                nabla_b, nabla_w = gradient
            else:
                nabla_b = nabla_b.add(gradient.biases)
                nabla_w = nabla_w.add(gradient.weights)

        step = self.eta / divisor
        for index, layer in enumerate(self.layers[1:]):
            bias_step = nabla_b.get_row(index).scale(step)
            weight_step = nabla_w.get_row(index).scale(step)
            if regularize:
                weight_step = weight_step.add(
                    self.regularization_function.gradient(layer.weights)
                    .scale(self.lmbda * step)
                )
            layer.update(bias_step, weight_step)

    def epoch(
        self,
        data: Dataset,
        expected: Dataset,
        batch_size: int,
        regularize: bool = False
    ) -> int:
        """
        Run ``batch`` over contiguous chunks of ``batch_size`` examples.

        A trailing partial chunk is dropped.

        Returns:
            Number of examples processed
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        data = _as_matrix(data)
        expected = _as_matrix(expected)
        total = data.size()
        if self.normalization is GradientNormalization.DATASET:
            divisor = total
        else:
            divisor = batch_size

        batches = total // batch_size
        for number in range(batches):
            start = number * batch_size
            self.batch(
                Matrix([data.get(start + i) for i in range(batch_size)]),
                Matrix([expected.get(start + i) for i in range(batch_size)]),
                divisor,
                regularize
            )
        return batches * batch_size

    def shuffle(self, data: Dataset, expected: Dataset) -> Tuple[Matrix, Matrix]:
        """
        Return shuffled copies of a dataset and its expected outputs.

        Performs one swap of two uniformly drawn positions per example, the
        same permutation applied to both sequences.
        """
        shuffled_data = Matrix(_as_matrix(data))
        shuffled_expected = Matrix(_as_matrix(expected))
        total = shuffled_data.size()
        for _ in range(total):
            first = int(self.rng.random() * total)
            second = int(self.rng.random() * total)
            for values in (shuffled_data, shuffled_expected):
                swap = values.get(first)
                values.set(first, values.get(second))
                values.set(second, swap)
        return shuffled_data, shuffled_expected

    def train(
        self,
        data: Dataset,
        expected: Dataset,
        epochs: int,
        batch_size: int,
        regularize: bool = False,
        callback: Optional[Callable[[Dict[str, Any]], None]] = None
    ) -> None:
        """
        Train with mini-batch stochastic gradient descent.

        Args:
            data: Input vectors
            expected: Desired output vectors
            epochs: Number of passes over freshly shuffled data
            batch_size: Examples per mini-batch
            regularize: Whether batches include the regularization gradient
            callback: Optional function called after each epoch with a dict
                holding ``epoch``, ``total_epochs``, ``processed``, ``loss``
                and ``elapsed_time``
        """
        data = _as_matrix(data)
        expected = _as_matrix(expected)
        if data.size() != expected.size():
            raise ShapeMismatchError(
                f"{data.size()} examples but {expected.size()} expected outputs"
            )

        logger.info(
            f"Training {self.architecture()} for {epochs} epoch(s), "
            f"batch_size={batch_size}, eta={self.eta}, lambda={self.lmbda}"
        )
        start = time.time()
        for epoch in range(epochs):
            shuffled_data, shuffled_expected = self.shuffle(data, expected)
            processed = self.epoch(
                shuffled_data, shuffled_expected, batch_size, regularize
            )
            if callback is not None:
                callback({
                    'epoch': epoch + 1,
                    'total_epochs': epochs,
                    'processed': processed,
                    'loss': self.evaluate(data, expected),
                    'elapsed_time': time.time() - start
                })
        logger.info(f"Training finished in {time.time() - start:.2f}s")

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, data: Dataset, expected: Dataset) -> float:
        """
        Mean per-example cost plus the regularization penalty.

        The penalty is summed over every layer's weights and is added
        after averaging, so it is not divided by the dataset size.
        """
        data = _as_matrix(data)
        expected = _as_matrix(expected)
        if data.size() == 0:
            raise ValueError("cannot evaluate an empty dataset")
        if data.size() != expected.size():
            raise ShapeMismatchError(
                f"{data.size()} examples but {expected.size()} expected outputs"
            )
        total = 0.0
        for example, target in zip(data, expected):
            total += self.cost_function.cost(target, self.feedforward(example))
        penalty = sum(
            self.regularization_function.penalty(layer.weights)
            for layer in self.layers
        )
        return total / data.size() + penalty

    def accuracy(self, data: Dataset, expected: Dataset) -> float:
        """
        Fraction of examples whose predicted label matches the expected one.

        Multi-output networks compare arg-max positions; single-output
        networks threshold the output at 0.5.
        """
        data = _as_matrix(data)
        expected = _as_matrix(expected)
        if data.size() == 0:
            raise ValueError("cannot score an empty dataset")
        correct = sum(
            int(_label(self.feedforward(example)) == _label(_as_matrix(target)))
            for example, target in zip(data, expected)
        )
        return correct / data.size()


def _label(vector: Matrix) -> int:
    values = vector.to_list()
    if len(values) == 1:
        return int(values[0] >= 0.5)
    return int(np.argmax(values))
