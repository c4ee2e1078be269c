"""
activation.py
~~~~~~~~~~~~~

Activation functions applied elementwise during the forward and backward
passes.
"""

import math
from abc import ABC, abstractmethod
from enum import Enum


class ActivationType(Enum):
    SIGMOID = 'sigmoid'
    RELU = 'relu'
    TANH = 'tanh'


class ActivationFunction(ABC):
    """Stateless scalar activation and its derivative."""

    @abstractmethod
    def value(self, z: float) -> float:
        """
        Args:
            z: Weighted input of a neuron

        Returns:
            The neuron's activation
        """

    @abstractmethod
    def derivative(self, z: float) -> float:
        """
        Args:
            z: Weighted input of a neuron

        Returns:
            The derivative of the activation with respect to ``z``
        """


class SigmoidActivationFunction(ActivationFunction):

    def value(self, z: float) -> float:
        # Split on the sign so exp() never overflows
        if z >= 0:
            return 1.0 / (1.0 + math.exp(-z))
        e = math.exp(z)
        return e / (1.0 + e)

    def derivative(self, z: float) -> float:
        a = self.value(z)
        return a * (1.0 - a)


class ReLUActivationFunction(ActivationFunction):

    def value(self, z: float) -> float:
        return z if z > 0 else 0.0

    def derivative(self, z: float) -> float:
        # Derivative at 0 is taken as 0
        return 1.0 if z > 0 else 0.0


class TanhActivationFunction(ActivationFunction):

    def value(self, z: float) -> float:
        return math.tanh(z)

    def derivative(self, z: float) -> float:
        return 1.0 - math.tanh(z) ** 2


_ACTIVATIONS = {
    ActivationType.SIGMOID: SigmoidActivationFunction,
    ActivationType.RELU: ReLUActivationFunction,
    ActivationType.TANH: TanhActivationFunction,
}


def activation_for(activation_type: ActivationType) -> ActivationFunction:
    """Create the activation strategy for a type tag."""
    return _ACTIVATIONS[ActivationType(activation_type)]()
