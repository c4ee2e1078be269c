"""
initialization.py
~~~~~~~~~~~~~~~~~

Random weight and bias generators used when a network is built.

Both strategies draw from the network-owned ``numpy.random.Generator`` so
that a seed fully determines the initial parameters.
"""

import math
from abc import ABC, abstractmethod
from enum import Enum

import numpy as np


class InitializationType(Enum):
    DUMB = 'dumb'
    SMART = 'smart'


class InitializationFunction(ABC):

    @abstractmethod
    def weight(self, rng: np.random.Generator, fan_in: int) -> float:
        """Draw one initial weight."""

    @abstractmethod
    def bias(self, rng: np.random.Generator, fan_in: int) -> float:
        """Draw one initial bias."""


def _uniform_difference(rng: np.random.Generator) -> float:
    # Difference of two uniform draws, triangular on (-1, 1)
    return float(rng.random() - rng.random())


class DumbInitialization(InitializationFunction):
    """Unscaled uniform-difference weights and biases."""

    def weight(self, rng: np.random.Generator, fan_in: int) -> float:
        return _uniform_difference(rng)

    def bias(self, rng: np.random.Generator, fan_in: int) -> float:
        return _uniform_difference(rng)


class SmartInitialization(InitializationFunction):
    """Uniform-difference weights scaled down by ``sqrt(fan_in)``."""

    def weight(self, rng: np.random.Generator, fan_in: int) -> float:
        return _uniform_difference(rng) / math.sqrt(fan_in)

    def bias(self, rng: np.random.Generator, fan_in: int) -> float:
        return _uniform_difference(rng)


_INITIALIZATIONS = {
    InitializationType.DUMB: DumbInitialization,
    InitializationType.SMART: SmartInitialization,
}


def initialization_for(
    initialization_type: InitializationType
) -> InitializationFunction:
    """Create the initialization strategy for a type tag."""
    return _INITIALIZATIONS[InitializationType(initialization_type)]()
