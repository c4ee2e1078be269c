"""
cost.py
~~~~~~~

Cost functions comparing a network's output activations against the
expected output.
"""

import math
from abc import ABC, abstractmethod
from enum import Enum

from neuralnet.matrix import Matrix

# Keeps log() and the cross-entropy derivative finite at saturated outputs
EPSILON = 1e-7


class CostType(Enum):
    QUADRATIC = 'quadratic'
    CROSS_ENTROPY = 'cross_entropy'


class CostFunction(ABC):
    """Stateless loss over output vectors."""

    @abstractmethod
    def cost(self, expected: Matrix, actual: Matrix) -> float:
        """
        Args:
            expected: Desired output vector
            actual: Output activations of the network

        Returns:
            The scalar loss for one example
        """

    @abstractmethod
    def derivative(self, expected: Matrix, actual: Matrix) -> Matrix:
        """
        Args:
            expected: Desired output vector
            actual: Output activations of the network

        Returns:
            Gradient of the loss with respect to ``actual``
        """


class QuadraticCostFunction(CostFunction):
    """Half the squared euclidean distance between output and target."""

    def cost(self, expected: Matrix, actual: Matrix) -> float:
        difference = actual.subtract(expected)
        return 0.5 * difference.product(difference).sum()

    def derivative(self, expected: Matrix, actual: Matrix) -> Matrix:
        return actual.subtract(expected)


class CrossEntropyCostFunction(CostFunction):
    """Binary cross-entropy summed over the output neurons."""

    @staticmethod
    def _clip(actual: Matrix) -> Matrix:
        return actual.apply(lambda a: min(max(a, EPSILON), 1.0 - EPSILON))

    def cost(self, expected: Matrix, actual: Matrix) -> float:
        clipped = self._clip(actual)
        hits = expected.product(clipped.apply(math.log))
        misses = expected.apply(lambda y: 1.0 - y).product(
            clipped.apply(lambda a: math.log(1.0 - a))
        )
        return -hits.add(misses).sum()

    def derivative(self, expected: Matrix, actual: Matrix) -> Matrix:
        clipped = self._clip(actual)
        numerator = clipped.subtract(expected)
        denominator = clipped.product(clipped.apply(lambda a: 1.0 - a))
        return numerator.product(denominator.apply(lambda d: 1.0 / d))


_COSTS = {
    CostType.QUADRATIC: QuadraticCostFunction,
    CostType.CROSS_ENTROPY: CrossEntropyCostFunction,
}


def cost_for(cost_type: CostType) -> CostFunction:
    """Create the cost strategy for a type tag."""
    return _COSTS[CostType(cost_type)]()
