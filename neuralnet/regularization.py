"""
regularization.py
~~~~~~~~~~~~~~~~~

Weight penalties added to the loss and to the weight gradient.
"""

from abc import ABC, abstractmethod
from enum import Enum

from neuralnet.matrix import Matrix


class RegularizationType(Enum):
    L2 = 'l2'
    NONE = 'none'


class RegularizationFunction(ABC):

    @abstractmethod
    def penalty(self, weights: Matrix) -> float:
        """Scalar penalty contributed by ``weights`` to the total loss."""

    @abstractmethod
    def gradient(self, weights: Matrix) -> Matrix:
        """
        Gradient of the penalty with respect to ``weights``.

        The caller scales it by ``lambda * eta / n`` before adding it to the
        weight step.
        """


class L2Regularization(RegularizationFunction):

    def penalty(self, weights: Matrix) -> float:
        return 0.5 * weights.apply(lambda w: w ** 2).sum()

    def gradient(self, weights: Matrix) -> Matrix:
        return Matrix(weights)


class NoRegularization(RegularizationFunction):

    def penalty(self, weights: Matrix) -> float:
        return 0.0

    def gradient(self, weights: Matrix) -> Matrix:
        return weights.shape()


_REGULARIZATIONS = {
    RegularizationType.L2: L2Regularization,
    RegularizationType.NONE: NoRegularization,
}


def regularization_for(
    regularization_type: RegularizationType
) -> RegularizationFunction:
    """Create the regularization strategy for a type tag."""
    return _REGULARIZATIONS[RegularizationType(regularization_type)]()
