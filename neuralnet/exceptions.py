"""
exceptions.py
~~~~~~~~~~~~~

Error taxonomy for the neural network library.

Core errors are raised where the violation is detected and are never
caught inside the numeric engine.
"""


class NeuralNetworkError(Exception):
    """Base class for every error raised by this package."""


class ShapeMismatchError(NeuralNetworkError, ValueError):
    """A binary matrix operation was given operands of different shapes."""


class IndexOutOfRangeError(NeuralNetworkError, IndexError):
    """A container was accessed beyond its bounds."""


class ConfigurationError(NeuralNetworkError, ValueError):
    """A network or layer configuration is invalid."""


class UnsupportedLayerOperationError(NeuralNetworkError, NotImplementedError):
    """An operation was invoked on a layer variant that does not implement it."""
