"""
neuralnet package
~~~~~~~~~~~~~~~~~

Feedforward neural network library trained with backpropagation and
mini-batch stochastic gradient descent.
Contains the matrix container, the pluggable strategies, the layers and
network, configuration, JSON persistence, and a REST API server.
"""

__version__ = "1.0.0"
