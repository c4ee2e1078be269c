"""
datasets.py
~~~~~~~~~~~

Helpers producing ``(data, expected)`` matrix pairs for training.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from neuralnet.exceptions import ShapeMismatchError
from neuralnet.matrix import Matrix

logger = logging.getLogger(__name__)


def xor() -> Tuple[Matrix, Matrix]:
    """The four XOR examples with single-neuron targets."""
    data = Matrix([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])
    expected = Matrix([[0.0], [1.0], [1.0], [0.0]])
    return data, expected


def linearly_separable(n: int = 40, seed: int = 0) -> Tuple[Matrix, Matrix]:
    """
    Two gaussian clusters in the plane separated by the line ``x + y = 0``.

    Args:
        n: Number of examples, split evenly between the classes
        seed: Seed of the sampling generator

    Returns:
        Inputs of length 2 and single-neuron 0/1 targets
    """
    rng = np.random.default_rng(seed)
    half = n // 2
    positives = rng.normal(loc=1.0, scale=0.3, size=(half, 2))
    negatives = rng.normal(loc=-1.0, scale=0.3, size=(n - half, 2))
    inputs = np.vstack([positives, negatives])
    labels = np.concatenate([np.ones(half), np.zeros(n - half)])
    return from_arrays(inputs, labels)


def from_arrays(
    inputs: np.ndarray,
    labels: np.ndarray,
    num_classes: Optional[int] = None
) -> Tuple[Matrix, Matrix]:
    """
    Convert numpy arrays to training matrices.

    Args:
        inputs: Array of shape ``(n, features)``; higher dimensions are
            flattened per example
        labels: Array of ``n`` labels, or of shape ``(n, outputs)``
        num_classes: If given, integer labels are one-hot encoded

    Returns:
        (data, expected)

    Raises:
        ShapeMismatchError: If inputs and labels disagree on ``n``
    """
    inputs = np.asarray(inputs, dtype=float)
    labels = np.asarray(labels)
    if inputs.shape[0] != labels.shape[0]:
        raise ShapeMismatchError(
            f"{inputs.shape[0]} inputs but {labels.shape[0]} labels"
        )

    inputs = inputs.reshape(inputs.shape[0], -1)
    if num_classes is not None:
        targets = np.eye(num_classes)[labels.astype(int)]
    else:
        targets = labels.astype(float).reshape(labels.shape[0], -1)
    return Matrix(inputs), Matrix(targets)


def load_npz(
    path: str,
    prefix: str = 'train',
    num_classes: Optional[int] = None
) -> Tuple[Matrix, Matrix]:
    """
    Load ``<prefix>_images`` and ``<prefix>_labels`` from an ``.npz`` file.

    Args:
        path: Path to the archive
        prefix: Key prefix, e.g. ``train``, ``val`` or ``test``
        num_classes: If given, labels are one-hot encoded

    Returns:
        (data, expected)
    """
    with np.load(path) as archive:
        images = archive[f'{prefix}_images']
        labels = archive[f'{prefix}_labels']
    logger.info(f"Loaded {len(images)} '{prefix}' examples from {path}")
    return from_arrays(images, labels, num_classes)
