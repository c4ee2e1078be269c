"""
test_datasets.py
~~~~~~~~~~~~~~~~

Unit tests for dataset helpers.
"""

import pytest
import os
import sys

import numpy as np

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from neuralnet.datasets import from_arrays, linearly_separable, load_npz, xor
from neuralnet.exceptions import ShapeMismatchError


@pytest.mark.unit
class TestDatasets:
    """Test dataset construction."""

    def test_xor(self):
        """Test the four XOR examples."""
        data, expected = xor()
        assert data.size() == 4
        assert [row.get_scalar(0) for row in expected] == [0.0, 1.0, 1.0, 0.0]

    def test_linearly_separable(self):
        """Test that both classes are present and reproducible."""
        data, expected = linearly_separable(n=10, seed=3)
        assert data.dimensions() == [10, 2]
        assert expected.sum() == 5.0
        assert linearly_separable(n=10, seed=3)[0] == data

    def test_from_arrays_one_hot(self):
        """Test one-hot encoding of integer labels."""
        data, expected = from_arrays(np.zeros((3, 2, 2)), np.array([0, 2, 1]), num_classes=3)
        assert data.dimensions() == [3, 4]
        assert expected.to_list() == [[1.0, 0.0, 0.0], [0.0, 0.0, 1.0], [0.0, 1.0, 0.0]]

    def test_from_arrays_length_mismatch(self):
        """Test that inputs and labels must pair up."""
        with pytest.raises(ShapeMismatchError):
            from_arrays(np.zeros((3, 2)), np.zeros(2))

    def test_load_npz(self, tmp_path):
        """Test loading a prefixed archive."""
        path = str(tmp_path / "digits.npz")
        np.savez_compressed(
            path,
            test_images=np.ones((2, 3)),
            test_labels=np.array([1, 0])
        )
        data, expected = load_npz(path, prefix='test', num_classes=2)
        assert data.to_list() == [[1.0, 1.0, 1.0], [1.0, 1.0, 1.0]]
        assert expected.to_list() == [[0.0, 1.0], [1.0, 0.0]]
