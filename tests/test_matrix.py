"""
test_matrix.py
~~~~~~~~~~~~~~

Unit tests for the jagged Matrix container.
"""

import pytest
import os
import sys

import numpy as np

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from neuralnet.matrix import Matrix
from neuralnet.exceptions import IndexOutOfRangeError, ShapeMismatchError


@pytest.fixture
def square():
    """A 2x2 matrix with exactly representable values."""
    return Matrix([[1.0, 2.0], [3.0, 4.0]])


@pytest.fixture
def jagged():
    """A matrix whose rows have different lengths."""
    return Matrix([[1.0], [2.0, 3.0, 4.0], [5.0, 6.0]])


@pytest.mark.unit
class TestConstruction:
    """Test creating and mutating matrices."""

    def test_empty_matrix(self):
        """Test that a new matrix is empty."""
        m = Matrix()
        assert m.size() == 0
        assert len(m) == 0
        assert m.to_list() == []

    def test_copy_is_deep(self, square):
        """Test that copy construction does not share rows."""
        copy = Matrix(square)
        copy.get_row(0).set(0, 99.0)
        assert square.get_row(0).get_scalar(0) == 1.0
        assert copy.get_row(0).get_scalar(0) == 99.0

    def test_append_and_prepend(self):
        """Test that append adds at the end and prepend at the front."""
        m = Matrix()
        m.append(2.0)
        m.append([3.0, 4.0])
        m.prepend(1.0)
        assert m.to_list() == [1.0, 2.0, [3.0, 4.0]]
        assert isinstance(m.get(2), Matrix)

    def test_set_replaces_element(self, square):
        """Test that set replaces an element in place."""
        square.set(1, [7.0, 8.0])
        assert square.to_list() == [[1.0, 2.0], [7.0, 8.0]]

    def test_from_numpy(self):
        """Test that numpy arrays are converted to nested floats."""
        m = Matrix(np.arange(6).reshape(2, 3))
        assert m.to_list() == [[0.0, 1.0, 2.0], [3.0, 4.0, 5.0]]
        assert all(isinstance(v, float) for v in m.get_row(1))

    def test_to_numpy(self, square):
        """Test conversion of a rectangular matrix to an array."""
        assert np.array_equal(square.to_numpy(), np.array([[1.0, 2.0], [3.0, 4.0]]))

    def test_to_numpy_rejects_jagged(self, jagged):
        """Test that a jagged matrix has no array form."""
        with pytest.raises(ShapeMismatchError):
            jagged.to_numpy()


@pytest.mark.unit
class TestAccess:
    """Test element access and bounds checking."""

    def test_get_scalar_and_row(self, square):
        """Test typed element access."""
        assert square.get_row(1).to_list() == [3.0, 4.0]
        assert square.get_row(1).get_scalar(0) == 3.0
        assert square[0][1] == 2.0

    def test_negative_index(self, square):
        """Test that negative indices count from the end."""
        assert square.get_row(-1).get_scalar(-1) == 4.0

    def test_index_out_of_range(self, square):
        """Test that reads beyond bounds fail."""
        with pytest.raises(IndexOutOfRangeError):
            square.get(2)
        with pytest.raises(IndexOutOfRangeError):
            square.get_row(0).get_scalar(5)
        with pytest.raises(IndexOutOfRangeError):
            square.set(-3, 0.0)

    def test_index_error_is_index_error(self, square):
        """Test that the error is catchable as a builtin IndexError."""
        with pytest.raises(IndexError):
            square.get(10)

    def test_reads_never_resize(self, square):
        """Test that failed reads leave the matrix unchanged."""
        with pytest.raises(IndexOutOfRangeError):
            square.get(3)
        assert square.size() == 2

    def test_get_row_on_scalar(self):
        """Test that asking for a row where a scalar sits fails."""
        with pytest.raises(ShapeMismatchError):
            Matrix([1.0, 2.0]).get_row(0)

    def test_get_scalar_on_row(self, square):
        """Test that asking for a scalar where a row sits fails."""
        with pytest.raises(ShapeMismatchError):
            square.get_scalar(0)


@pytest.mark.unit
class TestAlgebra:
    """Test elementwise operations."""

    def test_add_negate_round_trip(self, square):
        """Test A + B + (-1 * B) == A."""
        other = Matrix([[5.0, -6.0], [0.5, 8.0]])
        negated = other.shape().fill(-1.0).product(other)
        assert square.add(other).add(negated) == square

    def test_add_negate_round_trip_jagged(self, jagged):
        """Test the round trip on a jagged matrix."""
        other = jagged.apply(lambda v: v * 2.0)
        negated = other.shape().fill(-1.0).product(other)
        assert jagged.add(other).add(negated) == jagged

    def test_product_with_ones_is_identity(self, square, jagged):
        """Test A * ones == A."""
        assert square.product(square.shape().fill(1.0)) == square
        assert jagged.product(jagged.shape().fill(1.0)) == jagged

    def test_product(self, square):
        """Test elementwise multiplication."""
        assert square.product(square).to_list() == [[1.0, 4.0], [9.0, 16.0]]

    def test_subtract_and_scale(self, square):
        """Test difference and scaling."""
        assert square.subtract(square.fill(1.0)).to_list() == [[0.0, 1.0], [2.0, 3.0]]
        assert square.scale(0.5).to_list() == [[0.5, 1.0], [1.5, 2.0]]

    def test_binary_ops_do_not_alias(self, square):
        """Test that results never share storage with operands."""
        result = square.add(square.shape())
        result.get_row(0).set(0, 100.0)
        assert square.get_row(0).get_scalar(0) == 1.0

    @pytest.mark.parametrize('left,right', [
        ([[1.0, 2.0]], [[1.0, 2.0], [3.0, 4.0]]),
        ([[1.0, 2.0], [3.0, 4.0]], [[1.0, 2.0], [3.0]]),
        ([1.0, 2.0, 3.0], [1.0, 2.0]),
        ([[1.0], [2.0]], [1.0, 2.0]),
    ])
    def test_mismatched_shapes_fail(self, left, right):
        """Test that add and product reject mismatched shapes."""
        with pytest.raises(ShapeMismatchError):
            Matrix(left).add(Matrix(right))
        with pytest.raises(ShapeMismatchError):
            Matrix(left).product(Matrix(right))

    def test_sum_reduces_all_depths(self, jagged):
        """Test that sum adds every scalar."""
        assert jagged.sum() == 21.0
        assert Matrix([[[1.0, 2.0]], [[3.0]]]).sum() == 6.0

    def test_apply(self, square):
        """Test applying a scalar function."""
        assert square.apply(lambda v: v * v).to_list() == [[1.0, 4.0], [9.0, 16.0]]

    def test_column(self, square):
        """Test column extraction."""
        assert square.column(1).to_list() == [2.0, 4.0]

    def test_column_out_of_range(self, jagged):
        """Test that a column missing from a short row fails."""
        with pytest.raises(IndexOutOfRangeError):
            jagged.column(1)


@pytest.mark.unit
class TestShape:
    """Test shape-related helpers."""

    def test_shape_is_zero_filled(self, jagged):
        """Test that shape() keeps structure and zeroes every value."""
        zeros = jagged.shape()
        assert zeros.to_list() == [[0.0], [0.0, 0.0, 0.0], [0.0, 0.0]]
        assert zeros.similar(jagged)

    def test_fill(self, square):
        """Test constant fill."""
        assert square.fill(3.0).to_list() == [[3.0, 3.0], [3.0, 3.0]]

    def test_similar(self, square, jagged):
        """Test the shape equality predicate."""
        assert square.similar(Matrix([[0.0, 0.0], [0.0, 0.0]]))
        assert not square.similar(jagged)
        assert not Matrix([1.0, 2.0]).similar(Matrix([[1.0], 2.0]))

    def test_dimensions(self, square, jagged):
        """Test shape descriptions used in error messages."""
        assert square.dimensions() == [2, 2]
        assert jagged.dimensions() == [[1], [3], [2]]
