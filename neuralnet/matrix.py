"""
matrix.py
~~~~~~~~~

Jagged nested numeric container used as the algebraic substrate of the
network.

A ``Matrix`` is an ordered sequence whose elements are either floats or
nested ``Matrix`` objects. A matrix of floats acts as a vector, a matrix
of vectors as a (possibly jagged) 2-D matrix, and gradients nest one level
deeper (one matrix per layer).
"""

from typing import Any, Callable, Iterable, Iterator, List, Union

import numpy as np

from neuralnet.exceptions import IndexOutOfRangeError, ShapeMismatchError

Element = Union[float, 'Matrix']


def _convert(value: Any) -> Element:
    """
    Normalise a value before it is stored in a matrix.

    Args:
        value: A scalar, a ``Matrix`` or any nested iterable

    Returns:
        A float or a ``Matrix``
    """
    if isinstance(value, Matrix):
        return value
    if isinstance(value, np.ndarray):
        if value.ndim == 0:
            return float(value)
        return Matrix(value)
    if isinstance(value, (list, tuple)):
        return Matrix(value)
    return float(value)


class Matrix:
    """
    Ordered, variable-length sequence of scalars or sub-matrices.

    Binary operations require operands with identical (recursive) shape
    and always return new matrices.
    """

    def __init__(self, values: Union['Matrix', Iterable[Any], None] = None):
        """
        Create an empty matrix, or a deep copy of ``values``.

        Args:
            values: Optional matrix or nested iterable to copy
        """
        self._data: List[Element] = []
        if values is None:
            return
        for value in values:
            if isinstance(value, Matrix):
                value = Matrix(value)
            self._data.append(_convert(value))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def append(self, value: Any) -> 'Matrix':
        """Add a scalar or sub-matrix at the end."""
        self._data.append(_convert(value))
        return self

    def prepend(self, value: Any) -> 'Matrix':
        """Add a scalar or sub-matrix at the front."""
        self._data.insert(0, _convert(value))
        return self

    def set(self, index: int, value: Any) -> 'Matrix':
        """Replace the element at ``index``."""
        self._data[self._check_index(index)] = _convert(value)
        return self

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def _check_index(self, index: int) -> int:
        size = len(self._data)
        if not -size <= index < size:
            raise IndexOutOfRangeError(
                f"index {index} out of range for matrix of size {size}"
            )
        return index

    def get(self, index: int) -> Element:
        return self._data[self._check_index(index)]

    def get_row(self, index: int) -> 'Matrix':
        """Return the sub-matrix at ``index``."""
        value = self.get(index)
        if not isinstance(value, Matrix):
            raise ShapeMismatchError(f"element {index} is a scalar, not a row")
        return value

    def get_scalar(self, index: int) -> float:
        """Return the scalar at ``index``."""
        value = self.get(index)
        if isinstance(value, Matrix):
            raise ShapeMismatchError(f"element {index} is a row, not a scalar")
        return value

    def size(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[Element]:
        return iter(self._data)

    def __getitem__(self, index: int) -> Element:
        return self.get(index)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"Matrix({self.to_list()!r})"

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    def similar(self, other: 'Matrix') -> bool:
        """Return True if ``other`` has exactly the same nested shape."""
        if not isinstance(other, Matrix) or len(self) != len(other):
            return False
        for mine, theirs in zip(self._data, other._data):
            if isinstance(mine, Matrix):
                if not mine.similar(theirs):
                    return False
            elif isinstance(theirs, Matrix):
                return False
        return True

    def shape(self) -> 'Matrix':
        """Return a zero-filled matrix of the same shape."""
        return self.fill(0.0)

    def fill(self, value: float) -> 'Matrix':
        """Return a matrix of the same shape with every scalar set to ``value``."""
        return self.apply(lambda _: value)

    # ------------------------------------------------------------------
    # Algebra
    # ------------------------------------------------------------------

    def apply(self, fn: Callable[[float], float]) -> 'Matrix':
        """Return a new matrix with ``fn`` applied to every scalar."""
        result = Matrix()
        for value in self._data:
            if isinstance(value, Matrix):
                result._data.append(value.apply(fn))
            else:
                result._data.append(float(fn(value)))
        return result

    def _combine(
        self,
        other: 'Matrix',
        fn: Callable[[float, float], float],
        name: str
    ) -> 'Matrix':
        if not self.similar(other):
            raise ShapeMismatchError(
                f"cannot {name} matrices of different shapes: "
                f"{self.dimensions()} and {_dimensions_of(other)}"
            )
        result = Matrix()
        for mine, theirs in zip(self._data, other._data):
            if isinstance(mine, Matrix):
                result._data.append(mine._combine(theirs, fn, name))
            else:
                result._data.append(float(fn(mine, theirs)))
        return result

    def product(self, other: 'Matrix') -> 'Matrix':
        """Elementwise product."""
        return self._combine(other, lambda a, b: a * b, 'multiply')

    def add(self, other: 'Matrix') -> 'Matrix':
        """Elementwise sum."""
        return self._combine(other, lambda a, b: a + b, 'add')

    def subtract(self, other: 'Matrix') -> 'Matrix':
        """Elementwise difference."""
        return self._combine(other, lambda a, b: a - b, 'subtract')

    def scale(self, factor: float) -> 'Matrix':
        return self.product(self.fill(factor))

    def sum(self) -> float:
        """Sum every scalar at any depth."""
        total = 0.0
        for value in self._data:
            total += value.sum() if isinstance(value, Matrix) else value
        return total

    def column(self, index: int) -> 'Matrix':
        """Extract ``row[index]`` from every row as a vector."""
        result = Matrix()
        for row in range(len(self._data)):
            result._data.append(self.get_row(row).get_scalar(index))
        return result

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def dimensions(self) -> List[Any]:
        """Describe the nested shape, e.g. ``[2, 2]`` or ``[[3], [1, 2]]``."""
        if all(not isinstance(value, Matrix) for value in self._data):
            return [len(self._data)]
        rows = [
            value.dimensions() if isinstance(value, Matrix) else 0
            for value in self._data
        ]
        if all(row == rows[0] for row in rows):
            return [len(self._data)] + rows[0]
        return rows

    def to_list(self) -> List[Any]:
        """Convert to plain nested lists of floats."""
        return [
            value.to_list() if isinstance(value, Matrix) else value
            for value in self._data
        ]

    def to_numpy(self) -> np.ndarray:
        """
        Convert a rectangular matrix to a numpy array.

        Raises:
            ShapeMismatchError: If the matrix is jagged
        """
        try:
            return np.array(self.to_list(), dtype=float)
        except ValueError as e:
            raise ShapeMismatchError(
                f"jagged matrix {self.dimensions()} has no array form"
            ) from e


def _dimensions_of(value: Any) -> Any:
    return value.dimensions() if isinstance(value, Matrix) else type(value).__name__
