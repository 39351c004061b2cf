"""
Dataset structures for patrec.

This module turns the flat, point-major buffers accepted by the public
API into matrices, and provides the small containers shared by the
classifier and the reducers.
"""

from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from patrec.errors import InvalidInputError


class LabeledPoint:
    """
    A feature vector paired with its label.
    """

    __slots__ = ('vector', 'label')

    def __init__(self, vector: np.ndarray, label: Any):
        self.vector = np.array(vector, dtype=float)
        self.label = label

    def __repr__(self) -> str:
        return f"LabeledPoint(label={self.label!r}, vector={self.vector.tolist()})"


class ProjectionBasis:
    """
    Basis vectors of a linear projection, ordered by descending value.

    The vectors are stored as the columns of a (dim x n) matrix.
    """

    def __init__(self, vectors: np.ndarray, values: np.ndarray):
        self.vectors = np.asarray(vectors, dtype=float)
        self.values = np.asarray(values, dtype=float)

    @property
    def dim(self) -> int:
        return self.vectors.shape[0]

    def __len__(self) -> int:
        return self.vectors.shape[1]

    def top(self, k: int) -> 'ProjectionBasis':
        """Return the basis restricted to its first k vectors."""
        return ProjectionBasis(self.vectors[:, :k], self.values[:k])

    def project(self, data: np.ndarray) -> np.ndarray:
        """
        Project column-wise data onto the basis.

        Args:
            data: (dim x n) matrix, one point per column

        Returns:
            (len(self) x n) matrix of coordinates
        """
        return self.vectors.T @ data

    def __repr__(self) -> str:
        return f"ProjectionBasis(dim={self.dim}, vectors={len(self)})"


class ClassGroup:
    """
    Mapping from label to the feature matrix of every point bearing it.

    Each matrix is (dim x n_c), one point per column. Labels keep the
    order of their first appearance in the input.
    """

    def __init__(self, groups: Dict[Any, np.ndarray]):
        self._groups = dict(groups)

    @classmethod
    def from_points(cls, points: np.ndarray, labels: Sequence[Any]) -> 'ClassGroup':
        """
        Group (size x dim) points by label.

        Args:
            points: Point matrix, one point per row
            labels: One label per point

        Returns:
            ClassGroup with labels in order of first appearance
        """
        frame = pd.DataFrame(points)
        grouped = frame.groupby(pd.Series(list(labels), name='label'), sort=False, dropna=False)
        return cls({label: group.to_numpy(dtype=float).T for label, group in grouped})

    @property
    def labels(self) -> List[Any]:
        return list(self._groups.keys())

    @property
    def sizes(self) -> Dict[Any, int]:
        return {label: matrix.shape[1] for label, matrix in self._groups.items()}

    @property
    def total_size(self) -> int:
        return sum(matrix.shape[1] for matrix in self._groups.values())

    @property
    def dim(self) -> int:
        return next(iter(self._groups.values())).shape[0]

    def __getitem__(self, label: Any) -> np.ndarray:
        return self._groups[label]

    def __iter__(self) -> Iterator[Tuple[Any, np.ndarray]]:
        return iter(self._groups.items())

    def __len__(self) -> int:
        return len(self._groups)

    def __repr__(self) -> str:
        return f"ClassGroup(classes={len(self)}, sizes={self.sizes})"


def points_from_flat(data: Sequence[float], dim: int, size: int) -> np.ndarray:
    """
    Slice a flat point-major buffer into a (size x dim) matrix.

    Values past size * dim are ignored.

    Args:
        data: Flat numeric buffer
        dim: Dimension of each point
        size: Number of points

    Returns:
        Point matrix, one point per row
    """
    dim, size = int(dim), int(size)
    if dim < 0 or size < 0:
        raise InvalidInputError(f"dim and size must be positive, got dim={dim}, size={size}")

    try:
        flat = np.asarray(data, dtype=float).ravel()
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"data must be numeric: {e}") from e

    if flat.size < dim * size:
        raise InvalidInputError(
            f"data holds {flat.size} values, expected at least {dim * size} "
            f"for {size} points of dimension {dim}")

    return flat[:dim * size].reshape(size, dim).copy()


def labels_from_seq(labels: Sequence[Any], size: int) -> List[Any]:
    """
    Take the first size labels.

    Args:
        labels: Label sequence
        size: Number of points

    Returns:
        List of labels, one per point
    """
    labels = list(labels)
    if len(labels) < size:
        raise InvalidInputError(f"got {len(labels)} labels for {size} points")
    return labels[:size]


def query_vector(point: Sequence[float], dim: Optional[int]) -> np.ndarray:
    """
    Convert a query point to a vector, checking its dimension.

    Args:
        point: Query values
        dim: Expected dimension, or None to accept any

    Returns:
        1-D float array
    """
    if point is None:
        raise InvalidInputError("query point is missing")

    try:
        vector = np.asarray(point, dtype=float).ravel()
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"query must be numeric: {e}") from e

    if dim is not None and vector.size != dim:
        raise InvalidInputError(f"query has {vector.size} values, expected {dim}")
    return vector
