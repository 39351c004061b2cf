"""
LDA (Linear Discriminant Analysis) implementation for patrec.

This module projects labeled data onto the directions that maximize the
separation between class means relative to the spread within classes,
by solving the eigenproblem of Sw^-1 * Sb.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy import linalg

from patrec.components.config import Config, ConfigManager
from patrec.errors import NotFittedError, SingularMatrixError
from patrec.math.dataset import ClassGroup, ProjectionBasis, points_from_flat, labels_from_seq
from patrec.utils.general import check_load_arguments, flatten_point_major, resolve_target_dim

# Set up logging
logger = logging.getLogger(__name__)


def class_means(groups: ClassGroup) -> Tuple[Dict[Any, np.ndarray], np.ndarray]:
    """
    Compute the mean of each class and the global mean.

    The global mean weights each class by its size, so it equals the
    mean of all points.

    Args:
        groups: Class groups

    Returns:
        Tuple of (label -> class mean, global mean)
    """
    means = {}
    total = np.zeros(groups.dim)
    for label, matrix in groups:
        column_sum = matrix.sum(axis=1)
        means[label] = column_sum / matrix.shape[1]
        total += column_sum
    return means, total / groups.total_size


def within_class_scatter(groups: ClassGroup, means: Dict[Any, np.ndarray]) -> np.ndarray:
    """
    Sum over classes of (X_c - m_c)(X_c - m_c)^T / (n_c - 1).

    A class with a single point contributes nothing.

    Args:
        groups: Class groups
        means: Class means

    Returns:
        (dim x dim) within-class scatter matrix
    """
    sw = np.zeros((groups.dim, groups.dim))
    for label, matrix in groups:
        deviations = matrix - means[label][:, np.newaxis]
        sw += deviations @ deviations.T / max(matrix.shape[1] - 1, 1)
    return sw


def between_class_scatter(means: Dict[Any, np.ndarray], global_mean: np.ndarray) -> np.ndarray:
    """
    Sum over classes of (m_c - m)(m_c - m)^T, unweighted by class size.

    Args:
        means: Class means
        global_mean: Mean of all points

    Returns:
        (dim x dim) between-class scatter matrix
    """
    dim = global_mean.shape[0]
    sb = np.zeros((dim, dim))
    for mean in means.values():
        offset = mean - global_mean
        sb += np.outer(offset, offset)
    return sb


def sort_eigenpairs(values: np.ndarray, vectors: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Order eigenvectors by descending eigenvalue, keeping real parts.

    Args:
        values: Eigenvalues, possibly complex
        vectors: Eigenvectors as columns, possibly complex

    Returns:
        Tuple of (sorted real eigenvalues, matching real eigenvectors)
    """
    values = np.real(values)
    vectors = np.real(vectors)
    order = np.argsort(-values, kind='stable')
    return values[order], vectors[:, order]


def discriminant_basis(sw: np.ndarray, sb: np.ndarray, max_condition: float = 1e12) -> ProjectionBasis:
    """
    Solve the eigenproblem of Sw^-1 * Sb.

    Args:
        sw: Within-class scatter
        sb: Between-class scatter
        max_condition: Largest accepted condition number of sw

    Returns:
        ProjectionBasis ordered by descending eigenvalue

    Raises:
        SingularMatrixError: If sw is singular or too ill-conditioned
    """
    condition = np.linalg.cond(sw)
    if not np.isfinite(condition) or condition > max_condition:
        raise SingularMatrixError(
            f"Within-class scatter is singular (condition number {condition:.3g}); "
            f"each class needs more points than dimensions")

    try:
        w = linalg.solve(sw, sb, assume_a='sym')
    except linalg.LinAlgError as e:
        raise SingularMatrixError(f"Within-class scatter could not be inverted: {e}") from e

    values, vectors = linalg.eig(w)
    values, vectors = sort_eigenpairs(values, vectors)
    logger.debug(f"Discriminant eigenvalues: {values}")
    return ProjectionBasis(vectors, values)


class LdaReducer:
    """
    Linear discriminant reducer.

    Holds the loaded points grouped by label. The projection basis is
    recomputed on every call.
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize an empty reducer.

        Args:
            config: Configuration; defaults to the shared instance
        """
        self.config = config if config is not None else ConfigManager.get_config()
        self._groups: Optional[ClassGroup] = None

    @property
    def is_fitted(self) -> bool:
        return self._groups is not None

    @property
    def groups(self) -> Optional[ClassGroup]:
        return self._groups

    @property
    def labels(self) -> List[Any]:
        """Class order used when concatenating projected points."""
        return [] if self._groups is None else self._groups.labels

    @property
    def class_sizes(self) -> Dict[Any, int]:
        return {} if self._groups is None else self._groups.sizes

    @property
    def dim(self) -> Optional[int]:
        return None if self._groups is None else self._groups.dim

    @property
    def size(self) -> int:
        return 0 if self._groups is None else self._groups.total_size

    def fit(self,
            data: Sequence[float],
            dim: int,
            labels: Sequence[Any],
            size: int) -> 'LdaReducer':
        """
        Load labeled points from a flat point-major buffer and group them.

        If any argument is absent or zero the call does nothing (or
        raises in strict mode).

        Args:
            data: Flat buffer of size * dim values
            dim: Dimension of each point
            labels: One label per point
            size: Number of points

        Returns:
            self
        """
        args = {'data': data, 'dim': dim, 'labels': labels, 'size': size}
        if not check_load_arguments('LdaReducer.fit', args, self.config.strict):
            return self

        points = points_from_flat(data, dim, size)
        label_list = labels_from_seq(labels, int(size))
        self._groups = ClassGroup.from_points(points, label_list)

        logger.info(f"Fitted LDA on {self.size} points of dimension {self.dim} "
                    f"in {len(self._groups)} classes")
        return self

    reduce = fit

    def _check_fitted(self) -> None:
        if self._groups is None:
            raise NotFittedError("LdaReducer must be fitted before use")

    def scatter_matrices(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute the within-class and between-class scatter matrices.

        Returns:
            Tuple of (Sw, Sb)
        """
        self._check_fitted()
        means, global_mean = class_means(self._groups)
        return within_class_scatter(self._groups, means), between_class_scatter(means, global_mean)

    def basis(self, k: Optional[int] = None) -> ProjectionBasis:
        """
        Compute the discriminant directions.

        Args:
            k: Number of directions to keep; all of them if None

        Returns:
            ProjectionBasis ordered by descending eigenvalue
        """
        sw, sb = self.scatter_matrices()
        basis = discriminant_basis(sw, sb, self.config.get('lda.max-condition', 1e12))

        if k is None:
            return basis
        return basis.top(resolve_target_dim(k, self.dim, self.config.strict))

    def transform(self, k: int) -> np.ndarray:
        """
        Project every class onto the top k discriminant directions.

        Points are projected uncentered and concatenated class by class
        in the order of self.labels. A k outside [1, dim] clamps to
        dim - 1 (or raises in strict mode).

        Args:
            k: Number of components to keep

        Returns:
            Flat array of k * size values, each point's k coordinates
            contiguous
        """
        basis = self.basis(k)
        projected = [flatten_point_major(basis.project(matrix)) for _, matrix in self._groups]
        return np.concatenate(projected)

    def __repr__(self) -> str:
        return f"LdaReducer(size={self.size}, dim={self.dim}, classes={len(self.labels)})"
