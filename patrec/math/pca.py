"""
PCA (Principal Component Analysis) implementation for patrec.

This module orthogonally transforms the dim coordinates of a dataset
into k coordinates along the directions of largest variance, using a
singular value decomposition of the empirical covariance.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy import linalg

from patrec.components.config import Config, ConfigManager
from patrec.errors import NotFittedError
from patrec.math.dataset import ProjectionBasis, points_from_flat
from patrec.utils.general import check_load_arguments, flatten_point_major, resolve_target_dim

# Set up logging
logger = logging.getLogger(__name__)


def center_rows(data: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Subtract the mean of each row (coordinate) from a (dim x n) matrix.

    Args:
        data: Data matrix, one point per column

    Returns:
        Tuple of (centered matrix, row means)
    """
    means = data.mean(axis=1)
    return data - means[:, np.newaxis], means


def covariance(centered: np.ndarray) -> np.ndarray:
    """
    Empirical covariance X * X^T / (n - 1) of centered (dim x n) data.

    A single point gives the zero matrix.

    Args:
        centered: Centered data matrix

    Returns:
        (dim x dim) covariance matrix
    """
    n = centered.shape[1]
    return centered @ centered.T / max(n - 1, 1)


def normalize_signs(vectors: np.ndarray) -> np.ndarray:
    """
    Flip each column so its largest-magnitude coordinate is positive.

    Args:
        vectors: Matrix whose columns are basis vectors

    Returns:
        Matrix with the same columns up to sign
    """
    vectors = np.array(vectors, dtype=float)
    largest = np.argmax(np.abs(vectors), axis=0)
    signs = np.sign(vectors[largest, np.arange(vectors.shape[1])])
    signs[signs == 0] = 1.0
    return vectors * signs


def principal_basis(centered: np.ndarray,
                    solver: str = 'svd',
                    normalize_sign: bool = True) -> ProjectionBasis:
    """
    Compute the principal directions of centered data.

    The 'svd' solver takes the left singular vectors of the covariance.
    The 'eigh' solver eigendecomposes the covariance directly, which is
    less robust on ill-conditioned data.

    Args:
        centered: Centered (dim x n) data matrix
        solver: 'svd' or 'eigh'
        normalize_sign: Apply normalize_signs to the directions

    Returns:
        ProjectionBasis ordered by descending variance
    """
    cov = covariance(centered)

    if solver == 'eigh':
        values, vectors = linalg.eigh(cov)
        order = np.argsort(values, kind='stable')[::-1]
        values = np.maximum(values[order], 0.0)
        vectors = vectors[:, order]
    else:
        vectors, values, _ = linalg.svd(cov)

    logger.debug(f"Principal values ({solver}): {values}")

    if normalize_sign:
        vectors = normalize_signs(vectors)

    return ProjectionBasis(vectors, values)


class PcaReducer:
    """
    Principal component reducer.

    Holds the loaded data centered on its mean, one point per column.
    The projection basis is recomputed on every call.
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize an empty reducer.

        Args:
            config: Configuration; defaults to the shared instance
        """
        self.config = config if config is not None else ConfigManager.get_config()
        self._centered = None
        self._mean = None

    @property
    def is_fitted(self) -> bool:
        return self._centered is not None

    @property
    def dim(self) -> Optional[int]:
        return None if self._centered is None else self._centered.shape[0]

    @property
    def size(self) -> int:
        return 0 if self._centered is None else self._centered.shape[1]

    @property
    def mean(self) -> Optional[np.ndarray]:
        """Per-coordinate mean removed during fit."""
        return None if self._mean is None else self._mean.copy()

    @property
    def centered(self) -> Optional[np.ndarray]:
        """Centered (dim x size) data matrix."""
        return None if self._centered is None else self._centered.copy()

    def fit(self, data: Sequence[float], dim: int, size: int) -> 'PcaReducer':
        """
        Load data from a flat point-major buffer and center it.

        If any argument is absent or zero the call does nothing (or
        raises in strict mode).

        Args:
            data: Flat buffer of size * dim values
            dim: Dimension of each point
            size: Number of points

        Returns:
            self
        """
        args = {'data': data, 'dim': dim, 'size': size}
        if not check_load_arguments('PcaReducer.fit', args, self.config.strict):
            return self

        matrix = points_from_flat(data, dim, size).T
        self._centered, self._mean = center_rows(matrix)

        logger.info(f"Fitted PCA on {self.size} points of dimension {self.dim}")
        return self

    reduce = fit

    def _check_fitted(self) -> None:
        if self._centered is None:
            raise NotFittedError("PcaReducer must be fitted before use")

    def basis(self, k: Optional[int] = None) -> ProjectionBasis:
        """
        Compute the principal directions.

        Args:
            k: Number of directions to keep; all of them if None

        Returns:
            ProjectionBasis ordered by descending variance
        """
        self._check_fitted()
        basis = principal_basis(
            self._centered,
            solver=self.config.get('pca.solver', 'svd'),
            normalize_sign=self.config.get('pca.normalize-sign', True))

        if k is None:
            return basis
        return basis.top(resolve_target_dim(k, self.dim, self.config.strict))

    def explained_variance_ratio(self, k: Optional[int] = None) -> np.ndarray:
        """
        Fraction of the total variance captured by each direction.

        Args:
            k: Number of directions; all of them if None

        Returns:
            Array of ratios, descending
        """
        full = self.basis()
        total = full.values.sum()
        ratios = full.values / total if total > 0 else np.zeros_like(full.values)

        if k is None:
            return ratios
        return ratios[:resolve_target_dim(k, self.dim, self.config.strict)]

    def transform(self, k: int) -> np.ndarray:
        """
        Project the centered data onto the top k principal directions.

        A k outside [1, dim] clamps to dim - 1 (or raises in strict mode).

        Args:
            k: Number of components to keep

        Returns:
            Flat array of k * size values, each point's k coordinates
            contiguous
        """
        basis = self.basis(k)
        projected = basis.project(self._centered)
        return flatten_point_major(projected)

    def __repr__(self) -> str:
        return f"PcaReducer(size={self.size}, dim={self.dim})"
