"""
K-nearest-neighbor classification for patrec.

A query point is labeled by majority vote among the k loaded points
closest to it in Euclidean distance.

References:
    Cover T, Hart P. Nearest neighbor pattern classification.
    IEEE Transactions on Information Theory, 13(1), 1967.
"""

import logging
from collections import Counter
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial.distance import cdist

from patrec.components.config import Config, ConfigManager
from patrec.errors import InvalidParameterError
from patrec.math.dataset import LabeledPoint, points_from_flat, labels_from_seq, query_vector
from patrec.utils.general import check_load_arguments

# Set up logging
logger = logging.getLogger(__name__)

Neighbor = Tuple[int, float, Any]


def vote(labels: Sequence[Any], tie_break: str = 'nearest') -> Any:
    """
    Majority vote over labels given in neighbor order (nearest first).

    Ties between labels sharing the highest count are resolved by the
    tie_break policy:

    - 'nearest': the tied label whose first neighbor ranks closest
    - 'last-seen': the tied label whose last neighbor ranks farthest
    - 'lexicographic': the smallest tied label

    Args:
        labels: Neighbor labels, nearest first
        tie_break: Tie-break policy

    Returns:
        The winning label, or None if labels is empty
    """
    if not labels:
        return None

    # Counter keeps first-insertion order, i.e. neighbor rank
    counts = Counter(labels)
    top = max(counts.values())
    tied = [label for label, count in counts.items() if count == top]

    if len(tied) > 1:
        logger.debug(f"Vote tie between {tied} at {top} votes, using '{tie_break}'")

    if tie_break == 'last-seen':
        last_rank = {label: rank for rank, label in enumerate(labels)}
        return max(tied, key=last_rank.get)
    if tie_break == 'lexicographic':
        return min(tied)
    return tied[0]


class PreparedQuery:
    """
    A query point bound to the classifier that will label it.

    Returned by KnnClassifier.set_query so that the fluent
    ``knn.set_query(point).classify(k)`` style works without the
    classifier holding a current query.
    """

    __slots__ = ('_classifier', '_point')

    def __init__(self, classifier: 'KnnClassifier', point: np.ndarray):
        self._classifier = classifier
        self._point = np.array(point, dtype=float)
        self._point.setflags(write=False)

    @property
    def point(self) -> np.ndarray:
        return self._point

    def classify(self, k: int) -> Any:
        """Label the query by majority vote among its k nearest neighbors."""
        return self._classifier.classify(self._point, k)

    def neighbors(self, k: int) -> List[Neighbor]:
        """Return the k nearest neighbors of the query."""
        return self._classifier.neighbors(self._point, k)

    def __getitem__(self, k: int) -> Any:
        return self.classify(k)

    def __repr__(self) -> str:
        return f"PreparedQuery(point={self._point.tolist()})"


class KnnClassifier:
    """
    K-nearest-neighbor classifier over a loaded set of labeled points.

    Instances are not safe for concurrent load and classify calls.
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize an empty classifier.

        Args:
            config: Configuration; defaults to the shared instance
        """
        self.config = config if config is not None else ConfigManager.get_config()
        self.dim = None
        self._matrix = np.empty((0, 0))
        self._labels: List[Any] = []

    @property
    def size(self) -> int:
        """Number of loaded points."""
        return len(self._labels)

    @property
    def points(self) -> List[LabeledPoint]:
        """The loaded points, in load order."""
        return [LabeledPoint(row, label) for row, label in zip(self._matrix, self._labels)]

    def load(self,
             points: Sequence[float],
             dim: int,
             labels: Sequence[Any],
             size: int) -> None:
        """
        Load labeled points from a flat point-major buffer.

        Point i is points[i*dim:(i+1)*dim] with label labels[i]. Any
        previously loaded data is replaced. If any argument is absent or
        zero the call does nothing (or raises in strict mode).

        Args:
            points: Flat buffer of size * dim values
            dim: Dimension of each point
            labels: One label per point
            size: Number of points
        """
        args = {'points': points, 'dim': dim, 'labels': labels, 'size': size}
        if not check_load_arguments('KnnClassifier.load', args, self.config.strict):
            return

        matrix = points_from_flat(points, dim, size)
        label_list = labels_from_seq(labels, int(size))

        self._matrix = matrix
        self._labels = label_list
        self.dim = int(dim)

        logger.info(f"Loaded {self.size} points of dimension {self.dim} "
                    f"with {len(set(label_list))} distinct labels")

    def set_query(self, point: Sequence[float]) -> PreparedQuery:
        """
        Prepare a point for classification.

        Args:
            point: Query values, one per dimension

        Returns:
            PreparedQuery whose classify(k) labels the point
        """
        return PreparedQuery(self, query_vector(point, self.dim))

    def distances(self, query: Sequence[float]) -> np.ndarray:
        """
        Euclidean distance from the query to every loaded point.

        Args:
            query: Query values

        Returns:
            Array of distances in load order
        """
        if not self._labels:
            return np.empty(0)
        vector = query_vector(query, self.dim)
        return cdist(vector[np.newaxis, :], self._matrix, metric='euclidean')[0]

    def _valid_k(self, k: int) -> bool:
        if 0 < k <= self.size:
            return True

        message = f"k={k} is outside [1, {self.size}] for the loaded dataset"
        if self.config.strict:
            raise InvalidParameterError(message)
        logger.warning(message)
        return False

    def neighbors(self, query: Sequence[float], k: int) -> List[Neighbor]:
        """
        Find the k loaded points nearest to the query.

        Equal distances keep load order.

        Args:
            query: Query values
            k: Number of neighbors

        Returns:
            List of (index, distance, label), nearest first
        """
        if not self._valid_k(k):
            return []

        distances = self.distances(query)
        nearest = np.argsort(distances, kind='stable')[:k]
        return [(int(i), float(distances[i]), self._labels[i]) for i in nearest]

    def classify(self, query: Sequence[float], k: int) -> Any:
        """
        Label the query by majority vote among its k nearest neighbors.

        With k == 1 the nearest point's label is returned directly. An
        out-of-range k returns None (or raises in strict mode).

        Args:
            query: Query values
            k: Number of neighbors

        Returns:
            The winning label
        """
        if not self._valid_k(k):
            return None

        if k == 1:
            distances = self.distances(query)
            return self._labels[int(np.argmin(distances))]

        labels = [label for _, _, label in self.neighbors(query, k)]
        return vote(labels, self.config.get('knn.tie-break', 'nearest'))

    def __repr__(self) -> str:
        return f"KnnClassifier(size={self.size}, dim={self.dim})"
