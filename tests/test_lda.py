"""
Tests for the LDA module.
"""

import pytest
import numpy as np
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis

from patrec.components.config import Config
from patrec.errors import InvalidInputError, InvalidParameterError, NotFittedError, SingularMatrixError
from patrec.math.dataset import ClassGroup
from patrec.math.lda import (
    class_means, within_class_scatter, between_class_scatter,
    sort_eigenpairs, discriminant_basis, LdaReducer
)


@pytest.fixture
def two_classes():
    """Two 3-D gaussian classes of 30 points each, separated along x."""
    rng = np.random.RandomState(3)
    a = rng.randn(30, 3) * [1.0, 2.0, 0.5]
    b = rng.randn(30, 3) * [1.0, 2.0, 0.5] + [4.0, 0.0, 0.0]
    points = np.vstack([a, b])
    labels = ['a'] * 30 + ['b'] * 30
    return points, labels


@pytest.fixture
def three_classes():
    """Three interleaved 4-D classes of 25 points each."""
    rng = np.random.RandomState(11)
    centers = np.array([[0, 0, 0, 0], [3, 1, 0, 0], [0, 4, 1, 0]], dtype=float)
    points = np.vstack([rng.randn(25, 4) + c for c in centers])
    labels = np.repeat([2, 0, 1], 25)
    order = rng.permutation(75)
    return points[order], labels[order]


def fit(points, labels, config):
    size, dim = points.shape
    return LdaReducer(config).fit(points.ravel(), dim, labels, size)


class TestScatter:
    """Tests for the scatter matrix helpers."""

    def test_class_means(self):
        """Test per-class and global means."""
        groups = ClassGroup({'x': np.array([[0.0, 2.0], [0.0, 2.0]]),
                             'y': np.array([[4.0], [7.0]])})
        means, global_mean = class_means(groups)

        assert np.allclose(means['x'], [1.0, 1.0])
        assert np.allclose(means['y'], [4.0, 7.0])
        # Weighted by class size: (0 + 2 + 4) / 3, (0 + 2 + 7) / 3
        assert np.allclose(global_mean, [2.0, 3.0])

    def test_within_class_scatter(self, two_classes):
        """Test Sw as the sum of per-class sample covariances."""
        points, labels = two_classes
        groups = ClassGroup.from_points(points, labels)
        means, _ = class_means(groups)
        sw = within_class_scatter(groups, means)

        expected = np.cov(points[:30].T) + np.cov(points[30:].T)
        assert np.allclose(sw, expected)

    def test_within_class_scatter_single_point_class(self):
        """Test that a one-point class adds nothing to Sw."""
        groups = ClassGroup({'solo': np.array([[1.0], [2.0]])})
        means, _ = class_means(groups)

        assert np.allclose(within_class_scatter(groups, means), 0.0)

    def test_between_class_scatter(self):
        """Test Sb is unweighted by class size."""
        means = {'x': np.array([1.0, 0.0]), 'y': np.array([-1.0, 0.0])}
        sb = between_class_scatter(means, np.zeros(2))

        assert np.allclose(sb, [[2.0, 0.0], [0.0, 0.0]])

    def test_sort_eigenpairs(self):
        """Test descending order and dropping of imaginary parts."""
        values = np.array([1.0 + 0j, 3.0 + 0j, 2.0 + 1e-18j])
        vectors = np.eye(3, dtype=complex)
        sorted_values, sorted_vectors = sort_eigenpairs(values, vectors)

        assert np.array_equal(sorted_values, [3.0, 2.0, 1.0])
        assert sorted_vectors.dtype == float
        assert np.array_equal(sorted_vectors[:, 0], [0.0, 1.0, 0.0])

    def test_discriminant_basis_singular(self):
        """Test that a singular Sw is reported instead of inverted."""
        sw = np.array([[1.0, 1.0], [1.0, 1.0]])
        with pytest.raises(SingularMatrixError):
            discriminant_basis(sw, np.eye(2))


class TestLdaReducer:
    """Tests for the LdaReducer class."""

    def test_fit_groups_by_label(self, three_classes, config):
        """Test grouping keeps first-appearance label order."""
        points, labels = three_classes
        lda = fit(points, labels, config)

        first_seen = list(dict.fromkeys(labels.tolist()))
        assert lda.labels == first_seen
        assert lda.class_sizes == {0: 25, 1: 25, 2: 25}
        assert lda.size == 75
        assert lda.dim == 4

    def test_every_point_in_one_group(self, three_classes, config):
        """Test that grouping neither drops nor duplicates points."""
        points, labels = three_classes
        lda = fit(points, labels, config)

        for label, matrix in lda.groups:
            assert np.allclose(matrix.T, points[labels == label])

    def test_reduce_alias(self, two_classes, config):
        """Test that reduce is the same operation as fit."""
        points, labels = two_classes
        lda = LdaReducer(config).reduce(points.ravel(), 3, labels, 60)
        assert lda.is_fitted

    def test_transform_shape(self, three_classes, config):
        """Test the flat output length."""
        points, labels = three_classes
        lda = fit(points, labels, config)

        assert lda.transform(2).shape == (2 * 75,)
        assert lda.transform(1).shape == (75,)

    def test_transform_projects_uncentered_classes_in_order(self, three_classes, config):
        """Test that classes are concatenated in label order without centering."""
        points, labels = three_classes
        lda = fit(points, labels, config)
        vectors = lda.basis(2).vectors

        expected = np.vstack([points[labels == label] @ vectors for label in lda.labels])
        assert np.allclose(lda.transform(2).reshape(75, 2), expected)

    def test_two_class_direction(self, two_classes, config):
        """Test the leading direction is proportional to Sw^-1 (m_b - m_a)."""
        points, labels = two_classes
        lda = fit(points, labels, config)
        sw, _ = lda.scatter_matrices()
        direction = lda.basis(1).vectors[:, 0]

        expected = np.linalg.solve(sw, points[30:].mean(axis=0) - points[:30].mean(axis=0))
        cosine = abs(direction @ expected) / (np.linalg.norm(direction) * np.linalg.norm(expected))
        assert np.isclose(cosine, 1.0)

    def test_matches_sklearn_direction(self, two_classes, config):
        """Test the leading direction against scikit-learn for equal class sizes."""
        points, labels = two_classes
        direction = fit(points, labels, config).basis(1).vectors[:, 0]
        reference = LinearDiscriminantAnalysis(solver='eigen').fit(points, labels).scalings_[:, 0]

        cosine = abs(direction @ reference) / (np.linalg.norm(direction) * np.linalg.norm(reference))
        assert np.isclose(cosine, 1.0)

    def test_separates_classes(self, two_classes, config):
        """Test that the 1-D projection separates well-separated classes."""
        points, labels = two_classes
        projected = fit(points, labels, config).transform(1)
        a, b = projected[:30], projected[30:]

        gap = abs(a.mean() - b.mean())
        assert gap > 2 * max(a.std(), b.std())

    def test_eigenvalues_descending(self, three_classes, config):
        """Test that eigenvalues are sorted, with at most classes - 1 nonzero."""
        points, labels = three_classes
        values = fit(points, labels, config).basis().values

        assert np.all(np.diff(values) <= 1e-10)
        assert np.all(np.abs(values[2:]) < 1e-8)

    def test_identical_classes_have_no_separation(self, config):
        """Test that two copies of one class give near-zero eigenvalues."""
        rng = np.random.RandomState(5)
        cloud = rng.randn(20, 3)
        points = np.vstack([cloud, cloud])
        labels = ['left'] * 20 + ['right'] * 20

        sw, sb = fit(points, labels, config).scatter_matrices()
        values = fit(points, labels, config).basis().values

        assert np.allclose(sw, sw.T)
        assert np.allclose(sb, 0.0)
        assert np.allclose(values, 0.0, atol=1e-10)

    def test_singular_within_class_scatter(self, config):
        """Test that fewer points than dimensions per class raises."""
        rng = np.random.RandomState(9)
        points = rng.randn(4, 5)
        lda = fit(points, ['a', 'a', 'b', 'b'], config)

        with pytest.raises(SingularMatrixError):
            lda.transform(1)

    def test_singular_is_linalg_error(self, config):
        """Test that the singular error is also a numpy LinAlgError."""
        points = np.array([[0.0, 0.0], [1.0, 1.0], [5.0, 5.0], [6.0, 6.0]])
        lda = fit(points, ['a', 'a', 'b', 'b'], config)

        with pytest.raises(np.linalg.LinAlgError):
            lda.transform(1)

    def test_max_condition_config(self, two_classes):
        """Test that the accepted condition number comes from configuration."""
        points, labels = two_classes
        lda = fit(points, labels, Config({'lda': {'max-condition': 1.0}}))

        with pytest.raises(SingularMatrixError):
            lda.transform(1)

    @pytest.mark.parametrize('k', [0, -1, 4])
    def test_invalid_k_clamps(self, two_classes, config, k):
        """Test that an out-of-range k clamps to dim - 1."""
        points, labels = two_classes
        assert fit(points, labels, config).transform(k).shape == (2 * 60,)

    def test_full_dimension_allowed(self, two_classes, config):
        """Test that k = dim keeps every direction."""
        points, labels = two_classes
        assert fit(points, labels, config).transform(3).shape == (3 * 60,)

    def test_invalid_k_strict(self, two_classes, strict_config):
        """Test that strict mode rejects an out-of-range k."""
        points, labels = two_classes
        with pytest.raises(InvalidParameterError):
            fit(points, labels, strict_config).transform(0)

    def test_transform_before_fit(self, config):
        """Test that an unfitted reducer refuses to transform."""
        with pytest.raises(NotFittedError):
            LdaReducer(config).transform(1)

    def test_missing_arguments_are_noop(self, two_classes, config):
        """Test that absent arguments keep the previous fit."""
        points, labels = two_classes
        lda = fit(points, labels, config)
        lda.fit(points.ravel(), 3, [], 60)

        assert lda.size == 60
        assert lda.labels == ['a', 'b']

    def test_missing_arguments_strict(self, strict_config):
        """Test that strict mode raises on absent arguments."""
        with pytest.raises(InvalidInputError):
            LdaReducer(strict_config).fit([1.0, 2.0], 2, None, 1)

    def test_refit_is_idempotent(self, three_classes, config):
        """Test that fitting the same data twice gives identical output."""
        points, labels = three_classes
        lda = fit(points, labels, config)
        first = lda.transform(2)
        lda.fit(points.ravel(), 4, labels, 75)

        assert np.array_equal(first, lda.transform(2))

    def test_refit_replaces_groups(self, two_classes, three_classes, config):
        """Test that a new fit discards previous classes."""
        points, labels = three_classes
        lda = fit(points, labels, config)
        points, labels = two_classes
        lda.fit(points.ravel(), 3, labels, 60)

        assert lda.labels == ['a', 'b']
        assert lda.dim == 3
