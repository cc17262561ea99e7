"""Tests for the Dataset container, metrics and generators."""

import numpy as np
import pytest

from mlplayback.datasets import (Dataset, DatasetError, accuracy, as_dataset, class_labels,
                                 make_linear_blobs, make_moons, make_noisy_circle,
                                 make_regression_curve, make_tree_friendly, make_xor, mse)


class TestDataset:

    def test_from_samples_splits_label(self):
        data = Dataset.from_samples([(0.5, 1.0, 1), (2.0, 3.0, 0)])
        assert data.X.shape == (2, 2)
        assert data.y.tolist() == [1, 0]
        assert data.y.dtype.kind == 'i'

    def test_float_targets_kept(self):
        data = Dataset.from_samples([(0.0, 1.5), (1.0, -0.25)])
        assert data.n_features == 1
        assert data.y.dtype.kind == 'f'

    def test_ragged_samples_rejected(self):
        with pytest.raises(DatasetError):
            Dataset.from_samples([(0, 0, 1), (1, 1)])

    def test_non_numeric_rejected(self):
        with pytest.raises(DatasetError):
            Dataset.from_samples([(0, 'a', 1)])

    def test_non_finite_rejected(self):
        with pytest.raises(DatasetError):
            Dataset(np.array([[0.0, np.nan]]), np.array([1]))

    def test_label_count_mismatch(self):
        with pytest.raises(DatasetError):
            Dataset(np.zeros((3, 2)), np.zeros(2))

    def test_empty(self, empty_dataset):
        assert len(empty_dataset) == 0
        assert empty_dataset.X.shape == (0, 2)

    def test_arrays_read_only(self, four_points):
        with pytest.raises(ValueError):
            four_points.X[0, 0] = 5.0

    def test_private_copy(self):
        X = np.zeros((2, 2))
        data = Dataset(X, np.array([0, 1]))
        X[0, 0] = 9.0
        assert data.X[0, 0] == 0.0

    def test_to_samples(self, four_points):
        assert four_points.to_samples()[2] == (1.0, 0.0, 1)
        assert as_dataset(four_points.to_samples()).y.tolist() == [0, 0, 1, 1]


class TestLabelsAndMetrics:

    def test_class_labels_from_floats(self):
        assert class_labels(np.array([0.0, 2.0])).tolist() == [0, 2]

    def test_fractional_labels_rejected(self):
        with pytest.raises(DatasetError):
            class_labels(np.array([0.5, 1.0]))

    def test_negative_labels_rejected(self):
        with pytest.raises(DatasetError):
            class_labels(np.array([-1, 0]))

    def test_accuracy_and_mse(self):
        assert accuracy([0, 1, 1, 0], [0, 1, 0, 0]) == 0.75
        assert mse([1.0, 3.0], [2.0, 2.0]) == 1.0
        assert accuracy([], []) == 0.0
        assert mse([], []) == 0.0


class TestGenerators:

    @pytest.mark.parametrize("make", [
        make_tree_friendly, make_xor, make_moons, make_linear_blobs, make_noisy_circle,
    ])
    def test_two_feature_binary(self, make):
        data = make(n_samples=50, seed=1)
        assert data.X.shape == (50, 2)
        assert set(data.y.tolist()) <= {0, 1}

    @pytest.mark.parametrize("make", [make_tree_friendly, make_xor, make_linear_blobs])
    def test_seeded(self, make):
        a, b = make(n_samples=30, seed=4), make(n_samples=30, seed=4)
        np.testing.assert_array_equal(a.X, b.X)
        np.testing.assert_array_equal(a.y, b.y)
        c = make(n_samples=30, seed=5)
        assert not np.array_equal(a.X, c.X)

    def test_linear_blobs_balanced(self):
        data = make_linear_blobs(n_samples=40, seed=2)
        assert int(data.y.sum()) == 20

    @pytest.mark.parametrize("func", ['sine', 'quadratic', 'step', 'complex'])
    def test_regression_curves(self, func):
        data = make_regression_curve(n_samples=25, func=func, seed=2)
        assert data.X.shape == (25, 1)
        assert data.y.dtype.kind == 'f'

    def test_unknown_curve(self):
        with pytest.raises(ValueError):
            make_regression_curve(func='cubic')
