"""Tests for the perceptron / logistic-regression trainer."""

import numpy as np
import pytest

from mlplayback.datasets import Dataset, DatasetError
from mlplayback.linear import (Perceptron, binary_cross_entropy, decision_boundary,
                               sigmoid, train_perceptron)


class TestPrimitives:

    def test_sigmoid_values(self):
        assert sigmoid(0.0) == 0.5
        np.testing.assert_allclose(sigmoid(np.array([-2.0, 2.0])).sum(), 1.0)

    def test_sigmoid_extremes_finite(self):
        out = sigmoid(np.array([-1e6, 1e6]))
        assert np.all(np.isfinite(out))
        assert out[0] < 1e-200
        assert out[1] == 1.0

    def test_cross_entropy_clipped(self):
        loss = binary_cross_entropy([1, 0], [0.0, 1.0])
        assert np.isfinite(loss)
        assert loss == pytest.approx(-np.log(1e-15), rel=1e-2)

    def test_cross_entropy_perfect(self):
        assert binary_cross_entropy([1, 0], [1 - 1e-9, 1e-9]) < 1e-8

    def test_boundary(self):
        boundary = decision_boundary(np.array([1.0, 2.0]), -4.0)
        assert boundary.slope == -0.5
        assert boundary.intercept == 2.0

    def test_vertical_boundary_is_none(self):
        assert decision_boundary(np.array([1.0, 0.0]), 1.0) is None
        assert decision_boundary(np.array([1.0, 1e-14]), 1.0) is None

    def test_boundary_needs_two_features(self):
        assert decision_boundary(np.array([1.0, 2.0, 3.0]), 0.0) is None


class TestStepMode:

    def test_converges_on_separable_data(self, blobs):
        model = Perceptron(learning_rate=0.1, epochs=100, activation='step')
        snapshots = model.fit_snapshots(blobs.X, blobs.y)
        assert model.converged
        assert model.epochs_run < 100
        assert snapshots[-1].converged
        assert snapshots[-1].accuracy == 1.0
        assert snapshots[-1].loss == 0.0

    def test_trainer_converges(self, blobs):
        snapshots = train_perceptron(blobs, {'learning_rate': 0.1, 'epochs': 100})
        assert snapshots[-1].converged
        assert snapshots[-1].accuracy == 1.0

    def test_one_snapshot_per_update(self, blobs):
        snapshots = train_perceptron(blobs, {'init': 'zeros'})
        for prev, snap in zip(snapshots, snapshots[1:]):
            np.testing.assert_allclose(snap.weights - prev.weights, snap.weight_update)
            assert snap.bias - prev.bias == pytest.approx(snap.bias_update)
            x = blobs.X[snap.highlighted_index]
            y = blobs.y[snap.highlighted_index]
            # The highlighted point was misclassified before the update
            assert int(x @ prev.weights + prev.bias > 0) != y

    def test_update_rule(self, blobs):
        snapshots = train_perceptron(blobs, {'init': 'zeros', 'learning_rate': 0.1})
        snap = snapshots[1]
        i = snap.highlighted_index
        sign = 1 if blobs.y[i] == 1 else -1
        np.testing.assert_allclose(snap.weight_update, 0.1 * sign * blobs.X[i])

    def test_zero_init_baseline(self, blobs):
        snapshots = train_perceptron(blobs, {'init': 'zeros'})
        first = snapshots[0]
        assert np.all(first.weights == 0.0)
        assert first.bias == 0.0
        assert first.decision_boundary is None
        assert first.predictions.tolist() == [0] * len(blobs)
        assert not np.array_equal(first.predictions, snapshots[-1].predictions)

    def test_random_init_is_seeded(self, blobs):
        a = train_perceptron(blobs, {'seed': 3})
        b = train_perceptron(blobs, {'seed': 3})
        c = train_perceptron(blobs, {'seed': 4})
        np.testing.assert_array_equal(a[0].weights, b[0].weights)
        assert not np.array_equal(a[0].weights, c[0].weights)

    def test_epoch_cap_on_xor(self):
        data = Dataset.from_samples([(0, 0, 0), (1, 1, 0), (0, 1, 1), (1, 0, 1)])
        model = Perceptron(epochs=5)
        snapshots = model.fit_snapshots(data.X, data.y)
        assert not model.converged
        assert model.epochs_run == 5
        assert snapshots[-1].epoch <= 5
        assert not snapshots[-1].converged


class TestSigmoidMode:

    def test_one_snapshot_per_epoch(self, blobs):
        snapshots = train_perceptron(blobs, {'activation': 'sigmoid', 'epochs': 12})
        assert len(snapshots) == 13
        assert [snap.epoch for snap in snapshots] == list(range(13))

    def test_loss_decreases(self, blobs):
        snapshots = train_perceptron(blobs, {'activation': 'sigmoid', 'epochs': 30,
                                             'learning_rate': 0.5})
        assert snapshots[-1].loss < snapshots[0].loss
        assert snapshots[-1].accuracy == 1.0

    def test_gradient_step(self, blobs):
        snapshots = train_perceptron(blobs, {'activation': 'sigmoid', 'epochs': 1,
                                             'learning_rate': 0.2})
        first, second = snapshots
        p = sigmoid(blobs.X @ first.weights + first.bias)
        grad_w = blobs.X.T @ (p - blobs.y) / len(blobs)
        np.testing.assert_allclose(second.weights, first.weights - 0.2 * grad_w)

    def test_probabilities_reported(self, blobs):
        snap = train_perceptron(blobs, {'activation': 'sigmoid', 'epochs': 3})[-1]
        assert snap.predictions.dtype.kind == 'f'
        assert np.all((snap.predictions > 0) & (snap.predictions < 1))

    def test_highlight_first_misclassified(self, blobs):
        for snap in train_perceptron(blobs, {'activation': 'sigmoid', 'epochs': 5})[1:]:
            wrong = np.where((snap.predictions >= 0.5).astype(int) != blobs.y)[0]
            expected = int(wrong[0]) if len(wrong) else None
            assert snap.highlighted_index == expected


class TestDegenerate:

    def test_empty_dataset(self, empty_dataset):
        snapshots = train_perceptron(empty_dataset)
        assert len(snapshots) == 1

    def test_multiclass_rejected(self):
        data = Dataset.from_samples([(0, 0, 0), (1, 0, 2)])
        with pytest.raises(DatasetError):
            train_perceptron(data)
