"""Smoke tests for snapshot rendering (Agg backend)."""

import matplotlib
import numpy as np
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pytest

from mlplayback.attention import attention_snapshots, causal_mask
from mlplayback.boosting import train_gradient_boosting
from mlplayback.forest import train_random_forest
from mlplayback.linear import train_perceptron
from mlplayback.plotting import (plot_attention_weights, plot_snapshot,
                                 plot_tree_snapshot, save_snapshot_plot)
from mlplayback.tree import data_region, train_decision_tree


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


class TestPlots:

    def test_tree_every_step(self, tree_friendly):
        for snap in train_decision_tree(tree_friendly, {'max_depth': 2}):
            ax = plot_tree_snapshot(snap, tree_friendly)
            assert ax.get_title().startswith(f'Step {snap.step}')

    def test_forest_baseline_and_final(self, moons):
        snapshots = train_random_forest(moons, {'n_trees': 3})
        plot_snapshot(snapshots[0], moons)
        plot_snapshot(snapshots[-1], moons)

    def test_boosting_curve(self, curve):
        snap = train_gradient_boosting(curve, {'n_estimators': 3})[-1]
        ax = plot_snapshot(snap, curve)
        assert len(ax.lines) == 1
        xs, ys = ax.lines[0].get_data()
        np.testing.assert_array_equal(xs, snap.curve_x)
        np.testing.assert_array_equal(ys, snap.prediction_curve)

    def test_boosting_log_loss_regions(self, moons):
        snap = train_gradient_boosting(moons, {'n_estimators': 3, 'loss': 'log_loss'})[-1]
        plot_snapshot(snap, moons)

    def test_linear_with_boundary(self, blobs):
        snap = train_perceptron(blobs, {'init': 'zeros'})[-1]
        ax = plot_snapshot(snap, blobs)
        assert len(ax.lines) == 1
        (x0, x1), _ = data_region(blobs.X)
        assert ax.get_xlim() == pytest.approx((x0, x1))

    def test_attention_heatmap(self):
        x = np.eye(3)
        for snap in attention_snapshots(x, x, x, mask=causal_mask(3)):
            plot_snapshot(snap)
        plot_attention_weights(np.full((2, 2), 0.5), tokens=['a', 'b'])

    def test_needs_dataset(self, moons):
        snap = train_random_forest(moons, {'n_trees': 1})[-1]
        with pytest.raises(ValueError):
            plot_snapshot(snap)

    def test_unknown_snapshot(self):
        with pytest.raises(TypeError):
            plot_snapshot(object(), None)

    def test_empty_dataset(self, empty_dataset):
        snap = train_decision_tree(empty_dataset)[0]
        plot_snapshot(snap, empty_dataset)

    def test_save(self, tmp_path, four_points):
        snap = train_decision_tree(four_points, {'max_depth': 1})[-1]
        path = save_snapshot_plot(snap, tmp_path / 'tree.png', dataset=four_points)
        assert path.exists()
        assert path.stat().st_size > 0
