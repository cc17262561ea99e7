"""
Static renderings of single snapshots.

Each plot_* function draws one snapshot onto an Axes (creating a
figure when none is given) and returns the Axes. Two-feature data is
drawn as decision regions over a mesh, one-feature regression data as
a fitted curve over the targets. Meshes and curves span the same
padded data region the tree builders cut up, so split lines and
region boxes line up with the shading.
"""

from typing import Callable

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from .attention import AttentionSnapshot
from .boosting import BoostingSnapshot, boosted_predict
from .forest import ForestSnapshot, forest_predict
from .linear import LinearSnapshot
from .tree import TreeSnapshot, data_region, predict_tree

MESH_RESOLUTION = 100
CURVE_RESOLUTION = 200


def _axes(ax, figsize=(5, 5)):
    if ax is None:
        _, ax = plt.subplots(1, 1, figsize=figsize)
    return ax


def plot_points(dataset, ax=None, title='', size=20):
    """Scatter a 2-feature dataset, one colour per class label."""
    ax = _axes(ax)
    X, y = dataset.X, dataset.y
    labels = np.unique(y)
    colors = plt.cm.tab10(np.arange(len(labels)) % 10)

    for color, label in zip(colors, labels):
        rows = y == label
        ax.scatter(X[rows, 0], X[rows, 1], color=color, s=size, alpha=0.8,
                   edgecolors='none', label=f'Class {label}')

    ax.set_title(title)
    if len(labels):
        ax.legend(loc='upper right', fontsize=8)
    return ax


def plot_regions(predict: Callable, dataset, ax=None, title=''):
    """Shade `predict` over the data region and overlay the points."""
    ax = _axes(ax)
    (x0, x1), (y0, y1) = data_region(dataset.X)
    xx, yy = np.meshgrid(np.linspace(x0, x1, MESH_RESOLUTION),
                         np.linspace(y0, y1, MESH_RESOLUTION))

    Z = np.asarray(predict(np.c_[xx.ravel(), yy.ravel()]), dtype=float)
    Z = Z.reshape(xx.shape)

    ax.contourf(xx, yy, Z, alpha=0.3, cmap=plt.cm.RdYlBu)
    # A constant prediction has no boundary to trace
    if np.ptp(Z) > 0:
        ax.contour(xx, yy, Z, colors='k', linewidths=0.5, alpha=0.5)
    return plot_points(dataset, ax=ax, title=title, size=15)


def plot_fit(xs, ys, dataset, ax=None, title=''):
    """A 1-feature model's prediction curve drawn over the targets."""
    ax = _axes(ax, figsize=(6, 4))
    ax.scatter(dataset.X[:, 0], dataset.y, s=15, alpha=0.6, color='gray', label='data')
    ax.plot(xs, ys, 'r-', linewidth=2, label='prediction')
    ax.set_title(title)
    ax.legend(loc='upper right', fontsize=8)
    return ax


def _render(predict, dataset, ax, title):
    if dataset.n_samples == 0:
        ax = _axes(ax)
        ax.set_title(title)
        return ax
    if dataset.n_features == 1:
        lo, hi = data_region(dataset.X)[0]
        xs = np.linspace(lo, hi, CURVE_RESOLUTION)
        return plot_fit(xs, predict(xs.reshape(-1, 1)), dataset, ax=ax, title=title)
    if dataset.n_features == 2:
        return plot_regions(predict, dataset, ax=ax, title=title)
    raise ValueError(f"cannot draw {dataset.n_features}-feature data")


# ============================================================
# PER-ALGORITHM SNAPSHOTS
# ============================================================

def plot_tree_snapshot(snapshot: TreeSnapshot, dataset, ax=None):
    """Leaf boxes shaded by prediction, split cuts drawn on top."""
    title = f'Step {snapshot.step}: {snapshot.n_leaves} leaves'
    ax = _render(lambda X: predict_tree(snapshot.tree, X), dataset, ax, title)

    if dataset.n_features == 2:
        for line in snapshot.split_lines:
            (x0, x1), (y0, y1) = line.bounds
            if line.feature == 0:
                ax.plot([line.threshold] * 2, [y0, y1], 'k-', linewidth=1.5)
            else:
                ax.plot([x0, x1], [line.threshold] * 2, 'k-', linewidth=1.5)
        if snapshot.split is not None:
            (x0, x1), (y0, y1) = next(r.bounds for r in snapshot.split_lines
                                      if r.node_id == snapshot.split.node_id)
            ax.add_patch(Rectangle((x0, y0), x1 - x0, y1 - y0, fill=False,
                                   edgecolor='orange', linewidth=2))
    return ax


def plot_forest_snapshot(snapshot: ForestSnapshot, dataset, ax=None):
    title = f'{snapshot.n_trees} trees'
    if snapshot.n_trees == 0:
        return _render(lambda X: np.full(len(X), snapshot.predictions[0]
                                         if len(snapshot.predictions) else 0),
                       dataset, ax, title)
    n_classes = (snapshot.vote_fractions.shape[1]
                 if snapshot.vote_fractions is not None else None)
    return _render(lambda X: forest_predict(snapshot.trees, X, n_classes)[0],
                   dataset, ax, title)


def plot_boosting_snapshot(snapshot: BoostingSnapshot, dataset, ax=None):
    """The stored prediction curve for 1-feature data, regions otherwise."""
    loss = 'log_loss' if snapshot.accuracy is not None else 'squared_error'
    title = f'Round {snapshot.step}: loss {snapshot.loss:.4f}'
    if snapshot.prediction_curve is not None and dataset.n_samples:
        return plot_fit(snapshot.curve_x, snapshot.prediction_curve, dataset,
                        ax=ax, title=title)
    return _render(lambda X: boosted_predict(snapshot.baseline, snapshot.trees, X, loss),
                   dataset, ax, title)


def plot_linear_snapshot(snapshot: LinearSnapshot, dataset, ax=None):
    """Data, current boundary line, and the point that triggered the update."""
    title = f'Epoch {snapshot.epoch}: accuracy {snapshot.accuracy:.2f}'
    if dataset.n_samples == 0:
        return _render(None, dataset, ax, title)
    ax = plot_points(dataset, ax=ax, title=title)
    X = dataset.X

    boundary = snapshot.decision_boundary
    if boundary is not None:
        (x0, x1), (y0, y1) = data_region(X)
        xs = np.array([x0, x1])
        ax.plot(xs, boundary.slope * xs + boundary.intercept, 'k--', linewidth=2)
        ax.set_xlim(x0, x1)
        ax.set_ylim(y0, y1)
    if snapshot.highlighted_index is not None:
        px, py = X[snapshot.highlighted_index, :2]
        ax.scatter([px], [py], s=150, facecolors='none', edgecolors='red',
                   linewidths=2)
    return ax


def plot_attention_weights(matrix, ax=None, title='', tokens=None):
    """Heatmap of an attention-stage matrix (-inf cells are left blank)."""
    ax = _axes(ax)

    values = np.ma.masked_invalid(np.asarray(matrix, dtype=float))
    im = ax.imshow(values, cmap='Blues', aspect='auto')
    ax.figure.colorbar(im, ax=ax, fraction=0.046)
    if tokens is not None:
        ax.set_yticks(range(len(tokens)))
        ax.set_yticklabels(tokens)
        if values.shape[1] == len(tokens):
            ax.set_xticks(range(len(tokens)))
            ax.set_xticklabels(tokens, rotation=45)
    ax.set_title(title)
    return ax


def plot_attention_snapshot(snapshot: AttentionSnapshot, ax=None):
    return plot_attention_weights(snapshot.matrix, ax=ax,
                                  title=f'{snapshot.phase}', tokens=snapshot.tokens)


_PLOTTERS = {
    TreeSnapshot: plot_tree_snapshot,
    ForestSnapshot: plot_forest_snapshot,
    BoostingSnapshot: plot_boosting_snapshot,
    LinearSnapshot: plot_linear_snapshot,
}


def plot_snapshot(snapshot, dataset=None, ax=None):
    """Dispatch on snapshot type."""
    if isinstance(snapshot, AttentionSnapshot):
        return plot_attention_snapshot(snapshot, ax=ax)
    plotter = _PLOTTERS.get(type(snapshot))
    if plotter is None:
        raise TypeError(f"no plot for {type(snapshot).__name__}")
    if dataset is None:
        raise ValueError(f"{type(snapshot).__name__} needs its dataset to plot")
    return plotter(snapshot, dataset, ax=ax)


def save_snapshot_plot(snapshot, path, dataset=None):
    """Render one snapshot to an image file."""
    fig, ax = plt.subplots(1, 1, figsize=(6, 5))
    plot_snapshot(snapshot, dataset, ax=ax)
    fig.suptitle(snapshot.description, fontsize=8)
    fig.savefig(path, dpi=100, bbox_inches='tight')
    plt.close(fig)
    return path
