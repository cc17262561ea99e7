"""
DATASETS — fixed, read-only inputs for every trainer

===============================================================
THE CONTAINER
===============================================================

A Dataset is generated ONCE per configuration and then only read:

    X : (n, p) float array of features
    y : (n,)   labels (classification) or targets (regression)

Both arrays are private read-only copies, so any number of trainers
can share one Dataset safely.

Samples arrive as tuples: every element except the last is a feature,
the last is the label/target:

    (x, y, label)   →  X row [x, y],  label
    (x, target)     →  X row [x],     target

===============================================================
THE GENERATORS
===============================================================

Small seeded generators, each built to show off one behaviour:

    make_tree_friendly      axis-aligned regions (trees shine)
    make_xor                feature interaction (linear models fail)
    make_moons              curved boundary
    make_linear_blobs       linearly separable (perceptron converges)
    make_noisy_circle       label noise (overfitting demos)
    make_regression_curve   1-D targets for boosting

All randomness comes from mlplayback.rng.Rng, so the same seed gives
the same points everywhere.

===============================================================
"""

import math
from dataclasses import dataclass

import numpy as np

from .rng import Rng
from .snapshots import frozen_array


class DatasetError(ValueError):
    """Malformed sample data."""


@dataclass(frozen=True, eq=False)
class Dataset:
    X: np.ndarray
    y: np.ndarray

    def __post_init__(self):
        X = np.asarray(self.X, dtype=float)
        y = np.asarray(self.y)
        if X.ndim == 1:
            X = X.reshape(len(X), -1) if len(X) else X.reshape(0, 2)
        if X.ndim != 2:
            raise DatasetError(f"features must be 2-D, got shape {X.shape}")
        if y.ndim != 1 or len(y) != len(X):
            raise DatasetError(
                f"expected {len(X)} labels, got array of shape {y.shape}")
        if not np.all(np.isfinite(X)):
            raise DatasetError("features contain NaN or infinity")
        if y.dtype.kind not in 'iub':
            y = y.astype(float)
            if not np.all(np.isfinite(y)):
                raise DatasetError("targets contain NaN or infinity")
        object.__setattr__(self, 'X', frozen_array(X))
        object.__setattr__(self, 'y', frozen_array(y))

    @property
    def n_samples(self):
        return self.X.shape[0]

    @property
    def n_features(self):
        return self.X.shape[1]

    def __len__(self):
        return self.n_samples

    @classmethod
    def from_samples(cls, samples):
        """Build from a sequence of (feature..., label) tuples."""
        samples = list(samples)
        if not samples:
            return cls(np.zeros((0, 2)), np.zeros(0, dtype=int))

        width = len(samples[0])
        if width < 2:
            raise DatasetError("a sample needs at least one feature and a label")
        for i, sample in enumerate(samples):
            if len(sample) != width:
                raise DatasetError(
                    f"sample {i} has {len(sample)} values, expected {width}")
        try:
            rows = np.array(samples, dtype=float)
        except (TypeError, ValueError) as e:
            raise DatasetError(f"samples must be numeric: {e}") from e

        labels = rows[:, -1]
        if np.all(labels == np.round(labels)):
            labels = labels.astype(int)
        return cls(rows[:, :-1], labels)

    def to_samples(self):
        """Inverse of from_samples (plain Python tuples)."""
        return [tuple(row) + (label,) for row, label in
                zip(self.X.tolist(), self.y.tolist())]


def as_dataset(data):
    """Accept a Dataset or a sequence of sample tuples."""
    if isinstance(data, Dataset):
        return data
    return Dataset.from_samples(data)


def class_labels(y):
    """
    Labels as non-negative ints (class k is index k in count vectors).
    """
    y = np.asarray(y)
    if len(y) == 0:
        return y.astype(int)
    if y.dtype.kind == 'f':
        if not np.all(y == np.round(y)):
            raise DatasetError("classification labels must be integers")
        y = y.astype(int)
    elif y.dtype.kind == 'b':
        y = y.astype(int)
    if np.any(y < 0):
        raise DatasetError("classification labels must be non-negative")
    return y


# ============================================================
# METRICS
# ============================================================

def accuracy(y_true, y_pred):
    """Fraction of exact matches (0.0 for an empty set)."""
    y_true = np.asarray(y_true)
    if len(y_true) == 0:
        return 0.0
    return float(np.mean(y_true == np.asarray(y_pred)))


def mse(y_true, y_pred):
    """Mean squared error (0.0 for an empty set)."""
    y_true = np.asarray(y_true, dtype=float)
    if len(y_true) == 0:
        return 0.0
    return float(np.mean((y_true - np.asarray(y_pred, dtype=float)) ** 2))


# ============================================================
# GENERATORS
# ============================================================

def make_tree_friendly(n_samples=100, n_splits=3, seed=42):
    """
    WHAT: Uniform points on [0, 10]², labels flipped by axis-aligned cuts.
    TESTS: Whether a tree recovers the cuts exactly.
    """
    rng = Rng(seed)
    X = np.zeros((n_samples, 2))
    y = np.zeros(n_samples, dtype=int)

    cuts = [
        lambda a, b: a > 5,
        lambda a, b: b > 5,
        lambda a, b: a > 7.5,
        lambda a, b: b > 2.5,
        lambda a, b: a > 2.5 and b > 7.5,
        lambda a, b: a < 1.5,
        lambda a, b: b < 1.5 and a > 3,
        lambda a, b: a > 6 and b < 3,
    ]
    for i in range(n_samples):
        a = rng.next() * 10
        b = rng.next() * 10
        label = 0
        for cut in cuts[:n_splits]:
            if cut(a, b):
                label ^= 1
        X[i] = a, b
        y[i] = label
    return Dataset(X, y)


def make_xor(n_samples=100, noise=0.15, seed=42):
    """
    WHAT: Four Gaussian clusters; opposite corners share a class.
    TESTS: Feature interaction. No single line separates it.
    """
    rng = Rng(seed)
    centers = [(-1, -1, 0), (1, 1, 0), (-1, 1, 1), (1, -1, 1)]
    per_quadrant = n_samples // 4

    X, y = [], []
    for q, (cx, cy, label) in enumerate(centers):
        count = n_samples - len(X) if q == 3 else per_quadrant
        for _ in range(count):
            X.append((rng.normal(cx, noise * 2), rng.normal(cy, noise * 2)))
            y.append(label)
    return Dataset(np.array(X).reshape(-1, 2), np.array(y, dtype=int))


def make_moons(n_samples=100, noise=0.15, seed=42):
    """
    WHAT: Two interleaved half-moons.
    TESTS: Curved boundary plus noise.
    """
    rng = Rng(seed)
    half = n_samples // 2

    X, y = [], []
    for i in range(half):
        angle = math.pi * i / half
        X.append((math.cos(angle) + rng.normal(0, noise),
                  math.sin(angle) + rng.normal(0, noise)))
        y.append(0)
    rest = n_samples - half
    for i in range(rest):
        angle = math.pi * i / rest
        X.append((1 - math.cos(angle) + rng.normal(0, noise),
                  0.5 - math.sin(angle) + rng.normal(0, noise)))
        y.append(1)
    return Dataset(np.array(X).reshape(-1, 2), np.array(y, dtype=int))


def make_linear_blobs(n_samples=60, spread=0.5, separation=2.0, seed=42):
    """
    WHAT: Two Gaussian blobs centred at ±separation on both axes.
    TESTS: Baseline separability. The perceptron must converge here.
    """
    rng = Rng(seed)
    half = n_samples // 2

    X, y = [], []
    for i in range(n_samples):
        label = 0 if i < half else 1
        center = -separation if label == 0 else separation
        X.append((rng.normal(center, spread), rng.normal(center, spread)))
        y.append(label)

    order = rng.shuffle(list(range(n_samples)))
    X = np.array(X).reshape(-1, 2)[order]
    y = np.array(y, dtype=int)[order]
    return Dataset(X, y)


def make_noisy_circle(n_samples=100, noise_ratio=0.1, seed=42):
    """
    WHAT: Inside/outside a circle of radius √2.5, labels flipped at random.
    TESTS: Overfitting. Deep trees chase the flipped labels.
    """
    rng = Rng(seed)
    X = np.zeros((n_samples, 2))
    y = np.zeros(n_samples, dtype=int)
    for i in range(n_samples):
        a = rng.normal(0, 2)
        b = rng.normal(0, 2)
        label = 1 if a * a + b * b > 2.5 else 0
        if rng.next() < noise_ratio:
            label = 1 - label
        X[i] = a, b
        y[i] = label
    return Dataset(X, y)


_CURVES = {
    'sine': lambda x: math.sin(x * 1.5) + 0.5 * math.sin(x * 3),
    'quadratic': lambda x: 0.5 * x * x - 1,
    'step': lambda x: -1.0 if x < -1 else (0.0 if x < 1 else 1.0),
    'complex': lambda x: math.sin(x * 2) * math.exp(-0.3 * abs(x)) + 0.5 * x,
}


def make_regression_curve(n_samples=50, func='sine', noise=0.3, seed=42):
    """
    WHAT: 1-D regression targets on x ∈ [-3, 3] with Gaussian noise.
    TESTS: Residual fitting. Each boosting round chips away at the curve.
    """
    if func not in _CURVES:
        raise ValueError(f"unknown curve {func!r}, expected one of {sorted(_CURVES)}")
    rng = Rng(seed)
    f = _CURVES[func]

    X = np.zeros((n_samples, 1))
    y = np.zeros(n_samples)
    for i in range(n_samples):
        x = -3 + 6 * i / max(n_samples - 1, 1) + rng.normal(0, 0.05)
        X[i, 0] = x
        y[i] = f(x) + rng.normal(0, noise)
    return Dataset(X, y)
