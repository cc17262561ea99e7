"""
PERCEPTRON & LOGISTIC REGRESSION — Paradigm: LINEAR SEPARATION

===============================================================
WHAT IT IS (THE CORE IDEA)
===============================================================

One neuron:  z = w · x + b

Two activations, one snapshot format:

STEP (classic perceptron, mistake-driven):
    ŷ = 1 if z > 0 else 0
    Visit samples in a fixed order. On each MISTAKE:
        Δw = η (y - ŷ) x
        Δb = η (y - ŷ)
    One snapshot per update. An epoch with ZERO updates means every
    point is on the right side: training stops (convergence).

SIGMOID (logistic regression, full-batch gradient descent):
    p = σ(z) = 1 / (1 + e^(-z))
    ∇w = (1/n) Σ (p - y) x
    ∇b = (1/n) Σ (p - y)
    w -= η ∇w,  b -= η ∇b
    One snapshot per epoch.

The sigmoid's derivative σ(1-σ) cancels with cross-entropy's
1/(p(1-p)), which is why the gradient is just (p - y) times x.

===============================================================
THE DECISION BOUNDARY
===============================================================

For two features the boundary w₀x + w₁y + b = 0 is the line

    y = -(w₀/w₁) x - b/w₁

which only exists as (slope, intercept) when w₁ ≠ 0. Otherwise the
line is vertical and the boundary is reported as None.

===============================================================
"""

from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from .config import PerceptronConfig, parse_config
from .datasets import DatasetError, accuracy, as_dataset, class_labels
from .logger import get_logger
from .rng import Rng
from .snapshots import check_sequence, frozen_array

logger = get_logger(__name__)

PROB_EPS = 1e-15
VERTICAL_EPS = 1e-12


def sigmoid(z):
    """
    Squash any real number into (0, 1).

    σ(0) = 0.5,  σ(-z) = 1 - σ(z),  σ'(z) = σ(z)(1 - σ(z))
    """
    # Clip to avoid overflow
    z = np.clip(z, -500, 500)
    return 1 / (1 + np.exp(-z))


def step(z):
    return (np.asarray(z) > 0).astype(int)


def binary_cross_entropy(y_true, y_pred):
    """
    BINARY CROSS-ENTROPY

    L = -mean[y log(p) + (1-y) log(1-p)]

    The ε clipping prevents log(0) = -∞
    """
    y_true = np.asarray(y_true, dtype=float)
    if len(y_true) == 0:
        return 0.0
    p = np.clip(np.asarray(y_pred, dtype=float), PROB_EPS, 1 - PROB_EPS)
    return float(-np.mean(y_true * np.log(p) + (1 - y_true) * np.log(1 - p)))


def misclassification_rate(y_true, y_pred):
    """Fraction of points on the wrong side of 0.5."""
    y_true = np.asarray(y_true)
    if len(y_true) == 0:
        return 0.0
    return float(np.mean((np.asarray(y_pred) >= 0.5).astype(int) != y_true))


@dataclass(frozen=True)
class DecisionBoundary:
    slope: float
    intercept: float


def decision_boundary(weights, bias):
    """(slope, intercept) of w·x + b = 0 in 2-D, or None if vertical."""
    if len(weights) != 2 or abs(weights[1]) <= VERTICAL_EPS:
        return None
    return DecisionBoundary(slope=float(-weights[0] / weights[1]),
                            intercept=float(-bias / weights[1]))


@dataclass(frozen=True, eq=False)
class LinearSnapshot:
    step: int
    epoch: int
    weights: np.ndarray
    bias: float
    predictions: np.ndarray
    accuracy: float
    loss: float
    decision_boundary: Optional[DecisionBoundary]
    description: str
    highlighted_index: Optional[int] = None
    weight_update: Optional[np.ndarray] = None
    bias_update: Optional[float] = None
    converged: bool = False


class Perceptron:
    """
    Single neuron trained with the perceptron rule (step) or
    full-batch logistic gradient descent (sigmoid).
    """

    def __init__(self, learning_rate=0.1, epochs=50, activation='step',
                 init='random', seed=42):
        self.learning_rate = learning_rate
        self.epochs = epochs
        self.activation = activation
        self.init = init
        self.seed = seed

        self.weights = None
        self.bias = 0.0
        self.converged = False
        self.epochs_run = 0

    @classmethod
    def from_config(cls, config):
        return cls(learning_rate=config.learning_rate, epochs=config.epochs,
                   activation=config.activation, init=config.init,
                   seed=config.seed)

    def _init_params(self, n_features):
        if self.init == 'zeros':
            self.weights = np.zeros(n_features)
            self.bias = 0.0
            return
        rng = Rng(self.seed)
        self.weights = np.array([rng.normal(0, 0.5) for _ in range(n_features)])
        self.bias = rng.normal(0, 0.1)

    def predict_proba(self, X):
        z = np.asarray(X, dtype=float) @ self.weights + self.bias
        return sigmoid(z) if self.activation == 'sigmoid' else step(z).astype(float)

    def predict(self, X):
        return (self.predict_proba(X) >= 0.5).astype(int)

    def _snapshot(self, step_no, epoch, X, y, description, highlighted=None,
                  dw=None, db=None):
        probs = self.predict_proba(X)
        if self.activation == 'sigmoid':
            preds = probs
            loss = binary_cross_entropy(y, probs)
        else:
            preds = probs.astype(int)
            loss = misclassification_rate(y, probs)
        return LinearSnapshot(
            step=step_no,
            epoch=epoch,
            weights=frozen_array(self.weights),
            bias=float(self.bias),
            predictions=frozen_array(preds),
            accuracy=accuracy(y, (probs >= 0.5).astype(int)),
            loss=loss,
            decision_boundary=decision_boundary(self.weights, self.bias),
            description=description,
            highlighted_index=highlighted,
            weight_update=None if dw is None else frozen_array(dw),
            bias_update=None if db is None else float(db),
        )

    def fit_snapshots(self, X, y):
        X = np.asarray(X, dtype=float)
        y = class_labels(y)
        if len(y) and y.max() > 1:
            raise DatasetError("perceptron training needs binary 0/1 labels")

        self._init_params(X.shape[1])
        self.converged = False
        self.epochs_run = 0
        snapshots = [self._snapshot(0, 0, X, y, "Initial weights, no training yet")]
        if len(y) == 0:
            return snapshots

        if self.activation == 'step':
            self._fit_step(X, y, snapshots)
        else:
            self._fit_sigmoid(X, y, snapshots)

        if self.converged:
            snapshots[-1] = replace(snapshots[-1], converged=True)
        return snapshots

    def _fit_step(self, X, y, snapshots):
        """Mistake-driven updates, one snapshot per update."""
        eta = self.learning_rate
        for epoch in range(1, self.epochs + 1):
            self.epochs_run = epoch
            updates = 0
            for i in range(len(y)):
                y_hat = int(X[i] @ self.weights + self.bias > 0)
                if y_hat == y[i]:
                    continue

                error = y[i] - y_hat  # +1 or -1
                dw = eta * error * X[i]
                db = eta * error
                self.weights = self.weights + dw
                self.bias += db
                updates += 1

                snapshots.append(self._snapshot(
                    len(snapshots), epoch, X, y,
                    f"Epoch {epoch}: point {i} misclassified (predicted {y_hat}, "
                    f"label {y[i]}), w {'+' if error > 0 else '-'}= {eta:g} * x",
                    highlighted=i, dw=dw, db=db))
                logger.debug("perceptron step %d: %s", len(snapshots) - 1,
                             snapshots[-1].description)

            if updates == 0:
                self.converged = True
                logger.debug("perceptron converged after %d epochs", epoch)
                break

    def _fit_sigmoid(self, X, y, snapshots):
        """Full-batch gradient descent on cross-entropy, one snapshot per epoch."""
        n = len(y)
        for epoch in range(1, self.epochs + 1):
            self.epochs_run = epoch
            p = sigmoid(X @ self.weights + self.bias)
            error = p - y  # dL/dz

            dw = -self.learning_rate * (X.T @ error) / n
            db = -self.learning_rate * float(np.sum(error)) / n
            self.weights = self.weights + dw
            self.bias += db

            wrong = np.where((self.predict_proba(X) >= 0.5).astype(int) != y)[0]
            highlighted = int(wrong[0]) if len(wrong) else None
            snap = self._snapshot(len(snapshots), epoch, X, y, "", highlighted,
                                  dw, db)
            snapshots.append(replace(
                snap, description=f"Epoch {epoch}: full-batch gradient step, "
                                  f"loss {snap.loss:.4f}"))
            logger.debug("logistic step %d: %s", epoch, snapshots[-1].description)


def train_perceptron(data, config=None):
    """
    Perceptron / logistic trainer: (dataset, config) -> snapshot sequence.
    """
    config = parse_config(PerceptronConfig, config)
    dataset = as_dataset(data)

    model = Perceptron.from_config(config)
    snapshots = model.fit_snapshots(dataset.X, dataset.y)

    logger.info("perceptron (%s, eta=%g): %d samples, %d epochs -> %d snapshots%s",
                config.activation, config.learning_rate, dataset.n_samples,
                model.epochs_run, len(snapshots),
                " (converged)" if model.converged else "")
    return check_sequence(snapshots)
