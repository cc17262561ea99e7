"""
GRADIENT BOOSTING — Paradigm: COMMITTEE (Boosting Residuals)

===============================================================
WHAT IT IS (THE CORE IDEA)
===============================================================

Instead of averaging independent trees (Random Forest), train each
tree to CORRECT THE ERRORS of the ensemble so far.

F₀(x) = baseline (mean target)
F₁(x) = F₀(x) + η × h₁(x)    where h₁ fits residuals of F₀
F₂(x) = F₁(x) + η × h₂(x)    where h₂ fits residuals of F₁
...

For squared loss: residual = y - F(x) = -∂L/∂F
So fitting residuals IS gradient descent in function space.

===============================================================
LOSSES
===============================================================

squared_error (regression):
    baseline  F₀ = mean(y)
    residual  r = y - F
    reported  MSE

log_loss (binary classification, standard logistic boosting):
    baseline  F₀ = log(p / (1 - p)),  p = mean(y) clipped to [0.01, 0.99]
    residual  r = y - σ(F)     (the pseudo-residual)
    reported  cross-entropy of σ(F), plus accuracy

===============================================================
LEARNING RATE (Shrinkage)
===============================================================

    F_m = F_{m-1} + η × h_m

η = 1 takes the full correction; small η takes small steps and needs
more trees. η = 0 never leaves the baseline.

There is NO randomness here: the result depends only on the data
order, max_depth, η and the number of rounds.

===============================================================
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .config import GradientBoostingConfig, parse_config
from .criteria import Criterion
from .datasets import DatasetError, accuracy, as_dataset, class_labels, mse
from .linear import binary_cross_entropy, sigmoid
from .logger import get_logger
from .snapshots import check_sequence, frozen_array
from .tree import TreeNode, build_tree, data_region, predict_tree

logger = get_logger(__name__)

PRIOR_CLIP = 0.01
CURVE_POINTS = 100


@dataclass(frozen=True, eq=False)
class BoostingSnapshot:
    step: int
    baseline: float
    raw_predictions: np.ndarray
    predictions: np.ndarray
    residuals: np.ndarray
    trees: Tuple[Tuple[TreeNode, float], ...]
    loss: float
    description: str
    new_tree: Optional[TreeNode] = None
    new_tree_contribution: Optional[np.ndarray] = None
    mse: Optional[float] = None
    accuracy: Optional[float] = None
    curve_x: Optional[np.ndarray] = None
    prediction_curve: Optional[np.ndarray] = None

    @property
    def n_trees(self):
        return len(self.trees)


def boosted_predict(baseline, trees, X, loss='squared_error'):
    """
    F(x) = baseline + Σ weight_i · tree_i(x)

    Returns F for squared_error and σ(F) for log_loss.
    """
    X = np.asarray(X, dtype=float)
    F = np.full(len(X), float(baseline))
    for tree, weight in trees:
        F += weight * predict_tree(tree, X)
    return sigmoid(F) if loss == 'log_loss' else F


class GradientBoosting:
    """
    Sequential ensemble of shallow regression trees.

    Each round fits a variance-criterion tree to the current residuals,
    so the whole run is recorded as it happens.
    """

    def __init__(self, n_estimators=20, learning_rate=0.1, max_depth=2,
                 min_samples_split=2, loss='squared_error'):
        """
        Parameters:
        -----------
        n_estimators : number of boosting rounds (trees)
        learning_rate : shrinkage η applied to every tree
        max_depth : depth of each weak learner (kept small)
        min_samples_split : min samples to split a node
        loss : 'squared_error' or 'log_loss'
        """
        self.n_estimators = n_estimators
        self.learning_rate = learning_rate
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.loss = loss

        self.baseline = 0.0
        self.trees = []
        self.curve_x = None

    @classmethod
    def from_config(cls, config):
        return cls(n_estimators=config.n_estimators,
                   learning_rate=config.learning_rate,
                   max_depth=config.max_depth,
                   min_samples_split=config.min_samples_split,
                   loss=config.loss)

    def _targets(self, y):
        if self.loss != 'log_loss':
            return np.asarray(y, dtype=float)
        labels = class_labels(y)
        if len(labels) and labels.max() > 1:
            raise DatasetError("log_loss boosting needs binary 0/1 labels")
        return labels.astype(float)

    def _baseline(self, y):
        if len(y) == 0:
            return 0.0
        if self.loss == 'log_loss':
            # Log-odds of class prevalence
            p = float(np.clip(np.mean(y), PRIOR_CLIP, 1 - PRIOR_CLIP))
            return float(np.log(p / (1 - p)))
        return float(np.mean(y))

    def _curve_grid(self, X):
        """Evenly spaced inputs across the padded range of 1-feature data."""
        if X.shape[1] != 1 or len(X) == 0:
            return None
        lo, hi = data_region(X)[0]
        return np.linspace(lo, hi, CURVE_POINTS)

    def _link(self, F):
        return sigmoid(F) if self.loss == 'log_loss' else F

    def _snapshot(self, step, y, F, residuals, new_tree=None, contribution=None):
        preds = self._link(F)
        metrics = {}
        if self.loss == 'log_loss':
            loss = binary_cross_entropy(y, preds) if len(y) else 0.0
            metrics['accuracy'] = accuracy(y, (preds >= 0.5).astype(int))
            metric_text = f"log-loss {loss:.4f}, accuracy {metrics['accuracy']:.3f}"
        else:
            loss = mse(y, preds)
            metrics['mse'] = loss
            metric_text = f"MSE {loss:.4f}"

        if step == 0:
            description = f"Baseline F0 = {self.baseline:.4f} for every sample: {metric_text}"
        else:
            description = (f"Round {step}: fitted a depth-{self.max_depth} tree to the "
                           f"residuals, added {self.learning_rate:g} x tree: {metric_text}")

        trees = tuple((tree, self.learning_rate) for tree in self.trees[:step])
        curve = None
        if self.curve_x is not None:
            curve = boosted_predict(self.baseline, trees, self.curve_x.reshape(-1, 1), self.loss)
        return BoostingSnapshot(
            step=step,
            baseline=self.baseline,
            raw_predictions=frozen_array(F),
            predictions=frozen_array(preds),
            residuals=frozen_array(residuals),
            trees=trees,
            loss=float(loss),
            description=description,
            new_tree=new_tree,
            new_tree_contribution=None if contribution is None else frozen_array(contribution),
            curve_x=None if curve is None else frozen_array(self.curve_x),
            prediction_curve=None if curve is None else frozen_array(curve),
            **metrics,
        )

    def fit_snapshots(self, X, y):
        """
        Train, recording one snapshot per round.

        1. Initialize every prediction to the baseline
        2. For each round:
           a. residuals = y - current prediction
           b. fit a shallow regression tree to the residuals
           c. F += η × tree(X)
        """
        X = np.asarray(X, dtype=float)
        y = self._targets(y)
        self.baseline = self._baseline(y)
        self.trees = []
        self.curve_x = self._curve_grid(X)

        F = np.full(len(y), self.baseline)
        snapshots = [self._snapshot(0, y, F, y - self._link(F))]
        if len(y) == 0:
            return snapshots

        region = data_region(X)
        for m in range(1, self.n_estimators + 1):
            residuals = y - self._link(F)

            tree = build_tree(
                X, residuals,
                max_depth=self.max_depth,
                min_samples_split=self.min_samples_split,
                criterion=Criterion.VARIANCE,
                region=region,
            )
            self.trees.append(tree)

            contribution = self.learning_rate * predict_tree(tree, X)
            F = F + contribution

            snapshots.append(self._snapshot(m, y, F, residuals, tree, contribution))
            logger.debug("boosting round %d: %s", m, snapshots[-1].description)
        return snapshots

    def predict(self, X):
        return boosted_predict(self.baseline,
                               [(tree, self.learning_rate) for tree in self.trees],
                               X, self.loss)


def train_gradient_boosting(data, config=None):
    """
    Gradient-boosting trainer: (dataset, config) -> snapshot sequence.
    """
    config = parse_config(GradientBoostingConfig, config)
    dataset = as_dataset(data)

    model = GradientBoosting.from_config(config)
    snapshots = model.fit_snapshots(dataset.X, dataset.y)

    logger.info("gradient boosting (%s, eta=%g, %d rounds): %d samples -> %d snapshots",
                config.loss, config.learning_rate, config.n_estimators,
                dataset.n_samples, len(snapshots))
    return check_sequence(snapshots)
