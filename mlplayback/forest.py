"""
RANDOM FOREST — Paradigm: COMMITTEE (Bagging + Random Features)

===============================================================
WHAT IT IS (THE CORE IDEA)
===============================================================

Decision trees have HIGH VARIANCE: small data changes give very
different trees.

SOLUTION: Train MANY trees and let them VOTE (or average).

Averaging identical trees doesn't help, so make them DIFFERENT:
    1. BAGGING: each tree trains on a bootstrap sample
       (n draws WITH replacement from the n samples)
    2. FEATURE SUBSAMPLING: each split only looks at a random
       subset of ⌊√p⌋ features

This DECORRELATES the trees, so their errors partly cancel.

===============================================================
OUT-OF-BAG (OOB) ERROR
===============================================================

Each bootstrap misses ~37% of the samples. Those "out-of-bag"
samples are scored only by the trees that never saw them, giving a
validation estimate for free.

===============================================================
PLAYBACK
===============================================================

    snapshot 0   empty forest: predicts the majority class (or mean)
    snapshot t   first t trees, their bootstrap draws, and the
                 ensemble prediction RECOMPUTED from all t trees

Every random draw comes from one seeded Rng, consumed in a fixed
order (bootstrap rows, then per-split feature subsets, tree by tree),
so a seed replays the same forest bit-for-bit.

===============================================================
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .config import RandomForestConfig, parse_config
from .criteria import Criterion
from .datasets import accuracy, as_dataset, class_labels, mse
from .logger import get_logger
from .rng import Rng
from .snapshots import check_sequence, frozen_array
from .tree import TreeNode, build_tree, data_region, iter_nodes, predict_tree

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class ForestSnapshot:
    step: int
    trees: Tuple[TreeNode, ...]
    bootstrap_indices: Tuple[Tuple[int, ...], ...]
    predictions: np.ndarray
    feature_importances: np.ndarray
    description: str
    vote_fractions: Optional[np.ndarray] = None
    oob_error: Optional[float] = None
    accuracy: Optional[float] = None
    mse: Optional[float] = None

    @property
    def n_trees(self):
        return len(self.trees)

    @property
    def new_tree(self):
        return self.trees[-1] if self.trees else None


def default_max_features(n_features):
    """⌊√p⌋, at least 1."""
    return max(1, int(math.floor(math.sqrt(n_features))))


def feature_importances(trees, n_features):
    """
    Gain-weighted split counts, normalized to sum to 1.

    Each split node contributes gain × n_samples to its feature.
    Uniform when no tree has split yet.
    """
    totals = np.zeros(n_features)
    for tree in trees:
        for node in iter_nodes(tree):
            if not node.is_leaf:
                totals[node.feature] += node.gain * node.n_samples
    total = totals.sum()
    if total <= 0:
        return np.full(n_features, 1.0 / n_features) if n_features else totals
    return totals / total


def _majority(votes_matrix, n_classes):
    """Per-class vote counts, shape (n_classes, n). argmax ties go to the lowest class."""
    votes = np.zeros((n_classes, votes_matrix.shape[1]), dtype=int)
    for row in votes_matrix:
        votes[row, np.arange(votes_matrix.shape[1])] += 1
    return votes


def forest_predict(trees, X, n_classes=None):
    """
    Ensemble prediction from scratch.

    Classifiers: (majority labels, vote fractions of shape (n, n_classes)).
    Regressors:  (mean prediction, None).
    """
    X = np.asarray(X, dtype=float)
    tree_preds = np.array([predict_tree(tree, X) for tree in trees])
    return _aggregate(tree_preds, trees[0].is_classifier, n_classes)


def _aggregate(tree_preds, classification, n_classes):
    if not classification:
        return tree_preds.mean(axis=0), None
    if n_classes is None:
        n_classes = int(tree_preds.max()) + 1
    votes = _majority(tree_preds.astype(int), n_classes)
    fractions = (votes / tree_preds.shape[0]).T
    return np.argmax(votes, axis=0), fractions


def _oob_error(tree_preds, oob_masks, y, classification, n_classes):
    """Error over samples that at least one tree left out of its bootstrap."""
    seen = oob_masks.any(axis=0)
    if not seen.any():
        return None
    idx = np.where(seen)[0]
    if classification:
        votes = np.zeros((n_classes, len(idx)), dtype=int)
        for preds, mask in zip(tree_preds, oob_masks):
            m = mask[idx]
            votes[preds[idx][m], np.where(m)[0]] += 1
        return 1.0 - accuracy(y[idx], np.argmax(votes, axis=0))
    sums = (tree_preds * oob_masks)[:, idx].sum(axis=0)
    counts = oob_masks[:, idx].sum(axis=0)
    return mse(y[idx], sums / counts)


class RandomForest:
    """
    Bagged ensemble of decision trees with per-split feature subsampling.

    fit() grows the trees; snapshots() replays them one tree at a time.
    """

    def __init__(self, n_trees=10, max_depth=5, min_samples_split=2,
                 criterion='gini', max_features=None, bootstrap=True, seed=42):
        self.n_trees = n_trees
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.criterion = criterion
        self.max_features = max_features
        self.bootstrap = bootstrap
        self.seed = seed

        self.trees = []
        self.bootstrap_indices = []
        self.n_classes_ = None

    @classmethod
    def from_config(cls, config):
        return cls(n_trees=config.n_trees, max_depth=config.max_depth,
                   min_samples_split=config.min_samples_split,
                   criterion=config.criterion, max_features=config.max_features,
                   bootstrap=config.bootstrap, seed=config.seed)

    def _resolve_max_features(self, n_features):
        if self.max_features is None:
            return default_max_features(n_features)
        return max(1, min(int(self.max_features), n_features))

    def fit(self, X, y):
        """
        Train the forest.

        For each tree:
            1. Draw a bootstrap sample (if bootstrap=True)
            2. Grow a tree, drawing a fresh feature subset at every split
        """
        X = np.asarray(X, dtype=float)
        n_samples, n_features = X.shape
        rng = Rng(self.seed)
        k = self._resolve_max_features(n_features)

        def feature_subset(p):
            return rng.choice(p, k)

        self.n_classes_ = None
        if self.classification:
            y = class_labels(y)
            self.n_classes_ = int(y.max()) + 1
        region = data_region(X)

        self.trees = []
        self.bootstrap_indices = []
        for t in range(self.n_trees):
            if self.bootstrap:
                indices = rng.sample_indices(n_samples, n_samples)
            else:
                indices = list(range(n_samples))

            tree = build_tree(
                X, y,
                max_depth=self.max_depth,
                min_samples_split=self.min_samples_split,
                criterion=self.criterion,
                feature_subset=feature_subset,
                indices=indices,
                n_classes=self.n_classes_,
                region=region,
            )
            self.trees.append(tree)
            self.bootstrap_indices.append(tuple(indices))
            logger.debug("forest tree %d: %d leaves", t + 1,
                         sum(1 for node in iter_nodes(tree) if node.is_leaf))
        return self

    @property
    def classification(self):
        return Criterion(self.criterion).is_classification

    def predict(self, X):
        preds, _ = forest_predict(self.trees, X, self.n_classes_)
        return preds

    def snapshots(self, X, y):
        """Replay the fitted forest: baseline, then one snapshot per tree."""
        X = np.asarray(X, dtype=float)
        n_samples, n_features = X.shape
        classification = self.classification
        y = class_labels(y) if classification else np.asarray(y, dtype=float)

        # Each tree's predictions on the FULL dataset, computed once
        tree_preds = np.array([predict_tree(tree, X) for tree in self.trees])
        oob_masks = np.ones((len(self.trees), n_samples), dtype=bool)
        for t, indices in enumerate(self.bootstrap_indices):
            oob_masks[t, list(indices)] = False

        snapshots = [self._baseline_snapshot(y, n_features, classification)]
        for t in range(1, len(self.trees) + 1):
            preds, fractions = _aggregate(tree_preds[:t], classification,
                                          self.n_classes_)
            oob = _oob_error(tree_preds[:t], oob_masks[:t], y, classification,
                             self.n_classes_)
            metrics = ({'accuracy': accuracy(y, preds)} if classification
                       else {'mse': mse(y, preds)})
            metric_text = (f"accuracy {metrics['accuracy']:.3f}" if classification
                           else f"MSE {metrics['mse']:.4f}")
            snapshots.append(ForestSnapshot(
                step=t,
                trees=tuple(self.trees[:t]),
                bootstrap_indices=tuple(self.bootstrap_indices[:t]),
                predictions=frozen_array(preds),
                feature_importances=frozen_array(
                    feature_importances(self.trees[:t], n_features)),
                vote_fractions=None if fractions is None else frozen_array(fractions),
                oob_error=oob,
                description=(f"Added tree {t}/{len(self.trees)} "
                             f"({len(set(self.bootstrap_indices[t - 1]))} unique "
                             f"bootstrap rows): ensemble {metric_text}"),
                **metrics,
            ))
        return snapshots

    def _baseline_snapshot(self, y, n_features, classification):
        n = len(y)
        if classification:
            n_classes = self.n_classes_ or 1
            majority = int(np.argmax(np.bincount(y, minlength=n_classes))) if n else 0
            preds = np.full(n, majority, dtype=int)
            fractions = np.zeros((n, n_classes))
            fractions[:, majority] = 1.0
            metrics = {'accuracy': accuracy(y, preds)}
            description = f"Empty forest: every sample gets the majority class {majority}"
        else:
            baseline = float(np.mean(y)) if n else 0.0
            preds = np.full(n, baseline)
            fractions = None
            metrics = {'mse': mse(y, preds)}
            description = f"Empty forest: every sample gets the mean {baseline:.3f}"
        return ForestSnapshot(
            step=0,
            trees=(),
            bootstrap_indices=(),
            predictions=frozen_array(preds),
            feature_importances=frozen_array(
                np.full(n_features, 1.0 / n_features) if n_features else np.zeros(0)),
            vote_fractions=None if fractions is None else frozen_array(fractions),
            oob_error=None,
            description=description,
            **metrics,
        )


def train_random_forest(data, config=None):
    """
    Random-forest trainer: (dataset, config) -> snapshot sequence.
    """
    config = parse_config(RandomForestConfig, config)
    dataset = as_dataset(data)
    forest = RandomForest.from_config(config)

    if dataset.n_samples == 0:
        forest.n_classes_ = 1
        snapshots = [forest._baseline_snapshot(
            np.zeros(0, dtype=int if forest.classification else float),
            dataset.n_features, forest.classification)]
    else:
        forest.fit(dataset.X, dataset.y)
        snapshots = forest.snapshots(dataset.X, dataset.y)

    logger.info("random forest (%d trees, seed=%d): %d samples -> %d snapshots",
                config.n_trees, config.seed, dataset.n_samples, len(snapshots))
    return check_sequence(snapshots)
