"""
DECISION TREE — Paradigm: PARTITIONING, recorded split by split

===============================================================
WHAT IT IS (THE CORE IDEA)
===============================================================

Don't fit a function. CHOP THE SPACE INTO BOXES.

Recursively:
    1. Find the best feature and threshold to split on
    2. Send x[feature] <= threshold left, the rest right
    3. Repeat for each side until a stopping rule fires

At each leaf: predict the majority class (or the mean target for
regression). The result is a set of AXIS-ALIGNED RECTANGLES.

===============================================================
THE SPLIT SEARCH
===============================================================

For every candidate feature (all of them, or a random subset when a
forest asks for decorrelation) and every candidate threshold:

    gain = impurity(parent) - [ nL/n · impurity(left)
                              + nR/n · impurity(right) ]

Candidate thresholds are MIDPOINTS between consecutive distinct
sorted values. With many distinct values only MAX_THRESHOLDS evenly
spaced midpoints are tried, so cost stays roughly linear in n.

The split with STRICTLY maximal gain wins. Ties go to the first one
found: feature 0 before feature 1, lower thresholds before higher.
This makes the tree a pure function of its inputs.

STOPPING RULES (emit a leaf):
    - depth >= max_depth
    - fewer than min_samples_split samples
    - impurity <= IMPURITY_EPS (already pure)
    - no candidate split has positive gain

===============================================================
SNAPSHOTS WITHOUT RE-RUNNING
===============================================================

The tree is grown depth-first and the ORDER of splits is recorded.
Every node keeps its own counts, impurity and prediction, whether or
not it is split later. So the tree after k splits is just the final
tree with only its first k split nodes expanded:

    snapshot k = truncate_tree(final_tree, first k split ids)

No algorithm state is replayed and every snapshot owns its own
structurally independent copy of the tree.

===============================================================
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

import numpy as np

from .config import DecisionTreeConfig, parse_config
from .criteria import Criterion, impurity
from .datasets import accuracy, as_dataset, class_labels, mse
from .logger import get_logger
from .snapshots import check_sequence, frozen_array

logger = get_logger(__name__)

MAX_THRESHOLDS = 20
IMPURITY_EPS = 1e-12
REGION_MARGIN = 0.05


@dataclass(frozen=True)
class TreeNode:
    """
    A node in a binary decision/regression tree.

    Classification nodes carry `counts` (samples per class); regression
    nodes carry `value` (mean target). A node with feature=None is a leaf
    and has no children; a split node has both.
    """
    node_id: int
    depth: int
    sample_indices: Tuple[int, ...]
    impurity: float
    prediction: float
    region: Tuple[Tuple[float, float], ...]
    counts: Optional[Tuple[int, ...]] = None
    value: Optional[float] = None
    feature: Optional[int] = None
    threshold: Optional[float] = None
    gain: float = 0.0
    left: Optional['TreeNode'] = None
    right: Optional['TreeNode'] = None

    @property
    def is_leaf(self):
        return self.feature is None

    @property
    def n_samples(self):
        return len(self.sample_indices)

    @property
    def is_classifier(self):
        return self.counts is not None

    def as_leaf(self):
        """This node with its subtree cut off."""
        if self.is_leaf:
            return self
        return replace(self, feature=None, threshold=None, gain=0.0,
                       left=None, right=None)


@dataclass(frozen=True)
class SplitInfo:
    """What one split did."""
    node_id: int
    depth: int
    feature: int
    threshold: float
    impurity_before: float
    impurity_after: float
    gain: float
    n_left: int
    n_right: int


@dataclass(frozen=True)
class LeafRegion:
    """The axis-aligned box a leaf owns."""
    node_id: int
    bounds: Tuple[Tuple[float, float], ...]
    prediction: float
    n_samples: int
    counts: Optional[Tuple[int, ...]] = None


@dataclass(frozen=True)
class SplitLine:
    """A split drawn as a cut across its parent's box."""
    node_id: int
    depth: int
    feature: int
    threshold: float
    bounds: Tuple[Tuple[float, float], ...]


@dataclass(frozen=True)
class PathResult:
    prediction: float
    path: Tuple[int, ...]
    leaf_id: int
    probabilities: Optional[Tuple[float, ...]] = None


@dataclass(frozen=True, eq=False)
class TreeSnapshot:
    step: int
    tree: TreeNode
    regions: Tuple[LeafRegion, ...]
    split_lines: Tuple[SplitLine, ...]
    split: Optional[SplitInfo]
    predictions: np.ndarray
    n_leaves: int
    depth: int
    description: str
    accuracy: Optional[float] = None
    mse: Optional[float] = None


# ============================================================
# BUILDER
# ============================================================

def candidate_thresholds(values, max_thresholds=MAX_THRESHOLDS):
    """
    Midpoints between consecutive distinct sorted values.

    When there are more than `max_thresholds` midpoints, keep the ones at
    evenly spaced indices (first and last always included).
    """
    distinct = np.unique(values)
    if len(distinct) < 2:
        return np.zeros(0)
    mids = (distinct[:-1] + distinct[1:]) / 2.0
    m = len(mids)
    if m > max_thresholds:
        picks = np.round(np.arange(max_thresholds) * (m - 1) / (max_thresholds - 1))
        mids = mids[np.unique(picks.astype(int))]
    return mids


def data_region(X, margin=REGION_MARGIN):
    """Bounding box of X padded by `margin` of each axis range."""
    X = np.asarray(X, dtype=float)
    bounds = []
    for f in range(X.shape[1]):
        if len(X) == 0:
            bounds.append((-0.5, 0.5))
            continue
        lo, hi = float(X[:, f].min()), float(X[:, f].max())
        pad = (hi - lo) * margin or 0.5
        bounds.append((lo - pad, hi + pad))
    return tuple(bounds)


class _TreeBuilder:
    """
    Greedy recursive partitioner.

    Records every split in the order it was made (depth-first pre-order)
    so snapshots can be rebuilt by truncation.
    """

    def __init__(self, X, y, max_depth, min_samples_split, criterion,
                 feature_subset=None, n_classes=None):
        self.X = np.asarray(X, dtype=float)
        self.criterion = Criterion(criterion)
        self.classification = self.criterion.is_classification
        if self.classification:
            self.y = class_labels(y)
            if n_classes is None:
                n_classes = int(self.y.max()) + 1 if len(self.y) else 1
            self.n_classes = max(int(n_classes), 1)
        else:
            self.y = np.asarray(y, dtype=float)
            self.n_classes = None
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.feature_subset = feature_subset
        self.split_order = []
        self._next_id = 0

    # ---- node statistics ----

    def _stats(self, indices):
        """(counts, value, impurity, prediction) for a sample set."""
        n = len(indices)
        y = self.y[indices]
        if self.classification:
            counts = np.bincount(y, minlength=self.n_classes)
            return (tuple(int(c) for c in counts), None,
                    impurity(self.criterion, counts, n),
                    int(np.argmax(counts)))  # argmax: ties → lowest class
        value = float(np.mean(y)) if n else 0.0
        return None, value, impurity(self.criterion, y, n), value

    def _child_impurity(self, y_side):
        n = len(y_side)
        if self.classification:
            return impurity(self.criterion,
                            np.bincount(y_side, minlength=self.n_classes), n)
        return impurity(self.criterion, y_side, n)

    # ---- split search ----

    def _features(self, n_features):
        if self.feature_subset is None:
            return range(n_features)
        return sorted(set(int(f) for f in self.feature_subset(n_features)))

    def _best_split(self, indices, parent_impurity):
        """
        Exhaustive search over (feature, threshold) candidates.

        Returns (feature, threshold, gain, impurity_after) or None.
        """
        n = len(indices)
        y = self.y[indices]
        best = None
        best_gain = -np.inf

        for feature in self._features(self.X.shape[1]):
            values = self.X[indices, feature]
            for threshold in candidate_thresholds(values):
                left_mask = values <= threshold
                n_left = int(np.sum(left_mask))
                if n_left == 0 or n_left == n:
                    continue

                child = (n_left / n) * self._child_impurity(y[left_mask]) + \
                        ((n - n_left) / n) * self._child_impurity(y[~left_mask])
                gain = parent_impurity - child

                # Strictly greater: first-found wins ties
                if gain > best_gain:
                    best_gain = gain
                    best = (feature, float(threshold), float(gain), float(child))

        if best is None or best_gain <= IMPURITY_EPS:
            return None
        return best

    # ---- recursion ----

    def _grow(self, indices, depth, region):
        node_id = self._next_id
        self._next_id += 1

        counts, value, node_impurity, prediction = self._stats(indices)
        node = TreeNode(
            node_id=node_id,
            depth=depth,
            sample_indices=tuple(int(i) for i in indices),
            impurity=float(node_impurity),
            prediction=prediction,
            region=region,
            counts=counts,
            value=value,
        )

        # ---- STOPPING CRITERIA ----
        if depth >= self.max_depth:
            return node
        if len(indices) < self.min_samples_split:
            return node
        if node_impurity <= IMPURITY_EPS:
            return node

        split = self._best_split(indices, node_impurity)
        if split is None:
            return node

        # ---- CREATE SPLIT ----
        feature, threshold, gain, child_impurity = split
        left_mask = self.X[indices, feature] <= threshold
        self.split_order.append(SplitInfo(
            node_id=node_id,
            depth=depth,
            feature=feature,
            threshold=threshold,
            impurity_before=float(node_impurity),
            impurity_after=child_impurity,
            gain=gain,
            n_left=int(np.sum(left_mask)),
            n_right=int(np.sum(~left_mask)),
        ))

        lo, hi = region[feature]
        left_region = region[:feature] + ((lo, min(threshold, hi)),) + region[feature + 1:]
        right_region = region[:feature] + ((max(threshold, lo), hi),) + region[feature + 1:]

        left = self._grow(indices[left_mask], depth + 1, left_region)
        right = self._grow(indices[~left_mask], depth + 1, right_region)
        return replace(node, feature=feature, threshold=threshold, gain=gain,
                       left=left, right=right)

    def build(self, indices=None, region=None):
        if indices is None:
            indices = np.arange(len(self.X))
        indices = np.asarray(indices, dtype=int)
        if len(indices) == 0:
            raise ValueError("cannot build a tree from an empty sample set")
        if region is None:
            region = data_region(self.X)
        self.split_order = []
        self._next_id = 0
        return self._grow(indices, 0, region)


def build_tree(X, y, max_depth=5, min_samples_split=2,
               criterion=Criterion.GINI, feature_subset=None,
               indices=None, n_classes=None, region=None):
    """
    Grow a tree on rows `indices` of (X, y) (all rows by default).

    Parameters:
    -----------
    X, y : features (n, p) and labels/targets (n,)
    max_depth : maximum depth (root is depth 0)
    min_samples_split : nodes with fewer samples become leaves
    criterion : Criterion.GINI / ENTROPY (classification) or VARIANCE
    feature_subset : optional callable(n_features) -> feature indices,
                     consulted once per split search
    indices : optional row indices (repeats allowed, e.g. a bootstrap)
    n_classes : class count for count vectors (default max(y)+1)
    region : root box (default: padded bounding box of X)
    """
    builder = _TreeBuilder(X, y, max_depth, min_samples_split, criterion,
                           feature_subset, n_classes)
    return builder.build(indices, region)


def build_tree_with_snapshots(X, y, max_depth=5, min_samples_split=2,
                              criterion=Criterion.GINI, feature_subset=None,
                              indices=None, n_classes=None, region=None):
    """
    Grow a tree and return one snapshot per split, plus the root-only
    snapshot at index 0. Predictions and metrics are over all rows of X.
    """
    builder = _TreeBuilder(X, y, max_depth, min_samples_split, criterion,
                           feature_subset, n_classes)
    root = builder.build(indices, region)
    splits = builder.split_order

    snapshots = []
    for step in range(len(splits) + 1):
        expanded = {s.node_id for s in splits[:step]}
        tree = truncate_tree(root, expanded)
        split = splits[step - 1] if step > 0 else None
        snapshots.append(_tree_snapshot(step, tree, split, builder))
        logger.debug("tree step %d: %s", step, snapshots[-1].description)
    return snapshots


def _tree_snapshot(step, tree, split, builder):
    preds = predict_tree(tree, builder.X)
    if split is None:
        description = (f"Root holds {tree.n_samples} samples "
                       f"(impurity {tree.impurity:.3f})")
    else:
        description = (f"Split node {split.node_id} (depth {split.depth}) on "
                       f"x[{split.feature}] <= {split.threshold:.3f}: gain "
                       f"{split.gain:.4f}, {split.n_left} left / "
                       f"{split.n_right} right")
    metrics = {}
    if builder.classification:
        metrics['accuracy'] = accuracy(builder.y, preds)
    else:
        metrics['mse'] = mse(builder.y, preds)
    return TreeSnapshot(
        step=step,
        tree=tree,
        regions=tuple(leaf_regions(tree)),
        split_lines=tuple(split_lines(tree)),
        split=split,
        predictions=frozen_array(preds),
        n_leaves=count_leaves(tree),
        depth=tree_depth(tree),
        description=description,
        **metrics,
    )


# ============================================================
# TRAVERSAL
# ============================================================

def truncate_tree(node, expanded_ids):
    """Copy of the tree where only nodes in `expanded_ids` stay split."""
    if node.is_leaf:
        return node
    if node.node_id not in expanded_ids:
        return node.as_leaf()
    return replace(node,
                   left=truncate_tree(node.left, expanded_ids),
                   right=truncate_tree(node.right, expanded_ids))


def iter_nodes(node):
    """Pre-order walk."""
    yield node
    if not node.is_leaf:
        yield from iter_nodes(node.left)
        yield from iter_nodes(node.right)


def count_leaves(node):
    if node.is_leaf:
        return 1
    return count_leaves(node.left) + count_leaves(node.right)


def tree_depth(node):
    """Depth of the deepest leaf below `node` (a lone root has depth 0)."""
    if node.is_leaf:
        return 0
    return 1 + max(tree_depth(node.left), tree_depth(node.right))


def _leaf_for(node, x):
    while not node.is_leaf:
        node = node.left if x[node.feature] <= node.threshold else node.right
    return node


def predict_tree(tree, X):
    """Predict every row of X."""
    X = np.asarray(X, dtype=float)
    if X.ndim == 1:
        X = X.reshape(1, -1)
    dtype = int if tree.is_classifier else float
    return np.array([_leaf_for(tree, x).prediction for x in X], dtype=dtype)


def predict_with_path(tree, x):
    """
    Prediction for one point plus the root-to-leaf node ids and, for
    classifiers, the leaf's class proportions.
    """
    path = []
    node = tree
    while not node.is_leaf:
        path.append(node.node_id)
        node = node.left if x[node.feature] <= node.threshold else node.right
    path.append(node.node_id)

    probabilities = None
    if node.is_classifier:
        total = sum(node.counts)
        probabilities = tuple(c / total if total else 0.0 for c in node.counts)
    return PathResult(prediction=node.prediction, path=tuple(path),
                      leaf_id=node.node_id, probabilities=probabilities)


def leaf_regions(tree):
    """Boxes owned by the leaves, left to right."""
    return [LeafRegion(node_id=n.node_id, bounds=n.region,
                       prediction=n.prediction, n_samples=n.n_samples,
                       counts=n.counts)
            for n in iter_nodes(tree) if n.is_leaf]


def split_lines(tree):
    """One cut per split node, in split order."""
    return [SplitLine(node_id=n.node_id, depth=n.depth, feature=n.feature,
                      threshold=n.threshold, bounds=n.region)
            for n in iter_nodes(tree) if not n.is_leaf]


def trivial_leaf(n_features, criterion=Criterion.GINI, n_classes=1):
    """Root-only tree over no samples (degenerate empty dataset)."""
    classification = Criterion(criterion).is_classification
    return TreeNode(
        node_id=0,
        depth=0,
        sample_indices=(),
        impurity=0.0,
        prediction=0 if classification else 0.0,
        region=tuple((-0.5, 0.5) for _ in range(n_features)),
        counts=tuple([0] * max(n_classes, 1)) if classification else None,
        value=None if classification else 0.0,
    )


# ============================================================
# TRAINER
# ============================================================

def train_decision_tree(data, config=None):
    """
    Decision-tree trainer: (dataset, config) -> snapshot sequence.

    Snapshot 0 is the root-only tree; each later snapshot adds one split.
    """
    config = parse_config(DecisionTreeConfig, config)
    dataset = as_dataset(data)

    if dataset.n_samples == 0:
        tree = trivial_leaf(dataset.n_features, config.criterion)
        snapshots = [TreeSnapshot(
            step=0, tree=tree, regions=tuple(leaf_regions(tree)),
            split_lines=(), split=None, predictions=frozen_array([]),
            n_leaves=1, depth=0, description="Empty dataset: nothing to split",
            **({'accuracy': 0.0} if config.criterion.is_classification
               else {'mse': 0.0}))]
    else:
        snapshots = build_tree_with_snapshots(
            dataset.X, dataset.y,
            max_depth=config.max_depth,
            min_samples_split=config.min_samples_split,
            criterion=config.criterion,
        )

    logger.info("decision tree (%s, max_depth=%d): %d samples -> %d snapshots",
                config.criterion.value, config.max_depth, dataset.n_samples,
                len(snapshots))
    return check_sequence(snapshots)
