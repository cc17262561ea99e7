"""
IMPURITY CRITERIA — how "mixed" is a node?

===============================================================
THE THREE SCORES
===============================================================

GINI IMPURITY (classification):
    Gini = 1 - Σₖ pₖ²

    Probability that a random sample would be mislabeled if labeled
    randomly according to the node's class distribution.
    Gini = 0: pure.  Gini = 0.5: binary 50/50.

ENTROPY (classification):
    H = -Σₖ pₖ log₂(pₖ),   with 0·log₂(0) := 0

    Entropy = 0: pure.  Entropy = 1: binary 50/50.

VARIANCE / MSE (regression):
    Var = (1/n) Σᵢ (yᵢ - ȳ)²

    Spread around the mean. 0 means every target is identical.

All three are non-negative and 0 means "nothing left to split".

The tree builder never hardcodes a score: it receives a Criterion
and dispatches through `impurity()`.

===============================================================
"""

from enum import Enum

import numpy as np


class Criterion(str, Enum):
    """Closed set of split criteria."""
    GINI = 'gini'
    ENTROPY = 'entropy'
    VARIANCE = 'variance'

    @property
    def is_classification(self):
        return self is not Criterion.VARIANCE


def gini(counts, total):
    """Gini impurity of a class-count vector."""
    if total <= 0:
        return 0.0
    probs = np.asarray(counts, dtype=float) / total
    return float(max(0.0, 1.0 - np.sum(probs ** 2)))


def entropy(counts, total):
    """Entropy (bits) of a class-count vector."""
    if total <= 0:
        return 0.0
    probs = np.asarray(counts, dtype=float) / total
    probs = probs[probs > 0]  # 0·log(0) := 0
    return float(max(0.0, -np.sum(probs * np.log2(probs))))


def variance(values, total=None):
    """Mean squared deviation from the mean."""
    values = np.asarray(values, dtype=float)
    if total is None:
        total = len(values)
    if total <= 0:
        return 0.0
    mean = np.sum(values) / total
    return float(np.sum((values - mean) ** 2) / total)


_DISPATCH = {
    Criterion.GINI: gini,
    Criterion.ENTROPY: entropy,
    Criterion.VARIANCE: variance,
}


def impurity(criterion, counts_or_values, total):
    """Score a node under `criterion`."""
    return _DISPATCH[Criterion(criterion)](counts_or_values, total)
