"""
mlplayback — deterministic, step-recording simulators of classic
supervised-learning training algorithms.

Every trainer maps (dataset, config) to a snapshot sequence: index 0 is
the untrained baseline, the last index is the fully trained model, and
every entry can be rendered on its own.

    from mlplayback import make_tree_friendly, train_decision_tree

    snapshots = train_decision_tree(make_tree_friendly(), {'max_depth': 3})
    for snap in snapshots:
        print(snap.step, snap.description)
"""

from .attention import (AttentionResult, AttentionSnapshot, MultiHeadResult,
                        attention_snapshots, average_head_weights, causal_mask,
                        multi_head_attention, positional_encoding,
                        scaled_dot_product_attention, softmax, split_heads)
from .boosting import BoostingSnapshot, GradientBoosting, train_gradient_boosting
from .config import (ConfigError, DecisionTreeConfig, GradientBoostingConfig,
                     PerceptronConfig, RandomForestConfig)
from .criteria import Criterion, entropy, gini, impurity, variance
from .datasets import (Dataset, DatasetError, make_linear_blobs, make_moons,
                       make_noisy_circle, make_regression_curve,
                       make_tree_friendly, make_xor)
from .forest import ForestSnapshot, RandomForest, train_random_forest
from .linear import LinearSnapshot, Perceptron, train_perceptron
from .rng import Rng, create_rng
from .tree import TreeNode, TreeSnapshot, build_tree, predict_tree, train_decision_tree

__version__ = "0.1.0"
