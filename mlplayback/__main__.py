"""
Command-line playback: train one algorithm and print its snapshots.

    python -m mlplayback tree --dataset xor --max-depth 3
    python -m mlplayback boosting --learning-rate 0.3 --save boost.png
    python -m mlplayback attention --seq-len 5 --causal
"""

import argparse
import sys

import numpy as np

from . import datasets
from .attention import (attention_snapshots, average_head_weights, causal_mask,
                        multi_head_attention, positional_encoding, split_heads)
from .boosting import train_gradient_boosting
from .forest import train_random_forest
from .linear import train_perceptron
from .logger import get_logger, setup_logging
from .rng import Rng
from .tree import train_decision_tree

logger = get_logger(__name__)

_DATASETS = {
    'tree_friendly': datasets.make_tree_friendly,
    'xor': datasets.make_xor,
    'moons': datasets.make_moons,
    'linear_blobs': datasets.make_linear_blobs,
    'noisy_circle': datasets.make_noisy_circle,
    'regression': datasets.make_regression_curve,
}


def _add_common(parser, default_dataset):
    parser.add_argument('--dataset', choices=sorted(_DATASETS), default=default_dataset)
    parser.add_argument('--seed', type=int, default=42)
    parser.add_argument('--n-samples', type=int, default=100)
    parser.add_argument('--log-level', default='WARNING')
    parser.add_argument('--save', metavar='PATH', default=None,
                        help='render the final snapshot to an image file')


def build_parser():
    parser = argparse.ArgumentParser(
        prog='mlplayback',
        description='Step-by-step playback of classic training algorithms')
    sub = parser.add_subparsers(dest='algorithm', required=True)

    p = sub.add_parser('tree', help='greedy decision-tree induction')
    _add_common(p, 'tree_friendly')
    p.add_argument('--max-depth', type=int, default=5)
    p.add_argument('--min-samples-split', type=int, default=2)
    p.add_argument('--criterion', choices=['gini', 'entropy', 'variance'], default=None)

    p = sub.add_parser('forest', help='random forest, one tree at a time')
    _add_common(p, 'moons')
    p.add_argument('--n-trees', type=int, default=10)
    p.add_argument('--max-depth', type=int, default=5)
    p.add_argument('--max-features', type=int, default=None)
    p.add_argument('--no-bootstrap', action='store_true')
    p.add_argument('--criterion', choices=['gini', 'entropy', 'variance'], default=None)

    p = sub.add_parser('boosting', help='gradient boosting, one round at a time')
    _add_common(p, 'regression')
    p.add_argument('--n-estimators', type=int, default=20)
    p.add_argument('--learning-rate', type=float, default=0.1)
    p.add_argument('--max-depth', type=int, default=2)
    p.add_argument('--loss', choices=['squared_error', 'log_loss'], default=None)

    p = sub.add_parser('perceptron', help='perceptron / logistic regression')
    _add_common(p, 'linear_blobs')
    p.add_argument('--learning-rate', type=float, default=0.1)
    p.add_argument('--epochs', type=int, default=50)
    p.add_argument('--activation', choices=['step', 'sigmoid'], default='step')
    p.add_argument('--init', choices=['random', 'zeros'], default='random')

    p = sub.add_parser('attention', help='scaled dot-product attention stages')
    p.add_argument('--seed', type=int, default=42)
    p.add_argument('--seq-len', type=int, default=4)
    p.add_argument('--d-model', type=int, default=8)
    p.add_argument('--n-heads', type=int, default=2)
    p.add_argument('--causal', action='store_true')
    p.add_argument('--log-level', default='WARNING')
    p.add_argument('--save', metavar='PATH', default=None)
    return parser


def _load(args):
    return _DATASETS[args.dataset](n_samples=args.n_samples, seed=args.seed)


def _criterion(args):
    if args.criterion is not None:
        return args.criterion
    return 'variance' if args.dataset == 'regression' else 'gini'


def _run_tree(args):
    data = _load(args)
    return data, train_decision_tree(data, {
        'max_depth': args.max_depth,
        'min_samples_split': args.min_samples_split,
        'criterion': _criterion(args),
    })


def _run_forest(args):
    data = _load(args)
    return data, train_random_forest(data, {
        'n_trees': args.n_trees,
        'max_depth': args.max_depth,
        'max_features': args.max_features,
        'bootstrap': not args.no_bootstrap,
        'criterion': _criterion(args),
        'seed': args.seed,
    })


def _run_boosting(args):
    data = _load(args)
    loss = args.loss or ('squared_error' if args.dataset == 'regression' else 'log_loss')
    return data, train_gradient_boosting(data, {
        'n_estimators': args.n_estimators,
        'learning_rate': args.learning_rate,
        'max_depth': args.max_depth,
        'loss': loss,
    })


def _run_perceptron(args):
    data = _load(args)
    return data, train_perceptron(data, {
        'learning_rate': args.learning_rate,
        'epochs': args.epochs,
        'activation': args.activation,
        'init': args.init,
        'seed': args.seed,
    })


def _run_attention(args):
    """Self-attention over random embeddings plus positional encoding."""
    rng = Rng(args.seed)
    X = np.array([[rng.normal() for _ in range(args.d_model)]
                  for _ in range(args.seq_len)])
    X = X + positional_encoding(args.seq_len, args.d_model)
    mask = causal_mask(args.seq_len) if args.causal else None
    tokens = [f't{i}' for i in range(args.seq_len)]

    snapshots = attention_snapshots(X, X, X, mask=mask, tokens=tokens)

    if args.n_heads > 1:
        heads = split_heads(X, args.n_heads)
        result = multi_head_attention(heads, heads, heads, mask=mask)
        avg = average_head_weights([h.weights for h in result.heads])
        print(f"{result.n_heads} heads of width {result.d_per_head}; "
              f"averaged weights row 0: {np.round(avg[0], 3)}")
    return None, snapshots


_RUNNERS = {
    'tree': _run_tree,
    'forest': _run_forest,
    'boosting': _run_boosting,
    'perceptron': _run_perceptron,
    'attention': _run_attention,
}


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    logger.debug("arguments: %s", vars(args))

    try:
        data, snapshots = _RUNNERS[args.algorithm](args)
    except ValueError as e:
        # ConfigError, DatasetError and shape errors
        print(f"error: {e}", file=sys.stderr)
        return 2

    print("=" * 60)
    print(f"{args.algorithm.upper()}: {len(snapshots)} snapshots")
    print("=" * 60)
    for snap in snapshots:
        print(f"{snap.step:>4}  {snap.description}")

    if args.save:
        from .plotting import save_snapshot_plot
        save_snapshot_plot(snapshots[-1], args.save, dataset=data)
        print(f"\nSaved to: {args.save}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
