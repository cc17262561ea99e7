"""
===============================================================
ATTENTION — Paradigm: DYNAMIC WEIGHTING
===============================================================

WHAT IT IS (THE CORE IDEA)
===============================================================

Attention computes DATA-DEPENDENT weights:
    output_i = Σ_j α_ij × v_j    where α_i = softmax(score(q_i, k_j))

Think of it like a search:
    QUERY (Q):  What am I looking for?
    KEY (K):    What does each position offer?
    VALUE (V):  What information does each position have?

===============================================================
THE PIPELINE (every stage is kept)
===============================================================

    1. raw     = Q Kᵀ                       (seq_q × seq_k)
    2. scaled  = raw / √d_k
    3. masked  = scaled, with forbidden cells set to -∞   (optional)
    4. weights = row-wise softmax           (rows sum to 1)
    5. output  = weights V                  (seq_q × d_v)

WHY SCALE BY √d_k?
- Dot products grow with dimension: E[q·k] = d_k when q,k ~ N(0,1)
- Large dot products → softmax saturates
- Scaling keeps variance ≈ 1

WHY -∞ AND NOT -1e9?
- exp(-∞) is EXACTLY 0, so a masked cell gets exactly zero weight.
- A row with every cell masked has nothing to attend to: its weights
  are all zero and its output row is zero.

===============================================================
MULTI-HEAD
===============================================================

MultiHead = Concat(head_1, ..., head_h) W_O
    head_i = Attention(Q_i, K_i, V_i)

Heads share nothing, so they can be computed in any order (or in
parallel). Outputs are concatenated per position in head order.

===============================================================
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .logger import get_logger
from .snapshots import check_sequence, frozen_array

logger = get_logger(__name__)


# ============================================================
# BASIC OPERATIONS
# ============================================================

def _matrix(x, name: str) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    if x.ndim != 2:
        raise ValueError(f"{name} must be a 2-D matrix, got shape {x.shape}")
    return x


def compute_scores(query: np.ndarray, key: np.ndarray) -> np.ndarray:
    """Raw scores Q Kᵀ: (seq_q, d_k) × (seq_k, d_k) → (seq_q, seq_k)."""
    query = _matrix(query, 'query')
    key = _matrix(key, 'key')
    if query.shape[1] != key.shape[1]:
        raise ValueError(
            f"query and key dimensions differ: {query.shape[1]} vs {key.shape[1]}")
    return query @ key.T


def scale_scores(scores: np.ndarray, d_k: int) -> np.ndarray:
    """scores / √d_k"""
    if d_k <= 0:
        raise ValueError(f"d_k must be positive, got {d_k}")
    return np.asarray(scores, dtype=float) / np.sqrt(d_k)


def apply_mask(scores: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """
    Set every cell where mask is False to -∞.

    mask: boolean matrix of the same shape, True = may attend.
    """
    scores = np.asarray(scores, dtype=float)
    mask = np.asarray(mask, dtype=bool)
    if mask.shape != scores.shape:
        raise ValueError(f"mask shape {mask.shape} does not match scores {scores.shape}")
    return np.where(mask, scores, -np.inf)


def softmax(x: np.ndarray, axis: int = -1, temperature: float = 1.0) -> np.ndarray:
    """
    Numerically stable softmax, tolerant of -∞ cells.

    temperature > 1 flattens the distribution, < 1 sharpens it.
    A slice that is entirely -∞ comes back as all zeros. A slice holding
    +∞ (an overflowed score) splits its weight evenly over the +∞ cells.
    """
    if temperature <= 0:
        raise ValueError(f"temperature must be positive, got {temperature}")
    x = np.asarray(x, dtype=float) / temperature
    if np.any(np.isnan(x)):
        raise ValueError("softmax input contains NaN")

    # Subtract the max; an all -∞ slice has no max to subtract
    x_max = np.max(x, axis=axis, keepdims=True)
    overflowed = np.isposinf(x_max)
    x_max = np.where(np.isneginf(x_max) | overflowed, 0.0, x_max)
    shifted = np.where(overflowed, np.where(np.isposinf(x), 0.0, -np.inf), x - x_max)
    exp_x = np.exp(shifted)

    total = np.sum(exp_x, axis=axis, keepdims=True)
    return np.divide(exp_x, total, out=np.zeros_like(exp_x), where=total > 0)


def compute_output(weights: np.ndarray, value: np.ndarray) -> np.ndarray:
    """Weighted sum of values: (seq_q, seq_k) × (seq_k, d_v) → (seq_q, d_v)."""
    weights = _matrix(weights, 'weights')
    value = _matrix(value, 'value')
    if weights.shape[1] != value.shape[0]:
        raise ValueError(
            f"weights cover {weights.shape[1]} keys but value has {value.shape[0]} rows")
    return weights @ value


def causal_mask(size: int) -> np.ndarray:
    """
    Lower-triangular mask: position i may attend to j iff j ≤ i.

    size=4:
        [[T, F, F, F],
         [T, T, F, F],
         [T, T, T, F],
         [T, T, T, T]]
    """
    return np.tril(np.ones((size, size), dtype=bool))


# ============================================================
# SCALED DOT-PRODUCT ATTENTION
# ============================================================

@dataclass(frozen=True, eq=False)
class AttentionResult:
    raw_scores: np.ndarray
    scaled_scores: np.ndarray
    masked_scores: Optional[np.ndarray]
    weights: np.ndarray
    output: np.ndarray


def scaled_dot_product_attention(query: np.ndarray, key: np.ndarray, value: np.ndarray,
                                 mask: Optional[np.ndarray] = None) -> AttentionResult:
    """
    Attention(Q, K, V) = softmax(Q Kᵀ / √d_k) V, keeping every stage.

    Args:
        query: (seq_q, d_k)
        key: (seq_k, d_k)
        value: (seq_k, d_v)
        mask: Optional (seq_q, seq_k) boolean mask, True = attend

    Returns:
        AttentionResult with read-only copies of all intermediates
    """
    key = _matrix(key, 'key')
    value = _matrix(value, 'value')
    if key.shape[0] != value.shape[0]:
        raise ValueError(
            f"key and value lengths differ: {key.shape[0]} vs {value.shape[0]}")

    raw = compute_scores(query, key)
    scaled = scale_scores(raw, key.shape[1])

    masked = None
    if mask is not None:
        masked = apply_mask(scaled, mask)

    weights = softmax(scaled if masked is None else masked, axis=-1)
    output = compute_output(weights, value)

    return AttentionResult(
        raw_scores=frozen_array(raw),
        scaled_scores=frozen_array(scaled),
        masked_scores=None if masked is None else frozen_array(masked),
        weights=frozen_array(weights),
        output=frozen_array(output),
    )


# ============================================================
# MULTI-HEAD ATTENTION
# ============================================================

@dataclass(frozen=True, eq=False)
class MultiHeadResult:
    heads: Tuple[AttentionResult, ...]
    concatenated: np.ndarray
    output: np.ndarray
    d_per_head: int

    @property
    def n_heads(self) -> int:
        return len(self.heads)


def split_heads(x: np.ndarray, n_heads: int) -> List[np.ndarray]:
    """
    Split a (seq, d_model) projection into n_heads blocks of
    (seq, d_model // n_heads), taken as consecutive column ranges.
    """
    x = _matrix(x, 'x')
    if n_heads < 1 or x.shape[1] % n_heads != 0:
        raise ValueError(f"d_model={x.shape[1]} is not divisible into {n_heads} heads")
    return [block.copy() for block in np.split(x, n_heads, axis=1)]


def multi_head_attention(heads_q: Sequence[np.ndarray], heads_k: Sequence[np.ndarray],
                         heads_v: Sequence[np.ndarray], w_o: Optional[np.ndarray] = None,
                         mask: Optional[np.ndarray] = None) -> MultiHeadResult:
    """
    Multi-head attention over pre-split heads.

    Args:
        heads_q, heads_k, heads_v: one (seq, d_head) matrix per head
        w_o: Optional output projection (n_heads * d_v, d_model)
        mask: Optional mask shared by every head

    Returns:
        MultiHeadResult: per-head results, concatenation, projected output
    """
    if not (len(heads_q) == len(heads_k) == len(heads_v)) or not heads_q:
        raise ValueError("need the same, non-zero number of Q, K and V heads")

    # Independent per head
    heads = tuple(scaled_dot_product_attention(q, k, v, mask)
                  for q, k, v in zip(heads_q, heads_k, heads_v))

    concatenated = np.concatenate([head.output for head in heads], axis=1)
    output = concatenated
    if w_o is not None:
        w_o = _matrix(w_o, 'w_o')
        if w_o.shape[0] != concatenated.shape[1]:
            raise ValueError(
                f"w_o expects {w_o.shape[0]} inputs, heads give {concatenated.shape[1]}")
        output = concatenated @ w_o

    return MultiHeadResult(
        heads=heads,
        concatenated=frozen_array(concatenated),
        output=frozen_array(output),
        d_per_head=_matrix(heads_q[0], 'query').shape[1],
    )


def average_head_weights(head_weights: Sequence[np.ndarray]) -> np.ndarray:
    """Mean attention pattern across heads (rows still sum to 1)."""
    if len(head_weights) == 0:
        raise ValueError("no head weights to average")
    return np.mean(np.stack([np.asarray(w, dtype=float) for w in head_weights]), axis=0)


# ============================================================
# POSITIONAL ENCODING
# ============================================================

def positional_encoding(seq_len: int, d_model: int) -> np.ndarray:
    """
    Sinusoidal encoding from "Attention Is All You Need":

        PE(pos, 2i)   = sin(pos / 10000^(2i/d_model))
        PE(pos, 2i+1) = cos(pos / 10000^(2i/d_model))
    """
    positions = np.arange(seq_len)[:, None]
    pair_index = np.arange(d_model) // 2
    angles = positions / np.power(10000.0, (2 * pair_index) / d_model)

    pe = np.zeros((seq_len, d_model))
    pe[:, 0::2] = np.sin(angles[:, 0::2])
    pe[:, 1::2] = np.cos(angles[:, 1::2])
    return pe


# ============================================================
# PLAYBACK
# ============================================================

@dataclass(frozen=True, eq=False)
class AttentionSnapshot:
    step: int
    phase: str
    matrix: np.ndarray
    description: str
    result: AttentionResult
    tokens: Optional[Tuple[str, ...]] = None


def attention_snapshots(query: np.ndarray, key: np.ndarray, value: np.ndarray,
                        mask: Optional[np.ndarray] = None,
                        tokens: Optional[Sequence[str]] = None) -> List[AttentionSnapshot]:
    """
    One attention computation as a playback sequence of phases:

        inputs → raw → scaled → (masked) → weights → output
    """
    result = scaled_dot_product_attention(query, key, value, mask)
    d_k = _matrix(key, 'key').shape[1]
    tokens = tuple(tokens) if tokens is not None else None

    phases = [
        ('inputs', frozen_array(_matrix(query, 'query')),
         f"Inputs: Q {np.shape(query)}, K {np.shape(key)}, V {np.shape(value)}"),
        ('raw', result.raw_scores,
         "Raw scores Q Kᵀ: how well each query matches each key"),
        ('scaled', result.scaled_scores,
         f"Scaled by √d_k = {np.sqrt(d_k):.3f} to keep the softmax from saturating"),
    ]
    if result.masked_scores is not None:
        n_blocked = int(np.sum(np.isneginf(result.masked_scores)))
        phases.append(('masked', result.masked_scores,
                       f"Masked {n_blocked} cells to -inf: they get zero weight"))
    phases.append(('weights', result.weights,
                   "Row-wise softmax: each row is a distribution over keys"))
    phases.append(('output', result.output,
                   "Output = weights V: each position's weighted mix of values"))

    snapshots = [AttentionSnapshot(step=i, phase=phase, matrix=matrix,
                                   description=description, result=result,
                                   tokens=tokens)
                 for i, (phase, matrix, description) in enumerate(phases)]
    logger.debug("attention: %d phases for %d queries x %d keys", len(snapshots),
                 result.weights.shape[0], result.weights.shape[1])
    return check_sequence(snapshots)
