"""
SNAPSHOTS — the common output contract of every trainer

===============================================================
WHAT A SNAPSHOT IS
===============================================================

One complete, immutable state of an algorithm after a discrete
event (a split, a tree added, a weight update, an attention phase).

A trainer returns the whole sequence up front:

    sequence[0]          the untrained baseline
    sequence[1..n-2]     intermediate states
    sequence[-1]         the fully trained result

A player can jump to any index, forward or BACKWARD, without
recomputing anything: no snapshot depends on another one or on
shared mutable state. Arrays inside a snapshot are private copies
flagged read-only.

===============================================================
"""

from typing import List, Sequence, TypeVar

import numpy as np

T = TypeVar('T')


def frozen_array(values, dtype=None):
    """Private, read-only copy of `values`."""
    arr = np.array(values, dtype=dtype, copy=True)
    arr.setflags(write=False)
    return arr


def check_sequence(snapshots: Sequence[T]) -> List[T]:
    """
    Enforce the sequence contract: non-empty, steps numbered 0..n-1.
    """
    snapshots = list(snapshots)
    if not snapshots:
        raise RuntimeError("trainer produced an empty snapshot sequence")
    for i, snap in enumerate(snapshots):
        if snap.step != i:
            raise RuntimeError(f"snapshot {i} carries step {snap.step}")
    return snapshots
