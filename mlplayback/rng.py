"""
DETERMINISTIC RNG — seeded, replayable randomness

===============================================================
WHY NOT np.random?
===============================================================

Every sampling decision (bootstrap rows, feature subsets, initial
weights) must replay BIT-FOR-BIT when the same configuration is
trained again. A playback can be scrubbed backward and re-rendered,
so the random stream has to be a pure function of the seed.

np.random and the `random` module are fine generators, but their
streams are runtime details. Here the recurrence is written out in
full, using 32-bit integer arithmetic only:

    MULBERRY32
        s  = s + 0x6D2B79F5                        (mod 2³²)
        t  = (s ^ (s >> 15)) * (s | 1)             (mod 2³²)
        t ^= t + (t ^ (t >> 7)) * (t | 61)         (mod 2³²)
        u  = (t ^ (t >> 14)) / 2³²                 in [0, 1)

Any seed is accepted, including 0 and negatives: the seed is simply
reduced modulo 2³².

NORMAL DRAWS use Box-Muller, consuming exactly two uniforms:

    z = sqrt(-2 ln u₁) · cos(2π u₂)

===============================================================
"""

import math

_MASK = 0xFFFFFFFF
_TWO_32 = 4294967296.0


def _imul(a, b):
    """32-bit wrapping multiply."""
    return (a * b) & _MASK


class Rng:
    """Seeded mulberry32 generator."""

    def __init__(self, seed=0):
        self.seed = int(seed)
        self._state = self.seed & _MASK

    def next(self):
        """Uniform draw in [0, 1)."""
        s = (self._state + 0x6D2B79F5) & _MASK
        self._state = s
        t = _imul(s ^ (s >> 15), 1 | s)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK) ^ t
        return ((t ^ (t >> 14)) & _MASK) / _TWO_32

    def normal(self, mean=0.0, std=1.0):
        """Box-Muller normal draw (consumes two uniforms)."""
        u1 = self.next()
        u2 = self.next()
        # u1 == 0 would give log(0)
        u1 = max(u1, 1.0 / _TWO_32)
        z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + z * std

    def randint(self, n):
        """Uniform integer in [0, n)."""
        return int(self.next() * n)

    def sample_indices(self, n, size):
        """
        Bootstrap draw: `size` indices in [0, n), WITH replacement.
        """
        return [int(self.next() * n) for _ in range(size)]

    def choice(self, n, k):
        """
        k distinct indices from range(n), WITHOUT replacement.

        Partial Fisher-Yates from the back of the pool (same walk as a full
        shuffle, stopped after k swaps). Returned in draw order.
        """
        k = min(k, n)
        pool = list(range(n))
        if k >= n:
            return pool
        for i in range(n - 1, n - 1 - k, -1):
            j = int(self.next() * (i + 1))
            pool[i], pool[j] = pool[j], pool[i]
        return pool[n - k:]

    def shuffle(self, items):
        """In-place Fisher-Yates shuffle; returns the same list."""
        for i in range(len(items) - 1, 0, -1):
            j = int(self.next() * (i + 1))
            items[i], items[j] = items[j], items[i]
        return items


def create_rng(seed):
    """Create a generator from an integer seed."""
    return Rng(seed)
