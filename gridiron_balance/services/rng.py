"""
Seeded random source shared across an analysis run.

The analyzer consumes uniforms one at a time in a fixed order, so the RNG is
exposed as a zero-argument callable returning a float in [0, 1). Draws are
generated in blocks with numpy's PCG64 generator and handed out in order, so
the sequence depends only on the seed and on how many values were consumed.
"""

from typing import Callable, List

import numpy as np


RandomSource = Callable[[], float]

# Uniforms generated per refill of the internal buffer
DEFAULT_BLOCK_SIZE: int = 4096


class SeededRandom:
    """
    Deterministic uniform source backed by ``numpy.random.default_rng``.

    Example:
        >>> rng = SeededRandom(12345)
        >>> value = rng()
        >>> 0.0 <= value < 1.0
        True
    """

    def __init__(self, seed: int, block_size: int = DEFAULT_BLOCK_SIZE):
        if block_size < 1:
            raise ValueError(f"block_size must be positive, got {block_size}")
        self.seed = seed
        self._generator = np.random.default_rng(seed)
        self._block_size = block_size
        self._buffer: List[float] = []
        self._position = 0
        self.draws = 0

    def __call__(self) -> float:
        if self._position >= len(self._buffer):
            self._buffer = self._generator.random(self._block_size).tolist()
            self._position = 0
        value = self._buffer[self._position]
        self._position += 1
        self.draws += 1
        return value


def create_rng(seed: int) -> SeededRandom:
    """Create the RNG for one analysis run."""
    return SeededRandom(seed)
