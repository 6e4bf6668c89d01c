"""
Fixed-capacity circular buffer of recent per-key depth samples.

Smooths the per-key depth signal with an unweighted rolling average. Slots that
have not been written yet count as zero, so the average is biased towards zero
until the buffer is full; `is_full` makes that cold-start window explicit.
"""
from typing import List

import numpy as np


class DepthHistory:
    """
    Ring buffer of the most recent depth samples.

    Sample number k (0-based) is written to slot k % capacity, overwriting the
    oldest value once the buffer has wrapped.
    """

    def __init__(self, capacity: int = 5):
        """
        Args:
            capacity: Number of samples averaged (must be >= 1)
        """
        if capacity < 1:
            raise ValueError(f"History capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._slots = np.zeros(capacity, dtype=np.float64)
        self._count = 0

    def push(self, sample: float) -> None:
        """Write a sample into the next slot."""
        self._slots[self._count % self.capacity] = sample
        self._count += 1

    def mean(self) -> float:
        """Unweighted mean over all slots, unwritten slots included as zero."""
        return float(self._slots.sum() / self.capacity)

    @property
    def is_full(self) -> bool:
        return self._count >= self.capacity

    @property
    def count(self) -> int:
        """Total number of samples pushed so far."""
        return self._count

    @property
    def next_index(self) -> int:
        return self._count % self.capacity

    def values(self) -> List[float]:
        """Slot contents in slot order (not chronological order)."""
        return self._slots.tolist()

    def reset(self) -> None:
        self._slots[:] = 0.0
        self._count = 0

    def __len__(self):
        """Number of slots holding a written sample."""
        return min(self._count, self.capacity)
