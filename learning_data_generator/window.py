"""
Sliding window of localization samples waiting to be turned into a label.
"""

from collections import deque
from typing import Deque, Iterator

from .models import PoseSample


class SlidingWindow:
    """
    Oldest-first buffer of pose samples.

    The window reports itself full once it holds ``size`` samples. After a
    label has been taken the caller slides it with ``evict(step)``, which
    drops the oldest samples and keeps the tail, so consecutive labels
    overlap by ``size - step`` samples.
    """

    def __init__(self, size: int):
        if size < 1:
            raise ValueError(f"window size must be >= 1, got {size}")
        self.size = size
        self._samples: Deque[PoseSample] = deque()

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[PoseSample]:
        return iter(self._samples)

    @property
    def is_full(self) -> bool:
        return len(self._samples) >= self.size

    def push(self, sample: PoseSample) -> None:
        if self.is_full:
            raise OverflowError(
                f"window already holds {len(self._samples)} samples; evict before pushing"
            )
        self._samples.append(sample)

    def evict(self, step: int) -> int:
        """Drop up to ``step`` oldest samples. Returns how many were dropped."""
        dropped = min(step, len(self._samples))
        for _ in range(dropped):
            self._samples.popleft()
        return dropped
