"""Fixed-size batching over ordered collections."""

from __future__ import annotations

import gc
import math
from collections.abc import Iterator, Sequence
from typing import Generic, TypeVar

from holdsweep.core.logging import get_logger
from holdsweep.core.models import Batch

T = TypeVar("T")

_logger = get_logger("batching")


class BatchIterator(Generic[T]):
    """Lazy, restartable sequence of fixed-size batches.

    Each call to ``iter()`` starts again from the first item, so iterating
    twice with the same input and size yields identical batches. Only the
    last batch may be shorter than ``size``.

    Example:
        for batch in BatchIterator(subjects, 250):
            print(batch.index, len(batch))
    """

    def __init__(self, items: Sequence[T], size: int) -> None:
        if size < 1:
            raise ValueError("batch size must be at least 1")
        self._items = items
        self._size = size

    @property
    def size(self) -> int:
        return self._size

    @property
    def total_items(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return math.ceil(len(self._items) / self._size)

    def __iter__(self) -> Iterator[Batch[T]]:
        for index, start in enumerate(range(0, len(self._items), self._size), start=1):
            yield Batch(index=index, items=self._items[start : start + self._size])


def maybe_collect(batch_index: int, cleanup_interval: int) -> bool:
    """Run a garbage collection pass every ``cleanup_interval`` batches.

    Returns:
        True if a collection ran.
    """
    if cleanup_interval < 1 or batch_index % cleanup_interval != 0:
        return False
    collected = gc.collect()
    _logger.debug("batching.memory_cleanup", batch_num=batch_index, collected=collected)
    return True
