"""Tests for holdsweep.execution.batching module."""

import math

import pytest

from holdsweep.execution.batching import BatchIterator, maybe_collect


class TestBatchIterator:
    """Tests for BatchIterator."""

    @pytest.mark.parametrize(
        "total,size",
        [(0, 1), (0, 5), (1, 1), (1, 5), (5, 5), (6, 5), (10, 3), (999, 100), (1000, 100)],
    )
    def test_batch_count_and_lengths(self, total, size):
        """Batch count is ceil(N/B); every batch but the last is full."""
        items = list(range(total))
        batches = list(BatchIterator(items, size))

        assert len(batches) == math.ceil(total / size)
        assert len(BatchIterator(items, size)) == len(batches)
        for batch in batches[:-1]:
            assert len(batch) == size
        if batches:
            expected_last = total - size * (len(batches) - 1)
            assert len(batches[-1]) == expected_last

    def test_batches_preserve_order_and_cover_input(self):
        items = list(range(23))
        flattened = [x for batch in BatchIterator(items, 5) for x in batch.items]
        assert flattened == items

    def test_indices_are_one_based(self):
        indices = [batch.index for batch in BatchIterator(list(range(7)), 3)]
        assert indices == [1, 2, 3]

    def test_empty_input_yields_nothing(self):
        assert list(BatchIterator([], 10)) == []

    def test_restartable(self):
        """Iterating twice yields identical batches."""
        iterator = BatchIterator(list("abcdefg"), 3)
        first = [tuple(b.items) for b in iterator]
        second = [tuple(b.items) for b in iterator]
        assert first == second == [("a", "b", "c"), ("d", "e", "f"), ("g",)]

    @pytest.mark.parametrize("size", [0, -1])
    def test_invalid_size_rejected(self, size):
        with pytest.raises(ValueError, match="at least 1"):
            BatchIterator([1, 2, 3], size)

    def test_properties(self):
        iterator = BatchIterator(list(range(12)), 5)
        assert iterator.size == 5
        assert iterator.total_items == 12


class TestMaybeCollect:
    """Tests for the periodic memory cleanup hook."""

    def test_runs_on_interval(self):
        assert maybe_collect(10, 10) is True
        assert maybe_collect(20, 10) is True

    def test_skips_between_intervals(self):
        assert maybe_collect(3, 10) is False

    def test_disabled_when_interval_zero(self):
        assert maybe_collect(5, 0) is False
