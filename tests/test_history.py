"""
History Store Tests
===================
Tests for bounded series and the hourly median.
"""

import random

import pytest

from plantstation.domain.history import hour_median, last_or, push_sample


class TestPushSample:
    def test_appends_until_bound(self):
        series = []
        for value in range(3):
            push_sample(series, value, 5)
        assert series == [0, 1, 2]

    def test_evicts_oldest_at_bound(self):
        series = list(range(5))
        result = push_sample(series, 99, 5)
        assert result is series
        assert series == [1, 2, 3, 4, 99]

    def test_length_never_exceeds_bound(self):
        """Result is the newest max_len elements of the full sequence."""
        values = list(range(1000))
        series = []
        for value in values:
            push_sample(series, value, 192)
            assert len(series) <= 192
        assert series == values[-192:]

    def test_oversized_input_is_trimmed(self):
        series = list(range(10))
        push_sample(series, 10, 4)
        assert series == [7, 8, 9, 10]

    def test_rejects_non_positive_bound(self):
        with pytest.raises(ValueError):
            push_sample([], 1, 0)


class TestHourMedian:
    def test_single_sample(self):
        assert hour_median([7]) == 7

    def test_upper_middle_for_even_length(self):
        assert hour_median([4, 1, 3, 2]) == 3

    def test_uses_only_last_sixty(self):
        series = [10_000] * 100 + list(range(60))
        assert hour_median(series) == 30

    def test_permutation_invariant_within_window(self):
        window = [random.randint(0, 5000) for _ in range(60)]
        shuffled = window[:]
        random.shuffle(shuffled)
        assert hour_median(window) == hour_median(shuffled)

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            hour_median([])


def test_last_or():
    assert last_or([1, 2, 3]) == 3
    assert last_or([]) == 0
    assert last_or([], default=-1) == -1
