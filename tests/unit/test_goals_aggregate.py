from __future__ import annotations

import numpy as np
import pytest

from goalcast.engine.goals import YearlyAggregator, summarize_percentiles
from goalcast.engine.goals.aggregate import percentile_key


def test_nearest_rank_without_interpolation() -> None:
    cuts = summarize_percentiles([5.0, 1.0, 3.0, 2.0, 4.0], (0, 10, 50, 90))
    assert cuts == {0: 1.0, 10: 1.0, 50: 3.0, 90: 5.0}


def test_nearest_rank_differs_from_interpolation() -> None:
    values = np.arange(1.0, 11.0)
    cuts = summarize_percentiles(values, (25, 75))
    assert cuts[25] == 3.0
    assert cuts[75] == 8.0
    assert cuts[25] != np.percentile(values, 25)


def test_percentiles_are_ordered() -> None:
    rng = np.random.default_rng(3)
    cuts = summarize_percentiles(rng.normal(size=997), (5, 10, 25, 50, 75, 90, 95))
    ordered = list(cuts.values())
    assert ordered == sorted(ordered)


def test_empty_distribution_maps_to_zero() -> None:
    assert summarize_percentiles([], (10, 90)) == {10: 0.0, 90: 0.0}


@pytest.mark.parametrize("percentile", [-1, 100, 150])
def test_out_of_range_percentile_rejected(percentile: int) -> None:
    with pytest.raises(ValueError):
        summarize_percentiles([1.0, 2.0], (percentile,))


def test_aggregator_buckets_and_ignores_out_of_range_years() -> None:
    aggregator = YearlyAggregator(3)
    aggregator.add({1: 10.0, 2: 20.0, 5: 99.0})
    aggregator.add_batch([1, 2], np.array([[1.0, 2.0], [3.0, 4.0]]))
    assert aggregator.counts() == {0: 0, 1: 3, 2: 3}
    np.testing.assert_array_equal(aggregator.values(1), [10.0, 1.0, 3.0])


def test_aggregator_merge_appends_values() -> None:
    left = YearlyAggregator(2)
    left.add({1: 5.0})
    right = YearlyAggregator(2)
    right.add({1: 7.0})
    merged = left.merge(right)
    assert merged is left
    np.testing.assert_array_equal(left.values(1), [5.0, 7.0])


def test_runs_cover_every_year_with_zero_sentinels() -> None:
    aggregator = YearlyAggregator(3)
    aggregator.add_batch([1], np.array([[3.0], [1.0], [2.0]]))
    runs = aggregator.runs((10, 50, 90))
    assert [run.year for run in runs] == [0, 1, 2]
    assert runs[0].values == ()
    assert runs[0].percentiles == {"p10": 0.0, "p50": 0.0, "p90": 0.0}
    assert runs[1].values == (1.0, 2.0, 3.0)
    assert runs[1].percentiles[percentile_key(50)] == 2.0
    assert runs[2].percentiles["p90"] == 0.0


def test_aggregator_requires_at_least_one_bucket() -> None:
    with pytest.raises(ValueError):
        YearlyAggregator(0)
