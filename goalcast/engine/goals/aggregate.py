"""Per-year accumulation and nearest-rank percentile summaries."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

import numpy as np

from .models import SimulationRun

__all__ = [
    "YEARLY_PERCENTILES",
    "FINAL_PERCENTILES",
    "percentile_key",
    "summarize_percentiles",
    "YearlyAggregator",
]

YEARLY_PERCENTILES: tuple[int, ...] = (10, 25, 50, 75, 90)
FINAL_PERCENTILES: tuple[int, ...] = (5, 10, 25, 50, 75, 90, 95)


def percentile_key(percentile: int) -> str:
    return f"p{percentile}"


def summarize_percentiles(
    values: Iterable[float] | np.ndarray,
    percentiles: Sequence[int] = YEARLY_PERCENTILES,
    *,
    presorted: bool = False,
) -> dict[int, float]:
    """Read nearest-rank cut points off a sorted distribution.

    The value for percentile ``p`` is ``sorted_values[floor(n * p / 100)]``
    with no interpolation. Every requested percentile must be below 100 so
    the index never reaches ``n``.

    Args:
      values: Distribution to summarise.
      percentiles: Percentiles to read, each in ``[0, 100)``.
      presorted: Skip sorting when ``values`` is already ascending.

    Returns:
      Mapping percentile -> value. An empty distribution maps every
      percentile to ``0.0``.
    """

    data = np.asarray(values if isinstance(values, np.ndarray) else list(values), dtype="float64")
    if not presorted:
        data = np.sort(data)
    size = data.size
    result: dict[int, float] = {}
    for percentile in percentiles:
        if not 0 <= percentile < 100:
            raise ValueError(f"percentile must be in [0, 100), got {percentile}")
        if size == 0:
            result[percentile] = 0.0
            continue
        # Integer arithmetic keeps floor(n * p / 100) exact.
        result[percentile] = float(data[(size * percentile) // 100])
    return result


class YearlyAggregator:
    """Collect year-end balances across trials into per-year buckets.

    Buckets exist for every year in ``0..ceil(years_to_goal)`` from the
    start, so a year no trial reached still yields a (zero) percentile set.
    Checkpoints outside that range are ignored.

    Args:
      year_count: Number of buckets, i.e. ``ceil(years_to_goal) + 1``.
    """

    def __init__(self, year_count: int) -> None:
        if year_count < 1:
            raise ValueError("year_count must be >= 1")
        self.year_count = int(year_count)
        self._chunks: dict[int, list[np.ndarray]] = {year: [] for year in range(self.year_count)}

    def add(self, checkpoints: Mapping[int, float]) -> None:
        """Append one trial's ``year -> balance`` checkpoints."""

        for year, value in checkpoints.items():
            if year in self._chunks:
                self._chunks[year].append(np.asarray([value], dtype="float64"))

    def add_batch(self, years: Sequence[int] | np.ndarray, matrix: np.ndarray) -> None:
        """Append a ``(trials, len(years))`` block of checkpoints."""

        block = np.asarray(matrix, dtype="float64")
        for column, year in enumerate(years):
            year = int(year)
            if year in self._chunks:
                self._chunks[year].append(block[:, column].copy())

    def merge(self, other: YearlyAggregator) -> YearlyAggregator:
        """Append every bucket of ``other`` after this aggregator's values."""

        for year, chunks in other._chunks.items():
            if year in self._chunks:
                self._chunks[year].extend(chunks)
        return self

    def values(self, year: int) -> np.ndarray:
        chunks = self._chunks[year]
        if not chunks:
            return np.zeros(0, dtype="float64")
        return np.concatenate(chunks)

    def counts(self) -> dict[int, int]:
        return {year: int(sum(chunk.size for chunk in chunks)) for year, chunks in self._chunks.items()}

    def runs(self, percentiles: Sequence[int] = YEARLY_PERCENTILES) -> tuple[SimulationRun, ...]:
        """Sort each bucket and summarise it into a :class:`SimulationRun`."""

        runs: list[SimulationRun] = []
        for year in range(self.year_count):
            ordered = np.sort(self.values(year))
            cuts = summarize_percentiles(ordered, percentiles, presorted=True)
            runs.append(
                SimulationRun(
                    year=year,
                    values=tuple(float(value) for value in ordered),
                    percentiles={percentile_key(p): value for p, value in cuts.items()},
                )
            )
        return tuple(runs)
