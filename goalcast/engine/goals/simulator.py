"""Month-by-month wealth path simulation for a single goal.

The simulator starts from the goal's current balance, applies one monthly
return and then the monthly contribution, and records the balance at every
twelfth month. :meth:`PathSimulator.simulate` walks one trial with scalar
arithmetic; :meth:`PathSimulator.simulate_batch` walks many trials at once
with numpy and performs the same floating point operations in the same order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime

import numpy as np

from .models import FinancialGoal, to_utc_instant
from .returns import DEFAULT_VOLATILITY, MONTHS_PER_YEAR, ReturnSource

__all__ = [
    "SECONDS_PER_YEAR",
    "PathResult",
    "PathBatch",
    "PathSimulator",
    "years_to_goal",
    "months_to_goal",
    "horizon_year_count",
]

SECONDS_PER_YEAR = 365 * 24 * 3600
MIN_HORIZON_YEARS = 1.0


def years_to_goal(target_date: date, now: datetime | date | None = None) -> float:
    """Return the goal horizon in 365-day years, clamped to at least one year.

    Args:
      target_date: Goal date, interpreted as midnight UTC.
      now: Evaluation instant; defaults to the current UTC time. Naive
        datetimes are treated as UTC.

    Returns:
      ``max(1, (target_date - now) / 365 days)``.
    """

    reference = to_utc_instant(now)
    target = datetime(target_date.year, target_date.month, target_date.day, tzinfo=reference.tzinfo)
    elapsed = (target - reference).total_seconds() / SECONDS_PER_YEAR
    return max(MIN_HORIZON_YEARS, elapsed)


def months_to_goal(years: float) -> int:
    return int(math.floor(years * MONTHS_PER_YEAR))


def horizon_year_count(years: float) -> int:
    """Number of yearly buckets, ``0..ceil(years)`` inclusive."""

    return int(math.ceil(years)) + 1


@dataclass(frozen=True)
class PathResult:
    """Outcome of one trial.

    Attributes:
      final_value: Balance after the last simulated month.
      yearly_checkpoints: Mapping year index -> balance at that year-end.
    """

    final_value: float
    yearly_checkpoints: dict[int, float]


@dataclass(frozen=True)
class PathBatch:
    """Outcome of a block of trials.

    Attributes:
      final_values: Array of shape ``(trials,)``.
      checkpoints: Array of shape ``(trials, months // 12)``; column ``k``
        holds the balance at the end of year ``k + 1``.
    """

    final_values: np.ndarray
    checkpoints: np.ndarray

    @property
    def years(self) -> np.ndarray:
        return np.arange(1, self.checkpoints.shape[1] + 1)


class PathSimulator:
    """Walk a goal forward month by month using a :class:`ReturnSource`.

    Args:
      source: Monthly return generator.
      volatility: Annualised volatility handed to the source. The same
        constant applies to every goal.
    """

    def __init__(self, source: ReturnSource, volatility: float = DEFAULT_VOLATILITY) -> None:
        if not math.isfinite(volatility) or volatility < 0:
            raise ValueError(f"volatility must be a finite number >= 0, got {volatility}")
        self.source = source
        self.volatility = float(volatility)

    def simulate(self, goal: FinancialGoal, months: int) -> PathResult:
        """Simulate a single trial over ``months`` months."""

        value = float(goal.current_amount)
        checkpoints: dict[int, float] = {}
        for month in range(months):
            monthly_return = self.source.sample(goal.expected_return, self.volatility)
            value = value * (1.0 + monthly_return) + goal.monthly_contribution
            if (month + 1) % MONTHS_PER_YEAR == 0:
                checkpoints[(month + 1) // MONTHS_PER_YEAR] = value
        if not math.isfinite(value):
            raise FloatingPointError(f"non-finite balance for goal {goal.goal_id!r}: {value}")
        return PathResult(final_value=value, yearly_checkpoints=checkpoints)

    def simulate_batch(self, goal: FinancialGoal, months: int, trials: int) -> PathBatch:
        """Simulate ``trials`` independent trials in one vectorised pass."""

        if trials < 0:
            raise ValueError("trials must be >= 0")
        returns = self.source.sample_block(goal.expected_return, self.volatility, (trials, months))
        wealth = np.full(trials, float(goal.current_amount), dtype="float64")
        checkpoints = np.empty((trials, months // MONTHS_PER_YEAR), dtype="float64")
        for month in range(months):
            wealth = wealth * (1.0 + returns[:, month]) + goal.monthly_contribution
            if (month + 1) % MONTHS_PER_YEAR == 0:
                checkpoints[:, (month + 1) // MONTHS_PER_YEAR - 1] = wealth
        if not np.all(np.isfinite(wealth)):
            raise FloatingPointError(f"non-finite balance for goal {goal.goal_id!r}")
        return PathBatch(final_values=wealth, checkpoints=checkpoints)
