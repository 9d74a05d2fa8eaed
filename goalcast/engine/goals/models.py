"""Data model for the goal Monte Carlo engine.

Goals are immutable inputs: editing a parameter produces a new
:class:`FinancialGoal` and a brand-new analysis. Results are plain frozen
dataclasses so callers can serialise them without touching numpy objects.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from typing import Any

__all__ = [
    "GOAL_FIELD_ALIASES",
    "GOAL_TYPES",
    "PRIORITIES",
    "InvalidGoalParameters",
    "SimulationCancelled",
    "FinancialGoal",
    "PercentilePoint",
    "SimulationRun",
    "GoalAnalysis",
    "PortfolioGoalSummary",
    "lookup_field",
    "parse_goal_date",
    "success_status",
    "to_utc_instant",
]

GOAL_TYPES = ("retirement", "education", "home", "legacy", "custom")
PRIORITIES = ("high", "medium", "low")

ON_TRACK_THRESHOLD = 0.8
CAUTION_THRESHOLD = 0.6


class InvalidGoalParameters(ValueError):
    """Raised when a goal cannot be simulated without producing NaN/Inf paths."""


class SimulationCancelled(RuntimeError):
    """Raised when a cancellation token is set before all trials complete."""


# Accepted spellings per field, first match wins.
GOAL_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "goal_id", "goalId"),
    "name": ("name",),
    "type": ("type", "goal_type", "goalType"),
    "priority": ("priority",),
    "target_amount": ("target_amount", "targetAmount"),
    "current_amount": ("current_amount", "currentAmount"),
    "target_date": ("target_date", "targetDate"),
    "monthly_contribution": ("monthly_contribution", "monthlyContribution"),
    "expected_return": ("expected_return", "expectedReturn"),
    "inflation_rate": ("inflation_rate", "inflationRate"),
}


def parse_goal_date(value: object, *, field_name: str = "target_date") -> date:
    """Accept dates, datetimes and ISO strings (a time part is dropped)."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise InvalidGoalParameters(f"{field_name} must be an ISO date, got {value!r}") from exc
    raise InvalidGoalParameters(f"{field_name} must be a date, got {type(value).__name__}")


def lookup_field(payload: Mapping[str, object], field_name: str, default: object = None) -> object:
    """Read ``field_name`` from a goal mapping under any of its aliases."""

    for key in GOAL_FIELD_ALIASES[field_name]:
        if key in payload:
            return payload[key]
    return default


@dataclass(frozen=True)
class FinancialGoal:
    """Savings goal evaluated by the Monte Carlo engine.

    Attributes:
      goal_id: Identifier correlating results back to the caller's record.
      target_amount: Amount to reach by ``target_date``.
      current_amount: Starting balance.
      target_date: Calendar date of the goal. Past dates are allowed and
        clamp the horizon to one year.
      monthly_contribution: Amount added after each month's return.
      expected_return: Annualised drift (``0.07`` means 7% per year).
      inflation_rate: Informational only, never applied to the paths.
      name: Display label.
      goal_type: One of :data:`GOAL_TYPES`.
      priority: One of :data:`PRIORITIES`.
    """

    goal_id: str
    target_amount: float
    current_amount: float
    target_date: date
    monthly_contribution: float
    expected_return: float
    inflation_rate: float = 0.0
    name: str = ""
    goal_type: str = "custom"
    priority: str = "medium"

    def __post_init__(self) -> None:
        object.__setattr__(self, "target_date", parse_goal_date(self.target_date))
        if not self.name:
            object.__setattr__(self, "name", str(self.goal_id))
        self._validate()

    def _validate(self) -> None:
        numeric = {
            "target_amount": self.target_amount,
            "current_amount": self.current_amount,
            "monthly_contribution": self.monthly_contribution,
            "expected_return": self.expected_return,
            "inflation_rate": self.inflation_rate,
        }
        for key, value in numeric.items():
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise InvalidGoalParameters(f"{key} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise InvalidGoalParameters(f"{key} must be finite, got {value!r}")
        if self.target_amount <= 0:
            raise InvalidGoalParameters(f"target_amount must be > 0, got {self.target_amount}")
        if self.current_amount < 0:
            raise InvalidGoalParameters(f"current_amount must be >= 0, got {self.current_amount}")
        if self.monthly_contribution < 0:
            raise InvalidGoalParameters(
                f"monthly_contribution must be >= 0, got {self.monthly_contribution}"
            )
        if self.goal_type not in GOAL_TYPES:
            raise InvalidGoalParameters(
                f"goal_type must be one of {GOAL_TYPES}, got {self.goal_type!r}"
            )
        if self.priority not in PRIORITIES:
            raise InvalidGoalParameters(
                f"priority must be one of {PRIORITIES}, got {self.priority!r}"
            )

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> FinancialGoal:
        """Create a goal from a YAML or JSON mapping.

        Both ``snake_case`` keys and the ``camelCase`` keys used by the
        dashboard payloads are accepted.

        Args:
          payload: Mapping describing a single goal.

        Returns:
          A validated :class:`FinancialGoal`.

        Raises:
          InvalidGoalParameters: If a required key is missing or a value is
            not usable.
        """

        def number(field_name: str, default: float | None = None) -> float:
            raw = lookup_field(payload, field_name, default)
            if raw is None:
                raise InvalidGoalParameters(f"missing required field {field_name!r}")
            if isinstance(raw, bool):
                raise InvalidGoalParameters(f"{field_name} must be a number, got {raw!r}")
            try:
                return float(raw)  # type: ignore[arg-type]
            except (TypeError, ValueError) as exc:
                raise InvalidGoalParameters(f"{field_name} must be a number, got {raw!r}") from exc

        goal_id = lookup_field(payload, "id")
        if goal_id is None:
            raise InvalidGoalParameters("missing required field 'id'")
        raw_date = lookup_field(payload, "target_date")
        if raw_date is None:
            raise InvalidGoalParameters("missing required field 'target_date'")
        return cls(
            goal_id=str(goal_id),
            name=str(lookup_field(payload, "name", "") or ""),
            goal_type=str(lookup_field(payload, "type", "custom")),
            priority=str(lookup_field(payload, "priority", "medium")),
            target_amount=number("target_amount"),
            current_amount=number("current_amount", 0.0),
            target_date=parse_goal_date(raw_date),
            monthly_contribution=number("monthly_contribution", 0.0),
            expected_return=number("expected_return"),
            inflation_rate=number("inflation_rate", 0.0),
        )

    def with_updates(self, **changes: Any) -> FinancialGoal:
        """Return an edited copy; validation runs again on the new values."""

        return replace(self, **changes)

    @property
    def progress(self) -> float:
        """Share of the target already saved."""

        return self.current_amount / self.target_amount

    def years_remaining(self, now: datetime | date | None = None) -> float:
        """Years left until ``target_date``, floored at zero and not clamped."""

        reference = to_utc_instant(now)
        target = datetime(
            self.target_date.year, self.target_date.month, self.target_date.day, tzinfo=UTC
        )
        return max(0.0, (target - reference).total_seconds() / (365 * 24 * 3600))


def to_utc_instant(now: datetime | date | None) -> datetime:
    if now is None:
        return datetime.now(tz=UTC)
    if isinstance(now, datetime):
        return now if now.tzinfo is not None else now.replace(tzinfo=UTC)
    return datetime(now.year, now.month, now.day, tzinfo=UTC)


@dataclass(frozen=True)
class PercentilePoint:
    """Single percentile cut point of the final-value distribution."""

    percentile: int
    value: float


@dataclass(frozen=True)
class SimulationRun:
    """Year-end balances across all trials and their percentile summary."""

    year: int
    values: tuple[float, ...]
    percentiles: dict[str, float]


def success_status(probability: float) -> str:
    """Map a success probability onto the dashboard traffic-light bands."""

    if probability >= ON_TRACK_THRESHOLD:
        return "on_track"
    if probability >= CAUTION_THRESHOLD:
        return "caution"
    return "at_risk"


@dataclass(frozen=True)
class GoalAnalysis:
    """Outcome of one Monte Carlo analysis.

    Attributes:
      goal_id: Identifier of the analysed goal.
      success_probability: Share of trials ending at or above the target.
      median_outcome: Median final balance (nearest rank).
      shortfall_risk: ``1 - success_probability``.
      recommended_contribution: Monthly contribution that closes the median
        shortfall, unchanged when the median already meets the target.
      percentiles: Final-value cut points at 5, 10, 25, 50, 75, 90 and 95.
      simulation_runs: Per-year distributions from year 0 to the horizon.
      num_simulations: Number of trials executed.
      years_to_goal: Clamped horizon in years.
      months_to_goal: Number of simulated months.
      seed: Root seed, or ``None`` when a return source was injected.
    """

    goal_id: str
    success_probability: float
    median_outcome: float
    shortfall_risk: float
    recommended_contribution: float
    percentiles: tuple[PercentilePoint, ...]
    simulation_runs: tuple[SimulationRun, ...]
    num_simulations: int
    years_to_goal: float
    months_to_goal: int
    seed: int | None = None

    @property
    def status(self) -> str:
        return success_status(self.success_probability)

    def percentile_value(self, percentile: int) -> float:
        """Return the final-value cut point for ``percentile``."""

        for point in self.percentiles:
            if point.percentile == percentile:
                return point.value
        raise KeyError(percentile)

    def to_dict(self, *, include_values: bool = False) -> dict[str, Any]:
        """Serialisable payload; per-trial values are omitted by default."""

        runs: list[dict[str, Any]] = []
        for run in self.simulation_runs:
            entry: dict[str, Any] = {"year": run.year, "percentiles": dict(run.percentiles)}
            if include_values:
                entry["values"] = list(run.values)
            runs.append(entry)
        return {
            "goal_id": self.goal_id,
            "success_probability": self.success_probability,
            "median_outcome": self.median_outcome,
            "shortfall_risk": self.shortfall_risk,
            "recommended_contribution": self.recommended_contribution,
            "status": self.status,
            "percentiles": [
                {"percentile": point.percentile, "value": point.value} for point in self.percentiles
            ],
            "simulation_runs": runs,
            "num_simulations": self.num_simulations,
            "years_to_goal": self.years_to_goal,
            "months_to_goal": self.months_to_goal,
            "seed": self.seed,
        }


@dataclass(frozen=True)
class PortfolioGoalSummary:
    """Aggregate view over several analysed goals.

    Attributes:
      analyses: Mapping goal id -> :class:`GoalAnalysis`, in input order.
      total_target: Sum of the goals' target amounts.
      total_current: Sum of the goals' current balances.
      average_success_probability: Unweighted mean success probability
        (``nan`` when no goals were analysed).
      num_simulations: Trials per goal.
      seed: Root seed used to derive each goal's stream.
    """

    analyses: dict[str, GoalAnalysis] = field(default_factory=dict)
    total_target: float = 0.0
    total_current: float = 0.0
    average_success_probability: float = float("nan")
    num_simulations: int = 0
    seed: int | None = None
