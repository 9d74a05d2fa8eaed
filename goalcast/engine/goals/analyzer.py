"""Monte Carlo orchestration for financial goals.

:func:`analyze_goal` runs ``num_simulations`` independent trials of a goal,
collects final balances and year-end checkpoints, and derives the success
probability, median outcome and a corrective monthly contribution.

Trials are split into fixed-size chunks. Each chunk draws from its own child
generator spawned from the root seed, so results depend only on the seed and
never on how many workers executed the chunks.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from functools import partial

import numpy as np

from goalcast.engine.utils.rand import GOALS_STREAM, seed_for_stream, spawn_child_generators

from .aggregate import FINAL_PERCENTILES, YEARLY_PERCENTILES, YearlyAggregator, summarize_percentiles
from .models import (
    FinancialGoal,
    GoalAnalysis,
    PercentilePoint,
    PortfolioGoalSummary,
    SimulationCancelled,
    to_utc_instant,
)
from .returns import DEFAULT_VOLATILITY, ReturnSource, UniformReturnSource
from .simulator import PathSimulator, horizon_year_count, months_to_goal, years_to_goal

__all__ = [
    "CHUNK_SIZE",
    "SIMULATION_CHOICES",
    "CancellationToken",
    "ChunkResult",
    "analyze_goal",
    "analyze_goals",
]

LOG = logging.getLogger(__name__)

CHUNK_SIZE = 500
SIMULATION_CHOICES: tuple[int, ...] = (100, 1_000, 5_000, 10_000)


class CancellationToken:
    """Cooperative cancellation flag checked between chunks of trials."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SimulationCancelled("goal simulation cancelled")


@dataclass(frozen=True)
class ChunkResult:
    """Private result of one chunk of trials, merged by concatenation."""

    index: int
    final_values: np.ndarray
    years: np.ndarray
    checkpoints: np.ndarray


def _chunk_sizes(total: int, chunk_size: int = CHUNK_SIZE) -> list[int]:
    full, remainder = divmod(total, chunk_size)
    sizes = [chunk_size] * full
    if remainder:
        sizes.append(remainder)
    return sizes


def _run_chunk(
    index: int,
    simulator: PathSimulator,
    goal: FinancialGoal,
    months: int,
    trials: int,
    cancel: CancellationToken | None,
) -> ChunkResult:
    if cancel is not None:
        cancel.raise_if_cancelled()
    batch = simulator.simulate_batch(goal, months, trials)
    return ChunkResult(
        index=index,
        final_values=batch.final_values,
        years=batch.years,
        checkpoints=batch.checkpoints,
    )


def _execute(
    tasks: Sequence[Callable[[], ChunkResult]],
    workers: int,
) -> list[ChunkResult]:
    if workers == 1 or len(tasks) <= 1:
        return [task() for task in tasks]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(task) for task in tasks]
        results = [future.result() for future in futures]
    return sorted(results, key=lambda chunk: chunk.index)


def _validate_request(num_simulations: int, workers: int, volatility: float) -> None:
    if isinstance(num_simulations, bool) or not isinstance(num_simulations, int | np.integer):
        raise TypeError(f"num_simulations must be an integer, got {num_simulations!r}")
    if num_simulations < 1:
        raise ValueError(f"num_simulations must be >= 1, got {num_simulations}")
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    if not math.isfinite(volatility) or volatility < 0:
        raise ValueError(f"volatility must be a finite number >= 0, got {volatility}")


def analyze_goal(
    goal: FinancialGoal,
    num_simulations: int = 1_000,
    *,
    seed: int | None = None,
    rng: np.random.Generator | None = None,
    source: ReturnSource | None = None,
    volatility: float = DEFAULT_VOLATILITY,
    now: datetime | date | None = None,
    workers: int = 1,
    cancel: CancellationToken | None = None,
) -> GoalAnalysis:
    """Run the Monte Carlo analysis for ``goal``.

    Args:
      goal: Goal to simulate.
      num_simulations: Number of independent trials (at least one).
      seed: Root seed. ``None`` resolves the ``goals`` stream from
        ``audit/seeds.yml``.
      rng: Explicit generator consumed as a single serial stream.
      source: Explicit return source (e.g. a noise-free source in tests),
        consumed as a single serial stream. Takes precedence over ``rng``.
      volatility: Annualised volatility handed to the return source.
      now: Evaluation instant for the horizon; defaults to the current time.
      workers: Thread pool size for seeded runs.
      cancel: Optional token checked before the run and before each chunk.

    Returns:
      A :class:`GoalAnalysis` describing the simulated outcomes.

    Raises:
      ValueError: If ``num_simulations`` or ``workers`` is below one or the
        volatility is negative or non-finite.
      SimulationCancelled: If ``cancel`` is set before all chunks ran.
      FloatingPointError: If a path overflows to a non-finite balance.
    """

    if not isinstance(goal, FinancialGoal):
        raise TypeError(f"goal must be a FinancialGoal, got {type(goal).__name__}")
    _validate_request(num_simulations, workers, volatility)
    if cancel is not None:
        cancel.raise_if_cancelled()

    started = time.perf_counter()
    instant = to_utc_instant(now)
    years = years_to_goal(goal.target_date, instant)
    months = months_to_goal(years)
    if goal.years_remaining(instant) < 1.0:
        LOG.debug("Goal %s: horizon clamped to one year (target %s)", goal.goal_id, goal.target_date)

    sizes = _chunk_sizes(int(num_simulations))
    resolved_seed: int | None = None
    if source is not None or rng is not None:
        shared = PathSimulator(source or UniformReturnSource(rng), volatility)
        simulators = [shared] * len(sizes)
        workers = 1
    else:
        resolved_seed = int(seed) if seed is not None else seed_for_stream(GOALS_STREAM)
        simulators = [
            PathSimulator(UniformReturnSource(child), volatility)
            for child in spawn_child_generators(resolved_seed, len(sizes))
        ]

    tasks = [
        partial(_run_chunk, idx, sim, goal, months, size, cancel)
        for idx, (sim, size) in enumerate(zip(simulators, sizes, strict=True))
    ]
    chunks = _execute(tasks, workers)

    aggregator = YearlyAggregator(horizon_year_count(years))
    for chunk in chunks:
        aggregator.add_batch(chunk.years, chunk.checkpoints)
    finals = np.sort(np.concatenate([chunk.final_values for chunk in chunks]))

    success_probability = float(np.count_nonzero(finals >= goal.target_amount)) / num_simulations
    median_outcome = float(finals[num_simulations // 2])
    shortfall = goal.target_amount - median_outcome
    recommended = goal.monthly_contribution
    if shortfall > 0:
        recommended = goal.monthly_contribution + shortfall / months

    cuts = summarize_percentiles(finals, FINAL_PERCENTILES, presorted=True)
    analysis = GoalAnalysis(
        goal_id=goal.goal_id,
        success_probability=success_probability,
        median_outcome=median_outcome,
        shortfall_risk=1.0 - success_probability,
        recommended_contribution=float(recommended),
        percentiles=tuple(PercentilePoint(p, value) for p, value in cuts.items()),
        simulation_runs=aggregator.runs(YEARLY_PERCENTILES),
        num_simulations=int(num_simulations),
        years_to_goal=years,
        months_to_goal=months,
        seed=resolved_seed,
    )
    elapsed_ms = (time.perf_counter() - started) * 1000.0
    LOG.info(
        "Goal %s: p_success=%.3f median=%.2f recommended=%.2f",
        goal.goal_id,
        analysis.success_probability,
        analysis.median_outcome,
        analysis.recommended_contribution,
        extra={
            "goal_id": goal.goal_id,
            "process_time_ms": elapsed_ms,
            "simulations": num_simulations,
            "months": months,
        },
    )
    return analysis


def analyze_goals(
    goals: Sequence[FinancialGoal],
    num_simulations: int = 1_000,
    *,
    seed: int | None = None,
    volatility: float = DEFAULT_VOLATILITY,
    now: datetime | date | None = None,
    workers: int = 1,
    cancel: CancellationToken | None = None,
) -> PortfolioGoalSummary:
    """Analyse several goals and compute the dashboard summary figures.

    Each goal receives its own integer seed derived from the root seed, so a
    goal's analysis can be reproduced on its own with
    ``analyze_goal(goal, seed=summary.analyses[goal_id].seed)``.

    Args:
      goals: Goals to analyse; identifiers must be unique.
      num_simulations: Trials per goal.
      seed: Root seed. ``None`` resolves the ``goals`` stream.
      volatility: Annualised volatility for every goal.
      now: Evaluation instant shared by all goals.
      workers: Thread pool size used within each goal.
      cancel: Optional cancellation token.

    Returns:
      A :class:`PortfolioGoalSummary`.
    """

    identifiers = [goal.goal_id for goal in goals]
    duplicates = sorted({goal_id for goal_id in identifiers if identifiers.count(goal_id) > 1})
    if duplicates:
        raise ValueError(f"duplicate goal ids: {duplicates}")
    _validate_request(num_simulations, workers, volatility)

    root = int(seed) if seed is not None else seed_for_stream(GOALS_STREAM)
    children = np.random.SeedSequence(root).spawn(len(goals))
    analyses: dict[str, GoalAnalysis] = {}
    for goal, child in zip(goals, children, strict=True):
        analyses[goal.goal_id] = analyze_goal(
            goal,
            num_simulations,
            seed=int(child.generate_state(1)[0]),
            volatility=volatility,
            now=now,
            workers=workers,
            cancel=cancel,
        )

    probabilities = [analysis.success_probability for analysis in analyses.values()]
    average = float(np.mean(probabilities)) if probabilities else float("nan")
    return PortfolioGoalSummary(
        analyses=analyses,
        total_target=float(sum(goal.target_amount for goal in goals)),
        total_current=float(sum(goal.current_amount for goal in goals)),
        average_success_probability=average,
        num_simulations=int(num_simulations),
        seed=root,
    )
