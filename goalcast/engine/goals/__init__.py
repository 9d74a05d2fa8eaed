"""Financial goal Monte Carlo engine."""

from .aggregate import FINAL_PERCENTILES, YEARLY_PERCENTILES, YearlyAggregator, summarize_percentiles
from .analyzer import (
    CHUNK_SIZE,
    SIMULATION_CHOICES,
    CancellationToken,
    analyze_goal,
    analyze_goals,
)
from .artifacts import GoalArtifacts, fan_chart_frame, percentile_frame, summary_frame, write_goal_artifacts
from .config import DEFAULT_GOALS_PATH, load_goals, load_goals_from_yaml
from .models import (
    GOAL_TYPES,
    PRIORITIES,
    FinancialGoal,
    GoalAnalysis,
    InvalidGoalParameters,
    PercentilePoint,
    PortfolioGoalSummary,
    SimulationCancelled,
    SimulationRun,
    success_status,
)
from .returns import DEFAULT_VOLATILITY, ConstantReturnSource, ReturnSource, UniformReturnSource
from .simulator import PathBatch, PathResult, PathSimulator, months_to_goal, years_to_goal

__all__ = [
    "CHUNK_SIZE",
    "DEFAULT_GOALS_PATH",
    "DEFAULT_VOLATILITY",
    "FINAL_PERCENTILES",
    "GOAL_TYPES",
    "PRIORITIES",
    "SIMULATION_CHOICES",
    "YEARLY_PERCENTILES",
    "CancellationToken",
    "ConstantReturnSource",
    "FinancialGoal",
    "GoalAnalysis",
    "GoalArtifacts",
    "InvalidGoalParameters",
    "PathBatch",
    "PathResult",
    "PathSimulator",
    "PercentilePoint",
    "PortfolioGoalSummary",
    "ReturnSource",
    "SimulationCancelled",
    "SimulationRun",
    "UniformReturnSource",
    "YearlyAggregator",
    "analyze_goal",
    "analyze_goals",
    "fan_chart_frame",
    "load_goals",
    "load_goals_from_yaml",
    "months_to_goal",
    "percentile_frame",
    "success_status",
    "summarize_percentiles",
    "summary_frame",
    "write_goal_artifacts",
    "years_to_goal",
]
