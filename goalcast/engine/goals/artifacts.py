"""Tabular exports and PDF report for analysed goals.

The frames built here are what the dashboard charts consume: a summary row
per goal, the final-value percentile bars, and the yearly projection cone.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

from goalcast.engine.infra.paths import run_dir
from goalcast.engine.utils.io import ensure_dir, write_json

from .models import FinancialGoal, GoalAnalysis, PortfolioGoalSummary

__all__ = [
    "GoalArtifacts",
    "summary_frame",
    "percentile_frame",
    "fan_chart_frame",
    "write_goal_artifacts",
]

LOG = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "goal_id",
    "name",
    "type",
    "priority",
    "target_amount",
    "current_amount",
    "progress",
    "monthly_contribution",
    "success_probability",
    "shortfall_risk",
    "median_outcome",
    "recommended_contribution",
    "status",
    "years_to_goal",
    "months_to_goal",
    "num_simulations",
]


@dataclass(frozen=True)
class GoalArtifacts:
    """Paths to the generated goal artefacts.

    Attributes:
      summary_csv: One row per goal with headline metrics.
      percentiles_csv: Final-value percentile cut points per goal.
      fan_chart_csv: Per-year p10..p90 projection per goal.
      summary_json: Portfolio summary and per-goal payloads.
      report_pdf: Projection cones and percentile bars.
    """

    summary_csv: Path
    percentiles_csv: Path
    fan_chart_csv: Path
    summary_json: Path
    report_pdf: Path


def summary_frame(
    goals: Sequence[FinancialGoal],
    analyses: Mapping[str, GoalAnalysis],
) -> pd.DataFrame:
    """Return one row per analysed goal, in input order."""

    rows = []
    for goal in goals:
        analysis = analyses.get(goal.goal_id)
        if analysis is None:
            continue
        rows.append(
            {
                "goal_id": goal.goal_id,
                "name": goal.name,
                "type": goal.goal_type,
                "priority": goal.priority,
                "target_amount": goal.target_amount,
                "current_amount": goal.current_amount,
                "progress": goal.progress,
                "monthly_contribution": goal.monthly_contribution,
                "success_probability": analysis.success_probability,
                "shortfall_risk": analysis.shortfall_risk,
                "median_outcome": analysis.median_outcome,
                "recommended_contribution": analysis.recommended_contribution,
                "status": analysis.status,
                "years_to_goal": analysis.years_to_goal,
                "months_to_goal": analysis.months_to_goal,
                "num_simulations": analysis.num_simulations,
            }
        )
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def percentile_frame(analyses: Mapping[str, GoalAnalysis]) -> pd.DataFrame:
    """Long-form frame with ``goal_id``, ``percentile`` and ``value`` columns."""

    rows = [
        {"goal_id": goal_id, "percentile": point.percentile, "value": point.value}
        for goal_id, analysis in analyses.items()
        for point in analysis.percentiles
    ]
    return pd.DataFrame(rows, columns=["goal_id", "percentile", "value"])


def fan_chart_frame(analysis: GoalAnalysis) -> pd.DataFrame:
    """Per-year percentile cone indexed by ``year``."""

    frame = pd.DataFrame(
        [dict(run.percentiles, trials=len(run.values)) for run in analysis.simulation_runs],
        index=pd.Index([run.year for run in analysis.simulation_runs], name="year"),
    )
    return frame


def _stacked_fan_charts(analyses: Mapping[str, GoalAnalysis]) -> pd.DataFrame:
    if not analyses:
        return pd.DataFrame(columns=["goal_id", "year"])
    stacked = []
    for goal_id, analysis in analyses.items():
        exported = fan_chart_frame(analysis).reset_index()
        exported.insert(0, "goal_id", goal_id)
        stacked.append(exported)
    return pd.concat(stacked, ignore_index=True)


def _render_goal_pdf(
    goals: Sequence[FinancialGoal],
    summary: PortfolioGoalSummary,
    path: Path,
) -> Path:
    """Render projection cones and percentile bars, one row per goal."""

    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    analysed = [goal for goal in goals if goal.goal_id in summary.analyses]
    rows = max(1, len(analysed))
    fig, axes = plt.subplots(rows, 2, figsize=(11, 3.5 * rows), squeeze=False)

    if not analysed:
        axes[0, 0].text(0.5, 0.5, "No goals analysed", ha="center", va="center")
        axes[0, 0].set_axis_off()
        axes[0, 1].set_axis_off()

    for (cone_ax, bar_ax), goal in zip(axes, analysed, strict=False):
        analysis = summary.analyses[goal.goal_id]
        cone = fan_chart_frame(analysis)
        cone = cone[cone["trials"] > 0]
        if not cone.empty:
            years = cone.index.to_numpy()
            cone_ax.fill_between(years, cone["p10"], cone["p90"], color="#B9D6F2", alpha=0.5, label="10-90 pct")
            cone_ax.fill_between(years, cone["p25"], cone["p75"], color="#7FB3E0", alpha=0.5, label="25-75 pct")
            cone_ax.plot(years, cone["p50"], color="#2E86AB", label="Median")
        cone_ax.axhline(goal.target_amount, color="#D7263D", linestyle="--", linewidth=1.0, label="Target")
        cone_ax.set_title(f"{goal.name} (p={analysis.success_probability:.1%}, {analysis.status})")
        cone_ax.set_xlabel("Year")
        cone_ax.set_ylabel("Balance")
        cone_ax.legend(loc="upper left", fontsize=8)

        labels = [f"{point.percentile}th" for point in analysis.percentiles]
        values = np.array([point.value for point in analysis.percentiles])
        colours = np.where(values >= goal.target_amount, "#3BB273", "#E15554")
        bar_ax.barh(labels, values, color=colours)
        bar_ax.axvline(goal.target_amount, color="#D7263D", linestyle="--", linewidth=1.0)
        bar_ax.set_title("Final value percentiles")

    fig.suptitle(
        f"Goal Monte Carlo (simulations={summary.num_simulations}, seed={summary.seed})",
        fontsize=12,
    )
    fig.tight_layout()
    fig.savefig(path, format="pdf")
    plt.close(fig)
    return path


def write_goal_artifacts(
    goals: Sequence[FinancialGoal],
    summary: PortfolioGoalSummary,
    *,
    output_dir: Path | str | None = None,
) -> GoalArtifacts:
    """Write CSV, JSON and PDF artefacts for analysed goals.

    Args:
      goals: Goals in display order.
      summary: Result of :func:`~goalcast.engine.goals.analyzer.analyze_goals`.
      output_dir: Destination directory; defaults to a timestamped folder
        under ``artifacts/reports/goals``.

    Returns:
      Paths to the exported artefacts.
    """

    root = ensure_dir(output_dir) if output_dir is not None else run_dir()

    summary_csv = root / "goals_summary.csv"
    percentiles_csv = root / "goals_percentiles.csv"
    fan_chart_csv = root / "goals_fan_chart.csv"
    summary_json = root / "goals_summary.json"
    report_pdf = root / "goals_report.pdf"

    summary_frame(goals, summary.analyses).to_csv(summary_csv, index=False)
    percentile_frame(summary.analyses).to_csv(percentiles_csv, index=False)
    _stacked_fan_charts(summary.analyses).to_csv(fan_chart_csv, index=False)
    write_json(
        {
            "total_target": summary.total_target,
            "total_current": summary.total_current,
            "average_success_probability": (
                None
                if np.isnan(summary.average_success_probability)
                else summary.average_success_probability
            ),
            "num_simulations": summary.num_simulations,
            "seed": summary.seed,
            "goals": [analysis.to_dict() for analysis in summary.analyses.values()],
        },
        summary_json,
    )
    _render_goal_pdf(goals, summary, report_pdf)
    LOG.info("Goal artefacts written to %s", root)
    return GoalArtifacts(
        summary_csv=summary_csv,
        percentiles_csv=percentiles_csv,
        fan_chart_csv=fan_chart_csv,
        summary_json=summary_json,
        report_pdf=report_pdf,
    )
