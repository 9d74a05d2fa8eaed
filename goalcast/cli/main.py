"""Command-line interface for the goalcast Monte Carlo engine."""

from __future__ import annotations

import argparse
import math
import time
from pathlib import Path

import yaml

from goalcast.engine.goals import (
    DEFAULT_GOALS_PATH,
    DEFAULT_VOLATILITY,
    SIMULATION_CHOICES,
    InvalidGoalParameters,
    analyze_goals,
    load_goals_from_yaml,
    write_goal_artifacts,
)
from goalcast.engine.logging import configure_cli_logging, record_metrics
from goalcast.engine.validate import validate_configs

DESCRIPTION = "Financial goal Monte Carlo engine"


def _parse_workers(value: str) -> int:
    try:
        workers = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Expected an integer worker count") from exc
    if workers < 1:
        raise argparse.ArgumentTypeError("Worker count must be >= 1")
    return workers


def _parse_volatility(value: str) -> float:
    """Parse an annualised volatility, rejecting negative or non-finite input."""

    try:
        volatility = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Expected a numeric volatility") from exc
    if not math.isfinite(volatility) or volatility < 0:
        raise argparse.ArgumentTypeError("Volatility must be a finite number >= 0")
    return volatility


def _add_goals_subparser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    goals = subparsers.add_parser("goals", help="Evaluate financial goals via Monte Carlo")
    goals.add_argument(
        "--goals-config",
        type=Path,
        default=DEFAULT_GOALS_PATH,
        help="Path to goals configuration YAML",
    )
    goals.add_argument(
        "--simulations",
        type=int,
        choices=SIMULATION_CHOICES,
        default=1_000,
        help="Number of Monte Carlo trials per goal",
    )
    goals.add_argument(
        "--seed",
        type=int,
        help="Root random seed (defaults to the 'goals' stream in audit/seeds.yml)",
    )
    goals.add_argument("--workers", type=_parse_workers, default=1, help="Worker threads per goal")
    goals.add_argument(
        "--volatility",
        type=_parse_volatility,
        default=DEFAULT_VOLATILITY,
        help="Annualised volatility assumption",
    )
    goals.add_argument(
        "--goal",
        action="append",
        dest="goal_ids",
        help="Only analyse the goal with this id (repeatable)",
    )
    goals.add_argument(
        "--monthly-contribution",
        type=float,
        help="Override the monthly contribution of the selected goals",
    )
    goals.add_argument(
        "--expected-return",
        type=float,
        help="Override the expected annual return of the selected goals",
    )
    goals.add_argument(
        "--output-dir",
        type=Path,
        help="Directory for CSV/JSON/PDF artefacts",
    )
    goals.add_argument(
        "--artifacts",
        action="store_true",
        help="Write artefacts to a timestamped folder when --output-dir is not given",
    )


def _add_validate_subparser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    """Attach the validate command used for configuration schema checks."""

    validate = subparsers.add_parser("validate", help="Validate the goals YAML configuration")
    validate.add_argument(
        "--goals",
        type=Path,
        default=DEFAULT_GOALS_PATH,
        help="Path to goals.yml configuration",
    )
    validate.add_argument(
        "--verbose",
        action="store_true",
        help="Print the parsed configuration payload on success",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="goalcast", description=DESCRIPTION)
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Mirror logs to artifacts/logs/goalcast.log in JSON format",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)
    _add_goals_subparser(sub)
    _add_validate_subparser(sub)
    return parser


def _handle_goals(args: argparse.Namespace) -> None:
    try:
        goals = load_goals_from_yaml(args.goals_config)
    except InvalidGoalParameters as exc:
        raise SystemExit(f"[goalcast] invalid goal configuration: {exc}") from exc
    if args.goal_ids:
        wanted = set(args.goal_ids)
        missing = sorted(wanted - {goal.goal_id for goal in goals})
        if missing:
            raise SystemExit(f"[goalcast] unknown goal ids: {', '.join(missing)}")
        goals = [goal for goal in goals if goal.goal_id in wanted]
    if not goals:
        raise SystemExit("No goals configured")

    overrides: dict[str, float] = {}
    if args.monthly_contribution is not None:
        overrides["monthly_contribution"] = float(args.monthly_contribution)
    if args.expected_return is not None:
        overrides["expected_return"] = float(args.expected_return)
    if overrides:
        try:
            goals = [goal.with_updates(**overrides) for goal in goals]
        except InvalidGoalParameters as exc:
            raise SystemExit(f"[goalcast] invalid override: {exc}") from exc

    started = time.perf_counter()
    try:
        summary = analyze_goals(
            goals,
            args.simulations,
            seed=args.seed,
            volatility=args.volatility,
            workers=args.workers,
        )
    except (ValueError, FloatingPointError) as exc:
        raise SystemExit(f"[goalcast] goal simulation failed: {exc}") from exc
    elapsed_ms = (time.perf_counter() - started) * 1000.0

    for goal in goals:
        analysis = summary.analyses[goal.goal_id]
        print(
            f"[goalcast] goal id={goal.goal_id} name={goal.name!r} "
            f"p_success={analysis.success_probability:.3f} "
            f"median={analysis.median_outcome:,.0f} "
            f"recommended={analysis.recommended_contribution:,.2f} "
            f"status={analysis.status}"
        )
    print(
        f"[goalcast] goals simulations={summary.num_simulations} seed={summary.seed} "
        f"count={len(goals)} total_target={summary.total_target:,.0f} "
        f"total_current={summary.total_current:,.0f} "
        f"avg_success={summary.average_success_probability:.3f}"
    )

    tags = {"goals": str(len(goals)), "seed": str(summary.seed)}
    record_metrics("goals_simulations", summary.num_simulations * len(goals), tags)
    record_metrics("goals_runtime_ms", elapsed_ms, tags)
    record_metrics("goals_success_probability", summary.average_success_probability, tags)

    if args.output_dir is not None or args.artifacts:
        artifacts = write_goal_artifacts(goals, summary, output_dir=args.output_dir)
        print(
            f"[goalcast] goals artifacts summary={artifacts.summary_csv} "
            f"pdf={artifacts.report_pdf}"
        )


def _handle_validate(args: argparse.Namespace) -> None:
    """Validate the goals file and report diagnostics to stdout."""

    summary = validate_configs(goals_path=args.goals)
    if args.verbose and summary.configs:
        for label, payload in summary.configs.items():
            rendered = yaml.safe_dump(payload, sort_keys=False)
            print(f"[goalcast] validate {label}\n{rendered}", end="")
    for warning in summary.warnings:
        print(f"[goalcast] validate warning: {warning}")
    if summary.errors:
        for error in summary.errors:
            print(f"[goalcast] validate error: {error}")
        raise SystemExit(1)
    print("[goalcast] validate status=ok")


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_cli_logging(json_logs=bool(args.json_logs))
    if args.cmd == "goals":
        _handle_goals(args)
    elif args.cmd == "validate":
        _handle_validate(args)
    else:
        print(f"[goalcast] command = {args.cmd}")


if __name__ == "__main__":
    main()
