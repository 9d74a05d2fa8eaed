"""Validation utilities for goalcast configuration files.

The validator walks the goals YAML document and records human readable
diagnostics instead of raising, so the CLI can report every problem in one
pass. Entries that pass validation are returned in normalised form.
"""

from __future__ import annotations

# ruff: noqa: ANN401
import math
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from goalcast.engine.goals.models import (
    GOAL_TYPES,
    PRIORITIES,
    InvalidGoalParameters,
    lookup_field,
    parse_goal_date,
)
from goalcast.engine.utils.io import read_yaml

__all__ = ["ValidationSummary", "validate_configs"]


@dataclass(slots=True)
class ValidationSummary:
    """Aggregate structure returning validation diagnostics and parsed configs.

    Attributes:
      errors: Collection of error messages detected during schema validation.
      warnings: Soft diagnostics that highlight potential configuration issues.
      configs: Mapping between config label and the normalised payload obtained
        after validation.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    configs: dict[str, dict[str, Any]] = field(default_factory=dict)


def _is_number(value: Any) -> bool:
    """Return ``True`` if ``value`` is a finite real number (excluding booleans)."""

    return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)


def _as_float(
    value: Any,
    *,
    path: str,
    errors: list[str],
    minimum: float | None = None,
    exclusive_minimum: bool = False,
) -> float | None:
    """Validate ``value`` as float returning the coerced number when valid.

    Numeric strings are accepted, matching what the goal loader converts.
    """

    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            errors.append(f"{path} must be a finite number")
            return None
    if not _is_number(value):
        errors.append(f"{path} must be a finite number")
        return None
    number = float(value)
    if minimum is not None:
        if exclusive_minimum and number <= minimum:
            errors.append(f"{path} must be > {minimum}")
            return None
        if number < minimum:
            errors.append(f"{path} must be >= {minimum}")
            return None
    return number


def _as_string(value: Any, *, path: str, errors: list[str]) -> str | None:
    """Validate ``value`` as a non-empty string (numbers are accepted as ids)."""

    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str) or not value.strip():
        errors.append(f"{path} must be a non-empty string")
        return None
    return value.strip()


def _as_choice(
    value: Any,
    *,
    path: str,
    errors: list[str],
    choices: tuple[str, ...],
) -> str | None:
    if value not in choices:
        errors.append(f"{path} must be one of {', '.join(choices)}")
        return None
    return str(value)


def _as_date(value: Any, *, path: str, errors: list[str]) -> date | None:
    """Accept YAML dates and timestamps plus ISO date or datetime strings."""

    try:
        return parse_goal_date(value)
    except InvalidGoalParameters:
        errors.append(f"{path} must be a YYYY-MM-DD date")
        return None


def _validate_goals(
    payload: Any,
    *,
    errors: list[str],
    warnings: list[str],
    today: date,
) -> list[dict[str, Any]] | None:
    """Validate the list of goals.

    Keys are read through :func:`lookup_field`, so every spelling the goal
    loader understands (``targetAmount``, ``goalId``, ...) validates too.
    Diagnostics use the canonical snake_case field names.
    """

    if not isinstance(payload, list):
        errors.append("goals.goals must be a list")
        return None
    goals: list[dict[str, Any]] = []
    seen: set[str] = set()
    for idx, entry in enumerate(payload):
        prefix = f"goals.goals[{idx}]"
        if not isinstance(entry, dict):
            errors.append(f"{prefix} must be a mapping")
            continue
        goal_id = _as_string(lookup_field(entry, "id"), path=f"{prefix}.id", errors=errors)
        if goal_id is not None and goal_id in seen:
            errors.append(f"{prefix}.id duplicates goal id {goal_id!r}")
            goal_id = None
        target = _as_float(
            lookup_field(entry, "target_amount"),
            path=f"{prefix}.target_amount",
            errors=errors,
            minimum=0.0,
            exclusive_minimum=True,
        )
        current = _as_float(
            lookup_field(entry, "current_amount", 0.0),
            path=f"{prefix}.current_amount",
            errors=errors,
            minimum=0.0,
        )
        contribution = _as_float(
            lookup_field(entry, "monthly_contribution", 0.0),
            path=f"{prefix}.monthly_contribution",
            errors=errors,
            minimum=0.0,
        )
        expected_return = _as_float(
            lookup_field(entry, "expected_return"),
            path=f"{prefix}.expected_return",
            errors=errors,
        )
        inflation = _as_float(
            lookup_field(entry, "inflation_rate", 0.0),
            path=f"{prefix}.inflation_rate",
            errors=errors,
        )
        target_date = _as_date(
            lookup_field(entry, "target_date"), path=f"{prefix}.target_date", errors=errors
        )
        goal_type = _as_choice(
            lookup_field(entry, "type", "custom"),
            path=f"{prefix}.type",
            errors=errors,
            choices=GOAL_TYPES,
        )
        priority = _as_choice(
            lookup_field(entry, "priority", "medium"),
            path=f"{prefix}.priority",
            errors=errors,
            choices=PRIORITIES,
        )
        values = (goal_id, target, current, contribution, expected_return, inflation)
        if any(value is None for value in values) or None in (target_date, goal_type, priority):
            continue
        seen.add(goal_id)  # type: ignore[arg-type]
        if target_date <= today:  # type: ignore[operator]
            warnings.append(
                f"{prefix}.target_date: {target_date} is not in the future; "
                "the horizon will be clamped to one year"
            )
        if current >= target:  # type: ignore[operator]
            warnings.append(f"{prefix}: current_amount already meets target_amount")
        goals.append(
            {
                "id": goal_id,
                "name": str(lookup_field(entry, "name") or goal_id),
                "type": goal_type,
                "priority": priority,
                "target_amount": target,
                "current_amount": current,
                "target_date": target_date.isoformat(),  # type: ignore[union-attr]
                "monthly_contribution": contribution,
                "expected_return": expected_return,
                "inflation_rate": inflation,
            }
        )
    if not goals:
        errors.append("goals.goals must contain at least one valid entry")
        return None
    return goals


def _load_payload(
    label: str,
    path: Path,
    *,
    summary: ValidationSummary,
) -> dict[str, Any] | None:
    """Load YAML payload handling missing files and empty documents.

    A bare top-level list is read as the ``goals`` section, as the loader does.
    """

    if not path.exists():
        summary.errors.append(f"{label}: missing file at {path}")
        return None
    payload = read_yaml(path)
    if payload is None:
        summary.errors.append(f"{label}: file at {path} is empty")
        return None
    if isinstance(payload, list):
        return {"goals": payload}
    if not isinstance(payload, dict):
        summary.errors.append(f"{label}: expected a mapping or a list at {path}")
        return None
    return payload


def validate_configs(
    *,
    goals_path: Path | str = Path("configs") / "goals.yml",
    today: date | None = None,
) -> ValidationSummary:
    """Validate the goals YAML configuration and return diagnostics."""

    summary = ValidationSummary()
    reference = today or date.today()

    goals_payload = _load_payload("goals", Path(goals_path), summary=summary)
    if goals_payload is not None:
        error_count = len(summary.errors)
        goals = _validate_goals(
            goals_payload.get("goals"),
            errors=summary.errors,
            warnings=summary.warnings,
            today=reference,
        )
        if goals is not None and len(summary.errors) == error_count:
            summary.configs["goals"] = {"goals": goals}

    return summary
