"""Validation command tests covering schema and CLI integration."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
import yaml

from goalcast.cli.main import main as cli_main
from goalcast.engine.goals import load_goals_from_yaml
from goalcast.engine.validate import ValidationSummary, validate_configs

TODAY = date(2025, 1, 1)


def _write_yaml(path: Path, payload: object) -> Path:
    """Serialize ``payload`` to ``path`` using UTF-8 encoding."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(payload, sort_keys=True), encoding="utf-8")
    return path


def _valid_goals() -> dict[str, object]:
    return {
        "goals": [
            {
                "id": "1",
                "name": "Retirement",
                "type": "retirement",
                "priority": "high",
                "target_amount": 5_000_000,
                "current_amount": 1_850_000,
                "target_date": date(2040, 6, 1),
                "monthly_contribution": 8_500,
                "expected_return": 0.07,
                "inflation_rate": 0.025,
            },
            {
                "id": 2,
                "target_amount": 350_000,
                "target_date": "2032-08-01",
                "expected_return": 0.06,
            },
        ]
    }


def test_validate_configs_reports_success(tmp_path: Path) -> None:
    """The validator returns a normalised payload without errors for valid inputs."""

    goals_path = _write_yaml(tmp_path / "goals.yml", _valid_goals())
    summary = validate_configs(goals_path=goals_path, today=TODAY)
    assert isinstance(summary, ValidationSummary)
    assert not summary.errors
    assert summary.warnings == []
    goals = summary.configs["goals"]["goals"]
    assert [goal["id"] for goal in goals] == ["1", "2"]
    assert goals[1]["name"] == "2"
    assert goals[1]["type"] == "custom"
    assert goals[1]["priority"] == "medium"
    assert goals[0]["target_date"] == "2040-06-01"


def test_validate_configs_reports_schema_errors(tmp_path: Path) -> None:
    """Invalid entries surface human readable error messages."""

    payload = _valid_goals()
    payload["goals"].append(  # type: ignore[attr-defined]
        {
            "id": "1",
            "target_amount": 0,
            "current_amount": -3,
            "target_date": "someday",
            "expected_return": "high",
            "type": "yacht",
        }
    )
    goals_path = _write_yaml(tmp_path / "goals.yml", payload)
    summary = validate_configs(goals_path=goals_path, today=TODAY)
    assert "goals" not in summary.configs
    joined = "\n".join(summary.errors)
    assert "goals.goals[2].id duplicates goal id '1'" in joined
    assert "goals.goals[2].target_amount must be > 0.0" in joined
    assert "goals.goals[2].current_amount must be >= 0.0" in joined
    assert "goals.goals[2].target_date must be a YYYY-MM-DD date" in joined
    assert "goals.goals[2].expected_return must be a finite number" in joined
    assert "goals.goals[2].type must be one of" in joined


def test_validate_configs_warns_on_clamped_horizon(tmp_path: Path) -> None:
    payload = {
        "goals": [
            {
                "id": "late",
                "target_amount": 1_000,
                "current_amount": 2_000,
                "target_date": "2024-01-01",
                "expected_return": 0.05,
            }
        ]
    }
    goals_path = _write_yaml(tmp_path / "goals.yml", payload)
    summary = validate_configs(goals_path=goals_path, today=TODAY)
    assert not summary.errors
    assert any("clamped to one year" in warning for warning in summary.warnings)
    assert any("already meets target_amount" in warning for warning in summary.warnings)


@pytest.mark.parametrize(
    ("content", "message"),
    [
        (None, "missing file"),
        ("", "is empty"),
        ("just a sentence\n", "expected a mapping or a list"),
        ("- 1\n- 2\n", "goals.goals[0] must be a mapping"),
    ],
)
def test_validate_configs_document_errors(tmp_path: Path, content: str | None, message: str) -> None:
    path = tmp_path / "goals.yml"
    if content is not None:
        path.write_text(content, encoding="utf-8")
    summary = validate_configs(goals_path=path, today=TODAY)
    assert any(message in error for error in summary.errors)


def test_validate_configs_accepts_yaml_timestamps(tmp_path: Path) -> None:
    """A timestamp target date is reduced to its calendar day, as the loader does."""

    path = tmp_path / "goals.yml"
    path.write_text(
        "goals:\n"
        "  - id: retire\n"
        "    target_amount: 5000000\n"
        "    target_date: 2040-06-01 10:00:00\n"
        "    expected_return: 0.07\n"
        "  - id: past\n"
        "    target_amount: 1000\n"
        "    target_date: 2024-03-01T08:30:00\n"
        "    expected_return: 0.05\n",
        encoding="utf-8",
    )
    assert load_goals_from_yaml(path)[0].target_date == date(2040, 6, 1)

    summary = validate_configs(goals_path=path, today=TODAY)
    assert not summary.errors
    goals = summary.configs["goals"]["goals"]
    assert [goal["target_date"] for goal in goals] == ["2040-06-01", "2024-03-01"]
    assert any("goals.goals[1].target_date" in warning for warning in summary.warnings)


def test_validate_configs_matches_loader_schema(tmp_path: Path) -> None:
    """Anything the goal loader reads must validate cleanly."""

    payload = [
        {
            "goalId": "edu",
            "goalType": "education",
            "targetAmount": 350_000,
            "currentAmount": "125000",
            "targetDate": "2032-08-01T00:00:00Z",
            "monthlyContribution": 2_000,
            "expectedReturn": 0.06,
            "inflationRate": 0.04,
        }
    ]
    goals_path = _write_yaml(tmp_path / "goals.yml", payload)
    loaded = load_goals_from_yaml(goals_path)
    assert loaded[0].current_amount == 125_000.0

    summary = validate_configs(goals_path=goals_path, today=TODAY)
    assert not summary.errors
    entry = summary.configs["goals"]["goals"][0]
    assert entry["id"] == loaded[0].goal_id
    assert entry["type"] == loaded[0].goal_type
    assert entry["current_amount"] == loaded[0].current_amount
    assert entry["target_date"] == loaded[0].target_date.isoformat()


def test_cli_validate_verbose_prints_payload(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """The CLI outputs verbose payloads and success status when validation passes."""

    goals_path = _write_yaml(tmp_path / "goals.yml", _valid_goals())
    cli_main(["validate", "--goals", str(goals_path), "--verbose"])
    captured = capsys.readouterr()
    assert "[goalcast] validate status=ok" in captured.out
    assert "Retirement" in captured.out
    assert captured.err == ""


def test_cli_validate_exits_on_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    goals_path = _write_yaml(tmp_path / "goals.yml", {"goals": "not-a-list"})
    with pytest.raises(SystemExit) as excinfo:
        cli_main(["validate", "--goals", str(goals_path)])
    assert excinfo.value.code == 1
    assert "[goalcast] validate error: goals.goals must be a list" in capsys.readouterr().out
