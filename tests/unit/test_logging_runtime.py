from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from goalcast.engine import logging as runtime_logging
from goalcast.engine.logging import configure_cli_logging, record_metrics, setup_logger


@pytest.fixture(autouse=True)
def isolate_logging(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Reset logging handlers and run in a temporary working directory."""

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(runtime_logging.JSON_ENV_FLAG, "")
    root = logging.getLogger()
    handlers = root.handlers
    level = root.level
    yield
    for logger in list(logging.Logger.manager.loggerDict.values()):
        if isinstance(logger, logging.Logger) and logger.name.startswith("goalcast"):
            for handler in list(logger.handlers):
                handler.close()
            logger.handlers = []
            logger.setLevel(logging.NOTSET)
    root.handlers = handlers
    root.setLevel(level)


def test_setup_logger_resolves_level_from_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """The helper must honour GOALCAST_LOG_LEVEL when configuring loggers."""

    monkeypatch.setenv(runtime_logging.LEVEL_ENV_FLAG, "DEBUG")
    logger = setup_logger("goalcast.tests.level")

    assert logger.isEnabledFor(logging.DEBUG)
    console_handlers = [h for h in logger.handlers if getattr(h, "_goalcast_console", False)]
    assert console_handlers, "expected console handler to be attached"
    assert console_handlers[0].formatter._fmt == runtime_logging.CONSOLE_FORMAT


def test_setup_logger_is_idempotent() -> None:
    logger = setup_logger("goalcast.tests.repeat")
    setup_logger("goalcast.tests.repeat")
    consoles = [h for h in logger.handlers if getattr(h, "_goalcast_console", False)]
    assert len(consoles) == 1


def test_setup_logger_emits_json_payload() -> None:
    """When json_format=True the audit file must contain structured entries."""

    logger = setup_logger("goalcast.tests.json", json_format=True)
    logger.info(
        "goal analysed",
        extra={
            "goal_id": "retire",
            "process_time_ms": 12.5,
            "simulations": 1000,
            "months": 180,
        },
    )
    for handler in logger.handlers:
        handler.flush()

    payloads = [
        json.loads(line)
        for line in runtime_logging.LOG_PATH.read_text(encoding="utf-8").splitlines()
        if line
    ]
    assert payloads, "expected at least one JSON log line"
    record = payloads[0]
    assert record["message"] == "goal analysed"
    assert record["source"] == "goalcast.tests.json"
    assert record["goal_id"] == "retire"
    assert record["process_time_ms"] == pytest.approx(12.5)
    assert record["simulations"] == pytest.approx(1000.0)
    assert record["months"] == pytest.approx(180.0)


def test_json_logging_enabled_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(runtime_logging.JSON_ENV_FLAG, "true")
    logger = setup_logger("goalcast.tests.env_json")
    assert any(getattr(h, "_goalcast_json", False) for h in logger.handlers)


def test_record_metrics_appends_jsonl() -> None:
    """Metrics helper must append JSON lines with tags."""

    record_metrics("goals_simulations", 42, {"goals": "2"})
    record_metrics("goals_runtime_ms", 3.5)
    contents = runtime_logging.METRICS_PATH.read_text(encoding="utf-8")
    lines = [json.loads(line) for line in contents.splitlines() if line]
    assert [line["metric"] for line in lines] == ["goals_simulations", "goals_runtime_ms"]
    assert lines[0]["value"] == pytest.approx(42.0)
    assert lines[0]["tags"] == {"goals": "2"}
    assert lines[1]["tags"] == {}


def test_configure_cli_logging_updates_existing_loggers() -> None:
    """Existing goalcast loggers should gain JSON handlers when requested."""

    first = setup_logger("goalcast.engine.sample")
    assert not any(getattr(h, "_goalcast_json", False) for h in first.handlers)

    configure_cli_logging(json_logs=True)
    assert any(getattr(h, "_goalcast_json", False) for h in first.handlers)


def test_configure_cli_logging_without_json_clears_flag() -> None:
    configure_cli_logging(json_logs=True)
    configure_cli_logging(json_logs=False)
    assert runtime_logging.JSON_ENV_FLAG not in os.environ
    fresh = setup_logger("goalcast.tests.after_cli")
    assert not any(getattr(h, "_goalcast_json", False) for h in fresh.handlers)


def test_unknown_level_falls_back_to_info(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(runtime_logging.LEVEL_ENV_FLAG, "chatty")
    logger = setup_logger("goalcast.tests.unknown_level", level="DEBUG")
    assert logger.level == logging.INFO


def test_json_payload_nulls_missing_simulation_fields() -> None:
    record = logging.LogRecord("goalcast.x", logging.WARNING, __file__, 1, "plain", None, None)
    record.simulations = "many"
    payload = json.loads(runtime_logging.JsonAuditFormatter().format(record))
    assert payload["goal_id"] is None
    assert {name: payload[name] for name in runtime_logging.SIMULATION_FIELDS} == {
        "process_time_ms": None,
        "simulations": None,
        "months": None,
    }
