"""Logging strutturato e metriche per le simulazioni goalcast.

I logger ``goalcast.*`` scrivono su console e, a richiesta, su un file di
audit JSON monoriga. Le metriche delle esecuzioni CLI vengono accodate in un
file JSONL separato.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

from goalcast.engine.infra.paths import DEFAULT_LOG_ROOT

CONSOLE_FORMAT: Final[str] = "[%(levelname)s] %(name)s: %(message)s"
LOG_PATH: Final[Path] = DEFAULT_LOG_ROOT / "goalcast.log"
METRICS_PATH: Final[Path] = DEFAULT_LOG_ROOT / "metrics.jsonl"
JSON_ENV_FLAG: Final[str] = "GOALCAST_JSON_LOGS"
LEVEL_ENV_FLAG: Final[str] = "GOALCAST_LOG_LEVEL"

# Campi ``extra`` emessi da ``analyze_goal`` e riportati nel payload JSON.
SIMULATION_FIELDS: Final[tuple[str, ...]] = ("process_time_ms", "simulations", "months")

_CONSOLE_MARKER: Final[str] = "_goalcast_console"
_JSON_MARKER: Final[str] = "_goalcast_json"


class JsonAuditFormatter(logging.Formatter):
    """Serializza ogni record come oggetto JSON su una singola riga."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "source": record.name,
            "message": record.getMessage(),
            "goal_id": getattr(record, "goal_id", None),
        }
        for name in SIMULATION_FIELDS:
            value = getattr(record, name, None)
            payload[name] = float(value) if isinstance(value, int | float) else None
        return json.dumps(payload, ensure_ascii=False)


def _level_from_env(level: str | int | None) -> int:
    """La variabile ``GOALCAST_LOG_LEVEL`` prevale sul livello esplicito."""

    requested = os.environ.get(LEVEL_ENV_FLAG) or level or "INFO"
    if isinstance(requested, int):
        return requested
    resolved = logging.getLevelName(requested.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _env_requests_json() -> bool:
    value = os.environ.get(JSON_ENV_FLAG, "")
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def _json_handler() -> logging.Handler:
    LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(LOG_PATH, encoding="utf-8")
    handler.setFormatter(JsonAuditFormatter())
    return handler


def _attach(
    logger: logging.Logger,
    marker: str,
    factory: Callable[[], logging.Handler],
    level: int,
) -> None:
    """Aggancia l'handler identificato da ``marker`` una sola volta."""

    handler = next((h for h in logger.handlers if getattr(h, marker, False)), None)
    if handler is None:
        handler = factory()
        setattr(handler, marker, True)
        logger.addHandler(handler)
    handler.setLevel(level)


def setup_logger(
    name: str,
    json_format: bool = False,
    level: str | int | None = None,
) -> logging.Logger:
    """Configura il logger ``name`` con console e, se richiesto, audit JSON."""

    resolved = _level_from_env(level)
    logger = logging.getLogger(name)
    logger.setLevel(resolved)
    _attach(logger, _CONSOLE_MARKER, _console_handler, resolved)
    if json_format or _env_requests_json():
        _attach(logger, _JSON_MARKER, _json_handler, resolved)
    return logger


def record_metrics(metric_name: str, value: float, tags: Mapping[str, str] | None = None) -> None:
    """Accoda un'osservazione al file JSONL delle metriche."""

    METRICS_PATH.parent.mkdir(parents=True, exist_ok=True)
    entry = {
        "timestamp": datetime.now(tz=UTC).isoformat(),
        "metric": metric_name,
        "value": float(value),
        "tags": dict(tags or {}),
    }
    with METRICS_PATH.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(entry, ensure_ascii=False) + "\n")


def configure_cli_logging(json_logs: bool) -> None:
    """Applica le preferenze della CLI a tutti i logger ``goalcast`` già creati."""

    if json_logs:
        os.environ[JSON_ENV_FLAG] = "1"
    else:
        os.environ.pop(JSON_ENV_FLAG, None)
    names = {"goalcast"}
    names.update(
        name
        for name, logger in logging.Logger.manager.loggerDict.items()
        if isinstance(logger, logging.Logger) and name.startswith("goalcast")
    )
    for name in sorted(names):
        setup_logger(name, json_format=json_logs)


__all__ = ["JsonAuditFormatter", "setup_logger", "record_metrics", "configure_cli_logging"]
