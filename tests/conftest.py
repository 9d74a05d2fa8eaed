"""Configurazione Pytest condivisa per goalcast."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable, Iterator
from pathlib import Path

import pytest


def _insert_repo_root() -> None:
    """Assicura che la root del repository sia sul ``sys.path`` per gli import."""

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_insert_repo_root()


def pytest_report_header(config: pytest.Config) -> Iterable[str]:  # pragma: no cover - pytest hook
    """Mostra contesto diagnostico per le esecuzioni di test."""

    root = Path.cwd()
    log_level = os.environ.get("GOALCAST_LOG_LEVEL", "INFO")
    return [f"goalcast repo: {root}", f"GOALCAST_LOG_LEVEL={log_level}"]


@pytest.fixture(autouse=True)
def _set_verbose_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Imposta il livello di log predefinito a INFO per test più leggibili."""

    monkeypatch.setenv("GOALCAST_LOG_LEVEL", "INFO")
    monkeypatch.setenv("GOALCAST_JSON_LOGS", "0")


@pytest.fixture(autouse=True)
def _reset_goalcast_handlers() -> Iterator[None]:
    """Rimuove gli handler agganciati dalla CLI tra un test e l'altro."""

    yield
    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if isinstance(logger, logging.Logger) and name.startswith("goalcast"):
            for handler in list(logger.handlers):
                handler.close()
            logger.handlers = []
            logger.setLevel(logging.NOTSET)


@pytest.fixture()
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Esegue il test in una cartella temporanea (log, metriche e seed locali)."""

    monkeypatch.chdir(tmp_path)
    return tmp_path
