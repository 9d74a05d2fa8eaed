"""Infrastructure helpers for goalcast (artefact and log paths)."""

from .paths import DEFAULT_ARTIFACT_ROOT, DEFAULT_LOG_ROOT, DEFAULT_REPORT_ROOT, run_dir

__all__ = [
    "DEFAULT_ARTIFACT_ROOT",
    "DEFAULT_LOG_ROOT",
    "DEFAULT_REPORT_ROOT",
    "run_dir",
]
