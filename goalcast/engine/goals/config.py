"""Loading goal definitions from YAML configuration files."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

from goalcast.engine.utils.io import read_yaml

from .models import FinancialGoal

__all__ = ["DEFAULT_GOALS_PATH", "load_goals", "load_goals_from_yaml"]

DEFAULT_GOALS_PATH = Path("configs") / "goals.yml"


def load_goals(payload: Sequence[Mapping[str, object]] | None) -> list[FinancialGoal]:
    """Parse a list of goal mappings.

    Args:
      payload: Iterable of dictionaries describing each goal.

    Returns:
      A list of :class:`FinancialGoal` instances.
    """

    if not payload:
        return []
    return [FinancialGoal.from_mapping(item) for item in payload]


def load_goals_from_yaml(path: Path | str = DEFAULT_GOALS_PATH) -> list[FinancialGoal]:
    """Load goals from a YAML document.

    The document may be a mapping with a ``goals`` list or a bare list.

    Args:
      path: Path to the YAML document.

    Returns:
      List of :class:`FinancialGoal` instances, empty when the file holds no
      goals.
    """

    data = read_yaml(path)
    payload: Sequence[Mapping[str, object]] | None
    if isinstance(data, Mapping) and "goals" in data:
        payload = data["goals"]  # type: ignore[assignment]
    elif isinstance(data, Sequence) and not isinstance(data, str):
        payload = data  # type: ignore[assignment]
    else:
        payload = None
    return load_goals(payload)
