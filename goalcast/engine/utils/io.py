"""Utility di I/O per configurazioni e artefatti delle simulazioni.

Il modulo raccoglie gli helper usati da CLI e writer degli artefatti per
creare directory e leggere/scrivere documenti YAML e JSON.
"""

from __future__ import annotations

import json
from pathlib import Path

import yaml

__all__ = [
    "ensure_dir",
    "read_yaml",
    "write_json",
]


def ensure_dir(path: Path | str) -> Path:
    """Garantisce l'esistenza del percorso e lo restituisce come :class:`Path`."""

    path_obj = Path(path)
    path_obj.mkdir(parents=True, exist_ok=True)
    return path_obj


def read_yaml(path: Path | str) -> object:
    """Legge un file YAML e restituisce l'oggetto Python corrispondente."""

    with Path(path).open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def write_json(data: object, path: Path | str, *, indent: int = 2) -> Path:
    """Serializza ``data`` in JSON garantendo un'ultima riga con newline.

    I ``NaN`` non sono ammessi: il JSON prodotto deve restare leggibile da
    parser rigorosi, quindi i chiamanti convertono i valori mancanti in ``None``.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=indent, sort_keys=True, allow_nan=False)
        handle.write("\n")
    return target
