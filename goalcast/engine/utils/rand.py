"""Gestione centralizzata dei seed casuali per le simulazioni goalcast."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import numpy as np
import yaml

DEFAULT_STREAM = "global"
GOALS_STREAM = "goals"
DEFAULT_SEED = 42
DEFAULT_SEED_PATH = Path("audit") / "seeds.yml"

__all__ = [
    "DEFAULT_SEED",
    "DEFAULT_SEED_PATH",
    "DEFAULT_STREAM",
    "GOALS_STREAM",
    "load_seeds",
    "seed_for_stream",
    "generator_from_seed",
    "spawn_child_generators",
]


def load_seeds(seed_path: Path | str = DEFAULT_SEED_PATH) -> dict[str, int]:
    """Carica il dizionario dei seed dal percorso indicato.

    Se il file non esiste ancora restituisce almeno lo stream ``global`` con il
    seed di default, così che le simulazioni restino riproducibili sin dal
    primo avvio.
    """

    path = Path(seed_path)
    if not path.exists():
        return {DEFAULT_STREAM: DEFAULT_SEED}

    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    if isinstance(data, dict) and "seeds" in data and isinstance(data["seeds"], dict):
        seeds_section = data["seeds"]
    elif isinstance(data, dict):
        seeds_section = data
    else:
        raise TypeError("Seed file must contain a mapping of stream -> seed")

    seeds: dict[str, int] = {}
    for key, value in seeds_section.items():
        if value is None:
            continue
        seeds[str(key)] = int(value)

    seeds.setdefault(DEFAULT_STREAM, DEFAULT_SEED)
    return seeds


def seed_for_stream(
    stream: str = DEFAULT_STREAM,
    *,
    seeds: Mapping[str, int] | None = None,
    seed_path: Path | str = DEFAULT_SEED_PATH,
) -> int:
    """Ricava il seed per ``stream`` usando la mappatura fornita o il file."""

    seeds_dict = dict(seeds) if seeds is not None else load_seeds(seed_path)
    if DEFAULT_STREAM not in seeds_dict:
        seeds_dict[DEFAULT_STREAM] = DEFAULT_SEED
    return int(seeds_dict.get(stream, seeds_dict[DEFAULT_STREAM]))


def generator_from_seed(
    seed: int | np.random.Generator | None = None,
    *,
    stream: str = DEFAULT_STREAM,
    seeds: Mapping[str, int] | None = None,
    seed_path: Path | str = DEFAULT_SEED_PATH,
) -> np.random.Generator:
    """Restituisce un generatore NumPy coerente con lo stream richiesto."""

    if isinstance(seed, np.random.Generator):
        return seed
    if seed is not None:
        resolved_seed = seed
    else:
        resolved_seed = seed_for_stream(stream, seeds=seeds, seed_path=seed_path)
    return np.random.default_rng(int(resolved_seed))


def spawn_child_generators(
    seed: int | np.random.SeedSequence,
    count: int,
) -> list[np.random.Generator]:
    """Genera ``count`` generatori indipendenti derivati dallo stesso seed.

    I figli dipendono solo dal seed e dalla posizione, mai dal numero di
    worker che li consumeranno.
    """

    if count < 0:
        raise ValueError("count must be >= 0")
    sequence = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(int(seed))
    return [np.random.default_rng(child) for child in sequence.spawn(count)]
