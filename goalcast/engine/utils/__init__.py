"""Utility helpers for goalcast."""

from .io import ensure_dir, read_yaml, write_json
from .rand import (
    DEFAULT_SEED,
    DEFAULT_SEED_PATH,
    DEFAULT_STREAM,
    GOALS_STREAM,
    generator_from_seed,
    load_seeds,
    seed_for_stream,
    spawn_child_generators,
)

__all__ = [
    "ensure_dir",
    "read_yaml",
    "write_json",
    "DEFAULT_SEED",
    "DEFAULT_SEED_PATH",
    "DEFAULT_STREAM",
    "GOALS_STREAM",
    "generator_from_seed",
    "load_seeds",
    "seed_for_stream",
    "spawn_child_generators",
]
