"""Namespace principale del motore goalcast."""

from __future__ import annotations

from . import goals, infra

__all__ = ["goals", "infra"]
