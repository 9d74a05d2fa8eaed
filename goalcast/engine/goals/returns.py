"""Monthly return sources feeding the path simulator."""

from __future__ import annotations

import math

import numpy as np

from goalcast.engine.utils.rand import generator_from_seed

__all__ = [
    "DEFAULT_VOLATILITY",
    "MONTHS_PER_YEAR",
    "ReturnSource",
    "UniformReturnSource",
    "ConstantReturnSource",
]

DEFAULT_VOLATILITY = 0.15
MONTHS_PER_YEAR = 12
_SQRT_MONTHS = math.sqrt(MONTHS_PER_YEAR)


class ReturnSource:
    """Contract for monthly return generators.

    Subclasses implement :meth:`sample`. :meth:`sample_block` falls back to
    repeated scalar draws filled in row-major order, so a block of shape
    ``(trials, months)`` consumes randomness trial by trial, month by month.
    """

    def sample(self, annual_drift: float, annual_volatility: float) -> float:
        raise NotImplementedError

    def sample_block(
        self,
        annual_drift: float,
        annual_volatility: float,
        shape: tuple[int, int],
    ) -> np.ndarray:
        block = np.empty(shape, dtype="float64")
        for index in np.ndindex(*shape):
            block[index] = self.sample(annual_drift, annual_volatility)
        return block


class UniformReturnSource(ReturnSource):
    """Drift plus symmetric uniform noise scaled by ``volatility / sqrt(12)``.

    The noise term is ``U ~ Uniform[-1, 1]`` rather than a Gaussian draw; the
    volatility therefore acts as a half-width, not a standard deviation.

    Args:
      rng: Seed or generator supplying entropy. ``None`` resolves the
        ``global`` stream from ``audit/seeds.yml``.
    """

    def __init__(self, rng: int | np.random.Generator | None = None) -> None:
        self.rng = generator_from_seed(rng)

    def sample(self, annual_drift: float, annual_volatility: float) -> float:
        noise = float(self.rng.uniform(-1.0, 1.0))
        return annual_drift / MONTHS_PER_YEAR + (annual_volatility / _SQRT_MONTHS) * noise

    def sample_block(
        self,
        annual_drift: float,
        annual_volatility: float,
        shape: tuple[int, int],
    ) -> np.ndarray:
        noise = self.rng.uniform(-1.0, 1.0, size=shape)
        return annual_drift / MONTHS_PER_YEAR + (annual_volatility / _SQRT_MONTHS) * noise


class ConstantReturnSource(ReturnSource):
    """Noise-free source returning exactly ``annual_drift / 12`` each month."""

    def sample(self, annual_drift: float, annual_volatility: float) -> float:
        return annual_drift / MONTHS_PER_YEAR

    def sample_block(
        self,
        annual_drift: float,
        annual_volatility: float,
        shape: tuple[int, int],
    ) -> np.ndarray:
        return np.full(shape, annual_drift / MONTHS_PER_YEAR, dtype="float64")
