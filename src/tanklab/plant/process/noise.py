# plant/process/noise.py
from __future__ import annotations

import math
import random
from typing import Optional, Protocol

from ..constants import MAX_INFLOW_M3S, NOISE_STD_DEV_M3S
from ..state import clamp


class UniformSource(Protocol):
    def next_uniform(self) -> float:
        """Return a sample in [0, 1)."""
        ...


class RandomSource:
    """UniformSource backed by random.Random (seeded for repeatable runs)."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def next_uniform(self) -> float:
        return self._rng.random()


class NoiseInjector:
    """
    Gaussian inflow noise (Box-Muller).

    noise = z0 * NOISE_STD_DEV * intensity, added to the inflow and clamped
    to [0, MAX_INFLOW].
    """

    def __init__(
        self,
        source: UniformSource | None = None,
        std_dev_m3s: float = NOISE_STD_DEV_M3S,
        max_inflow_m3s: float = MAX_INFLOW_M3S,
    ):
        self.source = source or RandomSource()
        self.std_dev_m3s = float(std_dev_m3s)
        self.max_inflow_m3s = float(max_inflow_m3s)

    def gaussian(self) -> float:
        # u1 in (0, 1] so log() stays finite
        u1 = 1.0 - self.source.next_uniform()
        u2 = self.source.next_uniform()
        return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)

    def apply(self, inflow: float, intensity: float = 1.0) -> float:
        if intensity <= 0.0:
            return clamp(float(inflow), 0.0, self.max_inflow_m3s)

        noise = self.gaussian() * self.std_dev_m3s * float(intensity)
        return clamp(float(inflow) + noise, 0.0, self.max_inflow_m3s)
