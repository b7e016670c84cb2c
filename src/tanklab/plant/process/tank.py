# plant/process/tank.py
from __future__ import annotations

import math
from dataclasses import replace

from ..constants import GRAVITY, MIN_LEVEL_M
from ..state import TankParams, clamp


def outflow(tank: TankParams) -> float:
    """Torricelli outflow in m³/s; the level is floored at MIN_LEVEL_M so an empty tank stays finite."""
    h = max(float(tank.height), MIN_LEVEL_M)
    return float(tank.outlet_area) * math.sqrt(2.0 * GRAVITY * h)


def integrate(tank: TankParams, inflow: float, out_flow: float, dt: float) -> TankParams:
    """One Euler step of A*dh/dt = Qin - Qout, clamped to [0, max_height]."""
    if dt <= 0:
        return tank

    dh_dt = (float(inflow) - float(out_flow)) / float(tank.area)
    height = clamp(
        float(tank.height) + dh_dt * dt,
        0.0,
        float(tank.max_height),
    )
    return replace(tank, height=height)


class TankProcess:
    def outflow(self, tank: TankParams) -> float:
        return outflow(tank)

    def step(self, tank: TankParams, inflow: float, out_flow: float, dt: float) -> TankParams:
        return integrate(tank, inflow, out_flow, dt)
