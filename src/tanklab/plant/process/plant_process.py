# plant/process/plant_process.py
from __future__ import annotations

from dataclasses import dataclass, replace

from ..constants import MAX_INFLOW_M3S, MAX_PUMP_FLOW_LPM, lpm_to_m3s, percent_to_fraction
from ..state import SimulationState, clamp
from .noise import NoiseInjector
from .tank import TankProcess


@dataclass
class ProcessConfig:
    max_inflow_m3s: float = MAX_INFLOW_M3S
    max_pump_flow_lpm: float = MAX_PUMP_FLOW_LPM


def disturbance_m3s(s: SimulationState, max_pump_flow_lpm: float = MAX_PUMP_FLOW_LPM) -> float:
    """Pump draw from tank 2, clamped to its physical range."""
    return lpm_to_m3s(clamp(float(s.pump_flow), 0.0, float(max_pump_flow_lpm)))


class PlantProcess:
    """
    Physics only: applies the current controller output to the two tanks.

    Tank 1 drains into tank 2; the pump draws D out of tank 2.
    """

    def __init__(self, cfg: ProcessConfig | None = None, noise: NoiseInjector | None = None):
        self.cfg = cfg or ProcessConfig()
        self.noise = noise or NoiseInjector(max_inflow_m3s=self.cfg.max_inflow_m3s)
        self.tank = TankProcess()

    def inflow(self, s: SimulationState) -> float:
        qi = percent_to_fraction(clamp(float(s.controller_output), 0.0, 100.0)) * self.cfg.max_inflow_m3s
        if s.enable_noise:
            qi = self.noise.apply(qi, s.noise_intensity)
        return qi

    def step(self, s: SimulationState, dt: float) -> SimulationState:
        if dt <= 0:
            return s

        qi = self.inflow(s)
        q1 = self.tank.outflow(s.tank1)
        q2 = self.tank.outflow(s.tank2)
        d = disturbance_m3s(s, self.cfg.max_pump_flow_lpm)

        tank1 = self.tank.step(s.tank1, qi, q1, dt)
        tank2 = self.tank.step(s.tank2, q1, q2 + d, dt)

        return replace(s, tank1=tank1, tank2=tank2)
