# plant/controller.py
from __future__ import annotations

import math
from dataclasses import dataclass, replace

from .constants import (
    FF_LEAD_FILTER,
    GRAVITY,
    MAX_INFLOW_M3S,
    MAX_PUMP_FLOW_LPM,
    MIN_LEVEL_M,
    OUTPUT_MAX,
    OUTPUT_MIN,
    RAMP_RATE_M_S,
    percent_to_fraction,
)
from .process.plant_process import disturbance_m3s
from .state import (
    ControlStrategy,
    FeedforwardModel,
    InputType,
    PidComponents,
    SimulationState,
    TankParams,
    clamp,
)


@dataclass
class ControllerConfig:
    # inflow at 100 % output, must match the process
    max_inflow_m3s: float = MAX_INFLOW_M3S
    max_pump_flow_lpm: float = MAX_PUMP_FLOW_LPM

    # RAMP input: reference slope (m/s)
    ramp_rate_m_s: float = RAMP_RATE_M_S

    # DISTURBANCE feedforward: lag = alpha * lead
    ff_lead_filter: float = FF_LEAD_FILTER


# ======================================================
# Linearised plant
# ======================================================
def conductance(tank: TankParams) -> float:
    """dQout/dh of the Torricelli outlet at the current (floored) level, m²/s."""
    h = max(float(tank.height), MIN_LEVEL_M)
    return float(tank.outlet_area) * math.sqrt(2.0 * GRAVITY) / (2.0 * math.sqrt(h))


@dataclass(frozen=True)
class SystemConstants:
    """
    First-order gains/time constants of the plant linearised at the current levels.

        H1/Qi = k1/(t1*s + 1)
        H2/H1 = k2/(t2*s + 1)
        H2/D  = -k3/(t3*s + 1)
    """

    k1: float
    k2: float
    k3: float
    t1: float
    t2: float
    t3: float

    @classmethod
    def from_state(cls, s: SimulationState) -> "SystemConstants":
        c1 = conductance(s.tank1)
        c2 = conductance(s.tank2)
        return cls(
            k1=1.0 / c1,
            k2=c1 / c2,
            k3=1.0 / c2,
            t1=float(s.tank1.area) / c1,
            t2=float(s.tank2.area) / c2,
            t3=float(s.tank2.area) / c2,
        )

    def process_gain(self, max_inflow_m3s: float) -> float:
        """Steady-state tank 2 level change per % controller output (m/%)."""
        # inflow per 1 % of output
        return percent_to_fraction(max_inflow_m3s) * self.k1 * self.k2

    def disturbance_gain(self) -> float:
        """Steady-state tank 2 level change per m³/s of pump draw (negative)."""
        return -self.k3

    def feedforward_gain(self, max_inflow_m3s: float) -> float:
        """-Kd/Kp, in % per m³/s."""
        return -self.disturbance_gain() / self.process_gain(max_inflow_m3s)


class PlantController:
    """
    Feedback controller on the tank 2 level.

    - error = reference - tank2.height, reference shaped by the input type
    - standard form: P = kc*e, I = kc/ti*∫e, D = kc*td*de/dt
    - PID_FEEDFORWARD adds a term from the measured pump draw
    - output clamped to [0, 100] %
    - returns a new state, never mutates
    """

    def __init__(self, cfg: ControllerConfig | None = None):
        self.cfg = cfg or ControllerConfig()

    # ======================================================
    # MAIN ENTRY
    # ======================================================
    def compute(self, s: SimulationState, dt: float) -> SimulationState:
        if dt <= 0:
            return s

        strategy = s.control_strategy
        if strategy is ControlStrategy.MANUAL:
            return s

        c = s.controller
        reference = self._reference(s, dt)
        error = reference - float(s.tank2.height)

        error_sum = float(c.error_sum) + error * dt

        proportional = c.kc * error
        integral = c.kc * error_sum / c.ti if c.ti > 0 else 0.0

        if strategy is ControlStrategy.PI:
            derivative = 0.0
        else:
            derivative = c.kc * c.td * (error - float(c.last_error)) / dt

        feedforward = None
        last_disturbance = c.last_disturbance
        ff_memory = c.feedforward
        if strategy is ControlStrategy.PID_FEEDFORWARD:
            feedforward, last_disturbance = self._feedforward(s, dt)
            ff_memory = feedforward

        u = proportional + integral + derivative + (feedforward or 0.0)

        return replace(
            s,
            controller_output=clamp(u, OUTPUT_MIN, OUTPUT_MAX),
            controller=replace(
                c,
                error_sum=error_sum,
                last_error=error,
                reference=reference,
                last_disturbance=last_disturbance,
                feedforward=ff_memory,
            ),
            pid_components=PidComponents(
                proportional=proportional,
                integral=integral,
                derivative=derivative,
                feedforward=feedforward,
            ),
        )

    # ======================================================
    # Helpers
    # ======================================================
    @staticmethod
    def _slew_to(current: float, target: float, slew_per_s: float, dt: float) -> float:
        max_step = abs(slew_per_s) * dt
        delta = target - current
        if abs(delta) <= max_step:
            return target
        return current + (max_step if delta > 0 else -max_step)

    def _reference(self, s: SimulationState, dt: float) -> float:
        c = s.controller
        if s.input_type is InputType.STEP:
            return float(c.setpoint)

        # RAMP starts from the measured level
        current = float(c.reference) if c.reference is not None else float(s.tank2.height)
        return self._slew_to(current, float(c.setpoint), self.cfg.ramp_rate_m_s, dt)

    # ======================================================
    # Feedforward
    # ======================================================
    def _feedforward(self, s: SimulationState, dt: float) -> tuple[float, float]:
        """Return (feedforward %, disturbance m³/s used)."""
        d = disturbance_m3s(s, self.cfg.max_pump_flow_lpm)
        sc = SystemConstants.from_state(s)
        kff = sc.feedforward_gain(self.cfg.max_inflow_m3s)

        if s.feedforward_model is FeedforwardModel.PROCESS:
            return kff * d, d

        # DISTURBANCE: Gff = -Gd/Gp = kff*(t1*s + 1), made proper with a lag
        # alpha*t1 and discretised with backward Euler
        c = s.controller
        if c.last_disturbance is None:
            prev_d, prev_y = d, kff * d
        else:
            prev_d, prev_y = float(c.last_disturbance), float(c.feedforward)

        lead = sc.t1
        lag = self.cfg.ff_lead_filter * lead
        y = (lag * prev_y + kff * ((lead + dt) * d - lead * prev_d)) / (lag + dt)
        return y, d
