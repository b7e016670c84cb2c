# plant/state.py
from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Optional

from .constants import MAX_PUMP_FLOW_LPM, OUTPUT_MAX, OUTPUT_MIN


class ControlStrategy(str, Enum):
    MANUAL = "MANUAL"
    PID = "PID"
    PI = "PI"
    PID_FEEDFORWARD = "PID_FEEDFORWARD"


class InputType(str, Enum):
    STEP = "STEP"
    RAMP = "RAMP"


class FeedforwardModel(str, Enum):
    PROCESS = "PROCESS"
    DISTURBANCE = "DISTURBANCE"


# default clamp function
def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def as_finite(value: Any) -> Optional[float]:
    """Parse a user-edited value; None for anything that is not a finite number."""
    if isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


@dataclass(frozen=True)
class TankParams:
    area: float = 0.01           # m² (100 cm²)
    height: float = 0.0          # m, current level
    max_height: float = 0.5      # m
    outlet_area: float = 0.0001  # m² (1 cm²)


@dataclass(frozen=True)
class ControllerParams:
    # standard form: u = kc*(e + 1/ti*∫e + td*de/dt)
    kc: float = 400.0   # %/m
    ti: float = 20.0    # s, <= 0 disables integral action
    td: float = 0.5     # s
    setpoint: float = 0.25  # m, tank 2 level

    # memory
    error_sum: float = 0.0
    last_error: float = 0.0
    reference: Optional[float] = None         # shaped reference (RAMP)
    last_disturbance: Optional[float] = None  # m³/s, dynamic feedforward input
    feedforward: float = 0.0                  # %, dynamic feedforward output


@dataclass(frozen=True)
class PidComponents:
    proportional: float = 0.0
    integral: float = 0.0
    derivative: float = 0.0
    feedforward: Optional[float] = None


@dataclass(frozen=True)
class SimulationState:
    tank1: TankParams = field(default_factory=TankParams)
    tank2: TankParams = field(default_factory=TankParams)

    controller_output: float = 50.0  # % inlet valve
    pump_flow: float = 0.0           # L/min disturbance out of tank 2
    time: float = 0.0                # s

    controller: ControllerParams = field(default_factory=ControllerParams)
    is_running: bool = False

    control_strategy: ControlStrategy = ControlStrategy.PID
    enable_noise: bool = False
    noise_intensity: float = 1.0
    input_type: InputType = InputType.STEP
    feedforward_model: FeedforwardModel = FeedforwardModel.PROCESS

    pid_components: Optional[PidComponents] = None


def initial_state() -> SimulationState:
    return SimulationState()


INITIAL_STATE = initial_state()


# ======================================================
# Controller memory
# ======================================================
def reset_controller_memory(s: SimulationState) -> SimulationState:
    c = s.controller
    return replace(
        s,
        controller=replace(
            c,
            error_sum=0.0,
            last_error=0.0,
            reference=None,
            last_disturbance=None,
            feedforward=0.0,
        ),
    )


# ======================================================
# Edits (merged, never replaced)
# ======================================================
_NUMERIC_STATE_FIELDS = ("controller_output", "pump_flow", "noise_intensity")
_ENUM_STATE_FIELDS = {
    "control_strategy": ControlStrategy,
    "input_type": InputType,
    "feedforward_model": FeedforwardModel,
}
_GAIN_FIELDS = ("kc", "ti", "td", "setpoint")
_TANK_FIELDS = tuple(f.name for f in fields(TankParams))


def update_state(s: SimulationState, **changes: Any) -> SimulationState:
    """
    Merge top-level edits into the state.

    Numbers that do not parse are dropped, output and pump flow are clamped to
    their ranges; is_running is kept unless given.
    A change of strategy, input type or feedforward model resets controller
    memory.
    """
    accepted: dict[str, Any] = {}

    for name in _NUMERIC_STATE_FIELDS:
        if name in changes:
            v = as_finite(changes[name])
            if v is not None:
                accepted[name] = v

    if "controller_output" in accepted:
        accepted["controller_output"] = clamp(accepted["controller_output"], OUTPUT_MIN, OUTPUT_MAX)
    if "pump_flow" in accepted:
        accepted["pump_flow"] = clamp(accepted["pump_flow"], 0.0, MAX_PUMP_FLOW_LPM)
    if "noise_intensity" in accepted:
        accepted["noise_intensity"] = max(0.0, accepted["noise_intensity"])

    for name in ("is_running", "enable_noise"):
        if name in changes and changes[name] is not None:
            accepted[name] = bool(changes[name])

    for name, enum_type in _ENUM_STATE_FIELDS.items():
        if name in changes:
            try:
                accepted[name] = enum_type(changes[name])
            except ValueError:
                pass

    unknown = set(changes) - set(_NUMERIC_STATE_FIELDS) - set(_ENUM_STATE_FIELDS) - {"is_running", "enable_noise"}
    if unknown:
        raise AttributeError(f"unknown state field(s): {', '.join(sorted(unknown))}")

    new = replace(s, **accepted)
    if any(getattr(new, name) != getattr(s, name) for name in _ENUM_STATE_FIELDS):
        new = reset_controller_memory(new)
    return new


def update_controller_params(s: SimulationState, **changes: Any) -> SimulationState:
    """Merge gain/setpoint edits; any accepted edit resets controller memory."""
    accepted: dict[str, float] = {}
    for name, value in changes.items():
        if name not in _GAIN_FIELDS:
            raise AttributeError(f"unknown controller parameter '{name}'")
        v = as_finite(value)
        if v is not None:
            accepted[name] = v

    if "setpoint" in accepted:
        hmax = s.tank2.max_height
        accepted["setpoint"] = clamp(accepted["setpoint"], 0.0, hmax)

    if not accepted:
        return s
    return reset_controller_memory(replace(s, controller=replace(s.controller, **accepted)))


def set_control_strategy(s: SimulationState, strategy: ControlStrategy | str) -> SimulationState:
    return reset_controller_memory(replace(s, control_strategy=ControlStrategy(strategy)))


def update_tank(s: SimulationState, which: int, **changes: Any) -> SimulationState:
    """
    Edit tank geometry/level of tank 1 or 2; non-positive sizes are dropped.

    Level and (for tank 2) the setpoint are re-clamped to the new max height.
    """
    if which not in (1, 2):
        raise ValueError(f"tank index must be 1 or 2, got {which}")
    tank = s.tank1 if which == 1 else s.tank2

    accepted: dict[str, float] = {}
    for name, value in changes.items():
        if name not in _TANK_FIELDS:
            raise AttributeError(f"unknown tank parameter '{name}'")
        v = as_finite(value)
        if v is None:
            continue
        if name in ("area", "outlet_area", "max_height") and v <= 0.0:
            continue
        accepted[name] = v

    tank = replace(tank, **accepted)
    # keep bounds consistent
    tank = replace(tank, height=clamp(tank.height, 0.0, tank.max_height))

    if which == 1:
        return replace(s, tank1=tank)

    # setpoint lives on tank 2
    c = s.controller
    setpoint = clamp(c.setpoint, 0.0, tank.max_height)
    return replace(s, tank2=tank, controller=replace(c, setpoint=setpoint))


def start(s: SimulationState) -> SimulationState:
    return replace(s, is_running=True)


def stop(s: SimulationState) -> SimulationState:
    return replace(s, is_running=False)


def reset_state() -> SimulationState:
    return initial_state()
