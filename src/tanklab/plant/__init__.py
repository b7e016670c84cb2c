"""Numerical core of the two-tank level-control simulator.

  from tanklab.plant import initial_state, start, step, DataRecorder
"""

from .controller import ControllerConfig, PlantController, SystemConstants  # re-export
from .process import NoiseInjector, PlantProcess, ProcessConfig, RandomSource, UniformSource  # re-export
from .recorder import CSV_HEADERS, DataRecorder, SimulationDataPoint  # re-export
from .scenarios import SCENARIOS, Scenario, apply_scenario, get_scenario  # re-export
from .simulation import PlantSimulator, SimulatorConfig, control_output, step  # re-export
from .state import (  # re-export
    INITIAL_STATE,
    ControllerParams,
    ControlStrategy,
    FeedforwardModel,
    InputType,
    PidComponents,
    SimulationState,
    TankParams,
    initial_state,
    reset_controller_memory,
    reset_state,
    set_control_strategy,
    start,
    stop,
    update_controller_params,
    update_state,
    update_tank,
)

__all__ = [
    "ControllerConfig",
    "PlantController",
    "SystemConstants",
    "NoiseInjector",
    "PlantProcess",
    "ProcessConfig",
    "RandomSource",
    "UniformSource",
    "CSV_HEADERS",
    "DataRecorder",
    "SimulationDataPoint",
    "SCENARIOS",
    "Scenario",
    "apply_scenario",
    "get_scenario",
    "PlantSimulator",
    "SimulatorConfig",
    "control_output",
    "step",
    "INITIAL_STATE",
    "ControllerParams",
    "ControlStrategy",
    "FeedforwardModel",
    "InputType",
    "PidComponents",
    "SimulationState",
    "TankParams",
    "initial_state",
    "reset_controller_memory",
    "reset_state",
    "set_control_strategy",
    "start",
    "stop",
    "update_controller_params",
    "update_state",
    "update_tank",
]
