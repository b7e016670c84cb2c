# plant/simulation.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .constants import TIME_STEP
from .controller import ControllerConfig, PlantController
from .process import NoiseInjector, PlantProcess, RandomSource
from .recorder import DataRecorder
from .state import SimulationState, initial_state, reset_controller_memory


def step(
    state: SimulationState,
    dt: float = TIME_STEP,
    *,
    noise: NoiseInjector | None = None,
    process: PlantProcess | None = None,
    controller: PlantController | None = None,
) -> SimulationState:
    """
    Advance the plant by dt seconds and return the new state.

    Order per tick: physics with the current output, then the controller on
    the new tank 2 level, then time. A stopped state is returned unchanged.

    `noise` only configures the default process; a given `process` carries
    its own.
    """
    if noise is not None and process is not None:
        raise ValueError("pass noise either directly or inside process, not both")
    if not state.is_running or dt <= 0:
        return state

    process = process or PlantProcess(noise=noise)
    controller = controller or PlantController()

    # 1) Physics applies the current output
    s = process.step(state, dt)

    # 2) Controller decides the next output
    s = controller.compute(s, dt)

    # 3) Time
    return replace(s, time=float(s.time) + float(dt))


def control_output(
    state: SimulationState,
    dt: float = TIME_STEP,
    controller: PlantController | None = None,
) -> SimulationState:
    """Controller update alone (no physics, no time)."""
    return (controller or PlantController()).compute(state, dt)


@dataclass
class SimulatorConfig:
    dt: float = TIME_STEP
    seed: Optional[int] = None


class PlantSimulator:
    """Holds the single live state of a session and ticks it."""

    def __init__(
        self,
        state: SimulationState | None = None,
        controller: PlantController | None = None,
        process: PlantProcess | None = None,
        recorder: DataRecorder | None = None,
        cfg: SimulatorConfig | None = None,
    ):
        self.cfg = cfg or SimulatorConfig()
        self.state = state or initial_state()
        self.process = process or PlantProcess(
            noise=NoiseInjector(source=RandomSource(self.cfg.seed)),
        )
        self.controller = controller or PlantController(
            ControllerConfig(
                max_inflow_m3s=self.process.cfg.max_inflow_m3s,
                max_pump_flow_lpm=self.process.cfg.max_pump_flow_lpm,
            )
        )
        self.recorder = recorder

    def step(self, dt: float | None = None) -> SimulationState:
        dt = self.cfg.dt if dt is None else dt
        if not self.state.is_running or dt <= 0:
            return self.state

        self.state = step(self.state, dt, process=self.process, controller=self.controller)

        if self.recorder is not None:
            self.recorder.add_data_point(self.state)
        return self.state

    def run(self, steps: int, dt: float | None = None) -> SimulationState:
        for _ in range(int(steps)):
            self.step(dt)
        return self.state

    def reset_controller(self) -> SimulationState:
        self.state = reset_controller_memory(self.state)
        return self.state

    def reset(self) -> SimulationState:
        self.state = initial_state()
        if self.recorder is not None:
            self.recorder.clear_data()
        return self.state

