#!/usr/bin/env python3
# runner.py
"""
Headless driver for the two-tank simulator.

Ticks the plant on a fixed wall-clock period (or as fast as possible with
--tick 0), records every tick and writes the CSV export at the end.

Example:
  tanklab-sim --scenario "Disturbance Rejection" --strategy PID_FEEDFORWARD --steps 3000 --tick 0
"""
from __future__ import annotations

import argparse
import asyncio
import os
import signal
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .plant import (
    ControlStrategy,
    DataRecorder,
    FeedforwardModel,
    InputType,
    PlantSimulator,
    SimulationState,
    SimulatorConfig,
    apply_scenario,
    get_scenario,
    initial_state,
    start,
    update_controller_params,
    update_state,
)
from .plant.constants import (
    MAX_INFLOW_M3S,
    MAX_PUMP_FLOW_LPM,
    TICK_S,
    TIME_STEP,
    fraction_to_percent,
    m3s_to_lpm,
    percent_to_fraction,
)
from .plant.scenarios import scenario_names


# ============================================================
# Logging
# ============================================================
def log(msg: str) -> None:
    ts = datetime.now().strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", flush=True)


# ============================================================
# Config
# ============================================================
@dataclass
class RunnerConfig:
    steps: int = 600
    dt: float = TIME_STEP
    tick_s: float = TICK_S      # 0 -> no sleeping
    log_every: int = 50         # ticks between status lines, 0 -> silent
    out_csv: str = "out/simulation_data.csv"
    seed: Optional[int] = None


def format_status(s: SimulationState) -> str:
    qin = m3s_to_lpm(percent_to_fraction(s.controller_output) * MAX_INFLOW_M3S)
    load = fraction_to_percent(s.pump_flow / MAX_PUMP_FLOW_LPM)
    return (
        f"t={s.time:7.1f}s h1={s.tank1.height:.3f}m h2={s.tank2.height:.3f}m "
        f"u={s.controller_output:5.1f}% qin={qin:.1f}L/min "
        f"pump={s.pump_flow:.1f}L/min({load:.0f}%) sp={s.controller.setpoint:.3f}m"
    )


def build_state(args: argparse.Namespace) -> SimulationState:
    s = initial_state()

    if args.scenario:
        s = apply_scenario(s, get_scenario(args.scenario))

    gains = {k: getattr(args, k) for k in ("kc", "ti", "td", "setpoint") if getattr(args, k) is not None}
    if gains:
        s = update_controller_params(s, **gains)

    edits = {
        "control_strategy": args.strategy,
        "input_type": args.input,
        "feedforward_model": args.ff_model,
        "enable_noise": args.noise,
        "noise_intensity": args.noise_intensity,
    }
    if args.pump is not None:
        edits["pump_flow"] = args.pump
    if args.output is not None:
        edits["controller_output"] = args.output

    return start(update_state(s, **edits))


# ============================================================
# Loop
# ============================================================
async def run_loop(sim: PlantSimulator, cfg: RunnerConfig, stop_event: asyncio.Event) -> int:
    ticks = 0
    while ticks < cfg.steps and not stop_event.is_set():
        s = sim.step(cfg.dt)
        ticks += 1

        if cfg.log_every > 0 and ticks % cfg.log_every == 0:
            log(f"[SIM] {format_status(s)}")

        if cfg.tick_s > 0:
            await asyncio.sleep(cfg.tick_s)
        else:
            # yield so signals are seen
            await asyncio.sleep(0)
    return ticks


def install_signal_handlers(stop_event: asyncio.Event) -> dict:
    """Route SIGINT/SIGTERM to stop_event; returns the previous handlers."""
    def _h(*_):
        stop_event.set()

    previous = {}
    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            previous[sig] = signal.signal(sig, _h)
    except ValueError:
        # not in main thread
        pass
    return previous


def restore_signal_handlers(previous: dict) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Two-tank level control simulator (headless)")
    p.add_argument("--steps", type=int, default=RunnerConfig.steps, help="Number of ticks")
    p.add_argument("--dt", type=float, default=RunnerConfig.dt, help="Simulated seconds per tick")
    p.add_argument("--tick", type=float, default=RunnerConfig.tick_s, help="Wall seconds per tick (0 = fast)")
    p.add_argument("--log-every", type=int, default=RunnerConfig.log_every)
    p.add_argument("--out", default=RunnerConfig.out_csv, help="CSV export path")
    p.add_argument("--seed", type=int, default=None, help="Noise seed")

    p.add_argument("--scenario", default=None, help=f"One of: {', '.join(scenario_names())}")
    p.add_argument("--strategy", default=ControlStrategy.PID.value, choices=[c.value for c in ControlStrategy])
    p.add_argument("--input", default=InputType.STEP.value, choices=[c.value for c in InputType])
    p.add_argument("--ff-model", default=FeedforwardModel.PROCESS.value, choices=[c.value for c in FeedforwardModel])

    p.add_argument("--kc", type=float, default=None, help="Controller gain (%%/m)")
    p.add_argument("--ti", type=float, default=None, help="Integral time (s), <=0 disables")
    p.add_argument("--td", type=float, default=None, help="Derivative time (s)")
    p.add_argument("--setpoint", type=float, default=None, help="Tank 2 level setpoint (m)")
    p.add_argument("--pump", type=float, default=None, help="Disturbance pump flow (L/min)")
    p.add_argument("--output", type=float, default=None, help="Initial/manual controller output (%%)")

    p.add_argument("--noise", action="store_true", help="Enable inflow noise")
    p.add_argument("--noise-intensity", type=float, default=1.0)

    args = p.parse_args(argv)
    if args.steps < 0:
        p.error("--steps must be >= 0")
    if args.dt <= 0:
        p.error("--dt must be > 0")
    if args.tick < 0:
        p.error("--tick must be >= 0")
    return args


async def run(args: argparse.Namespace) -> int:
    cfg = RunnerConfig(
        steps=args.steps,
        dt=args.dt,
        tick_s=args.tick,
        log_every=args.log_every,
        out_csv=args.out,
        seed=args.seed,
    )

    try:
        state = build_state(args)
    except KeyError as e:
        log(f"[MAIN] {e.args[0]}; choose one of: {', '.join(scenario_names())}")
        return 2

    recorder = DataRecorder()
    sim = PlantSimulator(state=state, recorder=recorder, cfg=SimulatorConfig(dt=cfg.dt, seed=cfg.seed))

    log(f"[MAIN] strategy={state.control_strategy.value} input={state.input_type.value} "
        f"ff={state.feedforward_model.value} noise={state.enable_noise}")
    log(f"[MAIN] kc={state.controller.kc:g} ti={state.controller.ti:g} td={state.controller.td:g} "
        f"sp={state.controller.setpoint:g}m")

    stop_event = asyncio.Event()
    previous = install_signal_handlers(stop_event)
    try:
        ticks = await run_loop(sim, cfg, stop_event)
    finally:
        restore_signal_handlers(previous)
    log(f"[MAIN] done after {ticks} ticks: {format_status(sim.state)}")

    if recorder.get_data_point_count() == 0:
        log("[MAIN] nothing recorded, no CSV written")
        return 0

    rows = recorder.save_csv(cfg.out_csv)
    log(f"[MAIN] {rows} rows -> {os.path.abspath(cfg.out_csv)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
