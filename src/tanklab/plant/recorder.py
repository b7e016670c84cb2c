# plant/recorder.py
"""
Session data recorder.

Keeps the FULL history of a run for export. Growth is unbounded (one small
frozen record per tick, ~36k records per hour at dt=0.1 s); callers that
only display a rolling window keep their own capped buffer instead.
"""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from typing import List, Optional, Tuple

import pandas as pd

from .state import ControlStrategy, PidComponents, SimulationState


CSV_HEADERS: Tuple[str, ...] = (
    "Time (s)",
    "Tank 1 Level (m)",
    "Tank 2 Level (m)",
    "Controller Output (%)",
    "Pump Flow (L/min)",
    "Setpoint (m)",
)

# decimals per CSV column, same order as CSV_HEADERS
CSV_PRECISION: Tuple[int, ...] = (2, 3, 3, 1, 2, 2)


@dataclass(frozen=True)
class SimulationDataPoint:
    time: float
    tank1_level: float
    tank2_level: float
    controller_output: float
    pump_flow: float
    setpoint: float
    error: Optional[float] = None
    pid_components: Optional[PidComponents] = None

    @classmethod
    def from_state(cls, s: SimulationState) -> "SimulationDataPoint":
        error = None
        if s.control_strategy is not ControlStrategy.MANUAL:
            error = float(s.controller.setpoint) - float(s.tank2.height)

        return cls(
            time=float(s.time),
            tank1_level=float(s.tank1.height),
            tank2_level=float(s.tank2.height),
            controller_output=float(s.controller_output),
            pump_flow=float(s.pump_flow),
            setpoint=float(s.controller.setpoint),
            error=error,
            pid_components=s.pid_components,
        )

    def csv_values(self) -> Tuple[float, ...]:
        return (
            self.time,
            self.tank1_level,
            self.tank2_level,
            self.controller_output,
            self.pump_flow,
            self.setpoint,
        )


class DataRecorder:

    def __init__(self) -> None:
        self._points: List[SimulationDataPoint] = []

    # ======================================================
    # Recording
    # ======================================================
    def add_data_point(self, s: SimulationState) -> SimulationDataPoint:
        point = SimulationDataPoint.from_state(s)
        self._points.append(point)
        return point

    def clear_data(self) -> None:
        self._points = []

    def get_data_point_count(self) -> int:
        return len(self._points)

    @property
    def data_points(self) -> Tuple[SimulationDataPoint, ...]:
        return tuple(self._points)

    # ======================================================
    # Export
    # ======================================================
    def export_to_csv(self) -> str:
        """Header + one row per point; empty string when nothing was recorded."""
        if not self._points:
            return ""

        rows = [",".join(CSV_HEADERS)]
        for point in self._points:
            rows.append(
                ",".join(
                    f"{value:.{digits}f}"
                    for value, digits in zip(point.csv_values(), CSV_PRECISION)
                )
            )
        return "\n".join(rows)

    def save_csv(self, path: str) -> int:
        """Write export_to_csv() to path; returns the number of rows written."""
        d = os.path.dirname(os.path.abspath(path))
        if d and not os.path.exists(d):
            os.makedirs(d, exist_ok=True)

        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(self.export_to_csv())
        return len(self._points)

    def to_frame(self) -> pd.DataFrame:
        """Every recorded field (PID components flattened) as a DataFrame."""
        rows = []
        for point in self._points:
            row = asdict(point)
            pid = row.pop("pid_components") or {}
            for key in ("proportional", "integral", "derivative", "feedforward"):
                row[key] = pid.get(key)
            rows.append(row)

        columns = [
            "time",
            "tank1_level",
            "tank2_level",
            "controller_output",
            "pump_flow",
            "setpoint",
            "error",
            "proportional",
            "integral",
            "derivative",
            "feedforward",
        ]
        return pd.DataFrame(rows, columns=columns)
