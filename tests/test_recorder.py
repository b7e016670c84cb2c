import io
from dataclasses import replace

import pandas as pd
import pytest

from tanklab.plant.recorder import CSV_HEADERS, CSV_PRECISION, DataRecorder, SimulationDataPoint
from tanklab.plant.simulation import step
from tanklab.plant.state import (
    ControlStrategy,
    PidComponents,
    TankParams,
    initial_state,
    start,
    update_state,
)

HEADER = "Time (s),Tank 1 Level (m),Tank 2 Level (m),Controller Output (%),Pump Flow (L/min),Setpoint (m)"


def recorded(n: int) -> DataRecorder:
    rec = DataRecorder()
    s = update_state(start(initial_state()), pump_flow=3.3333)
    for _ in range(n):
        s = step(s, 0.1)
        rec.add_data_point(s)
    return rec


def test_empty_export():
    rec = DataRecorder()
    assert rec.export_to_csv() == ""
    assert rec.get_data_point_count() == 0


def test_header_and_row_count():
    rec = recorded(12)
    lines = rec.export_to_csv().split("\n")
    assert lines[0] == HEADER
    assert ",".join(CSV_HEADERS) == HEADER
    assert len(lines) == 13
    assert rec.get_data_point_count() == 12


def test_row_formatting():
    s = replace(
        initial_state(),
        time=1.23456,
        tank1=TankParams(height=0.123456),
        tank2=TankParams(height=0.2),
        controller_output=55.44,
        pump_flow=2.0,
    )
    rec = DataRecorder()
    rec.add_data_point(s)
    row = rec.export_to_csv().split("\n")[1]
    assert row == "1.23,0.123,0.200,55.4,2.00,0.25"


def test_csv_round_trip():
    rec = recorded(50)
    df = pd.read_csv(io.StringIO(rec.export_to_csv()))

    assert list(df.columns) == list(CSV_HEADERS)
    assert len(df) == 50
    for i, point in enumerate(rec.data_points):
        for col, value, digits in zip(CSV_HEADERS, point.csv_values(), CSV_PRECISION):
            assert df[col].iloc[i] == pytest.approx(value, abs=0.5 * 10 ** -digits + 1e-12)


def test_error_only_in_feedback_modes():
    s = replace(initial_state(), tank2=TankParams(height=0.1))
    assert SimulationDataPoint.from_state(s).error == pytest.approx(0.15)

    manual = replace(s, control_strategy=ControlStrategy.MANUAL)
    assert SimulationDataPoint.from_state(manual).error is None


def test_points_are_snapshots():
    rec = DataRecorder()
    s = initial_state()
    point = rec.add_data_point(s)
    s = replace(s, time=5.0)
    assert point.time == 0.0
    assert rec.data_points[0].time == 0.0


def test_clear_data():
    rec = recorded(5)
    rec.clear_data()
    assert rec.get_data_point_count() == 0
    assert rec.export_to_csv() == ""


def test_to_frame():
    rec = recorded(8)
    df = rec.to_frame()
    assert len(df) == 8
    assert {"time", "tank1_level", "error", "proportional", "feedforward"} <= set(df.columns)
    assert df["time"].iloc[-1] == pytest.approx(0.8)
    assert df["proportional"].notna().all()


def test_to_frame_without_components():
    rec = DataRecorder()
    rec.add_data_point(replace(initial_state(), pid_components=None))
    rec.add_data_point(replace(initial_state(), pid_components=PidComponents(1.0, 2.0, 3.0)))
    df = rec.to_frame()
    assert pd.isna(df["proportional"].iloc[0])
    assert df["derivative"].iloc[1] == 3.0


def test_save_csv(tmp_path):
    rec = recorded(4)
    path = tmp_path / "nested" / "run.csv"
    assert rec.save_csv(str(path)) == 4
    assert path.read_text(encoding="utf-8") == rec.export_to_csv()
