import pandas as pd
import pytest

from tanklab import plots, runner
from tanklab.plant.recorder import CSV_HEADERS
from tanklab.plant.state import ControlStrategy, InputType


def test_runner_writes_csv(tmp_path, capsys):
    out = tmp_path / "run.csv"
    rc = runner.main(["--steps", "20", "--tick", "0", "--log-every", "10", "--out", str(out)])
    assert rc == 0

    lines = out.read_text(encoding="utf-8").split("\n")
    assert lines[0] == ",".join(CSV_HEADERS)
    assert len(lines) == 21
    assert "[SIM]" in capsys.readouterr().out


def test_runner_unknown_scenario(tmp_path):
    out = tmp_path / "run.csv"
    rc = runner.main(["--scenario", "Chaos", "--steps", "5", "--tick", "0", "--out", str(out)])
    assert rc == 2
    assert not out.exists()


def test_runner_zero_steps_writes_nothing(tmp_path):
    out = tmp_path / "run.csv"
    assert runner.main(["--steps", "0", "--tick", "0", "--out", str(out)]) == 0
    assert not out.exists()


@pytest.mark.parametrize("argv", [["--dt", "0"], ["--steps", "-1"], ["--tick", "-0.1"]])
def test_runner_rejects_bad_args(argv):
    with pytest.raises(SystemExit):
        runner.parse_args(argv)


def test_build_state_applies_cli_edits():
    args = runner.parse_args([
        "--scenario", "slow response",
        "--strategy", "PID_FEEDFORWARD",
        "--input", "RAMP",
        "--kc", "150",
        "--pump", "4",
    ])
    s = runner.build_state(args)
    assert s.is_running
    assert s.control_strategy is ControlStrategy.PID_FEEDFORWARD
    assert s.input_type is InputType.RAMP
    assert s.controller.kc == 150.0
    assert s.controller.setpoint == pytest.approx(0.2)
    assert s.pump_flow == 4.0


def test_plots_from_export(tmp_path):
    csv_path = tmp_path / "run.csv"
    runner.main(["--steps", "30", "--tick", "0", "--log-every", "0", "--out", str(csv_path)])

    df = plots.load_csv(str(csv_path))
    assert len(df) == 30

    written = plots.make_plots(df, str(tmp_path / "plots"), max_points=10)
    assert len(written) == len(CSV_HEADERS) - 1 + 2
    for path in written:
        assert (tmp_path / "plots" / path.split("/")[-1]).exists()


def test_plot_main_without_data(tmp_path, capsys):
    rc = plots.main(["--csv", str(tmp_path / "missing.csv"), "--outdir", str(tmp_path / "plots")])
    assert rc == 1
    assert "No data found" in capsys.readouterr().out


def test_load_csv_rejects_foreign_file(tmp_path):
    path = tmp_path / "other.csv"
    pd.DataFrame({"a": [1, 2]}).to_csv(path, index=False)
    assert plots.load_csv(str(path)).empty


def test_metric_filename():
    assert plots.metric_filename("Controller Output (%)") == "controller_output.png"
    assert plots.metric_filename("Pump Flow (L/min)") == "pump_flow_l_min.png"


def test_format_status_reports_flows():
    args = runner.parse_args(["--output", "50", "--pump", "5", "--strategy", "MANUAL"])
    line = runner.format_status(runner.build_state(args))
    assert "u= 50.0%" in line
    assert "qin=12.7L/min" in line
    assert "pump=5.0L/min(50%)" in line
