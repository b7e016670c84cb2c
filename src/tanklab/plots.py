#!/usr/bin/env python3
"""
Plot time-series from a CSV exported by the simulator (tanklab-sim / DataRecorder).

This script:
- loads the CSV with pandas
- builds one plot per column against time
- builds two combo plots (levels vs setpoint, controller output vs pump flow)

Usage:
  tanklab-plot --csv out/simulation_data.csv --outdir out/plots

Notes:
- Uses matplotlib only (no seaborn).
- No fixed colors.
"""
from __future__ import annotations

import argparse
import os
from typing import List, Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from .plant.recorder import CSV_HEADERS  # noqa: E402

TIME_COL = CSV_HEADERS[0]


# ----------------------------
# Helpers
# ----------------------------
def load_csv(path: str) -> pd.DataFrame:
    """Empty frame when the file is missing, empty or not an export."""
    if not path or not os.path.exists(path) or os.path.getsize(path) == 0:
        return pd.DataFrame(columns=list(CSV_HEADERS))

    df = pd.read_csv(path)
    if TIME_COL not in df.columns:
        return pd.DataFrame(columns=list(CSV_HEADERS))
    return df


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def metric_filename(metric: str) -> str:
    name = metric.lower()
    for ch in " /:%()":
        name = name.replace(ch, "_")
    while "__" in name:
        name = name.replace("__", "_")
    return name.strip("_") + ".png"


def downsample(df: pd.DataFrame, max_points: int) -> pd.DataFrame:
    if max_points <= 0 or len(df) <= max_points:
        return df
    step = max(1, len(df) // max_points)
    return df.iloc[::step]


def plot_series(t: pd.Series, y: pd.Series, title: str, outpath: str) -> None:
    plt.figure()
    plt.plot(t, y)
    plt.title(title)
    plt.xlabel(TIME_COL)
    plt.ylabel(title)
    plt.tight_layout()
    plt.savefig(outpath, dpi=150)
    plt.close()


def plot_combo(df: pd.DataFrame, name: str, metrics: List[str], outpath: str) -> bool:
    present = [m for m in metrics if m in df.columns]
    if not present:
        return False

    plt.figure()
    for m in present:
        plt.plot(df[TIME_COL], df[m], label=m)
    plt.title(name)
    plt.xlabel(TIME_COL)
    plt.legend()
    plt.tight_layout()
    plt.savefig(outpath, dpi=150)
    plt.close()
    return True


def make_plots(df: pd.DataFrame, outdir: str, max_points: int = 5000) -> List[str]:
    """Write all plots for df into outdir; returns the written paths."""
    ensure_dir(outdir)
    df = downsample(df, max_points)
    written: List[str] = []

    for metric in CSV_HEADERS[1:]:
        if metric not in df.columns:
            continue
        outpath = os.path.join(outdir, metric_filename(metric))
        plot_series(df[TIME_COL], df[metric], metric, outpath)
        written.append(outpath)

    combos = [
        ("Tank levels and setpoint", [CSV_HEADERS[1], CSV_HEADERS[2], CSV_HEADERS[5]], "combo_levels.png"),
        ("Controller output and pump flow", [CSV_HEADERS[3], CSV_HEADERS[4]], "combo_output_pump.png"),
    ]
    for name, metrics, filename in combos:
        outpath = os.path.join(outdir, filename)
        if plot_combo(df, name, metrics, outpath):
            written.append(outpath)

    return written


# ----------------------------
# Main
# ----------------------------
def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Plot an exported simulation CSV")
    ap.add_argument("--csv", default="out/simulation_data.csv", help="CSV export path")
    ap.add_argument("--outdir", default="out/plots", help="Where to save PNG plots")
    ap.add_argument("--max-points", type=int, default=5000, help="Cap points per metric (simple downsample)")
    args = ap.parse_args(argv)

    df = load_csv(args.csv)
    if df.empty:
        print("No data found. Check CSV path.")
        return 1

    written = make_plots(df, args.outdir, args.max_points)
    print(f"Plots saved to: {os.path.abspath(args.outdir)} (generated {len(written)} plots)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
