# plant/constants.py
"""
Physical and simulation constants for the two-tank system.

All flows inside the plant are SI (m³/s); L/min only appears at the edges
(max inflow, pump disturbance, noise level) and is converted here.
"""
from __future__ import annotations


# ======================================================
# Physics
# ======================================================
GRAVITY = 9.81  # m/s²

# level floor used for every sqrt(h) (outflow and linearisation)
MIN_LEVEL_M = 0.01

# ======================================================
# Simulation
# ======================================================
TIME_STEP = 0.1  # s of simulated time per tick
TICK_S = 0.1     # s of wall time between ticks (driver only)

MAX_INFLOW_LPM = 25.4     # inflow at 100 % controller output
MAX_PUMP_FLOW_LPM = 10.0  # disturbance pump range [0, 10]

# noise: ±1.25 L/min band ~ 3 sigma
NOISE_STD_DEV_LPM = 1.25 / 3

# ======================================================
# Controller
# ======================================================
RAMP_RATE_M_S = 0.005  # reference slope for RAMP input
FF_LEAD_FILTER = 0.1   # alpha in Kff*(t1*s + 1)/(alpha*t1*s + 1)

OUTPUT_MIN = 0.0
OUTPUT_MAX = 100.0

# ======================================================
# Unit conversions
# ======================================================
LPM_PER_M3S = 60.0 * 1000.0


def lpm_to_m3s(lpm: float) -> float:
    return float(lpm) / LPM_PER_M3S


def m3s_to_lpm(m3s: float) -> float:
    return float(m3s) * LPM_PER_M3S


def percent_to_fraction(pct: float) -> float:
    return float(pct) / 100.0


def fraction_to_percent(frac: float) -> float:
    return float(frac) * 100.0


MAX_INFLOW_M3S = lpm_to_m3s(MAX_INFLOW_LPM)
MAX_PUMP_FLOW_M3S = lpm_to_m3s(MAX_PUMP_FLOW_LPM)
NOISE_STD_DEV_M3S = lpm_to_m3s(NOISE_STD_DEV_LPM)
