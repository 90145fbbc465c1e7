"""
simulation_runner.py
====================
Rover Power Manager — Sol Scenario Runner

Drives the power-budgeting engine through one compressed day/night cycle,
playing the part of the transport and scheduler collaborators:

    1. Build the engine and the linear battery plant
    2. For each simulated minute:
         a. feed solar, pack voltage, temperature and velocity readings
         b. run a control tick
         c. every PREDICTION_EVERY ticks, run a prediction tick
         d. integrate the battery with the load the enabled components draw
    3. Print console summary and mode-transition table
    4. Plot power flow, SoC and mode vs time

Usage:
    python simulation_runner.py
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import matplotlib.pyplot as plt
import matplotlib.ticker as mticker

from rover_power.battery_model import BatteryModel
from rover_power.config import (
    CONTROL_PERIOD_S,
    EMERGENCY_SOC_PCT,
    LOW_POWER_SOC_PCT,
    MOTORS_COMPONENT,
    NORMAL_SOC_PCT,
    PREDICTION_PERIOD_S,
    PREDICTOR_DAYLIGHT_FRACTION,
    PREDICTOR_SOL_DURATION_S,
    TOPIC_MODE,
    TOPIC_PREDICTION,
)
from rover_power.energy_state import PowerMode, mode_label
from rover_power.power_manager import PowerManager, SystemSnapshot


# ---------------------------------------------------------------------------
# Scenario parameters (execution configuration only)
# ---------------------------------------------------------------------------

DT_MIN: float = 1.0                   # one control tick per simulated minute
PREDICTION_EVERY: int = int(round(PREDICTION_PERIOD_S / CONTROL_PERIOD_S))
SOL_HOURS: float = PREDICTOR_SOL_DURATION_S / 3600.0
SUNRISE_H: float = 2.0
DAYLIGHT_H: float = SOL_HOURS * PREDICTOR_DAYLIGHT_FRACTION
PEAK_SOLAR_W: float = 160.0

BATTERY_CAPACITY_WH: float = 900.0
BATTERY_INITIAL_SOC: float = 55.0     # %
BATTERY_CHARGING_EFFICIENCY: float = 0.90

TRAVERSE_START_H: float = 5.0
TRAVERSE_END_H: float = 9.0
TRAVERSE_LINEAR_MPS: float = 0.4
TRAVERSE_ANGULAR_RPS: float = 0.15

NIGHT_TEMPERATURE_C: float = -70.0
NOON_TEMPERATURE_C: float = -5.0

PLOT_OUTPUT_FILE: str = "rover_power_sol.png"

MODE_LEVELS: dict[PowerMode, int] = {
    PowerMode.EMERGENCY: 0,
    PowerMode.HIBERNATION: 1,
    PowerMode.LOW_POWER: 2,
    PowerMode.NORMAL: 3,
}


# ---------------------------------------------------------------------------
# Time-series data container
# ---------------------------------------------------------------------------

@dataclass
class SolTimeSeries:
    """Per-tick record of the scenario. Power in W, SoC in %, time in hours."""
    time_h:          list[float] = field(default_factory=list)
    solar_w:         list[float] = field(default_factory=list)
    load_w:          list[float] = field(default_factory=list)
    allocated_w:     list[float] = field(default_factory=list)
    available_w:     list[float] = field(default_factory=list)
    soc_pct:         list[float] = field(default_factory=list)
    mode:            list[PowerMode] = field(default_factory=list)
    transitions:     list[tuple[float, PowerMode, PowerMode]] = field(default_factory=list)
    predictions:     list[str] = field(default_factory=list)
    published_modes: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Environment profiles
# ---------------------------------------------------------------------------

def solar_profile(time_h: float) -> float:
    """Half-sine array output between sunrise and sunset [W]."""
    t = time_h - SUNRISE_H
    if t < 0.0 or t > DAYLIGHT_H:
        return 0.0
    return PEAK_SOLAR_W * math.sin(math.pi * t / DAYLIGHT_H)


def temperature_profile(time_h: float) -> float:
    """Pack temperature following the solar curve [°C]."""
    fraction = solar_profile(time_h) / PEAK_SOLAR_W
    return NIGHT_TEMPERATURE_C + (NOON_TEMPERATURE_C - NIGHT_TEMPERATURE_C) * fraction


def velocity_profile(time_h: float) -> tuple[float, float]:
    """Commanded (linear_x, angular_z) for the midday traverse."""
    if TRAVERSE_START_H <= time_h < TRAVERSE_END_H:
        return TRAVERSE_LINEAR_MPS, TRAVERSE_ANGULAR_RPS
    return 0.0, 0.0


def bus_load(snapshot: SystemSnapshot) -> float:
    """Power the enabled components pull from the bus [W].

    Enabled components draw their rated power, except the motors which draw
    the last velocity-derived estimate. The pack covers whatever the array
    does not.
    """
    load_w = 0.0
    for comp in snapshot.components:
        if not comp.is_enabled:
            continue
        if comp.name == MOTORS_COMPONENT:
            load_w += snapshot.motor_demand_w or 0.0
        else:
            load_w += comp.nominal_power
    return load_w


# ---------------------------------------------------------------------------
# Simulation loop
# ---------------------------------------------------------------------------

def run_sol_simulation(duration_h: float = SOL_HOURS, dt_min: float = DT_MIN) -> SolTimeSeries:
    """Execute the sol scenario and return the recorded time series."""
    ts = SolTimeSeries()

    def publish(topic: str, value: object) -> None:
        if topic == TOPIC_MODE:
            ts.published_modes.append(str(value))
        elif topic == TOPIC_PREDICTION:
            ts.predictions.append(str(value))

    battery = BatteryModel(
        capacity_wh=BATTERY_CAPACITY_WH,
        initial_soc=BATTERY_INITIAL_SOC,
        eta=BATTERY_CHARGING_EFFICIENCY,
    )
    manager = PowerManager(publish=publish)

    dt_h = dt_min / 60.0
    n_steps = int(round(duration_h / dt_h))

    for n in range(n_steps):
        time_h = n * dt_h
        solar_w = solar_profile(time_h)

        manager.handle_solar_power(solar_w)
        manager.handle_battery_voltage(battery.terminal_voltage())
        manager.handle_temperature(temperature_profile(time_h))
        manager.handle_velocity_command(*velocity_profile(time_h))

        report = manager.control_tick()
        if report.transitioned:
            ts.transitions.append((time_h, report.previous_mode, report.mode))
        if n % PREDICTION_EVERY == 0:
            manager.prediction_tick()

        load_w = bus_load(manager.snapshot())
        step = battery.step(net_power_w=solar_w - load_w, dt_h=dt_h)

        ts.time_h.append(round(time_h, 10))
        ts.solar_w.append(solar_w)
        ts.load_w.append(load_w)
        ts.allocated_w.append(report.allocation.total_allocated_w)
        ts.available_w.append(report.available_power_w)
        ts.soc_pct.append(step.soc_pct)
        ts.mode.append(report.mode)

    return ts


# ---------------------------------------------------------------------------
# Console report
# ---------------------------------------------------------------------------

def mode_dwell_hours(ts: SolTimeSeries, dt_min: float = DT_MIN) -> dict[PowerMode, float]:
    """Hours spent in each mode over the run."""
    dwell = {mode: 0.0 for mode in PowerMode}
    for mode in ts.mode:
        dwell[mode] += dt_min / 60.0
    return dwell


def print_report(ts: SolTimeSeries) -> None:
    """Print a concise scenario summary to stdout."""
    sep = "─" * 60
    dwell = mode_dwell_hours(ts)

    print(f"\n{'═' * 60}")
    print("  ROVER POWER MANAGER — SOL SCENARIO REPORT")
    print(f"{'═' * 60}")
    print(f"  Sol length                 : {SOL_HOURS:.1f} h  (dt = {DT_MIN:.1f} min)")
    print(f"  Control ticks              : {len(ts.time_h)}")
    print(f"  Prediction ticks           : {len(ts.predictions)}")
    print(sep)
    print(f"  Peak solar generation      : {max(ts.solar_w, default=0.0):7.2f} W")
    print(f"  Peak bus load              : {max(ts.load_w, default=0.0):7.2f} W")
    print(f"  Initial / final SoC        : {BATTERY_INITIAL_SOC:6.1f} % / "
          f"{ts.soc_pct[-1] if ts.soc_pct else BATTERY_INITIAL_SOC:6.1f} %")
    print(f"  Minimum SoC                : {min(ts.soc_pct, default=BATTERY_INITIAL_SOC):6.1f} %")
    print(sep)
    print("  Time in mode")
    for mode in PowerMode:
        print(f"    {mode_label(mode):<24} : {dwell[mode]:6.2f} h")
    print(sep)
    print(f"  Mode transitions           : {len(ts.transitions)}")
    for time_h, previous, current in ts.transitions:
        print(f"    t = {time_h:6.2f} h   {mode_label(previous):>11} → {mode_label(current)}")
    if ts.predictions:
        print(sep)
        print(f"  {ts.predictions[-1]}")
    print(f"{'═' * 60}\n")


# ---------------------------------------------------------------------------
# Plots
# ---------------------------------------------------------------------------

def plot_results(ts: SolTimeSeries) -> None:
    """Render and save power flow, SoC and mode plots."""

    fig, axes = plt.subplots(3, 1, figsize=(11, 10), sharex=True)
    fig.suptitle(
        "Rover Power Manager — One Sol\n"
        f"dt = {DT_MIN:.1f} min  |  Battery = {BATTERY_CAPACITY_WH:.0f} Wh  |"
        f"  Peak solar = {PEAK_SOLAR_W:.0f} W",
        fontsize=12, fontweight="bold",
    )

    # ── Plot 1: Power flow ─────────────────────────────────────────────
    ax1 = axes[0]
    ax1.plot(ts.time_h, ts.solar_w, color="#FF9800", linewidth=2, label="Solar generation")
    ax1.plot(ts.time_h, ts.load_w, color="#2196F3", linewidth=2,
             linestyle="--", label="Bus load (enabled components)")
    ax1.plot(ts.time_h, ts.allocated_w, color="#4CAF50", linewidth=1.5,
             label="Allocated from array")
    ax1.plot(ts.time_h, ts.available_w, color="#9C27B0", linewidth=1.5,
             linestyle="-.", label="Available headroom")
    ax1.set_ylabel("Power [W]", fontsize=11)
    ax1.set_title("Plot 1 — Power Flow vs Time", fontsize=10, loc="left")
    ax1.legend(fontsize=9, loc="upper right")
    ax1.grid(True, linestyle="--", alpha=0.45)
    ax1.set_ylim(bottom=0)

    # ── Plot 2: SoC ────────────────────────────────────────────────────
    ax2 = axes[1]
    ax2.plot(ts.time_h, ts.soc_pct, color="#00BCD4", linewidth=2, label="State of Charge")
    ax2.axhline(NORMAL_SOC_PCT, color="#4CAF50", linewidth=1.0, linestyle=":",
                label=f"NORMAL above {NORMAL_SOC_PCT:.0f} %")
    ax2.axhline(LOW_POWER_SOC_PCT, color="#FF9800", linewidth=1.0, linestyle=":",
                label=f"LOW_POWER below {LOW_POWER_SOC_PCT:.0f} %")
    ax2.axhline(EMERGENCY_SOC_PCT, color="#F44336", linewidth=1.2, linestyle="--",
                label=f"EMERGENCY below {EMERGENCY_SOC_PCT:.0f} %")
    ax2.set_ylabel("State of Charge [%]", fontsize=11)
    ax2.set_title("Plot 2 — Battery SoC vs Time", fontsize=10, loc="left")
    ax2.set_ylim(0, 105)
    ax2.yaxis.set_major_formatter(mticker.PercentFormatter(xmax=100))
    ax2.legend(fontsize=9, loc="lower right")
    ax2.grid(True, linestyle="--", alpha=0.45)

    # ── Plot 3: Mode ───────────────────────────────────────────────────
    ax3 = axes[2]
    ax3.step(ts.time_h, [MODE_LEVELS[m] for m in ts.mode], where="post",
             color="#607D8B", linewidth=2)
    ax3.set_yticks(list(MODE_LEVELS.values()))
    ax3.set_yticklabels([mode_label(m) for m in MODE_LEVELS])
    ax3.set_xlabel("Sol Time [hours]", fontsize=11)
    ax3.set_title("Plot 3 — Power Mode vs Time", fontsize=10, loc="left")
    ax3.grid(True, linestyle="--", alpha=0.45)

    plt.tight_layout()
    plt.savefig(PLOT_OUTPUT_FILE, dpi=150, bbox_inches="tight")
    print(f"  [plot] Saved → {PLOT_OUTPUT_FILE}")
    plt.show()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    print("\nRunning rover power sol scenario...", flush=True)
    ts = run_sol_simulation()
    print_report(ts)
    plot_results(ts)


if __name__ == "__main__":
    main()
