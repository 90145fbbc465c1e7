"""
rover_power/energy_model.py
===========================
Rover Power Manager — Pure Electrical Relations

Rules:
    - Every function is a pure, deterministic mapping of its arguments.
    - No I/O, no logging, no mutation of the components passed in.
    - Range problems are resolved by clamping, never by raising.
"""

from __future__ import annotations

import math
from typing import Iterable

from rover_power.components import ComponentPriority, PowerComponent
from rover_power.config import (
    MOTOR_ANGULAR_COEFF_W,
    MOTOR_IDLE_POWER_W,
    MOTOR_LINEAR_COEFF_W,
    SOC_EMPTY_VOLTAGE_V,
    SOC_MAX_PCT,
    SOC_MIN_PCT,
    SOC_VOLTAGE_SPAN_V,
)


# ---------------------------------------------------------------------------
# Battery state of charge
# ---------------------------------------------------------------------------

def voltage_to_soc(voltage_v: float) -> float:
    """Map pack voltage to state of charge.

    Equation:
        SoC = clamp(((V − 24.0) / 5.4) · 100, 0, 100)

    Args:
        voltage_v: Measured pack voltage [V].

    Returns:
        State of charge [%], always within [0, 100] and non-decreasing in
        ``voltage_v``.

    Example:
        >>> voltage_to_soc(24.0), voltage_to_soc(31.0)
        (0.0, 100.0)
    """
    soc = ((voltage_v - SOC_EMPTY_VOLTAGE_V) / SOC_VOLTAGE_SPAN_V) * 100.0
    return max(SOC_MIN_PCT, min(SOC_MAX_PCT, soc))


def soc_to_voltage(soc_pct: float) -> float:
    """Inverse of :func:`voltage_to_soc`; ``soc_pct`` is clamped to [0, 100] first."""
    soc_pct = max(SOC_MIN_PCT, min(SOC_MAX_PCT, soc_pct))
    return SOC_EMPTY_VOLTAGE_V + SOC_VOLTAGE_SPAN_V * soc_pct / 100.0


# ---------------------------------------------------------------------------
# Motor draw estimate
# ---------------------------------------------------------------------------

def motor_power_from_velocity(linear_x: float, angular_z: float) -> float:
    """Estimate drive motor draw from a velocity command.

    Equation:
        P_motor = 10 + 40 · |v_x| + 20 · |ω_z|

    Args:
        linear_x:  Commanded linear speed [m/s]; sign is ignored.
        angular_z: Commanded yaw rate [rad/s]; sign is ignored.

    Returns:
        Estimated motor power [W].

    Example:
        >>> motor_power_from_velocity(0.5, -1.0)
        50.0
    """
    return (
        MOTOR_IDLE_POWER_W
        + MOTOR_LINEAR_COEFF_W * abs(linear_x)
        + MOTOR_ANGULAR_COEFF_W * abs(angular_z)
    )


# ---------------------------------------------------------------------------
# Consumption and balance
# ---------------------------------------------------------------------------

def compute_total_consumption(components: Iterable[PowerComponent]) -> float:
    """Sum ``current_power`` over enabled components [W]."""
    return sum(comp.current_power for comp in components if comp.is_enabled)


def compute_critical_consumption(components: Iterable[PowerComponent]) -> float:
    """Sum ``current_power`` over enabled CRITICAL components [W]."""
    return sum(
        comp.current_power
        for comp in components
        if comp.is_enabled and comp.priority == ComponentPriority.CRITICAL
    )


def compute_power_balance(solar_w: float, consumption_w: float) -> float:
    """Net power balance: P_balance = P_solar − P_consumption [W].

    Positive means surplus, negative means the battery is being drained.
    """
    return solar_w - consumption_w


def compute_available_power(solar_w: float, critical_w: float) -> float:
    """Headroom beyond critical-system needs.

    Equation:
        P_available = max(0, P_solar − P_critical)

    Example:
        >>> compute_available_power(10.0, 20.0)
        0.0
    """
    return max(0.0, solar_w - critical_w)


# ---------------------------------------------------------------------------
# Input plausibility
# ---------------------------------------------------------------------------

def is_valid_reading(value: float) -> bool:
    """True when ``value`` is a finite, non-negative number."""
    return is_finite_reading(value) and value >= 0.0


def is_finite_reading(value: float) -> bool:
    """True when ``value`` is a real number other than NaN or ±inf."""
    try:
        return math.isfinite(value)
    except TypeError:
        return False
