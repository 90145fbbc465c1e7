"""
rover_power/energy_state.py
===========================
Rover Power Manager — Energy State Model

Holds the latest measured and derived electrical / thermal readings plus
the active power mode. Battery SoC is derived from the voltage reading on
every access and cannot be assigned.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from rover_power.config import (
    INITIAL_CURRENT_A,
    INITIAL_SOLAR_W,
    INITIAL_TEMPERATURE_C,
    INITIAL_VOLTAGE_V,
)
from rover_power.energy_model import voltage_to_soc


class PowerMode(str, Enum):
    """Discrete power postures; exactly one is active at any time."""

    NORMAL = "NORMAL"
    LOW_POWER = "LOW_POWER"
    HIBERNATION = "HIBERNATION"
    EMERGENCY = "EMERGENCY"


UNKNOWN_MODE_LABEL: str = "UNKNOWN"


def mode_label(mode: object) -> str:
    """Return the output label for ``mode``, or ``"UNKNOWN"`` if it is not a PowerMode.

    Example:
        >>> mode_label(PowerMode.LOW_POWER)
        'LOW_POWER'
        >>> mode_label(None)
        'UNKNOWN'
    """
    if isinstance(mode, PowerMode):
        return mode.value
    return UNKNOWN_MODE_LABEL


@dataclass
class EnergyState:
    """Snapshot of the rover's electrical and thermal condition.

    Attributes:
        voltage:            Latest pack voltage [V].
        current:            Latest pack current [A]; signed.
        power_consumption:  Sum of enabled component draw [W].
        solar_generation:   Latest solar array output [W].
        temperature:        Latest pack temperature [°C].
        mode:               Active power mode (mirrors the controller).
    """
    voltage:           float = INITIAL_VOLTAGE_V
    current:           float = INITIAL_CURRENT_A
    power_consumption: float = 0.0
    solar_generation:  float = INITIAL_SOLAR_W
    temperature:       float = INITIAL_TEMPERATURE_C
    mode:              PowerMode = PowerMode.NORMAL

    @property
    def battery_soc(self) -> float:
        """State of charge derived from :attr:`voltage` [%], clamped to [0, 100]."""
        return voltage_to_soc(self.voltage)
