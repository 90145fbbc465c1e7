"""
rover_power/config.py
=====================
Rover Power Manager — System Constants

Fixed thresholds, electrical maps, forecast assumptions and the onboard
component catalog used by the power-budgeting core.

Rules:
    - No calculations or control logic here.
    - Power in Watts [W], energy in Watt-hours [Wh], voltage in Volts [V],
      time in seconds [s] unless the name says otherwise.
    - SoC is a percentage in [0, 100] throughout this package.
    - Startup overrides are expressed as frozen dataclasses whose defaults
      are the constants below; the defaults reproduce the fixed behaviour.
"""

from __future__ import annotations

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Mode Controller thresholds
# ---------------------------------------------------------------------------

EMERGENCY_SOC_PCT: float = 15.0
"""SoC below which EMERGENCY is forced regardless of any other input (%)."""

HIBERNATION_SOLAR_W: float = 5.0
"""Solar generation below which generation is considered collapsed (W)."""

HIBERNATION_SOC_PCT: float = 50.0
"""SoC below which collapsed generation leads to HIBERNATION (%)."""

LOW_POWER_SOC_PCT: float = 30.0
"""SoC below which LOW_POWER is selected (%)."""

LOW_POWER_BALANCE_W: float = -10.0
"""Net power balance below which LOW_POWER is selected (W)."""

NORMAL_SOC_PCT: float = 40.0
"""SoC above which NORMAL may be restored (%)."""

NORMAL_BALANCE_W: float = 0.0
"""Net power balance above which NORMAL may be restored (W)."""

LOW_POWER_DISABLED_COMPONENTS: tuple[str, ...] = ("cameras",)
"""Components switched off in LOW_POWER regardless of their priority class."""


# ---------------------------------------------------------------------------
# Battery state-of-charge map
# ---------------------------------------------------------------------------

SOC_EMPTY_VOLTAGE_V: float = 24.0
"""Pack voltage mapped to 0 % SoC (V)."""

SOC_VOLTAGE_SPAN_V: float = 5.4
"""Voltage span from empty to full; 24.0 V + 5.4 V = 29.4 V maps to 100 % (V)."""

SOC_MIN_PCT: float = 0.0
SOC_MAX_PCT: float = 100.0


# ---------------------------------------------------------------------------
# Motor power model (velocity command → estimated draw)
# ---------------------------------------------------------------------------

MOTOR_IDLE_POWER_W: float = 10.0
"""Motor controller draw with zero commanded velocity (W)."""

MOTOR_LINEAR_COEFF_W: float = 40.0
"""Additional draw per m/s of commanded linear speed (W per m/s)."""

MOTOR_ANGULAR_COEFF_W: float = 20.0
"""Additional draw per rad/s of commanded yaw rate (W per rad/s)."""

MOTORS_COMPONENT: str = "motors"
"""Registry name of the component overridden by velocity commands."""


# ---------------------------------------------------------------------------
# Energy Predictor assumptions
# ---------------------------------------------------------------------------

PREDICTOR_AVG_GENERATION_W: float = 80.0
"""Average solar generation while the sun is up (W)."""

PREDICTOR_SOL_DURATION_S: float = 24.6 * 3600.0
"""Duration of one full day/night cycle (s)."""

PREDICTOR_DAYLIGHT_FRACTION: float = 0.5
"""Fraction of the sol with usable sunlight (dimensionless, 0.0–1.0)."""

PREDICTOR_AVG_CONSUMPTION_W: float = 40.0
"""Average platform consumption (W)."""


# ---------------------------------------------------------------------------
# Initial energy state
# ---------------------------------------------------------------------------

INITIAL_VOLTAGE_V: float = 29.4
"""Startup pack voltage; maps to 100 % SoC (V)."""

INITIAL_CURRENT_A: float = 0.0
INITIAL_SOLAR_W: float = 0.0
INITIAL_TEMPERATURE_C: float = 20.0


# ---------------------------------------------------------------------------
# Scheduling and outputs (host collaborator contract)
# ---------------------------------------------------------------------------

CONTROL_PERIOD_S: float = 0.1
"""Control tick period: consumption → mode decision → allocation → headroom (s)."""

PREDICTION_PERIOD_S: float = 1.0
"""Prediction tick period for the advisory forecast (s)."""

MODE_HISTORY_LENGTH: int = 64
"""Number of mode transitions retained for inspection."""

TOPIC_MODE: str = "power/mode"
TOPIC_BATTERY_SOC: str = "power/battery_soc"
TOPIC_AVAILABLE_POWER: str = "power/available_power"
TOPIC_PREDICTION: str = "power/prediction"


# ---------------------------------------------------------------------------
# Component catalog
# ---------------------------------------------------------------------------

# Each entry is (name, priority, nominal_power_W, initial_power_W, is_essential).
# Priority is the integer class: 0 CRITICAL, 1 HIGH, 2 MEDIUM, 3 LOW.
# Registry order is the order below; it breaks allocation ties.
COMPONENT_CATALOG: list[tuple[str, int, float, float, bool]] = [
    ("communication",       0, 15.0, 15.0, True),
    ("fdir_watchdog",       0,  5.0,  5.0, True),
    ("navigation",          1, 25.0, 25.0, True),
    ("motors",              1, 50.0,  0.0, True),
    ("lidar",               2, 20.0, 20.0, False),
    ("cameras",             2, 15.0, 15.0, False),
    ("science_instruments", 3, 30.0,  0.0, False),
    ("heating",             2, 40.0,  0.0, False),
]


# ---------------------------------------------------------------------------
# Startup configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModeThresholds:
    """Threshold set evaluated by the mode transition function.

    Attributes:
        emergency_soc:        SoC below which EMERGENCY is forced [%].
        hibernation_solar_w:  Generation collapse threshold [W].
        hibernation_soc:      SoC ceiling for HIBERNATION on collapse [%].
        low_power_soc:        SoC below which LOW_POWER is selected [%].
        low_power_balance_w:  Net balance below which LOW_POWER is selected [W].
        normal_soc:           SoC above which NORMAL may be restored [%].
        normal_balance_w:     Net balance above which NORMAL may be restored [W].
    """
    emergency_soc:       float = EMERGENCY_SOC_PCT
    hibernation_solar_w: float = HIBERNATION_SOLAR_W
    hibernation_soc:     float = HIBERNATION_SOC_PCT
    low_power_soc:       float = LOW_POWER_SOC_PCT
    low_power_balance_w: float = LOW_POWER_BALANCE_W
    normal_soc:          float = NORMAL_SOC_PCT
    normal_balance_w:    float = NORMAL_BALANCE_W

    def __post_init__(self) -> None:
        if self.normal_soc < self.low_power_soc:
            raise ValueError(
                f"normal_soc must not be below low_power_soc; received "
                f"normal_soc={self.normal_soc!r}, low_power_soc={self.low_power_soc!r}"
            )
        if self.hibernation_solar_w < 0.0:
            raise ValueError(
                f"hibernation_solar_w must be non-negative; "
                f"received hibernation_solar_w={self.hibernation_solar_w!r}"
            )


@dataclass(frozen=True)
class PredictorConfig:
    """Fixed average-rate assumptions for the advisory sol forecast.

    Attributes:
        avg_generation_w:   Average generation while the sun is up [W].
        avg_consumption_w:  Average platform consumption [W].
        sol_duration_s:     Full day/night cycle duration [s].
        daylight_fraction:  Fraction of the sol with sunlight [0.0–1.0].
    """
    avg_generation_w:  float = PREDICTOR_AVG_GENERATION_W
    avg_consumption_w: float = PREDICTOR_AVG_CONSUMPTION_W
    sol_duration_s:    float = PREDICTOR_SOL_DURATION_S
    daylight_fraction: float = PREDICTOR_DAYLIGHT_FRACTION

    def __post_init__(self) -> None:
        if self.sol_duration_s <= 0.0:
            raise ValueError(
                f"Sol duration must be positive; received sol_duration_s={self.sol_duration_s!r}"
            )
        if not (0.0 <= self.daylight_fraction <= 1.0):
            raise ValueError(
                f"Daylight fraction must be in [0.0, 1.0]; "
                f"received daylight_fraction={self.daylight_fraction!r}"
            )
        if self.avg_generation_w < 0.0 or self.avg_consumption_w < 0.0:
            raise ValueError(
                f"Average rates must be non-negative; received "
                f"avg_generation_w={self.avg_generation_w!r}, "
                f"avg_consumption_w={self.avg_consumption_w!r}"
            )
