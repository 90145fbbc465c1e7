"""
tests/test_energy_model.py
==========================
Rover Power Manager — Unit Tests for Electrical Relations

Verifies the SoC voltage map, the motor draw estimate, consumption sums and
the headroom query against hand-computed values.

All tests use pytest.approx() so that float arithmetic in the linear map
does not cause spurious failures.
"""

import math

import pytest

from rover_power.components import ComponentPriority, ComponentRegistry, PowerComponent
from rover_power.config import COMPONENT_CATALOG
from rover_power.energy_model import (
    compute_available_power,
    compute_critical_consumption,
    compute_power_balance,
    compute_total_consumption,
    is_finite_reading,
    is_valid_reading,
    motor_power_from_velocity,
    soc_to_voltage,
    voltage_to_soc,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def registry():
    return ComponentRegistry.from_catalog(COMPONENT_CATALOG)


# ---------------------------------------------------------------------------
# SoC voltage map
# ---------------------------------------------------------------------------

class TestVoltageToSoc:
    """SoC = clamp(((V − 24.0) / 5.4) · 100, 0, 100)"""

    def test_empty_voltage_is_zero(self):
        assert voltage_to_soc(24.0) == pytest.approx(0.0, abs=1e-9)

    def test_full_voltage_is_hundred(self):
        assert voltage_to_soc(29.4) == pytest.approx(100.0, rel=1e-6)

    def test_mid_voltage_is_half(self):
        assert voltage_to_soc(26.7) == pytest.approx(50.0, rel=1e-6)

    def test_clamped_below_empty(self):
        assert voltage_to_soc(12.0) == 0.0

    def test_clamped_above_full(self):
        assert voltage_to_soc(35.0) == 100.0

    def test_monotonic_and_bounded(self):
        voltages = [20.0 + 0.05 * i for i in range(250)]
        socs = [voltage_to_soc(v) for v in voltages]
        assert all(0.0 <= s <= 100.0 for s in socs)
        assert all(b >= a for a, b in zip(socs, socs[1:]))

    def test_soc_to_voltage_inverts_map(self):
        for soc in (0.0, 12.5, 50.0, 87.0, 100.0):
            assert voltage_to_soc(soc_to_voltage(soc)) == pytest.approx(soc, abs=1e-9)

    def test_soc_to_voltage_clamps_input(self):
        assert soc_to_voltage(150.0) == pytest.approx(29.4, rel=1e-9)
        assert soc_to_voltage(-5.0) == pytest.approx(24.0, rel=1e-9)


# ---------------------------------------------------------------------------
# Motor draw estimate
# ---------------------------------------------------------------------------

class TestMotorPower:
    """P_motor = 10 + 40 · |v_x| + 20 · |ω_z|"""

    def test_idle_draw(self):
        assert motor_power_from_velocity(0.0, 0.0) == pytest.approx(10.0)

    def test_forward_and_turn(self):
        assert motor_power_from_velocity(0.5, 1.0) == pytest.approx(50.0)

    def test_sign_is_ignored(self):
        assert motor_power_from_velocity(-0.5, -1.0) == motor_power_from_velocity(0.5, 1.0)


# ---------------------------------------------------------------------------
# Consumption, balance and headroom
# ---------------------------------------------------------------------------

class TestConsumption:

    def test_total_consumption_of_default_catalog(self, registry):
        # 15 + 5 + 25 + 0 + 20 + 15 + 0 + 0
        assert compute_total_consumption(registry) == pytest.approx(80.0)

    def test_disabled_components_do_not_count(self, registry):
        registry.get("lidar").is_enabled = False
        registry.get("communication").is_enabled = False
        assert compute_total_consumption(registry) == pytest.approx(45.0)

    def test_no_enabled_components_is_zero(self, registry):
        registry.set_enabled_from(lambda comp: False)
        assert compute_total_consumption(registry) == 0.0

    def test_critical_consumption_only_counts_critical(self, registry):
        assert compute_critical_consumption(registry) == pytest.approx(20.0)

    def test_critical_consumption_skips_disabled(self, registry):
        registry.get("fdir_watchdog").is_enabled = False
        assert compute_critical_consumption(registry) == pytest.approx(15.0)

    def test_power_balance(self):
        assert compute_power_balance(100.0, 80.0) == pytest.approx(20.0)
        assert compute_power_balance(0.0, 80.0) == pytest.approx(-80.0)


class TestAvailablePower:
    """P_available = max(0, P_solar − P_critical)"""

    def test_positive_headroom(self):
        assert compute_available_power(100.0, 20.0) == pytest.approx(80.0)

    def test_never_negative(self):
        assert compute_available_power(10.0, 20.0) == 0.0

    def test_independent_of_non_critical_load(self):
        comps = [
            PowerComponent("comm", ComponentPriority.CRITICAL, 15.0, 15.0),
            PowerComponent("heater", ComponentPriority.MEDIUM, 40.0, 40.0),
        ]
        critical = compute_critical_consumption(comps)
        assert compute_available_power(50.0, critical) == pytest.approx(35.0)


# ---------------------------------------------------------------------------
# Reading plausibility
# ---------------------------------------------------------------------------

class TestReadingChecks:

    @pytest.mark.parametrize("value", [0.0, 1.5, 28.0])
    def test_valid_readings(self, value):
        assert is_valid_reading(value) is True

    @pytest.mark.parametrize("value", [-0.1, math.nan, math.inf, -math.inf, None, "28"])
    def test_invalid_readings(self, value):
        assert is_valid_reading(value) is False

    def test_finite_allows_negative(self):
        assert is_finite_reading(-40.0) is True
        assert is_finite_reading(math.nan) is False
