"""
tests/test_power_manager.py
===========================
Rover Power Manager — Integration Tests for the Decision Engine

Drives the engine through its event handlers and tick entry points and
checks the published outputs, the tick pipeline order and the sensor
rejection policy.
"""

import logging
import math
import threading

import pytest

from rover_power.config import (
    TOPIC_AVAILABLE_POWER,
    TOPIC_BATTERY_SOC,
    TOPIC_MODE,
    TOPIC_PREDICTION,
)
from rover_power.energy_state import EnergyState, PowerMode
from rover_power.power_manager import PowerManager


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

class Recorder:
    """Collects published ``(topic, value)`` pairs."""

    def __init__(self):
        self.messages = []

    def __call__(self, topic, value):
        self.messages.append((topic, value))

    def on(self, topic):
        return [value for t, value in self.messages if t == topic]


@pytest.fixture
def outputs():
    return Recorder()


@pytest.fixture
def manager(outputs):
    return PowerManager(publish=outputs)


def soc_voltage(soc):
    return 24.0 + 5.4 * soc / 100.0


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------

class TestStartup:

    def test_starts_normal_with_full_charge(self, manager):
        assert manager.current_mode is PowerMode.NORMAL
        assert manager.battery_soc == pytest.approx(100.0, rel=1e-6)

    def test_nothing_published_at_startup(self, outputs, manager):
        assert outputs.messages == []

    def test_initial_state_mode_is_startup_mode(self):
        mgr = PowerManager(initial_state=EnergyState(mode=PowerMode.LOW_POWER))
        assert mgr.current_mode is PowerMode.LOW_POWER

    def test_initial_state_is_copied(self):
        state = EnergyState()
        mgr = PowerManager(initial_state=state)
        state.mode = PowerMode.EMERGENCY
        state.voltage = 24.0
        snap = mgr.snapshot()
        assert snap.energy.mode is mgr.current_mode
        assert mgr.current_mode is PowerMode.NORMAL
        assert mgr.battery_soc == pytest.approx(100.0, rel=1e-6)

    def test_snapshot_is_detached(self, manager):
        snap = manager.snapshot()
        snap.energy.voltage = 0.0
        snap.components[0].is_enabled = False
        fresh = manager.snapshot()
        assert fresh.energy.voltage == pytest.approx(29.4)
        assert fresh.components[0].is_enabled is True


# ---------------------------------------------------------------------------
# Event handlers
# ---------------------------------------------------------------------------

class TestSensorHandlers:

    def test_voltage_publishes_soc_every_update(self, manager, outputs):
        manager.handle_battery_voltage(26.7)
        manager.handle_battery_voltage(26.7)
        socs = outputs.on(TOPIC_BATTERY_SOC)
        assert len(socs) == 2
        assert socs[0] == pytest.approx(50.0, rel=1e-6)

    def test_voltage_clamps_soc(self, manager):
        manager.handle_battery_voltage(40.0)
        assert manager.battery_soc == 100.0
        manager.handle_battery_voltage(10.0)
        assert manager.battery_soc == 0.0

    def test_solar_overwrites_generation(self, manager):
        manager.handle_solar_power(42.5)
        assert manager.snapshot().energy.solar_generation == 42.5

    def test_current_and_temperature(self, manager):
        assert manager.handle_battery_current(-3.2) is True
        assert manager.handle_temperature(-65.0) is True
        energy = manager.snapshot().energy
        assert energy.current == -3.2
        assert energy.temperature == -65.0

    @pytest.mark.parametrize("bad", [math.nan, math.inf, -1.0])
    def test_invalid_voltage_is_rejected_and_held(self, manager, outputs, bad, caplog):
        manager.handle_battery_voltage(26.7)
        with caplog.at_level(logging.WARNING, logger="rover_power.power_manager"):
            assert manager.handle_battery_voltage(bad) is False
        assert manager.battery_soc == pytest.approx(50.0, rel=1e-6)
        assert len(outputs.on(TOPIC_BATTERY_SOC)) == 1
        assert manager.rejected_readings == 1
        assert "Rejected battery voltage" in caplog.text

    def test_invalid_solar_is_rejected(self, manager):
        manager.handle_solar_power(30.0)
        assert manager.handle_solar_power(math.nan) is False
        assert manager.snapshot().energy.solar_generation == 30.0

    def test_non_finite_temperature_rejected(self, manager):
        assert manager.handle_temperature(math.nan) is False
        assert manager.snapshot().energy.temperature == 20.0

    def test_rejection_waits_for_in_progress_tick(self, manager):
        worker = threading.Thread(target=manager.handle_battery_voltage, args=(math.nan,))
        with manager._lock:
            worker.start()
            worker.join(timeout=0.2)
            assert worker.is_alive()
        worker.join(timeout=5.0)
        assert not worker.is_alive()
        assert manager.rejected_readings == 1


class TestVelocityOverride:

    def test_override_writes_motor_draw(self, manager):
        manager.handle_velocity_command(0.5, -1.0)
        snap = manager.snapshot()
        motors = next(comp for comp in snap.components if comp.name == "motors")
        assert motors.current_power == pytest.approx(50.0)
        assert snap.motor_demand_w == pytest.approx(50.0)

    def test_override_counts_toward_next_tick_consumption(self, manager):
        manager.handle_solar_power(500.0)
        manager.handle_velocity_command(1.0, 0.0)   # 50 W
        report = manager.control_tick()
        # 15 + 5 + 25 + 50 + 20 + 15 + 0 + 0
        assert report.power_consumption_w == pytest.approx(130.0)

    def test_allocator_reconciles_override(self, manager):
        manager.handle_solar_power(55.0)             # 45 W to CRITICAL + navigation
        manager.handle_velocity_command(1.0, 1.0)   # 70 W, above nominal
        manager.control_tick()
        motors = next(c for c in manager.snapshot().components if c.name == "motors")
        assert motors.current_power == pytest.approx(10.0)

    def test_non_finite_command_rejected(self, manager):
        assert manager.handle_velocity_command(math.nan, 0.0) is False
        assert manager.snapshot().motor_demand_w is None

    def test_catalog_without_motors_ignores_command(self):
        mgr = PowerManager(catalog=[("communication", 0, 15.0, 15.0, True)])
        assert mgr.handle_velocity_command(0.5, 0.0) is False


# ---------------------------------------------------------------------------
# Control tick
# ---------------------------------------------------------------------------

class TestControlTick:

    def test_healthy_tick_stays_normal(self, manager, outputs):
        manager.handle_solar_power(250.0)
        report = manager.control_tick()
        assert report.mode is PowerMode.NORMAL
        assert report.transitioned is False
        assert outputs.on(TOPIC_MODE) == []
        assert report.power_balance_w == pytest.approx(250.0 - 80.0)

    def test_headroom_published_every_tick(self, manager, outputs):
        manager.handle_solar_power(100.0)
        manager.control_tick()
        manager.control_tick()
        headroom = outputs.on(TOPIC_AVAILABLE_POWER)
        assert headroom == [pytest.approx(80.0), pytest.approx(80.0)]

    def test_low_soc_transitions_to_emergency(self, manager, outputs):
        manager.handle_solar_power(100.0)
        manager.handle_battery_voltage(soc_voltage(10.0))
        report = manager.control_tick()
        assert report.transitioned is True
        assert report.previous_mode is PowerMode.NORMAL
        assert report.mode is PowerMode.EMERGENCY
        assert outputs.on(TOPIC_MODE) == ["EMERGENCY"]
        enabled = {c.name for c in manager.snapshot().components if c.is_enabled}
        assert enabled == {"communication", "fdir_watchdog"}

    def test_allocation_runs_over_post_transition_set(self, manager):
        manager.handle_solar_power(100.0)
        manager.handle_battery_voltage(soc_voltage(10.0))
        report = manager.control_tick()
        assert set(report.allocation.as_dict()) == {"communication", "fdir_watchdog"}
        assert report.allocation.unallocated_w == pytest.approx(80.0)

    def test_mode_published_only_on_transition(self, manager, outputs):
        manager.handle_solar_power(100.0)
        manager.handle_battery_voltage(soc_voltage(10.0))
        for _ in range(5):
            manager.control_tick()
        assert outputs.on(TOPIC_MODE) == ["EMERGENCY"]
        assert manager.policy_applications == 1

    def test_night_with_half_charge_hibernates(self, manager):
        manager.handle_solar_power(0.0)
        manager.handle_battery_voltage(soc_voltage(45.0))
        assert manager.control_tick().mode is PowerMode.HIBERNATION

    def test_drain_selects_low_power_then_recovers(self, manager, outputs):
        manager.handle_battery_voltage(soc_voltage(80.0))
        manager.handle_solar_power(60.0)                 # 60 − 80 = −20 W
        assert manager.control_tick().mode is PowerMode.LOW_POWER
        manager.handle_solar_power(300.0)
        assert manager.control_tick().mode is PowerMode.NORMAL
        assert outputs.on(TOPIC_MODE) == ["LOW_POWER", "NORMAL"]

    def test_dead_band_holds_mode(self, manager):
        manager.handle_battery_voltage(soc_voltage(35.0))
        manager.handle_solar_power(80.0)                 # balance exactly 0 W
        report = manager.control_tick()
        assert report.power_balance_w == pytest.approx(0.0)
        assert report.mode is PowerMode.NORMAL

    def test_headroom_never_negative(self, manager):
        manager.handle_solar_power(3.0)
        report = manager.control_tick()
        assert report.available_power_w >= 0.0
        assert manager.get_available_power() >= 0.0

    def test_headroom_ignores_non_critical_load(self, manager):
        manager.handle_solar_power(200.0)
        manager.control_tick()
        assert manager.get_available_power() == pytest.approx(180.0)


# ---------------------------------------------------------------------------
# Commands, prediction and locking
# ---------------------------------------------------------------------------

class TestCommandsAndPrediction:

    def test_set_mode_publishes_once(self, manager, outputs):
        assert manager.set_mode(PowerMode.LOW_POWER) is True
        assert manager.set_mode(PowerMode.LOW_POWER) is False
        assert outputs.on(TOPIC_MODE) == ["LOW_POWER"]
        assert len(manager.transitions) == 1

    def test_prediction_tick_publishes_line(self, manager, outputs, caplog):
        with caplog.at_level(logging.INFO, logger="rover_power.power_manager"):
            line = manager.prediction_tick()
        assert line.startswith("Energy prediction for next sol: 492.00 Wh")
        assert "Current SOC: 100.0%" in line
        assert line.endswith("Mode: NORMAL")
        assert outputs.on(TOPIC_PREDICTION) == [line]
        assert line in caplog.text

    def test_prediction_does_not_change_mode(self, manager):
        manager.prediction_tick()
        assert manager.current_mode is PowerMode.NORMAL
        assert manager.snapshot().transition_count == 0

    def test_concurrent_handlers_and_ticks(self, manager):
        errors = []

        def feed():
            try:
                for i in range(200):
                    manager.handle_battery_voltage(24.0 + (i % 50) * 0.1)
                    manager.handle_solar_power(float(i % 120))
                    manager.handle_velocity_command(0.2, 0.1)
            except Exception as exc:
                errors.append(exc)

        def tick():
            try:
                for _ in range(200):
                    report = manager.control_tick()
                    assert report.allocation.total_allocated_w <= report.allocation.budget_w + 1e-9
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=feed), threading.Thread(target=tick)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []
