"""
rover_power/power_manager.py
============================
Rover Power Manager — Decision Engine

Owns the energy state, the component registry, the mode controller and the
predictor, and exposes them through event handlers, two tick entry points
and read-only queries. Transport and scheduling are external: the host
calls the handlers when readings arrive, calls :meth:`PowerManager.control_tick`
and :meth:`PowerManager.prediction_tick` periodically, and receives outputs
through the ``publish(topic, value)`` callable.

Control tick pipeline (strict order, under one lock):
    1. Aggregate consumption of enabled components
    2. Compute power balance  P_solar − P_consumption
    3. Decide target mode; transition if it differs (applies enable policy)
    4. Allocate generated power over the enabled set
    5. Publish available headroom

Sensor policy:
    Voltage and solar readings must be finite and non-negative; current,
    temperature and velocity components must be finite. Rejected readings
    are logged and the last good value is held.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from rover_power.components import ComponentRegistry, PowerComponent
from rover_power.config import (
    COMPONENT_CATALOG,
    MOTORS_COMPONENT,
    TOPIC_AVAILABLE_POWER,
    TOPIC_BATTERY_SOC,
    TOPIC_MODE,
    TOPIC_PREDICTION,
    ModeThresholds,
    PredictorConfig,
)
from rover_power.energy_model import (
    compute_available_power,
    compute_critical_consumption,
    compute_power_balance,
    compute_total_consumption,
    is_finite_reading,
    is_valid_reading,
    motor_power_from_velocity,
)
from rover_power.energy_predictor import EnergyPredictor, format_prediction_line
from rover_power.energy_state import EnergyState, PowerMode, mode_label
from rover_power.mode_controller import ModeController, ModeTransition
from rover_power.power_allocator import AllocationResult, allocate_power

logger = logging.getLogger(__name__)

Publisher = Callable[[str, object], None]


def _discard(topic: str, value: object) -> None:
    pass


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TickReport:
    """Result of one control tick.

    Attributes:
        mode:                 Mode after the tick.
        previous_mode:        Mode before the tick.
        transitioned:         True if the tick changed the mode.
        power_consumption_w:  Aggregated enabled draw used for the decision [W].
        power_balance_w:      Balance used for the decision [W].
        allocation:           Allocator outcome for this tick.
        available_power_w:    Published headroom [W].
    """
    mode:                PowerMode
    previous_mode:       PowerMode
    transitioned:        bool
    power_consumption_w: float
    power_balance_w:     float
    allocation:          AllocationResult
    available_power_w:   float


@dataclass(frozen=True)
class SystemSnapshot:
    """Detached copy of the engine state; safe to keep or mutate."""
    energy:           EnergyState
    components:       tuple[PowerComponent, ...]
    motor_demand_w:   Optional[float]
    transition_count: int


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class PowerManager:
    """Power-budgeting decision engine.

    Every public method takes the same re-entrant lock, so event handlers
    never interleave with an in-progress tick.

    Args:
        catalog:           Component catalog rows; defaults to the rover catalog.
        thresholds:        Mode transition thresholds.
        predictor_config:  Forecast assumptions.
        publish:           Output sink called as ``publish(topic, value)``.
        initial_state:     Starting energy state, copied; its mode is the startup mode.
    """

    def __init__(
        self,
        catalog: Iterable[tuple[str, int, float, float, bool]] = COMPONENT_CATALOG,
        thresholds: Optional[ModeThresholds] = None,
        predictor_config: Optional[PredictorConfig] = None,
        publish: Optional[Publisher] = None,
        initial_state: Optional[EnergyState] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._publish: Publisher = publish if publish is not None else _discard
        self._state = copy.copy(initial_state) if initial_state is not None else EnergyState()
        self._registry = ComponentRegistry.from_catalog(catalog)
        self._controller = ModeController(
            self._registry,
            self._state,
            thresholds if thresholds is not None else ModeThresholds(),
            on_transition=self._on_transition,
            initial_mode=self._state.mode,
        )
        self._predictor = EnergyPredictor(predictor_config)
        self._motor_demand_w: Optional[float] = None
        self._rejected_readings: int = 0

        logger.info(
            "PowerManager initialized: %d components, mode %s, SoC %.1f%%",
            len(self._registry), mode_label(self._state.mode), self._state.battery_soc,
        )

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def handle_battery_voltage(self, voltage_v: float) -> bool:
        """Store a pack voltage reading and publish the derived SoC.

        Returns:
            False if the reading was rejected.
        """
        with self._lock:
            if not is_valid_reading(voltage_v):
                return self._reject("battery voltage", voltage_v, self._state.voltage)
            self._state.voltage = float(voltage_v)
            self._publish(TOPIC_BATTERY_SOC, self._state.battery_soc)
        return True

    def handle_solar_power(self, power_w: float) -> bool:
        """Store a solar array output reading."""
        with self._lock:
            if not is_valid_reading(power_w):
                return self._reject("solar power", power_w, self._state.solar_generation)
            self._state.solar_generation = float(power_w)
        return True

    def handle_battery_current(self, current_a: float) -> bool:
        """Store a signed pack current reading."""
        with self._lock:
            if not is_finite_reading(current_a):
                return self._reject("battery current", current_a, self._state.current)
            self._state.current = float(current_a)
        return True

    def handle_temperature(self, temperature_c: float) -> bool:
        """Store a pack temperature reading."""
        with self._lock:
            if not is_finite_reading(temperature_c):
                return self._reject("temperature", temperature_c, self._state.temperature)
            self._state.temperature = float(temperature_c)
        return True

    def handle_velocity_command(self, linear_x: float, angular_z: float) -> bool:
        """Override the motors' draw with a velocity-derived estimate.

        The value is written straight into ``current_power`` so the next
        control tick counts it toward consumption; that tick's allocation
        pass then replaces it.
        """
        with self._lock:
            if not (is_finite_reading(linear_x) and is_finite_reading(angular_z)):
                return self._reject(
                    "velocity command", (linear_x, angular_z), self._motor_demand_w
                )
            if MOTORS_COMPONENT not in self._registry:
                logger.debug("Velocity command ignored; no %r component", MOTORS_COMPONENT)
                return False
            motor_power_w = motor_power_from_velocity(linear_x, angular_z)
            self._registry.get(MOTORS_COMPONENT).current_power = motor_power_w
            self._motor_demand_w = motor_power_w
        return True

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def control_tick(self) -> TickReport:
        """Run one decision and allocation cycle and publish the headroom."""
        with self._lock:
            consumption_w = compute_total_consumption(self._registry)
            self._state.power_consumption = consumption_w
            balance_w = compute_power_balance(self._state.solar_generation, consumption_w)

            previous = self._controller.current_mode
            target = self._controller.evaluate(
                self._state.battery_soc, balance_w, self._state.solar_generation
            )
            transitioned = self._controller.set_mode(target)

            allocation = allocate_power(self._registry, self._state.solar_generation)
            available_w = self._available_power()
            self._publish(TOPIC_AVAILABLE_POWER, available_w)

            return TickReport(
                mode=self._controller.current_mode,
                previous_mode=previous,
                transitioned=transitioned,
                power_consumption_w=consumption_w,
                power_balance_w=balance_w,
                allocation=allocation,
                available_power_w=available_w,
            )

    def prediction_tick(self) -> str:
        """Produce, log and publish the advisory sol forecast line."""
        with self._lock:
            prediction = self._predictor.predict()
            line = format_prediction_line(
                prediction, self._state.battery_soc, self._controller.current_mode
            )
            logger.info(line)
            self._publish(TOPIC_PREDICTION, line)
            return line

    # ------------------------------------------------------------------
    # Queries and commands
    # ------------------------------------------------------------------

    def set_mode(self, mode: PowerMode) -> bool:
        """Force a mode; a request for the current mode is a no-op."""
        with self._lock:
            return self._controller.set_mode(mode)

    def get_available_power(self) -> float:
        """Headroom beyond enabled CRITICAL consumption, never negative [W]."""
        with self._lock:
            return self._available_power()

    def snapshot(self) -> SystemSnapshot:
        with self._lock:
            return SystemSnapshot(
                energy=copy.copy(self._state),
                components=tuple(copy.copy(comp) for comp in self._registry),
                motor_demand_w=self._motor_demand_w,
                transition_count=self._controller.transition_count,
            )

    @property
    def current_mode(self) -> PowerMode:
        with self._lock:
            return self._controller.current_mode

    @property
    def battery_soc(self) -> float:
        with self._lock:
            return self._state.battery_soc

    @property
    def transitions(self) -> list[ModeTransition]:
        with self._lock:
            return self._controller.history

    @property
    def policy_applications(self) -> int:
        with self._lock:
            return self._controller.policy_applications

    @property
    def rejected_readings(self) -> int:
        with self._lock:
            return self._rejected_readings

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _available_power(self) -> float:
        critical_w = compute_critical_consumption(self._registry)
        return compute_available_power(self._state.solar_generation, critical_w)

    def _on_transition(self, transition: ModeTransition) -> None:
        self._publish(TOPIC_MODE, mode_label(transition.current))

    def _reject(self, kind: str, value: object, held: object) -> bool:
        # caller holds the lock
        self._rejected_readings += 1
        logger.warning("Rejected %s reading %r; holding %r", kind, value, held)
        return False
