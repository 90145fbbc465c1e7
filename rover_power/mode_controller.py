"""
rover_power/mode_controller.py
==============================
Rover Power Manager — Power Mode State Machine

Transition rules, evaluated in fixed order every control tick (first match wins):

    1. SoC < 15 %                                 → EMERGENCY
    2. P_solar < 5 W  and  SoC < 50 %             → HIBERNATION
    3. SoC < 30 %  or  P_balance < −10 W          → LOW_POWER
    4. SoC > 40 %  and  P_balance > 0 W           → NORMAL
    5. otherwise                                  → stay in the current mode

Rule 5 is the dead band (≈30–40 % SoC, near-zero balance) that prevents
mode chatter. Modes are not ordered by severity; any mode may follow any
other.

Enable/disable policy per target mode:
    NORMAL       every component enabled
    LOW_POWER    LOW-priority components and ``cameras`` disabled
    HIBERNATION  components neither CRITICAL nor essential disabled
    EMERGENCY    only CRITICAL components enabled
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from rover_power.components import ComponentPriority, ComponentRegistry, PowerComponent
from rover_power.config import (
    LOW_POWER_DISABLED_COMPONENTS,
    MODE_HISTORY_LENGTH,
    ModeThresholds,
)
from rover_power.energy_model import compute_power_balance, compute_total_consumption
from rover_power.energy_state import EnergyState, PowerMode, mode_label

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS = ModeThresholds()


# ---------------------------------------------------------------------------
# Transition function
# ---------------------------------------------------------------------------

def determine_target_mode(
    soc: float,
    power_balance: float,
    solar_generation: float,
    current_mode: PowerMode,
    thresholds: ModeThresholds = DEFAULT_THRESHOLDS,
) -> PowerMode:
    """Select the power mode for the given energy conditions.

    Pure function: no state is read or written besides the arguments.

    Args:
        soc:               Battery state of charge [%].
        power_balance:     P_solar − P_consumption [W].
        solar_generation:  Solar array output [W].
        current_mode:      Mode returned when no rule matches.
        thresholds:        Threshold set; defaults to the fixed values.

    Returns:
        The target :class:`PowerMode`.

    Example:
        >>> determine_target_mode(35.0, 0.0, 50.0, PowerMode.NORMAL)
        <PowerMode.NORMAL: 'NORMAL'>
    """
    if soc < thresholds.emergency_soc:
        return PowerMode.EMERGENCY

    if solar_generation < thresholds.hibernation_solar_w and soc < thresholds.hibernation_soc:
        return PowerMode.HIBERNATION

    if soc < thresholds.low_power_soc or power_balance < thresholds.low_power_balance_w:
        return PowerMode.LOW_POWER

    if soc > thresholds.normal_soc and power_balance > thresholds.normal_balance_w:
        return PowerMode.NORMAL

    return current_mode


# ---------------------------------------------------------------------------
# Enable/disable policies, one pure function per mode
# ---------------------------------------------------------------------------

def normal_policy(comp: PowerComponent) -> bool:
    return True


def low_power_policy(comp: PowerComponent) -> bool:
    if comp.priority == ComponentPriority.LOW:
        return False
    if comp.name in LOW_POWER_DISABLED_COMPONENTS:
        return False
    return comp.is_enabled


def hibernation_policy(comp: PowerComponent) -> bool:
    if comp.priority != ComponentPriority.CRITICAL and not comp.is_essential:
        return False
    return comp.is_enabled


def emergency_policy(comp: PowerComponent) -> bool:
    return comp.priority == ComponentPriority.CRITICAL


MODE_POLICIES: dict[PowerMode, Callable[[PowerComponent], bool]] = {
    PowerMode.NORMAL: normal_policy,
    PowerMode.LOW_POWER: low_power_policy,
    PowerMode.HIBERNATION: hibernation_policy,
    PowerMode.EMERGENCY: emergency_policy,
}


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModeTransition:
    """Record of one mode change and the conditions it was made under.

    Attributes:
        previous:            Mode before the change.
        current:             Mode after the change.
        battery_soc:         SoC at the time of the change [%].
        power_balance:       Net balance from the enabled draw just before the change [W].
        solar_generation:    Solar output at the time of the change [W].
        changed_components:  Components whose enabled flag the policy flipped.
    """
    previous:           PowerMode
    current:            PowerMode
    battery_soc:        float
    power_balance:      float
    solar_generation:   float
    changed_components: tuple[str, ...]


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class ModeController:
    """Power mode state machine bound to one registry and one energy state.

    The controller is the only writer of ``EnergyState.mode`` and of every
    component's ``is_enabled`` flag.

    Args:
        registry:       Components the policies are applied to.
        state:          Shared energy state; its ``mode`` mirrors the controller.
        thresholds:     Transition thresholds.
        on_transition:  Called with each :class:`ModeTransition` after it is applied.
        initial_mode:   Conventional startup mode.
        history_length: Number of transitions retained in :attr:`history`.
    """

    def __init__(
        self,
        registry: ComponentRegistry,
        state: EnergyState,
        thresholds: ModeThresholds = DEFAULT_THRESHOLDS,
        on_transition: Optional[Callable[[ModeTransition], None]] = None,
        initial_mode: PowerMode = PowerMode.NORMAL,
        history_length: int = MODE_HISTORY_LENGTH,
    ) -> None:
        if history_length <= 0:
            raise ValueError(
                f"history_length must be positive; received history_length={history_length!r}"
            )
        self._registry = registry
        self._state = state
        self._thresholds = thresholds
        self._on_transition = on_transition
        self._current_mode: PowerMode = initial_mode
        self._state.mode = initial_mode
        self._history: deque[ModeTransition] = deque(maxlen=history_length)
        self._transition_count: int = 0
        self._policy_applications: int = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def evaluate(self, soc: float, power_balance: float, solar_generation: float) -> PowerMode:
        """Target mode for the given conditions relative to the current mode."""
        return determine_target_mode(
            soc, power_balance, solar_generation, self._current_mode, self._thresholds
        )

    def set_mode(self, mode: PowerMode) -> bool:
        """Switch to ``mode`` if it differs from the current mode.

        A request for the current mode is a no-op: nothing is recorded,
        published or re-applied.

        Returns:
            True if a transition happened.

        Raises:
            ValueError: If ``mode`` is not a :class:`PowerMode`.
        """
        if not isinstance(mode, PowerMode):
            raise ValueError(f"Unknown power mode; received mode={mode!r}")
        if mode == self._current_mode:
            return False
        self._switch_mode(mode)
        return True

    @property
    def current_mode(self) -> PowerMode:
        return self._current_mode

    @property
    def history(self) -> list[ModeTransition]:
        """Retained transitions, oldest first."""
        return list(self._history)

    @property
    def transition_count(self) -> int:
        """Total transitions since construction, including ones dropped from history."""
        return self._transition_count

    @property
    def policy_applications(self) -> int:
        """Number of times an enable/disable policy has been applied."""
        return self._policy_applications

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _switch_mode(self, new_mode: PowerMode) -> None:
        previous = self._current_mode
        # balance seen before the policy toggles anything; may precede any tick
        balance = compute_power_balance(
            self._state.solar_generation, compute_total_consumption(self._registry)
        )
        logger.warning(
            "Switching power mode: %s -> %s", mode_label(previous), mode_label(new_mode)
        )

        self._current_mode = new_mode
        self._state.mode = new_mode
        changed = self._apply_policy(new_mode)

        transition = ModeTransition(
            previous=previous,
            current=new_mode,
            battery_soc=self._state.battery_soc,
            power_balance=balance,
            solar_generation=self._state.solar_generation,
            changed_components=tuple(changed),
        )
        self._history.append(transition)
        self._transition_count += 1

        if self._on_transition is not None:
            self._on_transition(transition)

    def _apply_policy(self, mode: PowerMode) -> list[str]:
        changed = self._registry.set_enabled_from(MODE_POLICIES[mode])
        self._policy_applications += 1
        if changed:
            logger.info("Mode %s toggled components: %s", mode_label(mode), ", ".join(changed))
        return changed
