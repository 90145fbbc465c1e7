"""
rover_power/battery_model.py
============================
Rover Power Manager — Linear Battery Plant for Scenario Runs

Stands in for the real pack when the engine is exercised offline: it
integrates net power into stored energy and reports the terminal voltage
the engine would read, using the inverse of the engine's SoC map.

Governing equation:
    dE/dt = η · P_net    (P_net > 0, charging)
    dE/dt = P_net        (P_net ≤ 0, discharging)

Integration method: Forward Euler (explicit, caller-supplied timestep)
    E(t + dt) = clamp(E(t) + ΔE, 0, E_capacity)

Scope:
    - Linear charge/discharge only; no temperature, C-rate or ageing effects.
"""

from __future__ import annotations

from dataclasses import dataclass

from rover_power.energy_model import soc_to_voltage


@dataclass
class BatteryStep:
    """Result of one integration step.

    Attributes:
        energy_wh:   Stored energy after the step [Wh].
        soc_pct:     State of charge after the step [%].
        delta_e_wh:  Energy actually applied this step [Wh]; positive = charging.
    """
    energy_wh:  float
    soc_pct:    float
    delta_e_wh: float


class BatteryModel:
    """Stateful linear battery energy model.

    Args:
        capacity_wh:  Total energy capacity [Wh].
        initial_soc:  Initial state of charge [%], in [0, 100].
        eta:          Charging efficiency, in (0.0, 1.0].

    Raises:
        ValueError: If any argument is outside its valid range.
    """

    def __init__(self, capacity_wh: float, initial_soc: float, eta: float) -> None:
        if capacity_wh <= 0.0:
            raise ValueError(
                f"Battery capacity must be positive; received capacity_wh={capacity_wh!r}"
            )
        if not (0.0 <= initial_soc <= 100.0):
            raise ValueError(
                f"Initial SoC must be in [0, 100]; received initial_soc={initial_soc!r}"
            )
        if not (0.0 < eta <= 1.0):
            raise ValueError(
                f"Charging efficiency must be in (0.0, 1.0]; received eta={eta!r}"
            )

        self._capacity_wh: float = capacity_wh
        self._eta: float = eta
        self._energy_wh: float = capacity_wh * initial_soc / 100.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def step(self, net_power_w: float, dt_h: float) -> BatteryStep:
        """Advance the stored energy by one timestep.

        Args:
            net_power_w:  Generation minus load [W]; positive charges the pack.
            dt_h:         Timestep [hours], must be positive.

        Raises:
            ValueError: If ``dt_h`` is not positive.
        """
        if dt_h <= 0.0:
            raise ValueError(f"Timestep must be positive; received dt_h={dt_h!r}")

        if net_power_w > 0.0:
            requested_wh = self._eta * net_power_w * dt_h
        else:
            requested_wh = net_power_w * dt_h

        new_energy = self._clamp(self._energy_wh + requested_wh)
        applied_wh = new_energy - self._energy_wh
        self._energy_wh = new_energy

        return BatteryStep(
            energy_wh=self._energy_wh,
            soc_pct=self.soc_pct,
            delta_e_wh=applied_wh,
        )

    def terminal_voltage(self) -> float:
        """Pack voltage consistent with the current SoC [V]."""
        return soc_to_voltage(self.soc_pct)

    @property
    def energy_wh(self) -> float:
        return self._energy_wh

    @property
    def soc_pct(self) -> float:
        return self._energy_wh / self._capacity_wh * 100.0

    @property
    def capacity_wh(self) -> float:
        return self._capacity_wh

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _clamp(self, energy_wh: float) -> float:
        """Enforce physical energy bounds [0, capacity_wh]."""
        return max(0.0, min(self._capacity_wh, energy_wh))
