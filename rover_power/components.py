"""
rover_power/components.py
=========================
Rover Power Manager — Component Registry

Fixed catalog of power-consuming subsystems. Membership is decided once at
construction and never changes; only the per-record fields
``current_power`` (written by the allocator and the velocity override) and
``is_enabled`` (written by the mode policy) mutate afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Iterable, Iterator

from rover_power.config import COMPONENT_CATALOG


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

class ComponentPriority(IntEnum):
    """Priority class; a lower value is served first."""

    CRITICAL = 0
    HIGH = 1
    MEDIUM = 2
    LOW = 3


@dataclass
class PowerComponent:
    """One registered power consumer.

    Attributes:
        name:           Unique identifier, stable for the process lifetime.
        priority:       Priority class, fixed at registration.
        nominal_power:  Rated draw when fully powered [W].
        current_power:  Power assigned this tick [W].
        is_enabled:     Whether the component takes part in allocation.
        is_essential:   Survives HIBERNATION even when not CRITICAL.
    """
    name:          str
    priority:      ComponentPriority
    nominal_power: float
    current_power: float = 0.0
    is_enabled:    bool = True
    is_essential:  bool = False


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class ComponentRegistry:
    """Ordered, fixed-membership collection of :class:`PowerComponent`.

    Registry order is preserved for iteration and is the tie-breaker for
    components of the same priority during allocation.

    Args:
        components: Components in registry order.

    Raises:
        ValueError: If the collection is empty, a name repeats, or a power
                    value is negative.
    """

    def __init__(self, components: Iterable[PowerComponent]) -> None:
        self._components: list[PowerComponent] = list(components)
        if not self._components:
            raise ValueError("Component registry requires at least one component")

        self._by_name: dict[str, PowerComponent] = {}
        for comp in self._components:
            if comp.name in self._by_name:
                raise ValueError(f"Duplicate component name; received name={comp.name!r}")
            if comp.nominal_power < 0.0:
                raise ValueError(
                    f"Nominal power must be non-negative; "
                    f"received {comp.name}.nominal_power={comp.nominal_power!r}"
                )
            if comp.current_power < 0.0:
                raise ValueError(
                    f"Current power must be non-negative; "
                    f"received {comp.name}.current_power={comp.current_power!r}"
                )
            self._by_name[comp.name] = comp

    @classmethod
    def from_catalog(
        cls,
        catalog: Iterable[tuple[str, int, float, float, bool]] = COMPONENT_CATALOG,
    ) -> ComponentRegistry:
        """Build a registry from ``(name, priority, nominal_W, initial_W, essential)`` rows.

        Every component starts enabled.

        Example:
            >>> registry = ComponentRegistry.from_catalog()
            >>> registry.get("motors").nominal_power
            50.0
        """
        return cls(
            PowerComponent(
                name=name,
                priority=ComponentPriority(priority),
                nominal_power=float(nominal_w),
                current_power=float(initial_w),
                is_enabled=True,
                is_essential=bool(essential),
            )
            for name, priority, nominal_w, initial_w, essential in catalog
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[PowerComponent]:
        return iter(self._components)

    def __len__(self) -> int:
        return len(self._components)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def get(self, name: str) -> PowerComponent:
        """Return the component registered under ``name``.

        Raises:
            KeyError: If no component has that name.
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown component; received name={name!r}") from None

    def names(self) -> list[str]:
        return [comp.name for comp in self._components]

    def enabled(self) -> list[PowerComponent]:
        """Enabled components in registry order."""
        return [comp for comp in self._components if comp.is_enabled]

    def set_enabled_from(self, policy: Callable[[PowerComponent], bool]) -> list[str]:
        """Apply ``policy`` to every component and store the result in ``is_enabled``.

        Returns:
            Names of components whose enabled flag changed.
        """
        changed: list[str] = []
        for comp in self._components:
            enabled = policy(comp)
            if enabled != comp.is_enabled:
                changed.append(comp.name)
            comp.is_enabled = enabled
        return changed
