"""
rover_power/power_allocator.py
==============================
Rover Power Manager — Priority Power Allocator

Distributes instantaneous generated power across enabled components in
strict priority order ("water-filling by priority"):

    1. Sort enabled components by priority (CRITICAL first); ties keep
       registry order.
    2. Walk the sorted list with a remaining budget starting at P_solar.
    3. A component whose nominal draw fits the remaining budget receives
       its full nominal draw; otherwise it receives whatever is left
       (possibly 0 W) and every later component receives 0 W.

Scope:
    - Single deterministic pass; no optimisation, no fairness across
      components of the same priority beyond registry order.
    - Disabled components are not touched and keep their last value.
    - Σ allocations ≤ P_solar always holds.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable

from rover_power.components import PowerComponent

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass
class AllocationResult:
    """Outcome of one allocation pass.

    The following identity holds:

        total_allocated_w + unallocated_w == budget_w

    Attributes:
        budget_w:           Generated power available to the pass [W].
        allocations:        ``(name, power_W)`` pairs in allocation order.
        total_allocated_w:  Sum of all allocations [W].
        unallocated_w:      Budget left after the last component [W].
        curtailed:          Components that received less than nominal draw.
    """
    budget_w:          float
    allocations:       list[tuple[str, float]] = field(default_factory=list)
    total_allocated_w: float = 0.0
    unallocated_w:     float = 0.0
    curtailed:         list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, float]:
        """Allocations keyed by component name."""
        return dict(self.allocations)


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------

def allocate_power(
    components: Iterable[PowerComponent],
    available_power_w: float,
) -> AllocationResult:
    """Assign ``current_power`` to every enabled component by priority.

    Args:
        components:         Components in registry order; disabled ones
                            are skipped and left unchanged.
        available_power_w:  Generated power for this tick [W].

    Returns:
        :class:`AllocationResult` describing the pass.

    Raises:
        ValueError: If ``available_power_w`` is negative or not finite.

    Example:
        >>> from rover_power.components import ComponentPriority
        >>> crit = PowerComponent("comm", ComponentPriority.CRITICAL, 20.0)
        >>> high = PowerComponent("nav", ComponentPriority.HIGH, 25.0)
        >>> allocate_power([high, crit], 30.0).as_dict()
        {'comm': 20.0, 'nav': 10.0}
    """
    if not math.isfinite(available_power_w) or available_power_w < 0.0:
        raise ValueError(
            f"Available power must be finite and non-negative; "
            f"received available_power_w={available_power_w!r}"
        )

    # sorted() is stable, so equal priorities keep registry order
    ordered = sorted(
        (comp for comp in components if comp.is_enabled),
        key=lambda comp: comp.priority,
    )

    result = AllocationResult(budget_w=available_power_w)
    remaining_w: float = available_power_w

    for comp in ordered:
        if remaining_w >= comp.nominal_power:
            comp.current_power = comp.nominal_power
            remaining_w -= comp.nominal_power
        else:
            comp.current_power = remaining_w
            remaining_w = 0.0
            result.curtailed.append(comp.name)
        result.allocations.append((comp.name, comp.current_power))

    result.total_allocated_w = available_power_w - remaining_w
    result.unallocated_w = remaining_w

    if result.curtailed:
        logger.debug(
            "Allocation short by budget %.2f W; curtailed: %s",
            available_power_w, ", ".join(result.curtailed),
        )
    return result
