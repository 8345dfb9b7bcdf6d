from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence

from resource_override.common.quantity import Quantity

LIMIT_TYPE_CONTAINER = "Container"


def min_resource_limits(
    limit_ranges: Iterable[Mapping[str, Any]], resource_name: str
) -> Optional[Quantity]:
    """Return the smallest container ``min`` for ``resource_name``.

    Every ``Container`` entry of every limit range in the namespace is
    considered. ``None`` means the namespace imposes no floor.
    """

    limits: List[Quantity] = []
    for limit_range in limit_ranges:
        spec = limit_range.get("spec") or {}
        for item in spec.get("limits") or []:
            if item.get("type") != LIMIT_TYPE_CONTAINER:
                continue
            minimums = item.get("min") or {}
            if resource_name in minimums:
                limits.append(Quantity.parse(minimums[resource_name]))

    if not limits:
        return None
    return min_quantity(limits)


def min_quantity(quantities: Sequence[Quantity]) -> Quantity:
    smallest = quantities[0]
    for quantity in quantities:
        if quantity.cmp(smallest) < 0:
            smallest = quantity
    return smallest


__all__ = ["LIMIT_TYPE_CONTAINER", "min_resource_limits", "min_quantity"]
