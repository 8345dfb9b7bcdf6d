from __future__ import annotations

import logging
import math
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, MutableMapping, Optional

from resource_override.common.quantity import BINARY_SI, DECIMAL_SI, Quantity, QuantityError

from .config import OverrideConfig

logger = logging.getLogger(__name__)

RESOURCE_CPU = "cpu"
RESOURCE_MEMORY = "memory"

# 1000 millicores per GiB of memory
CPU_BASE_SCALE_FACTOR = Decimal(1000) / Decimal(1024 ** 3)
CPU_FLOOR = Quantity.parse("1m")
MEMORY_FLOOR = Quantity.parse("1Mi")

_MEBIBYTE = 1024 * 1024
_MEGABYTE = 1000 * 1000


class MutationMode(str, Enum):
    MUTATE = "mutate"
    VALIDATE = "validate"


class MutationError(Exception):
    """A derived resource value could not be applied to a container.

    ``path`` locates the field relative to the container, e.g.
    ``resources.requests.cpu``.
    """

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path} {message}")


class InvalidQuantityError(MutationError):
    """The container carries a quantity that does not parse."""


class Mutator:
    def __init__(
        self,
        config: OverrideConfig,
        ns_cpu_floor: Optional[Quantity] = None,
        ns_mem_floor: Optional[Quantity] = None,
        *,
        mode: MutationMode = MutationMode.MUTATE,
        cpu_floor: Quantity = CPU_FLOOR,
        memory_floor: Quantity = MEMORY_FLOOR,
    ) -> None:
        self.config = config
        self.ns_cpu_floor = ns_cpu_floor
        self.ns_mem_floor = ns_mem_floor
        self.mode = mode
        self.cpu_floor = cpu_floor
        self.memory_floor = memory_floor

    def mutate(self, container: MutableMapping[str, Any]) -> None:
        """Derive requests and the CPU limit of ``container`` in place.

        The steps run in a fixed order: memory request from memory limit,
        CPU limit from memory limit, then CPU request from whatever CPU
        limit the container carries after the previous step.
        """
        config = self.config
        mem_limit = self._limit(container, RESOURCE_MEMORY)

        if mem_limit is not None and config.memory_request_to_limit_ratio != 0:
            amount = math.floor(Decimal(mem_limit.value()) * _decimal(config.memory_request_to_limit_ratio))
            # rounded to whole MiB/MB for readability
            mod = _MEBIBYTE if mem_limit.format == BINARY_SI else _MEGABYTE
            amount -= amount % mod
            q = Quantity.from_value(amount, mem_limit.format)
            q = self._clamp(q, self.memory_floor, self.ns_mem_floor, RESOURCE_MEMORY)
            self._apply(container, "requests", RESOURCE_MEMORY, q)

        if mem_limit is not None and config.limit_cpu_to_memory_ratio != 0:
            amount = Decimal(mem_limit.value()) * _decimal(config.limit_cpu_to_memory_ratio) * CPU_BASE_SCALE_FACTOR
            q = Quantity.from_milli(int(amount), DECIMAL_SI)
            q = self._clamp(q, self.cpu_floor, self.ns_cpu_floor, RESOURCE_CPU)
            self._apply(container, "limits", RESOURCE_CPU, q)

        cpu_limit = self._limit(container, RESOURCE_CPU)
        if cpu_limit is not None and config.cpu_request_to_limit_ratio != 0:
            amount = Decimal(cpu_limit.milli_value()) * _decimal(config.cpu_request_to_limit_ratio)
            q = Quantity.from_milli(int(amount), cpu_limit.format)
            q = self._clamp(q, self.cpu_floor, self.ns_cpu_floor, RESOURCE_CPU)
            self._apply(container, "requests", RESOURCE_CPU, q)

    def _clamp(
        self,
        q: Quantity,
        floor: Quantity,
        ns_floor: Optional[Quantity],
        resource_name: str,
    ) -> Quantity:
        if floor.cmp(q) > 0:
            q = floor
        if ns_floor is not None and q.cmp(ns_floor) < 0:
            logger.debug(
                f"{resource_name} pod limit {q} below namespace limit; setting limit to {ns_floor}"
            )
            q = ns_floor
        return q

    def _limit(self, container: MutableMapping[str, Any], resource_name: str) -> Optional[Quantity]:
        limits = _section(container, "limits")
        if resource_name not in limits:
            return None
        raw = limits[resource_name]
        try:
            return Quantity.parse(raw)
        except QuantityError as exc:
            raise InvalidQuantityError(f"resources.limits.{resource_name}", str(exc)) from exc

    def _apply(
        self,
        container: MutableMapping[str, Any],
        section: str,
        resource_name: str,
        q: Quantity,
    ) -> None:
        path = f"resources.{section}.{resource_name}"
        current = _section(container, section).get(resource_name)
        if self.mode == MutationMode.MUTATE:
            resources = _child(container, "resources")
            _child(resources, section)[resource_name] = str(q)
            return

        if current is None:
            raise MutationError(path, f"mutated, expected: {q}, now absent")
        try:
            existing = Quantity.parse(current)
        except QuantityError as exc:
            raise InvalidQuantityError(path, str(exc)) from exc
        if existing.cmp(q) != 0:
            raise MutationError(path, f"mutated, expected: {q}, got {current}")


def _section(container: MutableMapping[str, Any], section: str) -> Mapping[str, Any]:
    resources = container.get("resources") or {}
    if not isinstance(resources, dict):
        raise InvalidQuantityError("resources", "must be an object")
    value = resources.get(section) or {}
    if not isinstance(value, dict):
        raise InvalidQuantityError(f"resources.{section}", "must be an object")
    return value


def _child(parent: MutableMapping[str, Any], key: str) -> Dict[str, Any]:
    value = parent.get(key)
    if not isinstance(value, dict):
        value = {}
        parent[key] = value
    return value


def _decimal(ratio: float) -> Decimal:
    return Decimal(str(ratio))


__all__ = [
    "CPU_BASE_SCALE_FACTOR",
    "CPU_FLOOR",
    "MEMORY_FLOOR",
    "InvalidQuantityError",
    "MutationError",
    "MutationMode",
    "Mutator",
    "RESOURCE_CPU",
    "RESOURCE_MEMORY",
]
