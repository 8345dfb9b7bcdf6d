from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml


class ConfigError(ValueError):
    """Raised when the override configuration is malformed."""


_RATIO_ALIASES: Dict[str, Tuple[str, ...]] = {
    "memoryRequestToLimitRatio": ("memoryRequestToLimitRatio",),
    "cpuRequestToLimitRatio": ("cpuRequestToLimitRatio",),
    "limitCPUToMemoryRatio": ("limitCPUToMemoryRatio", "limitCpuToMemoryRatio"),
}
_PERCENT_FIELDS = {
    "memoryRequestToLimitRatio": "memoryRequestToLimitPercent",
    "cpuRequestToLimitRatio": "cpuRequestToLimitPercent",
    "limitCPUToMemoryRatio": "limitCPUToMemoryPercent",
}


@dataclass(frozen=True)
class OverrideConfig:
    """Ratios driving the override. Zero disables the corresponding rule."""

    memory_request_to_limit_ratio: float = 0.0
    cpu_request_to_limit_ratio: float = 0.0
    limit_cpu_to_memory_ratio: float = 0.0

    def __post_init__(self) -> None:
        _check_ratio("memoryRequestToLimitRatio", self.memory_request_to_limit_ratio, 1.0)
        _check_ratio("cpuRequestToLimitRatio", self.cpu_request_to_limit_ratio, 1.0)
        _check_ratio("limitCPUToMemoryRatio", self.limit_cpu_to_memory_ratio, None)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "OverrideConfig":
        data = dict(data or {})
        if isinstance(data.get("spec"), Mapping):
            data = dict(data["spec"])

        values: Dict[str, float] = {}
        for name, aliases in _RATIO_ALIASES.items():
            raw = None
            for alias in aliases:
                if alias in data:
                    raw = _as_number(alias, data[alias])
                    break
            percent_key = _PERCENT_FIELDS[name]
            if raw is None and percent_key in data:
                raw = _as_number(percent_key, data[percent_key]) / 100.0
            values[name] = raw or 0.0

        return cls(
            memory_request_to_limit_ratio=values["memoryRequestToLimitRatio"],
            cpu_request_to_limit_ratio=values["cpuRequestToLimitRatio"],
            limit_cpu_to_memory_ratio=values["limitCPUToMemoryRatio"],
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "memoryRequestToLimitRatio": self.memory_request_to_limit_ratio,
            "cpuRequestToLimitRatio": self.cpu_request_to_limit_ratio,
            "limitCPUToMemoryRatio": self.limit_cpu_to_memory_ratio,
        }


def load_config(path: Path) -> OverrideConfig:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a mapping")
    return OverrideConfig.from_mapping(data)


def _as_number(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    return float(value)


def _check_ratio(name: str, value: float, upper: Optional[float]) -> None:
    value = _as_number(name, value)
    if not math.isfinite(value):
        raise ConfigError(f"{name} must be a finite number, got {value}")
    if value < 0:
        raise ConfigError(f"{name} must be >= 0, got {value}")
    if upper is not None and value > upper:
        raise ConfigError(f"{name} must be <= {upper}, got {value}")


__all__ = ["ConfigError", "OverrideConfig", "load_config"]
