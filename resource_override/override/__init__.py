"""Ratio-based overrides of container resource requests and limits."""

from .config import ConfigError, OverrideConfig, load_config
from .mutator import InvalidQuantityError, MutationError, MutationMode, Mutator

__all__ = [
    "ConfigError",
    "InvalidQuantityError",
    "MutationError",
    "MutationMode",
    "Mutator",
    "OverrideConfig",
    "load_config",
]
