"""Namespace limit-range lookups and floor resolution."""

from .cache import CacheError, NotFoundError, NotSyncedError, ResourceCache
from .resolver import min_quantity, min_resource_limits

__all__ = [
    "CacheError",
    "NotFoundError",
    "NotSyncedError",
    "ResourceCache",
    "min_quantity",
    "min_resource_limits",
]
