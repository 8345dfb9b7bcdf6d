"""Thread-safe in-memory store of namespaces and limit ranges."""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """Base class for local cache lookup failures."""


class NotFoundError(CacheError):
    pass


class NotSyncedError(CacheError):
    pass


class ResourceCache:
    """Read-through cache fed by an external sync process.

    Objects are kept in their wire (dict) form. Readers always receive deep
    copies so that request handling never aliases cached state.
    """

    def __init__(self) -> None:
        self._namespaces: Dict[str, Dict[str, Any]] = {}
        self._limit_ranges: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._synced = False
        self._lock = threading.RLock()

    @classmethod
    def from_objects(
        cls,
        namespaces: Iterable[Mapping[str, Any]],
        limit_ranges: Iterable[Mapping[str, Any]] = (),
    ) -> "ResourceCache":
        """Build a fully synced cache from static objects."""
        cache = cls()
        for namespace in namespaces:
            cache.upsert_namespace(namespace)
        for limit_range in limit_ranges:
            cache.upsert_limit_range(limit_range)
        cache.mark_synced()
        return cache

    @property
    def synced(self) -> bool:
        with self._lock:
            return self._synced

    def mark_synced(self) -> None:
        with self._lock:
            self._synced = True
        logger.info("Namespace and limit range cache synced")

    def get_namespace(self, name: str) -> Dict[str, Any]:
        with self._lock:
            if not self._synced:
                raise NotSyncedError(f"namespace cache not yet synced, cannot look up {name!r}")
            namespace = self._namespaces.get(name)
            if namespace is None:
                raise NotFoundError(f'namespace "{name}" not found')
            return copy.deepcopy(namespace)

    def list_limit_ranges(self, namespace: str) -> List[Dict[str, Any]]:
        with self._lock:
            if not self._synced:
                raise NotSyncedError(f"limit range cache not yet synced, cannot list {namespace!r}")
            items = self._limit_ranges.get(namespace, {})
            return [copy.deepcopy(items[name]) for name in sorted(items)]

    def upsert_namespace(self, obj: Mapping[str, Any]) -> None:
        name = _metadata(obj).get("name", "")
        with self._lock:
            self._namespaces[name] = copy.deepcopy(dict(obj))
        logger.debug(f"Cached namespace {name}")

    def delete_namespace(self, name: str) -> None:
        with self._lock:
            self._namespaces.pop(name, None)
            self._limit_ranges.pop(name, None)
        logger.debug(f"Removed namespace {name} from cache")

    def upsert_limit_range(self, obj: Mapping[str, Any]) -> None:
        metadata = _metadata(obj)
        namespace = metadata.get("namespace")
        name = metadata.get("name", "")
        if not namespace:
            logger.debug(f"Skipping limit range {name} without a namespace")
            return
        with self._lock:
            self._limit_ranges.setdefault(namespace, {})[name] = copy.deepcopy(dict(obj))
        logger.debug(f"Cached limit range {namespace}/{name}")

    def delete_limit_range(self, namespace: str, name: str) -> None:
        with self._lock:
            items = self._limit_ranges.get(namespace)
            if items is not None:
                items.pop(name, None)
                if not items:
                    del self._limit_ranges[namespace]
        logger.debug(f"Removed limit range {namespace}/{name} from cache")

    def replace_namespaces(self, objects: Iterable[Mapping[str, Any]]) -> None:
        fresh = {_metadata(obj).get("name", ""): copy.deepcopy(dict(obj)) for obj in objects}
        with self._lock:
            self._namespaces = fresh

    def replace_limit_ranges(self, objects: Iterable[Mapping[str, Any]]) -> None:
        fresh: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for obj in objects:
            metadata = _metadata(obj)
            namespace = metadata.get("namespace")
            if not namespace:
                logger.debug(f"Skipping limit range {metadata.get('name', '')} without a namespace")
                continue
            fresh.setdefault(namespace, {})[metadata.get("name", "")] = copy.deepcopy(dict(obj))
        with self._lock:
            self._limit_ranges = fresh


def _metadata(obj: Mapping[str, Any]) -> Mapping[str, Any]:
    return obj.get("metadata") or {}


__all__ = ["CacheError", "NotFoundError", "NotSyncedError", "ResourceCache"]
