"""Keeps a ResourceCache in step with the cluster through list and watch."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from kubernetes import client, watch
from kubernetes.client.rest import ApiException

from .cache import ResourceCache

logger = logging.getLogger(__name__)

WATCH_TIMEOUT_SECONDS = 300
RETRY_BACKOFF_SECONDS = 5

NAMESPACES = "namespaces"
LIMIT_RANGES = "limitranges"


class ClusterSync:
    """Lists then watches namespaces and limit ranges into a ResourceCache."""

    def __init__(
        self,
        cache: ResourceCache,
        core_api: Optional[client.CoreV1Api] = None,
        *,
        watch_timeout: int = WATCH_TIMEOUT_SECONDS,
        backoff_seconds: float = RETRY_BACKOFF_SECONDS,
    ) -> None:
        self.cache = cache
        self.v1 = core_api or client.CoreV1Api()
        self.watch_timeout = watch_timeout
        self.backoff_seconds = backoff_seconds
        self._serializer = client.ApiClient()
        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []

    def to_dict(self, obj: Any) -> Dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self._serializer.sanitize_for_serialization(obj)

    def initial_sync(self) -> Dict[str, str]:
        """List both kinds and mark the cache synced.

        Returns the resource versions to start watching from.
        """
        versions = {kind: self.relist(kind) for kind in (NAMESPACES, LIMIT_RANGES)}
        self.cache.mark_synced()
        return versions

    def relist(self, kind: str) -> str:
        """Replace the cached objects of one kind with a fresh list."""
        if kind == NAMESPACES:
            result = self.v1.list_namespace()
            self.cache.replace_namespaces(self.to_dict(item) for item in result.items)
        elif kind == LIMIT_RANGES:
            result = self.v1.list_limit_range_for_all_namespaces()
            self.cache.replace_limit_ranges(self.to_dict(item) for item in result.items)
        else:
            raise ValueError(f"unknown kind {kind!r}")
        logger.info(f"Loaded {len(result.items)} {kind}")
        return result.metadata.resource_version

    def handle_namespace_event(self, event_type: str, obj: Any) -> None:
        namespace = self.to_dict(obj)
        if event_type in ("ADDED", "MODIFIED"):
            self.cache.upsert_namespace(namespace)
        elif event_type == "DELETED":
            self.cache.delete_namespace((namespace.get("metadata") or {}).get("name", ""))

    def handle_limit_range_event(self, event_type: str, obj: Any) -> None:
        limit_range = self.to_dict(obj)
        if event_type in ("ADDED", "MODIFIED"):
            self.cache.upsert_limit_range(limit_range)
        elif event_type == "DELETED":
            metadata = limit_range.get("metadata") or {}
            namespace = metadata.get("namespace")
            if namespace:
                self.cache.delete_limit_range(namespace, metadata.get("name", ""))

    def start(self) -> None:
        versions = self.initial_sync()
        self._threads = [
            threading.Thread(
                target=self._watch_loop,
                args=(NAMESPACES, self.v1.list_namespace, self.handle_namespace_event, versions[NAMESPACES]),
                name="namespace-watcher",
                daemon=True,
            ),
            threading.Thread(
                target=self._watch_loop,
                args=(
                    LIMIT_RANGES,
                    self.v1.list_limit_range_for_all_namespaces,
                    self.handle_limit_range_event,
                    versions[LIMIT_RANGES],
                ),
                name="limitrange-watcher",
                daemon=True,
            ),
        ]
        for thread in self._threads:
            thread.start()

    def stop(self) -> None:
        logger.info("Stopping cluster sync...")
        self._stop_event.set()

    def _watch_loop(
        self,
        kind: str,
        list_func: Callable[..., Any],
        handler: Callable[[str, Any], None],
        resource_version: Optional[str],
    ) -> None:
        logger.info(f"Starting {kind} watcher...")
        w = watch.Watch()
        while not self._stop_event.is_set():
            try:
                if resource_version is None:
                    resource_version = self.relist(kind)
                for event in w.stream(
                    list_func,
                    resource_version=resource_version,
                    timeout_seconds=self.watch_timeout,
                ):
                    if self._stop_event.is_set():
                        w.stop()
                        break
                    handler(event["type"], event["object"])
                    resource_version = w.resource_version
            except ApiException as e:
                logger.error(f"{kind} watch error: {e}")
                if e.status == 410:
                    # history expired; relist this kind only
                    resource_version = None
                self._stop_event.wait(self.backoff_seconds)
            except Exception as e:
                logger.error(f"Unexpected error in {kind} watcher: {e}")
                self._stop_event.wait(self.backoff_seconds)


__all__ = ["ClusterSync", "LIMIT_RANGES", "NAMESPACES", "WATCH_TIMEOUT_SECONDS"]
