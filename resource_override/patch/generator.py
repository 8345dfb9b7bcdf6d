from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

import jsonpatch

CONTAINER_FIELDS = ("initContainers", "containers")


class PatchError(Exception):
    """Raised when two pods cannot be compared field by field."""


def create_patch(original: Mapping[str, Any], mutated: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Return RFC6902 operations turning ``original`` container resources into ``mutated``'s.

    Only ``resources`` of init and regular containers are compared; array
    positions are kept so each operation addresses the same container index.
    """

    original_spec = _spec(original, "original")
    mutated_spec = _spec(mutated, "mutated")

    operations: List[Dict[str, Any]] = []
    for field in CONTAINER_FIELDS:
        before = _containers(original_spec, field, "original")
        after = _containers(mutated_spec, field, "mutated")
        if len(before) != len(after):
            raise PatchError(
                f"spec.{field} length changed from {len(before)} to {len(after)}"
            )
        for index, (old, new) in enumerate(zip(before, after)):
            operations.extend(_container_ops(f"/spec/{field}/{index}", old, new))
    return operations


def _container_ops(prefix: str, old: Mapping[str, Any], new: Mapping[str, Any]) -> List[Dict[str, Any]]:
    old_resources = old.get("resources")
    new_resources = new.get("resources")
    if old_resources == new_resources:
        return []
    if new_resources is None:
        raise PatchError(f"{prefix}/resources was removed")
    if not isinstance(new_resources, dict):
        raise PatchError(f"{prefix}/resources is not an object")
    if not isinstance(old_resources, dict):
        op = "add" if "resources" not in old else "replace"
        return [{"op": op, "path": f"{prefix}/resources", "value": new_resources}]

    patch = jsonpatch.make_patch(old_resources, new_resources)
    operations = []
    for operation in patch.patch:
        rebased = dict(operation)
        rebased["path"] = f"{prefix}/resources{operation['path']}"
        if "from" in rebased:
            rebased["from"] = f"{prefix}/resources{operation['from']}"
        operations.append(rebased)
    return operations


def _spec(pod: Mapping[str, Any], label: str) -> Mapping[str, Any]:
    spec = pod.get("spec") if isinstance(pod, Mapping) else None
    if not isinstance(spec, Mapping):
        raise PatchError(f"{label} object has no pod spec")
    return spec


def _containers(spec: Mapping[str, Any], field: str, label: str) -> Sequence[Mapping[str, Any]]:
    containers = spec.get(field) or []
    if not isinstance(containers, list) or not all(isinstance(c, Mapping) for c in containers):
        raise PatchError(f"{label} spec.{field} is not a list of containers")
    return containers


__all__ = ["CONTAINER_FIELDS", "PatchError", "create_patch"]
