from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Protocol, Tuple

from resource_override.limits.cache import CacheError

from .errors import BadRequestError, ForbiddenError
from .models import OPERATION_CREATE, OPERATION_UPDATE, AdmissionRequest

logger = logging.getLogger(__name__)

PLUGIN_NAME = "autoscaling.openshift.io/ClusterResourceOverride"
CLUSTER_RESOURCE_OVERRIDE_ANNOTATION = "autoscaling.openshift.io/cluster-resource-override-enabled"

EXEMPT_NAMESPACE_NAMES = ("openshift", "kubernetes", "kube")
EXEMPT_NAMESPACE_PREFIXES = ("openshift-", "kubernetes-", "kube-")

BAD_REQUEST_MESSAGE = "unexpected object"


class NamespaceLister(Protocol):
    def get_namespace(self, name: str) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class ExemptionPolicy:
    annotation: str = CLUSTER_RESOURCE_OVERRIDE_ANNOTATION
    names: Tuple[str, ...] = EXEMPT_NAMESPACE_NAMES
    prefixes: Tuple[str, ...] = EXEMPT_NAMESPACE_PREFIXES

    def is_disabled(self, namespace: Mapping[str, Any]) -> bool:
        """Any annotation value other than ``"true"`` turns the override off."""
        annotations = (namespace.get("metadata") or {}).get("annotations") or {}
        return self.annotation in annotations and annotations[self.annotation] != "true"

    def is_exempted_namespace(self, name: str) -> bool:
        return name in self.names or any(name.startswith(prefix) for prefix in self.prefixes)


def is_applicable(request: AdmissionRequest) -> bool:
    return (
        request.resource.resource == "pods"
        and request.sub_resource == ""
        and request.operation in (OPERATION_CREATE, OPERATION_UPDATE)
    )


def as_pod(request: AdmissionRequest) -> Dict[str, Any]:
    pod = request.object
    if not isinstance(pod, dict) or pod.get("kind", "Pod") != "Pod":
        raise BadRequestError(BAD_REQUEST_MESSAGE)
    spec = pod.get("spec")
    if not isinstance(spec, dict):
        raise BadRequestError(BAD_REQUEST_MESSAGE)
    for field in ("initContainers", "containers"):
        containers = spec.get(field)
        if containers is None:
            continue
        if not isinstance(containers, list) or not all(isinstance(c, dict) for c in containers):
            raise BadRequestError(BAD_REQUEST_MESSAGE)
        for index, container in enumerate(containers):
            _check_resources(field, index, container)
    return pod


def _check_resources(field: str, index: int, container: Mapping[str, Any]) -> None:
    resources = container.get("resources")
    if resources is None:
        return
    if not isinstance(resources, dict):
        raise BadRequestError(f"spec.{field}[{index}].resources must be an object")
    for section in ("limits", "requests"):
        value = resources.get(section)
        if value is not None and not isinstance(value, dict):
            raise BadRequestError(f"spec.{field}[{index}].resources.{section} must be an object")


def is_exempt(
    request: AdmissionRequest,
    namespaces: NamespaceLister,
    policy: ExemptionPolicy = ExemptionPolicy(),
) -> bool:
    pod = as_pod(request)
    metadata = pod.get("metadata") or {}
    pod_name = metadata.get("name") or metadata.get("generateName", "")
    logger.debug(f"{PLUGIN_NAME} is looking at creating pod {pod_name} in project {request.namespace}")

    try:
        namespace = namespaces.get_namespace(request.namespace)
    except CacheError as exc:
        logger.warning(f"{PLUGIN_NAME} got an error retrieving namespace: {exc}")
        raise ForbiddenError(str(exc)) from exc

    if policy.is_disabled(namespace):
        logger.debug(f"{PLUGIN_NAME} is disabled for project {request.namespace}")
        return True

    if policy.is_exempted_namespace((namespace.get("metadata") or {}).get("name", request.namespace)):
        logger.debug(f"{PLUGIN_NAME} is skipping exempted project {request.namespace}")
        return True

    return False


__all__ = [
    "BAD_REQUEST_MESSAGE",
    "CLUSTER_RESOURCE_OVERRIDE_ANNOTATION",
    "EXEMPT_NAMESPACE_NAMES",
    "EXEMPT_NAMESPACE_PREFIXES",
    "ExemptionPolicy",
    "NamespaceLister",
    "PLUGIN_NAME",
    "as_pod",
    "is_applicable",
    "is_exempt",
]
