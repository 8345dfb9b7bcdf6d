"""Builders for pods, namespaces and admission requests used across tests."""

from typing import Any, Dict, List, Optional

from resource_override.admission.models import AdmissionRequest


def container(name: str = "app", limits: Optional[Dict[str, str]] = None, requests: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    resources: Dict[str, Any] = {}
    if limits is not None:
        resources["limits"] = dict(limits)
    if requests is not None:
        resources["requests"] = dict(requests)
    return {"name": name, "image": "nginx:1.25", "resources": resources}


def pod(containers: List[Dict[str, Any]], init_containers: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    spec: Dict[str, Any] = {"containers": containers}
    if init_containers is not None:
        spec["initContainers"] = init_containers
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": "demo", "namespace": "team-a"},
        "spec": spec,
    }


def namespace(name: str, annotations: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {"name": name}
    if annotations is not None:
        metadata["annotations"] = annotations
    return {"apiVersion": "v1", "kind": "Namespace", "metadata": metadata}


def limit_range(namespace_name: str, name: str, minimums: Dict[str, str]) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "LimitRange",
        "metadata": {"name": name, "namespace": namespace_name},
        "spec": {"limits": [{"type": "Container", "min": dict(minimums)}]},
    }


def admission_request(
    obj: Any,
    *,
    namespace_name: str = "team-a",
    operation: str = "CREATE",
    resource: str = "pods",
    sub_resource: str = "",
) -> AdmissionRequest:
    return AdmissionRequest.model_validate(
        {
            "uid": "705ab4f5-6393-11e8-b7cc-42010a800002",
            "kind": {"group": "", "version": "v1", "kind": "Pod"},
            "resource": {"group": "", "version": "v1", "resource": resource},
            "subResource": sub_resource,
            "name": "demo",
            "namespace": namespace_name,
            "operation": operation,
            "object": obj,
        }
    )
