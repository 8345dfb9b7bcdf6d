"""Pydantic models for the admission.k8s.io AdmissionReview envelope."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

OPERATION_CREATE = "CREATE"
OPERATION_UPDATE = "UPDATE"
OPERATION_DELETE = "DELETE"
OPERATION_CONNECT = "CONNECT"

PATCH_TYPE_JSON = "JSONPatch"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GroupVersionKind(_WireModel):
    group: str = ""
    version: str = ""
    kind: str = ""


class GroupVersionResource(_WireModel):
    group: str = ""
    version: str = ""
    resource: str = ""


class AdmissionRequest(_WireModel):
    uid: str = Field(..., description="Identifier echoed back in the response")
    kind: GroupVersionKind = Field(default_factory=GroupVersionKind)
    resource: GroupVersionResource = Field(default_factory=GroupVersionResource)
    sub_resource: str = Field(default="", alias="subResource")
    name: str = ""
    namespace: str = ""
    operation: str = ""
    object: Optional[Any] = Field(default=None, description="Object being admitted")
    old_object: Optional[Any] = Field(default=None, alias="oldObject")
    dry_run: bool = Field(default=False, alias="dryRun")


class Status(_WireModel):
    status: str = "Failure"
    code: int = 500
    reason: str = ""
    message: str = ""


class AdmissionResponse(_WireModel):
    uid: str
    allowed: bool
    patch: Optional[str] = Field(default=None, description="Base64 encoded JSON Patch")
    patch_type: Optional[str] = Field(default=None, alias="patchType")
    status: Optional[Status] = None


class AdmissionReview(_WireModel):
    api_version: str = Field(default="admission.k8s.io/v1", alias="apiVersion")
    kind: str = "AdmissionReview"
    request: Optional[AdmissionRequest] = None
    response: Optional[AdmissionResponse] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


__all__ = [
    "AdmissionRequest",
    "AdmissionResponse",
    "AdmissionReview",
    "GroupVersionKind",
    "GroupVersionResource",
    "OPERATION_CONNECT",
    "OPERATION_CREATE",
    "OPERATION_DELETE",
    "OPERATION_UPDATE",
    "PATCH_TYPE_JSON",
    "Status",
]
