from __future__ import annotations

import base64
import json
from typing import Any, Dict, List

from .errors import AdmissionError, BadRequestError, ForbiddenError, InternalServerError
from .models import PATCH_TYPE_JSON, AdmissionRequest, AdmissionResponse, Status


def with_allowed(request: AdmissionRequest) -> AdmissionResponse:
    return AdmissionResponse(uid=request.uid, allowed=True)


def with_patch(request: AdmissionRequest, patch: List[Dict[str, Any]]) -> AdmissionResponse:
    if not patch:
        return with_allowed(request)
    encoded = base64.b64encode(json.dumps(patch).encode("utf-8")).decode("ascii")
    return AdmissionResponse(uid=request.uid, allowed=True, patch=encoded, patch_type=PATCH_TYPE_JSON)


def with_error(request: AdmissionRequest, error: AdmissionError) -> AdmissionResponse:
    return AdmissionResponse(
        uid=request.uid,
        allowed=False,
        status=Status(code=error.code, reason=error.reason, message=str(error)),
    )


def with_bad_request(request: AdmissionRequest, message: str) -> AdmissionResponse:
    return with_error(request, BadRequestError(message))


def with_forbidden(request: AdmissionRequest, message: str) -> AdmissionResponse:
    return with_error(request, ForbiddenError(message))


def with_internal_server_error(request: AdmissionRequest, message: str) -> AdmissionResponse:
    return with_error(request, InternalServerError(message))


def decode_patch(response: AdmissionResponse) -> List[Dict[str, Any]]:
    if not response.patch:
        return []
    return json.loads(base64.b64decode(response.patch))


__all__ = [
    "decode_patch",
    "with_allowed",
    "with_bad_request",
    "with_error",
    "with_forbidden",
    "with_internal_server_error",
    "with_patch",
]
