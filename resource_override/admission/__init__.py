"""Admission decision for pod resource overrides."""

from .errors import AdmissionError, BadRequestError, ForbiddenError, InternalServerError
from .models import AdmissionRequest, AdmissionResponse, AdmissionReview
from .plugin import ClusterResourceOverride, MutatingHook

__all__ = [
    "AdmissionError",
    "AdmissionRequest",
    "AdmissionResponse",
    "AdmissionReview",
    "BadRequestError",
    "ClusterResourceOverride",
    "ForbiddenError",
    "InternalServerError",
    "MutatingHook",
]
