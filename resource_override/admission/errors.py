from __future__ import annotations


class AdmissionError(Exception):
    """A failure that denies the admission request."""

    code = 500
    reason = "InternalError"


class BadRequestError(AdmissionError):
    code = 400
    reason = "BadRequest"


class ForbiddenError(AdmissionError):
    code = 403
    reason = "Forbidden"


class InternalServerError(AdmissionError):
    code = 500
    reason = "InternalError"


__all__ = ["AdmissionError", "BadRequestError", "ForbiddenError", "InternalServerError"]
