from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, status

from resource_override import __version__
from resource_override.admission.models import AdmissionReview
from resource_override.admission.plugin import MutatingHook

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Cluster Resource Override Admission",
        description="Overrides pod container requests and limits from configured ratios.",
        version=__version__,
    )

    @app.get("/healthz")
    def healthz(hook: MutatingHook = Depends(get_hook)) -> Dict[str, Any]:
        if not hook.initialized:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="not initialized")
        return {"status": "ok"}

    @app.post("/mutate")
    def mutate(review: AdmissionReview, hook: MutatingHook = Depends(get_hook)) -> Dict[str, Any]:
        if review.request is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="AdmissionReview has no request",
            )
        admission_response = hook.admit(review.request)
        logger.debug(
            f"admission {review.request.uid} for {review.request.namespace}/{review.request.name}: "
            f"allowed={admission_response.allowed} patched={admission_response.patch is not None}"
        )
        result = AdmissionReview(api_version=review.api_version, kind=review.kind, response=admission_response)
        return result.to_wire()

    return app


@lru_cache()
def get_hook() -> MutatingHook:
    return MutatingHook()


app = create_app()


__all__ = ["app", "create_app", "get_hook"]
