"""The override decision engine and the hook that fronts it."""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol

from resource_override.common.quantity import Quantity, QuantityError
from resource_override.limits.cache import CacheError
from resource_override.limits.resolver import min_resource_limits
from resource_override.override.config import OverrideConfig
from resource_override.override.mutator import (
    CPU_FLOOR,
    MEMORY_FLOOR,
    RESOURCE_CPU,
    RESOURCE_MEMORY,
    InvalidQuantityError,
    MutationError,
    MutationMode,
    Mutator,
)
from resource_override.patch.generator import CONTAINER_FIELDS, PatchError, create_patch

from . import response
from .errors import AdmissionError, BadRequestError, ForbiddenError, InternalServerError
from .gate import PLUGIN_NAME, ExemptionPolicy, NamespaceLister, as_pod, is_applicable, is_exempt
from .models import AdmissionRequest, AdmissionResponse

logger = logging.getLogger(__name__)


class LimitRangeLister(Protocol):
    def list_limit_ranges(self, namespace: str) -> List[Dict[str, Any]]:
        ...


class ClusterResourceOverride:
    def __init__(
        self,
        config: OverrideConfig,
        namespaces: NamespaceLister,
        limit_ranges: Optional[LimitRangeLister] = None,
        *,
        exemptions: ExemptionPolicy = ExemptionPolicy(),
        cpu_floor: Quantity = CPU_FLOOR,
        memory_floor: Quantity = MEMORY_FLOOR,
    ) -> None:
        self.config = config
        self.namespaces = namespaces
        self.limit_ranges = limit_ranges
        self.exemptions = exemptions
        self.cpu_floor = cpu_floor
        self.memory_floor = memory_floor

    def is_applicable(self, request: AdmissionRequest) -> bool:
        return is_applicable(request)

    def is_exempt(self, request: AdmissionRequest) -> bool:
        return is_exempt(request, self.namespaces, self.exemptions)

    def admit(self, request: AdmissionRequest) -> AdmissionResponse:
        """Apply the overrides to the pod and answer with the resulting patch."""
        try:
            original = as_pod(request)
            current = self._override(request, original, MutationMode.MUTATE)
            try:
                patch = create_patch(original, current)
            except PatchError as exc:
                raise InternalServerError(str(exc)) from exc
        except AdmissionError as exc:
            return response.with_error(request, exc)
        return response.with_patch(request, patch)

    def validate(self, request: AdmissionRequest) -> AdmissionResponse:
        """Check that the pod already carries the values the override would set."""
        try:
            self._override(request, as_pod(request), MutationMode.VALIDATE)
        except AdmissionError as exc:
            return response.with_error(request, exc)
        return response.with_allowed(request)

    def _override(self, request: AdmissionRequest, original: Dict[str, Any], mode: MutationMode) -> Dict[str, Any]:
        ns_cpu_floor, ns_mem_floor = self._namespace_floors(request.namespace)
        mutator = Mutator(
            self.config,
            ns_cpu_floor,
            ns_mem_floor,
            mode=mode,
            cpu_floor=self.cpu_floor,
            memory_floor=self.memory_floor,
        )

        logger.debug(f"{PLUGIN_NAME}: initial pod limits are: {original.get('spec')}")
        current = copy.deepcopy(original)
        for field in CONTAINER_FIELDS:
            for index, container in enumerate(current["spec"].get(field) or []):
                try:
                    mutator.mutate(container)
                except InvalidQuantityError as exc:
                    raise BadRequestError(f"spec.{field}[{index}].{exc}") from exc
                except MutationError as exc:
                    raise InternalServerError(f"spec.{field}[{index}].{exc}") from exc
        logger.debug(f"{PLUGIN_NAME}: pod limits after overrides are: {current.get('spec')}")
        return current

    def _namespace_floors(self, namespace: str):
        """Don't mutate resource requirements below the namespace limit minimums."""
        if self.limit_ranges is None:
            return None, None
        try:
            limits = self.limit_ranges.list_limit_ranges(namespace)
        except CacheError as exc:
            raise ForbiddenError(str(exc)) from exc
        try:
            return (
                min_resource_limits(limits, RESOURCE_CPU),
                min_resource_limits(limits, RESOURCE_MEMORY),
            )
        except QuantityError as exc:
            raise ForbiddenError(f"invalid limit range in namespace {namespace}: {exc}") from exc


class MutatingHook:
    """Entry point for the webhook transport.

    The engine is built once by ``initialize``; requests arriving before that
    are denied.
    """

    def __init__(self) -> None:
        self._engine: Optional[ClusterResourceOverride] = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    def initialize(self, factory: Callable[[], ClusterResourceOverride]) -> ClusterResourceOverride:
        with self._lock:
            if self._engine is None:
                self._engine = factory()
                logger.info(f"{PLUGIN_NAME} initialized with {self._engine.config.to_dict()}")
            return self._engine

    def admit(self, request: AdmissionRequest) -> AdmissionResponse:
        engine = self._engine
        if engine is None:
            return response.with_internal_server_error(request, "not initialized")

        if not engine.is_applicable(request):
            return response.with_allowed(request)

        try:
            exempt = engine.is_exempt(request)
        except AdmissionError as exc:
            return response.with_error(request, exc)

        if exempt:
            # disabled for this project, do nothing
            return response.with_allowed(request)

        return engine.admit(request)


__all__ = ["ClusterResourceOverride", "LimitRangeLister", "MutatingHook"]
