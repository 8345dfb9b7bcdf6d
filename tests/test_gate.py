import unittest

from resource_override.admission.errors import BadRequestError, ForbiddenError
from resource_override.admission.gate import (
    CLUSTER_RESOURCE_OVERRIDE_ANNOTATION,
    ExemptionPolicy,
    is_applicable,
    is_exempt,
)
from resource_override.limits.cache import ResourceCache

from tests.helpers import admission_request, container, namespace, pod


class ApplicabilityTests(unittest.TestCase):
    def test_pod_create_and_update_apply(self) -> None:
        for operation in ("CREATE", "UPDATE"):
            self.assertTrue(is_applicable(admission_request(pod([container()]), operation=operation)))

    def test_other_requests_do_not_apply(self) -> None:
        body = pod([container()])
        self.assertFalse(is_applicable(admission_request(body, operation="DELETE")))
        self.assertFalse(is_applicable(admission_request(body, operation="CONNECT")))
        self.assertFalse(is_applicable(admission_request(body, resource="deployments")))
        self.assertFalse(is_applicable(admission_request(body, sub_resource="status")))


class ExemptionTests(unittest.TestCase):
    def _cache(self, *namespaces) -> ResourceCache:
        return ResourceCache.from_objects(namespaces)

    def test_plain_namespace_is_not_exempt(self) -> None:
        cache = self._cache(namespace("team-a"))
        self.assertFalse(is_exempt(admission_request(pod([container()])), cache))

    def test_annotation_true_keeps_policy_enabled(self) -> None:
        cache = self._cache(namespace("team-a", {CLUSTER_RESOURCE_OVERRIDE_ANNOTATION: "true"}))
        self.assertFalse(is_exempt(admission_request(pod([container()])), cache))

    def test_any_other_annotation_value_disables(self) -> None:
        for value in ("false", "", "True", "yes"):
            cache = self._cache(namespace("team-a", {CLUSTER_RESOURCE_OVERRIDE_ANNOTATION: value}))
            self.assertTrue(is_exempt(admission_request(pod([container()])), cache), value)

    def test_system_namespaces_are_exempt_even_when_enabled(self) -> None:
        for name in ("openshift", "kubernetes", "kube", "kube-system", "openshift-monitoring", "kubernetes-dashboard"):
            cache = self._cache(namespace(name, {CLUSTER_RESOURCE_OVERRIDE_ANNOTATION: "true"}))
            request = admission_request(pod([container()]), namespace_name=name)
            self.assertTrue(is_exempt(request, cache), name)

    def test_lookalike_names_are_not_exempt(self) -> None:
        for name in ("kubeflow", "openshiftish", "my-kube-system"):
            cache = self._cache(namespace(name))
            request = admission_request(pod([container()]), namespace_name=name)
            self.assertFalse(is_exempt(request, cache), name)

    def test_custom_exemption_policy(self) -> None:
        policy = ExemptionPolicy(names=("platform",), prefixes=("infra-",))
        cache = self._cache(namespace("infra-logging"), namespace("kube-system"))
        self.assertTrue(is_exempt(admission_request(pod([container()]), namespace_name="infra-logging"), cache, policy))
        self.assertFalse(is_exempt(admission_request(pod([container()]), namespace_name="kube-system"), cache, policy))

    def test_missing_namespace_is_forbidden(self) -> None:
        with self.assertRaises(ForbiddenError):
            is_exempt(admission_request(pod([container()])), self._cache())

    def test_unsynced_cache_is_forbidden(self) -> None:
        with self.assertRaises(ForbiddenError):
            is_exempt(admission_request(pod([container()])), ResourceCache())

    def test_non_pod_payload_is_bad_request(self) -> None:
        cache = self._cache(namespace("team-a"))
        for payload in (
            None,
            "pod",
            {"kind": "Deployment", "spec": {}},
            {"kind": "Pod"},
            {"kind": "Pod", "spec": {"containers": "x"}},
            {"kind": "Pod", "spec": {"containers": [{"name": "a", "resources": "x"}]}},
            {"kind": "Pod", "spec": {"initContainers": [{"name": "a", "resources": {"limits": ["cpu"]}}]}},
        ):
            with self.assertRaises(BadRequestError):
                is_exempt(admission_request(payload), cache)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
