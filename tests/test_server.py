import base64
import json

from fastapi.testclient import TestClient

from resource_override.admission.plugin import ClusterResourceOverride, MutatingHook
from resource_override.limits.cache import ResourceCache
from resource_override.override.config import OverrideConfig
from resource_override.server.app import app, get_hook

from tests.helpers import container, namespace, pod


def _review(obj, namespace_name="team-a", operation="CREATE"):
    return {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "request": {
            "uid": "b9e3b4a5-0000-4c1e-9d8e-2f6a1c3d5e7f",
            "kind": {"group": "", "version": "v1", "kind": "Pod"},
            "resource": {"group": "", "version": "v1", "resource": "pods"},
            "namespace": namespace_name,
            "operation": operation,
            "userInfo": {"username": "system:serviceaccount:team-a:deployer"},
            "object": obj,
        },
    }


class TestMutateEndpoint:
    def setup_method(self) -> None:
        cache = ResourceCache.from_objects([namespace("team-a")])
        self.hook = MutatingHook()
        self.hook.initialize(
            lambda: ClusterResourceOverride(OverrideConfig(memory_request_to_limit_ratio=0.5), cache, cache)
        )
        self._original_override = app.dependency_overrides.get(get_hook)
        app.dependency_overrides[get_hook] = lambda: self.hook

    def teardown_method(self) -> None:
        if self._original_override is not None:
            app.dependency_overrides[get_hook] = self._original_override
        else:
            app.dependency_overrides.pop(get_hook, None)

    def test_mutate_returns_patch(self) -> None:
        client = TestClient(app)
        response = client.post("/mutate", json=_review(pod([container(limits={"memory": "2Gi"})])))
        assert response.status_code == 200
        body = response.json()
        assert body["apiVersion"] == "admission.k8s.io/v1"
        assert body["kind"] == "AdmissionReview"
        assert body["response"]["uid"] == "b9e3b4a5-0000-4c1e-9d8e-2f6a1c3d5e7f"
        assert body["response"]["allowed"] is True
        assert body["response"]["patchType"] == "JSONPatch"
        patch = json.loads(base64.b64decode(body["response"]["patch"]))
        assert patch == [
            {"op": "add", "path": "/spec/containers/0/resources/requests", "value": {"memory": "1Gi"}}
        ]

    def test_denial_carries_status(self) -> None:
        client = TestClient(app)
        response = client.post("/mutate", json=_review(pod([container()]), namespace_name="ghost"))
        assert response.status_code == 200
        result = response.json()["response"]
        assert result["allowed"] is False
        assert result["status"]["code"] == 403
        assert result["status"]["reason"] == "Forbidden"
        assert "patch" not in result

    def test_review_without_request_is_rejected(self) -> None:
        client = TestClient(app)
        response = client.post("/mutate", json={"apiVersion": "admission.k8s.io/v1", "kind": "AdmissionReview"})
        assert response.status_code == 400

    def test_healthz_reflects_initialization(self) -> None:
        client = TestClient(app)
        assert client.get("/healthz").status_code == 200
        app.dependency_overrides[get_hook] = lambda: MutatingHook()
        assert client.get("/healthz").status_code == 503
