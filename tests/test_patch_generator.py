import copy
import unittest

import jsonpatch

from resource_override.patch.generator import PatchError, create_patch

from tests.helpers import container, pod


class PatchGeneratorTests(unittest.TestCase):
    def test_identical_pods_produce_no_operations(self) -> None:
        original = pod([container(limits={"cpu": "1"})])
        self.assertEqual(create_patch(original, copy.deepcopy(original)), [])

    def test_added_and_replaced_fields_keep_container_index(self) -> None:
        original = pod(
            [container("a"), container("b", limits={"cpu": "1"}, requests={"cpu": "1"})],
            init_containers=[container("init", limits={"memory": "1Gi"})],
        )
        mutated = copy.deepcopy(original)
        mutated["spec"]["containers"][1]["resources"]["requests"]["cpu"] = "250m"
        mutated["spec"]["initContainers"][0]["resources"]["requests"] = {"memory": "512Mi"}

        operations = create_patch(original, mutated)

        self.assertIn(
            {"op": "replace", "path": "/spec/containers/1/resources/requests/cpu", "value": "250m"},
            operations,
        )
        self.assertIn(
            {"op": "add", "path": "/spec/initContainers/0/resources/requests", "value": {"memory": "512Mi"}},
            operations,
        )
        self.assertEqual(len(operations), 2)

    def test_only_resource_fields_are_diffed(self) -> None:
        original = pod([container(limits={"cpu": "1"})])
        mutated = copy.deepcopy(original)
        mutated["metadata"]["labels"] = {"touched": "yes"}
        mutated["spec"]["containers"][0]["image"] = "nginx:latest"
        self.assertEqual(create_patch(original, mutated), [])

    def test_container_without_resources_gets_whole_block(self) -> None:
        original = pod([{"name": "bare", "image": "busybox"}])
        mutated = copy.deepcopy(original)
        mutated["spec"]["containers"][0]["resources"] = {"requests": {"cpu": "1m"}}
        self.assertEqual(
            create_patch(original, mutated),
            [{"op": "add", "path": "/spec/containers/0/resources", "value": {"requests": {"cpu": "1m"}}}],
        )

    def test_patch_applies_back_to_mutated(self) -> None:
        original = pod(
            [container("a", limits={"memory": "2Gi"}), container("b", limits={"cpu": "2"}, requests={"cpu": "2"})],
            init_containers=[container("init", limits={"memory": "64Mi", "cpu": "100m"})],
        )
        mutated = copy.deepcopy(original)
        mutated["spec"]["containers"][0]["resources"]["requests"] = {"memory": "1Gi"}
        mutated["spec"]["containers"][0]["resources"]["limits"]["cpu"] = "2"
        mutated["spec"]["containers"][1]["resources"]["requests"]["cpu"] = "500m"
        mutated["spec"]["initContainers"][0]["resources"]["requests"] = {"cpu": "25m", "memory": "32Mi"}

        patched = jsonpatch.apply_patch(original, create_patch(original, mutated), in_place=False)
        self.assertEqual(patched, mutated)

    def test_differing_container_counts_fail(self) -> None:
        original = pod([container("a"), container("b")])
        mutated = copy.deepcopy(original)
        mutated["spec"]["containers"].pop()
        with self.assertRaises(PatchError):
            create_patch(original, mutated)

    def test_missing_spec_fails(self) -> None:
        with self.assertRaises(PatchError):
            create_patch({"kind": "Pod"}, pod([container()]))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
