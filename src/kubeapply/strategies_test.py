from unittest.mock import MagicMock

from kubernetes.client import (
    V1Deployment,
    V1DeploymentSpec,
    V1LabelSelector,
    V1ObjectMeta,
    V1PodTemplateSpec,
)
from kubernetes.client.exceptions import ApiException
import pytest

from kubeapply.strategies import SPEC_HASH_ANNOTATION, InMemoryRecorder, apply_deployment, spec_hash


def new_deployment(replicas: int = 1) -> V1Deployment:
    return V1Deployment(
        api_version="apps/v1",
        kind="Deployment",
        metadata=V1ObjectMeta(name="web", namespace="apps"),
        spec=V1DeploymentSpec(
            replicas=replicas,
            selector=V1LabelSelector(match_labels={"app": "web"}),
            template=V1PodTemplateSpec(metadata=V1ObjectMeta(labels={"app": "web"})),
        ),
    )


def live_deployment(hash: str, generation: int = 3) -> V1Deployment:
    live = new_deployment()
    live.metadata.annotations = {SPEC_HASH_ANNOTATION: hash}
    live.metadata.generation = generation
    live.metadata.resource_version = "17"
    return live


@pytest.fixture
def recorder() -> InMemoryRecorder:
    return InMemoryRecorder("test")


def test__apply_deployment__creates_missing_deployment(recorder: InMemoryRecorder) -> None:
    api = MagicMock()
    api.read_namespaced_deployment.side_effect = ApiException(status=404, reason="Not Found")
    deployment = new_deployment()

    result, changed = apply_deployment(api, recorder, deployment, 0)

    assert changed
    assert result is api.create_namespaced_deployment.return_value
    api.create_namespaced_deployment.assert_called_once_with("apps", deployment)
    assert deployment.metadata.annotations[SPEC_HASH_ANNOTATION] == spec_hash(deployment)
    assert [e.reason for e in recorder.events] == ["DeploymentCreated"]


def test__apply_deployment__leaves_unchanged_deployment_alone(recorder: InMemoryRecorder) -> None:
    api = MagicMock()
    live = live_deployment(spec_hash(new_deployment()))
    api.read_namespaced_deployment.return_value = live

    result, changed = apply_deployment(api, recorder, new_deployment(), 0)

    assert not changed
    assert result is live
    api.replace_namespaced_deployment.assert_not_called()
    assert recorder.events == []


def test__apply_deployment__replaces_on_generation_mismatch(recorder: InMemoryRecorder) -> None:
    api = MagicMock()
    api.read_namespaced_deployment.return_value = live_deployment(spec_hash(new_deployment()), generation=3)

    _, changed = apply_deployment(api, recorder, new_deployment(), 2)

    assert changed
    api.replace_namespaced_deployment.assert_called_once()


def test__apply_deployment__replaces_changed_deployment(recorder: InMemoryRecorder) -> None:
    api = MagicMock()
    api.read_namespaced_deployment.return_value = live_deployment(spec_hash(new_deployment()))
    deployment = new_deployment(replicas=5)

    _, changed = apply_deployment(api, recorder, deployment, 0)

    assert changed
    api.replace_namespaced_deployment.assert_called_once_with("web", "apps", deployment)
    assert deployment.metadata.resource_version == "17"
    assert [e.reason for e in recorder.events] == ["DeploymentUpdated"]


def test__apply_deployment__propagates_read_errors(recorder: InMemoryRecorder) -> None:
    api = MagicMock()
    api.read_namespaced_deployment.side_effect = ApiException(status=403, reason="Forbidden")

    with pytest.raises(ApiException):
        apply_deployment(api, recorder, new_deployment(), 0)
    api.create_namespaced_deployment.assert_not_called()
    api.replace_namespaced_deployment.assert_not_called()
