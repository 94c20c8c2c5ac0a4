"""
Apply strategies for typed objects. A strategy receives a freshly decoded object and owns the decision whether the
live object has to be created, updated or left alone.
"""

from dataclasses import dataclass, field
import hashlib
import json
from typing import Protocol

from kubernetes.client import AppsV1Api, V1Deployment
from kubernetes.client.exceptions import ApiException
from loguru import logger

SPEC_HASH_ANNOTATION = "kubeapply.io/spec-hash"
""" Annotation that records the hash of the spec a Deployment was last applied with. """


@dataclass
class Event:
    reason: str
    message: str


@dataclass
class InMemoryRecorder:
    """
    Records the events emitted by apply strategies instead of sending them to the cluster.
    """

    source: str
    events: list[Event] = field(default_factory=list)

    def event(self, reason: str, message: str) -> None:
        logger.debug("[{}] {}: {}", self.source, reason, message)
        self.events.append(Event(reason, message))


class ApplyStrategy(Protocol):
    """
    Makes the cluster state of a Deployment match *deployment*. Returns the resulting object and whether anything was
    changed.
    """

    def __call__(
        self,
        api: AppsV1Api,
        recorder: InMemoryRecorder,
        deployment: V1Deployment,
        expected_generation: int,
    ) -> tuple[V1Deployment, bool]: ...


def spec_hash(deployment: V1Deployment) -> str:
    spec = deployment.spec.to_dict() if deployment.spec is not None else None
    return hashlib.sha256(json.dumps(spec, sort_keys=True, default=str).encode()).hexdigest()


def apply_deployment(
    api: AppsV1Api,
    recorder: InMemoryRecorder,
    deployment: V1Deployment,
    expected_generation: int,
) -> tuple[V1Deployment, bool]:
    """
    Create the Deployment if it does not exist. An existing Deployment is left alone if it was applied with the same
    spec and, unless *expected_generation* is 0, its generation equals *expected_generation*. Otherwise it is replaced
    with the current resourceVersion carried forward.

    Raises:
        ApiException: If any API call fails for another reason than the Deployment not existing.
    """

    name = deployment.metadata.name
    namespace = deployment.metadata.namespace or "default"
    desired_hash = spec_hash(deployment)
    deployment.metadata.annotations = {**(deployment.metadata.annotations or {}), SPEC_HASH_ANNOTATION: desired_hash}

    try:
        existing = api.read_namespaced_deployment(name, namespace)
    except ApiException as e:
        if e.status != 404:
            raise
        created = api.create_namespaced_deployment(namespace, deployment)
        recorder.event("DeploymentCreated", f"Created Deployment.apps/{name} -n {namespace} because it was missing")
        return created, True

    existing_hash = (existing.metadata.annotations or {}).get(SPEC_HASH_ANNOTATION)
    if existing_hash == desired_hash and expected_generation in (0, existing.metadata.generation):
        logger.debug("Deployment {}/{} is up to date", namespace, name)
        return existing, False

    deployment.metadata.resource_version = existing.metadata.resource_version
    updated = api.replace_namespaced_deployment(name, namespace, deployment)
    recorder.event("DeploymentUpdated", f"Updated Deployment.apps/{name} -n {namespace} because it changed")
    return updated, True
