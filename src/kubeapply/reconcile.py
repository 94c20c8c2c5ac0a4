from enum import Enum

from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import DynamicApiError, NotFoundError
from loguru import logger

from kubeapply.decode import GenericObject
from kubeapply.discovery import ResourceMapper
from kubeapply.errors import CreateError, GetError, UpdateError


class ApplyOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


def reconcile_generic(client: DynamicClient, mapper: ResourceMapper, obj: GenericObject) -> ApplyOutcome:
    """
    Bring the live state of *obj* in line with its manifest. The object is created if it does not exist. Otherwise the
    whole object is replaced, carrying forward the live resourceVersion so that the update passes the server's
    optimistic concurrency check.

    Raises:
        DiscoveryError: If no resource serves the object's kind.
        GetError: If reading the live object fails for any reason other than it not existing.
        CreateError: If creating the object fails.
        UpdateError: If replacing the object fails.
    """

    resource = mapper.resource_for_object(obj)
    namespace = obj.namespace or None

    try:
        current = client.get(resource, name=obj.name, namespace=namespace)
    except NotFoundError:
        try:
            client.create(resource, body=obj.manifest, namespace=namespace)
        except DynamicApiError as e:
            raise CreateError(f"creating {obj.type_name} {obj.name!r} failed: {e}") from e
        logger.info("Created {} '{}'", obj.type_name, _ref(obj))
        return ApplyOutcome.CREATED
    except DynamicApiError as e:
        raise GetError(f"getting {obj.type_name} {obj.name!r} failed: {e}") from e

    obj.resource_version = current.metadata.resourceVersion
    try:
        client.replace(resource, body=obj.manifest, name=obj.name, namespace=namespace)
    except DynamicApiError as e:
        raise UpdateError(f"updating {obj.type_name} {obj.name!r} failed: {e}") from e
    logger.info("Updated {} '{}'", obj.type_name, _ref(obj))
    return ApplyOutcome.UPDATED


def _ref(obj: GenericObject) -> str:
    return f"{obj.namespace}/{obj.name}" if obj.namespace else obj.name
