from kubernetes.dynamic.discovery import Discoverer
from kubernetes.dynamic.exceptions import DynamicApiError, ResourceNotFoundError, ResourceNotUniqueError
from kubernetes.dynamic.resource import Resource
from loguru import logger

from kubeapply.decode import GenericObject
from kubeapply.errors import DiscoveryError


class ResourceMapper:
    """
    Resolves the API resource that serves objects of a given apiVersion and kind.

    Mappings are cached for the lifetime of the mapper and never refreshed, so a CustomResourceDefinition that is
    registered while a mapper is in use is only visible to a new mapper. The cache is not synchronized.
    """

    def __init__(self, discoverer: Discoverer) -> None:
        """
        Args:
            discoverer: Usually the `resources` attribute of a `kubernetes.dynamic.DynamicClient`.
        """

        self._discoverer = discoverer
        self._cache: dict[tuple[str, str], Resource] = {}

    def resource_for(self, api_version: str, kind: str) -> Resource:
        """
        Raises:
            DiscoveryError: If *kind* is empty, no unique resource serves it or the discovery request fails.
        """

        if not kind:
            raise DiscoveryError("Object 'Kind' is missing")

        key = (api_version, kind)
        if (resource := self._cache.get(key)) is not None:
            logger.trace("Using cached resource mapping for {} {}", api_version, kind)
            return resource

        try:
            resource = self._discoverer.get(api_version=api_version, kind=kind)
        except (ResourceNotFoundError, ResourceNotUniqueError) as e:
            raise DiscoveryError(f"no unique resource found for {kind} in {api_version!r}: {e}") from e
        except DynamicApiError as e:
            raise DiscoveryError(f"discovering the resource for {kind} in {api_version!r} failed: {e}") from e

        logger.debug("Resolved {} {} to resource '{}'", api_version, kind, resource.name)
        self._cache[key] = resource
        return resource

    def resource_for_object(self, obj: GenericObject) -> Resource:
        return self.resource_for(obj.api_version, obj.kind)

    def invalidate(self) -> None:
        """
        Forget all cached mappings.
        """

        self._cache.clear()
