"""
Turns rendered manifests into objects that can be applied to a cluster. A manifest becomes either a #TypedObject, if
its kind was registered in a #TypeRegistry ahead of time, or a #GenericObject that wraps the plain dictionary.
"""

from collections.abc import Iterable
from dataclasses import dataclass
import json
from typing import Any, NewType

from kubernetes.client import ApiClient, V1Deployment
from loguru import logger
import yaml

from kubeapply.assets import AssetSource
from kubeapply.errors import DecodeError

Manifest = NewType("Manifest", dict[str, Any])
""" Represents a Kubernetes manifest. """


@dataclass
class TypedObject:
    """
    A manifest deserialized into a model class of the Kubernetes client, e.g. `V1Deployment`.
    """

    api_version: str
    kind: str
    obj: Any

    @property
    def type_name(self) -> str:
        return type(self.obj).__name__


@dataclass
class GenericObject:
    """
    A manifest of any kind, kept as a dictionary.
    """

    manifest: Manifest

    @property
    def api_version(self) -> str:
        return self.manifest.get("apiVersion") or ""

    @property
    def kind(self) -> str:
        return self.manifest.get("kind") or ""

    @property
    def group(self) -> str:
        return self.api_version.rpartition("/")[0]

    @property
    def version(self) -> str:
        return self.api_version.rpartition("/")[2]

    @property
    def metadata(self) -> dict[str, Any]:
        metadata = self.manifest.get("metadata")
        if not isinstance(metadata, dict):
            metadata = self.manifest["metadata"] = {}
        return metadata

    @property
    def name(self) -> str:
        return self.metadata.get("name") or ""

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace") or ""

    @property
    def resource_version(self) -> str | None:
        return self.metadata.get("resourceVersion")

    @resource_version.setter
    def resource_version(self, value: str | None) -> None:
        if value is None:
            self.metadata.pop("resourceVersion", None)
        else:
            self.metadata["resourceVersion"] = value

    @property
    def type_name(self) -> str:
        """
        The canonical `Kind.group` name of the object, e.g. `Deployment.apps`, or `Namespace` for the core group.
        """

        if not self.kind:
            return "GenericObject"
        return f"{self.kind}.{self.group}".rstrip(".")


DecodedObject = TypedObject | GenericObject


class TypeRegistry:
    """
    The kinds that are decoded into typed objects. Registries are constructed by the caller and hold exactly the kinds
    registered on them.
    """

    def __init__(self, kinds: Iterable[tuple[str, str, type]] = ()) -> None:
        self._kinds: dict[tuple[str, str], type] = {}
        self._api_client: ApiClient | None = None
        for api_version, kind, model in kinds:
            self.register(api_version, kind, model)

    @staticmethod
    def default() -> "TypeRegistry":
        """
        Create a registry for `apps/v1` Deployments.
        """

        return TypeRegistry([("apps/v1", "Deployment", V1Deployment)])

    def register(self, api_version: str, kind: str, model: type) -> None:
        self._kinds[(api_version, kind)] = model

    def is_registered(self, api_version: str, kind: str) -> bool:
        return (api_version, kind) in self._kinds

    def decode(self, data: bytes) -> TypedObject:
        """
        Decode a YAML or JSON document into the model class registered for its apiVersion and kind.

        Raises:
            DecodeError: If the document is not a mapping, lacks its apiVersion or kind, the kind is not registered or
                the document does not fit the model.
        """

        try:
            manifest = yaml.safe_load(data)
        except yaml.YAMLError as e:
            raise DecodeError(f"document is not valid YAML: {e}") from e
        if not isinstance(manifest, dict):
            raise DecodeError(f"expected a mapping, got {type(manifest).__name__}")

        api_version, kind = manifest.get("apiVersion"), manifest.get("kind")
        if not kind:
            raise DecodeError("Object 'Kind' is missing")
        if not api_version:
            raise DecodeError("Object 'apiVersion' is missing")

        model = self._kinds.get((api_version, kind))
        if model is None:
            raise DecodeError(f"no kind {kind!r} is registered for version {api_version!r}")

        if self._api_client is None:
            self._api_client = ApiClient()
        try:
            obj = self._api_client.deserialize(json.dumps(manifest, default=str), model, "application/json")
        except (ValueError, TypeError) as e:
            raise DecodeError(f"{kind} could not be decoded: {e}") from e

        return TypedObject(api_version, kind, obj)


def to_generic_object(source: AssetSource, data: bytes) -> GenericObject:
    """
    Decode rendered bytes into a #GenericObject. The bytes are first normalized to JSON by the asset source.

    A document without a kind is not a Kubernetes manifest, but it is still returned as a best-effort object rather
    than failing.

    Raises:
        DecodeError: If the document cannot be normalized, is not a JSON object, or has a kind but no apiVersion.
    """

    normalized = source.to_json(data)
    try:
        document = json.loads(normalized)
    except json.JSONDecodeError as e:
        raise DecodeError(f"document is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise DecodeError(f"expected a JSON object, got {type(document).__name__}")

    obj = GenericObject(Manifest(document))
    if not obj.kind:
        logger.debug("Object 'Kind' is missing in document, passing it on as a generic object")
    elif not obj.api_version:
        raise DecodeError(f"Object 'apiVersion' is missing in {obj.kind} {obj.name!r}")
    return obj
