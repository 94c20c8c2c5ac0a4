"""
Batch entry points that render a list of template files and apply the resulting objects to a cluster.

Files are processed strictly in order, because a file may depend on objects created by an earlier one (for example
a Namespace). Files that render to nothing but comments are skipped. The first hard error aborts the batch and is
raised as a #FileApplyError; objects applied by earlier files are not rolled back, re-running the batch is safe.
"""

from dataclasses import dataclass
from typing import Any

from kubernetes.client import AppsV1Api, V1Deployment
from kubernetes.client.api_client import ApiClient
from kubernetes.dynamic import DynamicClient
from loguru import logger

from kubeapply.assets import AssetSource
from kubeapply.decode import TypeRegistry, to_generic_object
from kubeapply.discovery import ResourceMapper
from kubeapply.errors import DecodeError, FileApplyError, KubeapplyError, UnhandledKindError, is_empty_asset
from kubeapply.reconcile import ApplyOutcome, reconcile_generic
from kubeapply.render import render_asset
from kubeapply.strategies import ApplyStrategy, InMemoryRecorder, apply_deployment
from kubeapply.templating import TemplateEngine

STANDARD_KINDS = frozenset(
    {
        "ConfigMap",
        "Namespace",
        "PersistentVolumeClaim",
        "Pod",
        "Secret",
        "Service",
        "ServiceAccount",
        "APIService.apiregistration.k8s.io",
        "ClusterRole.rbac.authorization.k8s.io",
        "ClusterRoleBinding.rbac.authorization.k8s.io",
        "CSIDriver.storage.k8s.io",
        "CustomResourceDefinition.apiextensions.k8s.io",
        "MutatingWebhookConfiguration.admissionregistration.k8s.io",
        "PodDisruptionBudget.policy",
        "Role.rbac.authorization.k8s.io",
        "RoleBinding.rbac.authorization.k8s.io",
        "StorageClass.storage.k8s.io",
        "ValidatingWebhookConfiguration.admissionregistration.k8s.io",
    }
)
""" Canonical names of the kinds that #apply_directly() handles. """


@dataclass
class ApplyResult:
    """
    The outcome of applying a single file.
    """

    file: str
    type_name: str | None = None
    outcome: ApplyOutcome = ApplyOutcome.FAILED
    result: Any = None
    """ The applied object, as returned by the strategy or the generic object that was sent to the cluster. """

    error: KubeapplyError | None = None


@dataclass
class ClientHolder:
    """
    The clients used by #apply_directly().
    """

    dynamic: DynamicClient
    mapper: ResourceMapper

    @staticmethod
    def from_api_client(client: ApiClient) -> "ClientHolder":
        """
        Create a dynamic client and a resource mapper for it. Note that this talks to the API server to discover the
        available API groups.
        """

        dynamic = DynamicClient(client)
        return ClientHolder(dynamic, ResourceMapper(dynamic.resources))


def apply_deployments(
    client: ApiClient,
    source: AssetSource,
    values: Any,
    header_file: str,
    *files: str,
    strategy: ApplyStrategy = apply_deployment,
    registry: TypeRegistry | None = None,
    recorder: InMemoryRecorder | None = None,
    engine: TemplateEngine | None = None,
) -> list[ApplyResult]:
    """
    Render and apply Deployment templates. Every file must render to an `apps/v1` Deployment, which is handed to
    *strategy* to create or update it.

    Args:
        client: The Kubernetes API client.
        source: The source of the template files.
        values: The values to render the templates with.
        header_file: The name of an asset with macros shared by all files, or an empty string.
        files: The names of the template files.
        strategy: Applies a decoded Deployment.
        registry: The registry to decode with. Defaults to #TypeRegistry.default().
        recorder: Receives the events emitted by *strategy*.
        engine: The template engine to render with.
    Returns:
        The result for every file that was applied or skipped.
    Raises:
        FileApplyError: For the first file that fails.
    """

    registry = registry or TypeRegistry.default()
    recorder = recorder or InMemoryRecorder("kubeapply")
    engine = engine or TemplateEngine()
    api = AppsV1Api(client)

    results = []
    for name in files:
        data = _render_or_skip(name, header_file, source, values, engine)
        if data is None:
            results.append(ApplyResult(name, outcome=ApplyOutcome.SKIPPED))
            continue

        try:
            typed = registry.decode(data)
        except DecodeError as e:
            raise FileApplyError(name, None, e) from e
        if not isinstance(typed.obj, V1Deployment):
            error = DecodeError(f"expected a Deployment, got {typed.kind}")
            raise FileApplyError(name, typed.type_name, error) from error

        try:
            applied, changed = strategy(api, recorder, typed.obj, 0)
        except Exception as e:
            raise FileApplyError(name, typed.type_name, e) from e

        outcome = ApplyOutcome.UPDATED if changed else ApplyOutcome.UNCHANGED
        logger.debug("Applied '{}' ({}): {}", name, typed.type_name, outcome.value)
        results.append(ApplyResult(name, typed.type_name, outcome, applied))

    return results


def collect_direct_results(
    clients: ClientHolder,
    source: AssetSource,
    values: Any,
    header_file: str,
    *files: str,
    engine: TemplateEngine | None = None,
) -> list[ApplyResult]:
    """
    Render and apply standard resources, recording the result of every file. A failing file does not stop the files
    after it from being applied.
    """

    engine = engine or TemplateEngine()

    results = []
    for name in files:
        result = ApplyResult(name)
        try:
            data = render_asset(name, header_file, source, values, engine)
            obj = to_generic_object(source, data)
            result.type_name = obj.type_name
            if obj.type_name not in STANDARD_KINDS:
                raise UnhandledKindError(f"unhandled type {obj.type_name}")
            result.outcome = reconcile_generic(clients.dynamic, clients.mapper, obj)
            result.result = obj
        except KubeapplyError as e:
            result.error = e
            result.outcome = ApplyOutcome.SKIPPED if is_empty_asset(e) else ApplyOutcome.FAILED
        results.append(result)

    return results


def apply_directly(
    clients: ClientHolder,
    source: AssetSource,
    values: Any,
    header_file: str,
    *files: str,
    engine: TemplateEngine | None = None,
) -> list[ApplyResult]:
    """
    Render and apply standard Kubernetes resources (see #STANDARD_KINDS). All files are applied before the results are
    checked; the first failed result is then raised.

    Raises:
        FileApplyError: For the first file that failed.
    """

    results = collect_direct_results(clients, source, values, header_file, *files, engine=engine)
    for result in results:
        if result.error is not None and not is_empty_asset(result.error):
            raise FileApplyError(result.file, result.type_name, result.error) from result.error
    return results


def apply_custom_resources(
    client: DynamicClient,
    mapper: ResourceMapper,
    source: AssetSource,
    values: Any,
    header_file: str,
    *files: str,
    engine: TemplateEngine | None = None,
) -> list[ApplyResult]:
    """
    Render and apply objects of any kind, including custom resources. The API resource for each object is resolved
    through *mapper*, which should be reused across calls to avoid repeated discovery.

    Raises:
        FileApplyError: For the first file that fails.
    """

    engine = engine or TemplateEngine()

    results = []
    for name in files:
        data = _render_or_skip(name, header_file, source, values, engine)
        if data is None:
            results.append(ApplyResult(name, outcome=ApplyOutcome.SKIPPED))
            continue

        try:
            obj = to_generic_object(source, data)
        except DecodeError as e:
            raise FileApplyError(name, None, e) from e

        try:
            outcome = reconcile_generic(client, mapper, obj)
        except KubeapplyError as e:
            raise FileApplyError(name, obj.type_name, e) from e
        results.append(ApplyResult(name, obj.type_name, outcome, obj))

    return results


def _render_or_skip(
    name: str,
    header_file: str,
    source: AssetSource,
    values: Any,
    engine: TemplateEngine,
) -> bytes | None:
    """
    Render a file. Returns `None` if the file is empty after templating.
    """

    try:
        return render_asset(name, header_file, source, values, engine)
    except KubeapplyError as e:
        if is_empty_asset(e):
            logger.debug("Skipping '{}', it is empty after templating", name)
            return None
        raise FileApplyError(name, None, e) from e
