from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from kubernetes.client.api_client import ApiClient
from loguru import logger

from kubeapply.apply import ApplyResult, ClientHolder, apply_custom_resources, apply_deployments, apply_directly
from kubeapply.assets import DirectoryAssetSource
from kubeapply.templating import TemplateEngine


@dataclass
class Bundle:
    """
    A set of template files that are applied together, stored in a `kubeapply-bundle.yaml` file.
    """

    assets: Path = Path(".")
    """
    The directory containing the template files. Relative to the bundle file.
    """

    header: str = ""
    """
    Name of a template file in the assets directory whose macros are available in all other files.
    """

    values: dict[str, Any] = field(default_factory=dict)
    """
    Values to render the templates with. These take precedence over the values loaded from `values_files`.
    """

    values_files: list[Path] = field(default_factory=list)
    """
    YAML files with values, merged in order. Relative to the bundle file.
    """

    resources: list[str] = field(default_factory=list)
    """
    Template files for standard Kubernetes resources, such as Namespaces, ServiceAccounts and RBAC rules.
    """

    deployments: list[str] = field(default_factory=list)
    """
    Template files that each render an `apps/v1` Deployment.
    """

    custom_resources: list[str] = field(default_factory=list)
    """
    Template files for objects of any other kind.
    """


@dataclass
class BundleConfig:
    """
    Wrapper for the bundle configuration file.
    """

    FILENAME = "kubeapply-bundle.yaml"

    file: Path | None
    bundle: Bundle

    @staticmethod
    def find_config_file(cwd: Path | None = None) -> Path | None:
        """
        Find the `kubeapply-bundle.yaml` in the given *cwd* or any of its parent directories.
        """

        if cwd is None:
            cwd = Path.cwd()

        for directory in [cwd] + list(cwd.parents):
            file = directory / BundleConfig.FILENAME
            if file.exists():
                return file

        return None

    @staticmethod
    def load(file: Path | None = None, /) -> "BundleConfig":
        """
        Load the bundle configuration from the given file, or from the bundle file found in the current directory or
        its parents. Relative paths in the configuration are resolved against the directory of the file.

        Raises:
            FileNotFoundError: If no file is given and none can be found.
        """

        from databind.json import load as deser
        from yaml import safe_load

        if file is None:
            file = BundleConfig.find_config_file()
        if file is None:
            raise FileNotFoundError(
                f"Could not find '{BundleConfig.FILENAME}' in '{Path.cwd()}' or any of its parent directories."
            )

        logger.debug("Loading bundle configuration from '{}'", file)
        bundle = deser(safe_load(file.read_text()) or {}, Bundle, filename=str(file))

        if not bundle.assets.is_absolute():
            bundle.assets = file.parent / bundle.assets
        if not bundle.assets.is_dir():
            logger.warning("Assets directory '{}' does not exist", bundle.assets)
        bundle.values_files = [path if path.is_absolute() else file.parent / path for path in bundle.values_files]

        return BundleConfig(file, bundle)

    def asset_source(self) -> DirectoryAssetSource:
        return DirectoryAssetSource(self.bundle.assets)

    def load_values(self) -> dict[str, Any]:
        """
        Merge the values files in order and the inline values on top.
        """

        from yaml import safe_load

        values: dict[str, Any] = {}
        for path in self.bundle.values_files:
            logger.debug("Loading values from '{}'", path)
            loaded = safe_load(path.read_text()) or {}
            if not isinstance(loaded, dict):
                raise ValueError(f"Values file '{path}' must contain a mapping, got {type(loaded).__name__}")
            values = merge_values(values, loaded)
        return merge_values(values, self.bundle.values)

    def apply(self, client: ApiClient, engine: TemplateEngine | None = None) -> list[ApplyResult]:
        """
        Apply the bundle: standard resources first, then Deployments, then all other objects.

        Raises:
            FileApplyError: For the first file that fails.
        """

        engine = engine or TemplateEngine()
        source = self.asset_source()
        values = self.load_values()
        bundle = self.bundle

        clients: ClientHolder | None = None
        if bundle.resources or bundle.custom_resources:
            clients = ClientHolder.from_api_client(client)

        results: list[ApplyResult] = []
        if clients is not None and bundle.resources:
            logger.info("Applying {} resource file(s)", len(bundle.resources))
            results += apply_directly(clients, source, values, bundle.header, *bundle.resources, engine=engine)
        if bundle.deployments:
            logger.info("Applying {} deployment file(s)", len(bundle.deployments))
            results += apply_deployments(client, source, values, bundle.header, *bundle.deployments, engine=engine)
        if clients is not None and bundle.custom_resources:
            logger.info("Applying {} custom resource file(s)", len(bundle.custom_resources))
            results += apply_custom_resources(
                clients.dynamic, clients.mapper, source, values, bundle.header, *bundle.custom_resources, engine=engine
            )

        return results


def merge_values(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge *override* into a copy of *base*. Nested mappings are merged, any other value in *override* replaces
    the value in *base*.
    """

    result = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_values(result[key], value)
        else:
            result[key] = deepcopy(value)
    return result
