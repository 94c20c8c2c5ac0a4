"""
kubeapply renders Kubernetes manifests from Jinja templates and applies them to a cluster, creating objects that do
not exist yet and replacing those that do. Templates that render to nothing but comments are skipped, which allows
optional resources to be switched off through the values.
"""

from kubeapply.apply import (
    ApplyResult,
    ClientHolder,
    apply_custom_resources,
    apply_deployments,
    apply_directly,
)
from kubeapply.assets import AssetSource, DirectoryAssetSource
from kubeapply.bundle import Bundle, BundleConfig
from kubeapply.decode import GenericObject, TypedObject, TypeRegistry, to_generic_object
from kubeapply.discovery import ResourceMapper
from kubeapply.errors import EMPTY_ASSET_SENTINEL, FileApplyError, KubeapplyError, is_empty_asset
from kubeapply.reconcile import ApplyOutcome, reconcile_generic
from kubeapply.render import render_asset
from kubeapply.templating import TemplateEngine

__all__ = [
    "EMPTY_ASSET_SENTINEL",
    "ApplyOutcome",
    "ApplyResult",
    "AssetSource",
    "Bundle",
    "BundleConfig",
    "ClientHolder",
    "DirectoryAssetSource",
    "FileApplyError",
    "GenericObject",
    "KubeapplyError",
    "ResourceMapper",
    "TemplateEngine",
    "TypeRegistry",
    "TypedObject",
    "apply_custom_resources",
    "apply_deployments",
    "apply_directly",
    "is_empty_asset",
    "reconcile_generic",
    "render_asset",
    "to_generic_object",
]
