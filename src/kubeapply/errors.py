"""
Exceptions raised while rendering and applying manifests.

Errors come in two tiers. An #EmptyAssetError is *soft*: the template rendered to nothing but comments and blank
lines and the file is simply skipped. Every other error is *hard* and aborts the batch it occurs in. Callers should
use #is_empty_asset() to tell the two apart.
"""

from dataclasses import dataclass

EMPTY_ASSET_SENTINEL = "ERROR_EMPTY_ASSET_AFTER_TEMPLATING"
""" Marker embedded in the message of every empty asset error. """


class KubeapplyError(Exception):
    """
    Base class for all errors raised by kubeapply.
    """


class EmptyAssetError(KubeapplyError):
    """
    Raised when an asset renders to nothing but comments and blank lines.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f"asset {name} becomes {EMPTY_ASSET_SENTINEL}")
        self.name = name


class AssetLoadError(KubeapplyError):
    """
    Raised when an asset cannot be read from its source.
    """


class TemplateParseError(KubeapplyError):
    """
    Raised when the source of a template or its header cannot be parsed.
    """


class TemplateRenderError(KubeapplyError):
    """
    Raised when executing a parsed template fails.
    """


class DecodeError(KubeapplyError):
    """
    Raised when rendered bytes cannot be decoded into an object.
    """


class DiscoveryError(KubeapplyError):
    """
    Raised when the API resource for an object's apiVersion and kind cannot be determined.
    """


class GetError(KubeapplyError):
    """
    Raised when reading the live state of an object fails for a reason other than it not existing.
    """


class CreateError(KubeapplyError):
    pass


class UpdateError(KubeapplyError):
    pass


class UnhandledKindError(KubeapplyError):
    """
    Raised by #kubeapply.apply.apply_directly() for objects that are not standard Kubernetes resources.
    """


@dataclass
class FileApplyError(KubeapplyError):
    """
    Wraps a hard error with the name of the file it originated from and, if the file was decoded, the type of the
    decoded object.
    """

    file: str
    type_name: str | None
    cause: BaseException

    def __str__(self) -> str:
        if self.type_name is None:
            return f'"{self.file}": {self.cause}'
        return f'"{self.file}" ({self.type_name}): {self.cause}'


def is_empty_asset(err: BaseException) -> bool:
    """
    Returns `True` if *err* signals that an asset was empty after templating. Errors that passed through an untyped
    channel are recognized by the sentinel in their message.
    """

    return isinstance(err, EmptyAssetError) or EMPTY_ASSET_SENTINEL in str(err)
