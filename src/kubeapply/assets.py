from abc import ABC, abstractmethod
from dataclasses import dataclass
import json
from pathlib import Path

from loguru import logger
import yaml

from kubeapply.errors import AssetLoadError, DecodeError


class AssetSource(ABC):
    """
    Represents a store of named template assets.
    """

    @abstractmethod
    def asset(self, name: str) -> bytes:
        """
        Retrieve the raw content of an asset.

        Raises:
            AssetLoadError: If the asset does not exist or cannot be read.
        """

        raise NotImplementedError

    @abstractmethod
    def to_json(self, data: bytes) -> bytes:
        """
        Normalize a document in the source's native format into its JSON equivalent.
        """

        raise NotImplementedError


@dataclass
class DirectoryAssetSource(AssetSource):
    """
    Serves assets from files in a directory. Assets are YAML (or JSON, which is a subset of YAML).
    """

    root: Path
    """
    The directory that asset names are relative to.
    """

    def asset(self, name: str) -> bytes:
        path = self.root / name
        logger.trace("Reading asset '{}' from '{}'", name, path)
        try:
            return path.read_bytes()
        except OSError as e:
            raise AssetLoadError(f"asset {name!r} could not be read from '{self.root}': {e}") from e

    def to_json(self, data: bytes) -> bytes:
        try:
            document = yaml.safe_load(data)
        except yaml.YAMLError as e:
            raise DecodeError(f"document is not valid YAML: {e}") from e
        # YAML timestamps have no JSON type and are passed on as strings.
        return json.dumps(document, default=str).encode("utf-8")
