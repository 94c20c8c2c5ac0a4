from pathlib import Path
from unittest.mock import MagicMock

import pytest

from kubeapply.assets import AssetSource, DirectoryAssetSource
from kubeapply.errors import (
    EMPTY_ASSET_SENTINEL,
    AssetLoadError,
    EmptyAssetError,
    TemplateParseError,
    is_empty_asset,
)
from kubeapply.render import is_empty, render_asset


@pytest.fixture
def source(tmp_path: Path) -> DirectoryAssetSource:
    (tmp_path / "_helpers.tpl").write_text("{% macro fullname(v) %}{{ v.name }}-{{ v.suffix }}{% endmacro %}\n")
    (tmp_path / "configmap.yaml").write_text(
        "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: {{ fullname(Values) }}\n"
    )
    (tmp_path / "comments.yaml").write_text("# just a comment\n\n")
    (tmp_path / "optional.yaml").write_text(
        "# Only rendered if enabled.\n{% if enabled %}\napiVersion: v1\nkind: Secret\n{% endif %}\n"
    )
    return DirectoryAssetSource(tmp_path)


def test__render_asset__renders_with_header(source: DirectoryAssetSource) -> None:
    output = render_asset("configmap.yaml", "_helpers.tpl", source, {"name": "web", "suffix": "config"})
    assert output == b"apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: web-config\n"


def test__render_asset__comment_only_asset_is_empty(source: DirectoryAssetSource) -> None:
    with pytest.raises(EmptyAssetError) as excinfo:
        render_asset("comments.yaml", "", source, {})
    assert is_empty_asset(excinfo.value)
    assert str(excinfo.value) == f"asset comments.yaml becomes {EMPTY_ASSET_SENTINEL}"


def test__render_asset__disabled_optional_asset_is_empty(source: DirectoryAssetSource) -> None:
    with pytest.raises(EmptyAssetError):
        render_asset("optional.yaml", "", source, {"enabled": False})
    assert b"kind: Secret" in render_asset("optional.yaml", "", source, {"enabled": True})


def test__render_asset__does_not_load_header_if_not_given() -> None:
    source = MagicMock(spec=AssetSource)
    source.asset.return_value = b"kind: {{ kind }}\n"

    assert render_asset("a.yaml", "", source, {"kind": "Pod"}) == b"kind: Pod\n"
    source.asset.assert_called_once_with("a.yaml")


def test__render_asset__missing_asset_fails_to_load(source: DirectoryAssetSource) -> None:
    with pytest.raises(AssetLoadError):
        render_asset("missing.yaml", "", source, {})
    with pytest.raises(AssetLoadError):
        render_asset("configmap.yaml", "missing.tpl", source, {})


def test__render_asset__converts_foreign_lookup_errors() -> None:
    source = MagicMock(spec=AssetSource)
    source.asset.side_effect = KeyError("a.yaml")

    with pytest.raises(AssetLoadError):
        render_asset("a.yaml", "", source, {})


def test__render_asset__rejects_invalid_utf8(source: DirectoryAssetSource, tmp_path: Path) -> None:
    (tmp_path / "binary.yaml").write_bytes(b"kind: \xff\n")
    (tmp_path / "binary.tpl").write_bytes(b"\xfe")

    with pytest.raises(AssetLoadError, match="'binary.yaml' is not valid UTF-8"):
        render_asset("binary.yaml", "", source, {})
    with pytest.raises(AssetLoadError, match="'binary.tpl' is not valid UTF-8"):
        render_asset("configmap.yaml", "binary.tpl", source, {})


def test__render_asset__parse_error_is_not_an_empty_asset(source: DirectoryAssetSource, tmp_path: Path) -> None:
    (tmp_path / "broken.yaml").write_text("{% if %}")

    with pytest.raises(TemplateParseError) as excinfo:
        render_asset("broken.yaml", "", source, {})
    assert not is_empty_asset(excinfo.value)


def test__is_empty() -> None:
    assert is_empty(b"")
    assert is_empty(b"\n")
    assert is_empty(b"# comment\n\n   \n")
    assert is_empty(b"   # indented comment\n  #\n")
    assert not is_empty(b"kind: Pod\n# comment\n")
    # Everything after a '#' is stripped, even inside quotes.
    assert not is_empty(b'name: "#abc"\n')
    assert is_empty(b'#"quoted"\n')


def test__is_empty_asset__detects_sentinel_in_untyped_errors() -> None:
    assert is_empty_asset(RuntimeError(f"asset x.yaml becomes {EMPTY_ASSET_SENTINEL}"))
    assert not is_empty_asset(RuntimeError("asset x.yaml could not be read"))
