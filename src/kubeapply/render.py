import re
from typing import Any

from loguru import logger

from kubeapply.assets import AssetSource
from kubeapply.errors import AssetLoadError, EmptyAssetError
from kubeapply.templating import TemplateEngine

_COMMENT = re.compile("#.*")


def render_asset(
    name: str,
    header_file: str,
    source: AssetSource,
    values: Any,
    engine: TemplateEngine | None = None,
) -> bytes:
    """
    Render the asset *name* against *values*. If *header_file* is not empty, the macros it defines are available to
    the template, which allows sharing helpers between all files of a batch.

    Raises:
        EmptyAssetError: If the rendered content consists only of comments and whitespace. Callers usually skip the
            file in that case, see #kubeapply.errors.is_empty_asset().
        AssetLoadError: If the asset or the header cannot be loaded.
        TemplateParseError: If the asset or the header is not a valid template.
        TemplateRenderError: If executing the template fails.
    """

    if engine is None:
        engine = TemplateEngine()

    header = b""
    if header_file:
        header = _load(source, header_file)
    body = _load(source, name)

    compiled = engine.compile(
        name,
        _decode(name, body),
        header_name=header_file or None,
        header_source=_decode(header_file, header),
    )
    rendered = compiled.render(values)

    if is_empty(rendered):
        logger.debug("Asset '{}' is empty after templating", name)
        raise EmptyAssetError(name)

    return rendered


def is_empty(body: bytes) -> bool:
    """
    Check if *body* is empty once comments and blank lines are removed.

    Everything from a `#` to the end of its line counts as a comment, even when the `#` appears inside a quoted
    value.
    """

    text = _COMMENT.sub("", body.decode("utf-8"))
    return len(text.removesuffix("\n").strip()) == 0


def _load(source: AssetSource, name: str) -> bytes:
    try:
        return source.asset(name)
    except AssetLoadError:
        raise
    except (OSError, KeyError) as e:
        raise AssetLoadError(f"asset {name!r} could not be loaded: {e}") from e


def _decode(name: str, data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise AssetLoadError(f"asset {name!r} is not valid UTF-8: {e}") from e
