from collections.abc import Callable, Mapping
from typing import Any

import jinja2
from jinja2.runtime import Context, Macro
from loguru import logger

from kubeapply.errors import TemplateParseError, TemplateRenderError
from kubeapply.functions import HELPER_FUNCTIONS, MANIFEST_FUNCTIONS


class TemplateEngine:
    """
    Compiles manifest templates. Every compiled template has access to the same function library: the general purpose
    helpers, the manifest helpers, the `include` and `tpl` helpers that resolve definitions in the template being
    rendered, and any functions registered on the engine.

    Missing keys in the values object never fail the rendering, they render as an empty string instead.
    """

    def __init__(self, functions: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self._functions: dict[str, Callable[..., Any]] = {
            **HELPER_FUNCTIONS,
            **MANIFEST_FUNCTIONS,
            "include": _include,
            "tpl": _tpl,
        }
        if functions:
            self._functions.update(functions)

    @property
    def functions(self) -> Mapping[str, Callable[..., Any]]:
        return self._functions

    def register(self, name: str, func: Callable[..., Any]) -> None:
        """
        Make *func* available under *name* in templates compiled after this call.
        """

        self._functions[name] = func

    def compile(
        self,
        name: str,
        source: str,
        header_name: str | None = None,
        header_source: str | None = None,
    ) -> "CompiledTemplate":
        """
        Parse a template and, optionally, the header that defines macros shared with it. The template itself is parsed
        before the header.

        Raises:
            TemplateParseError: If either source has a syntax error.
        """

        sources = {name: source}
        if header_name:
            sources[header_name] = header_source or ""

        env = jinja2.Environment(
            loader=jinja2.DictLoader(sources),
            undefined=jinja2.ChainableUndefined,
            keep_trailing_newline=True,
        )
        builtin_filters = set(env.filters)
        for key, func in self._functions.items():
            env.globals[key] = func
            if key not in builtin_filters:
                env.filters[key] = func

        template = _parse(env, name)
        header = _parse(env, header_name) if header_name else None
        logger.trace("Compiled template '{}' (header: {})", name, header_name)
        return CompiledTemplate(name, template, header)

    def render(
        self,
        name: str,
        source: str,
        values: Any,
        header_name: str | None = None,
        header_source: str | None = None,
    ) -> bytes:
        """
        Compile and render a template in one step.
        """

        return self.compile(name, source, header_name, header_source).render(values)


class CompiledTemplate:
    """
    A parsed template together with its parsed header.
    """

    def __init__(self, name: str, template: jinja2.Template, header: jinja2.Template | None) -> None:
        self.name = name
        self._template = template
        self._header = header

    def render(self, values: Any) -> bytes:
        """
        Execute the template against *values*. Macros exported by the header are callable from the template.

        Raises:
            TemplateRenderError: If executing the header or the template fails.
        """

        context = values_context(values)
        try:
            if self._header is not None:
                module = self._header.make_module(context)
                context.update({k: v for k, v in vars(module).items() if not k.startswith("_")})
            output = self._template.render(context)
        except Exception as e:
            raise TemplateRenderError(f"template {self.name!r}: {e}") from e
        return output.encode("utf-8")


def values_context(values: Any) -> dict[str, Any]:
    """
    Build the render context for a values object. The object is available as `Values`; if it is a mapping, its keys
    are available as top-level variables as well.
    """

    context: dict[str, Any] = {}
    if isinstance(values, Mapping):
        context.update({k: v for k, v in values.items() if isinstance(k, str)})
    context["Values"] = values
    return context


def _parse(env: jinja2.Environment, name: str) -> jinja2.Template:
    try:
        return env.get_template(name)
    except jinja2.TemplateSyntaxError as e:
        raise TemplateParseError(f"template {name!r}, line {e.lineno}: {e.message}") from e


@jinja2.pass_context
def _include(context: Context, name: str, *args: Any, **kwargs: Any) -> str:
    """
    Call the macro called *name* and return its output. The macro can be defined in the header or earlier in the
    template.
    """

    macro = context.resolve_or_missing(name)
    if not isinstance(macro, Macro):
        raise jinja2.TemplateRuntimeError(f"no macro named {name!r} is defined")
    return str(macro(*args, **kwargs))


@jinja2.pass_context
def _tpl(context: Context, source: str, values: Any = None) -> str:
    """
    Render *source* as a template, with the current context or the given *values*.
    """

    variables = dict(context.get_all())
    if values is not None:
        variables.update(values_context(values))
    return context.environment.from_string(source).render(variables)
