"""
General purpose helper functions that are available in every template. The names follow the function names of the
Sprig library known from Helm charts, but arguments are passed Jinja style: when a helper is used as a filter, the
piped value is the first argument (e.g. `{{ name | trunc(63) }}` rather than `{{ name | trunc 63 }}`).
"""

import base64
from collections.abc import Callable, Iterable, Mapping
import datetime
import hashlib
import json
import math
import re
import secrets
import string
from typing import Any
import uuid
import zlib

import yaml

# Strings


def _trim_all(value: str, chars: str) -> str:
    return str(value).strip(chars)


def _trim_prefix(value: str, prefix: str) -> str:
    return str(value).removeprefix(prefix)


def _trim_suffix(value: str, suffix: str) -> str:
    return str(value).removesuffix(suffix)


def _contains(value: str, substr: str) -> bool:
    return substr in str(value)


def _has_prefix(value: str, prefix: str) -> bool:
    return str(value).startswith(prefix)


def _has_suffix(value: str, suffix: str) -> bool:
    return str(value).endswith(suffix)


def _repeat(value: str, count: int) -> str:
    return str(value) * count


def _substr(value: str, start: int, end: int) -> str:
    return str(value)[start:end]


def _trunc(value: str, length: int) -> str:
    """
    Truncate to *length* characters. A negative length keeps the last characters instead.
    """

    value = str(value)
    if length < 0:
        return value[length:]
    return value[:length]


def _quote(*values: Any) -> str:
    return " ".join(json.dumps(str(v)) for v in values if v is not None)


def _squote(*values: Any) -> str:
    return " ".join(f"'{v}'" for v in values if v is not None)


def _cat(*values: Any) -> str:
    return " ".join(str(v) for v in values if v is not None)


def _indent(value: str, spaces: int) -> str:
    """
    Indent every line of *value*, including the first.
    """

    pad = " " * spaces
    return "\n".join(pad + line for line in str(value).split("\n"))


def _nindent(value: str, spaces: int) -> str:
    """
    Like `indent`, but prepends a newline.
    """

    return "\n" + _indent(value, spaces)


def _words(value: str) -> list[str]:
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", str(value))
    return [w for w in re.split(r"[\s_\-]+", value) if w]


def _snakecase(value: str) -> str:
    return "_".join(w.lower() for w in _words(value))


def _kebabcase(value: str) -> str:
    return "-".join(w.lower() for w in _words(value))


def _camelcase(value: str) -> str:
    return "".join(w.capitalize() for w in _words(value))


def _split_list(value: str, sep: str) -> list[str]:
    return str(value).split(sep)


def _join(values: Iterable[Any], sep: str) -> str:
    return sep.join(str(v) for v in values)


def _regex_match(value: str, pattern: str) -> bool:
    return re.search(pattern, str(value)) is not None


def _regex_replace_all(value: str, pattern: str, repl: str) -> str:
    return re.sub(pattern, repl, str(value))


# Math


def _add(*values: int | float) -> int | float:
    return sum(values)


def _sub(a: int | float, b: int | float) -> int | float:
    return a - b


def _mul(*values: int | float) -> int | float:
    return math.prod(values)


def _div(a: int, b: int) -> int:
    return int(a / b)


def _mod(a: int, b: int) -> int:
    return a % b


def _until(count: int) -> list[int]:
    return list(range(count))


# Dates


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _date(value: datetime.datetime, fmt: str = "%Y-%m-%d") -> str:
    return value.strftime(fmt)


def _unix_epoch(value: datetime.datetime) -> str:
    return str(int(value.timestamp()))


# Encoding and hashing


def _b64enc(value: str | bytes) -> str:
    data = value if isinstance(value, bytes) else str(value).encode("utf-8")
    return base64.b64encode(data).decode("ascii")


def _b64dec(value: str) -> str:
    return base64.b64decode(str(value).encode("ascii")).decode("utf-8")


def _sha1sum(value: str) -> str:
    return hashlib.sha1(str(value).encode("utf-8")).hexdigest()


def _sha256sum(value: str) -> str:
    return hashlib.sha256(str(value).encode("utf-8")).hexdigest()


def _adler32sum(value: str) -> str:
    return str(zlib.adler32(str(value).encode("utf-8")))


def _to_yaml(value: Any) -> str:
    return yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip("\n")


def _from_yaml(value: str) -> Any:
    return yaml.safe_load(value)


def _to_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def _to_pretty_json(value: Any) -> str:
    return json.dumps(value, indent=2)


def _from_json(value: str) -> Any:
    return json.loads(value)


# Random values


def _random_string(alphabet: str, length: int) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _rand_alpha_num(length: int) -> str:
    return _random_string(string.ascii_letters + string.digits, length)


def _rand_alpha(length: int) -> str:
    return _random_string(string.ascii_letters, length)


def _rand_numeric(length: int) -> str:
    return _random_string(string.digits, length)


def _uuidv4() -> str:
    return str(uuid.uuid4())


def _htpasswd(username: str, password: str) -> str:
    """
    Generate an htpasswd entry with a bcrypt hashed password.
    """

    import bcrypt

    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
    return f"{username}:{hashed}"


# Defaults and flow control


def _empty(value: Any) -> bool:
    return not value


def _coalesce(*values: Any) -> Any:
    for value in values:
        if value:
            return value
    return None


def _ternary(condition: Any, value_if_true: Any, value_if_false: Any) -> Any:
    return value_if_true if condition else value_if_false


def _fail(message: str) -> None:
    raise ValueError(message)


def _required(value: Any, message: str) -> Any:
    """
    Returns *value*, or fails the rendering with *message* if it is empty.
    """

    # Zero and False are legitimate values.
    if not value and not isinstance(value, (bool, int, float)):
        raise ValueError(message)
    return value


# Collections


def _list(*values: Any) -> list[Any]:
    return list(values)


def _dict(*pairs: Any, **kwargs: Any) -> dict[str, Any]:
    """
    Build a dictionary from alternating keys and values. Keyword arguments are accepted as well, so that the Jinja
    built-in `dict(key=value)` keeps working.
    """

    if len(pairs) % 2:
        raise ValueError("dict expects an even number of arguments")
    result = {str(pairs[i]): pairs[i + 1] for i in range(0, len(pairs), 2)}
    result.update(kwargs)
    return result


def _keys(*mappings: Mapping[str, Any]) -> list[str]:
    return [key for mapping in mappings for key in mapping]


def _has_key(mapping: Mapping[str, Any], key: str) -> bool:
    return key in mapping


def _pick(mapping: Mapping[str, Any], *keys: str) -> dict[str, Any]:
    return {k: v for k, v in mapping.items() if k in keys}


def _omit(mapping: Mapping[str, Any], *keys: str) -> dict[str, Any]:
    return {k: v for k, v in mapping.items() if k not in keys}


def _merge(dest: dict[str, Any], *sources: Mapping[str, Any]) -> dict[str, Any]:
    """
    Deep merge *sources* into *dest*. Keys already present in *dest* take precedence.
    """

    for source in sources:
        for key, value in source.items():
            if key not in dest:
                dest[key] = value
            elif isinstance(dest[key], dict) and isinstance(value, Mapping):
                _merge(dest[key], value)
    return dest


def _uniq(values: Iterable[Any]) -> list[Any]:
    result: list[Any] = []
    for value in values:
        if value not in result:
            result.append(value)
    return result


def _compact(values: Iterable[Any]) -> list[Any]:
    return [v for v in values if v]


HELPER_FUNCTIONS: dict[str, Callable[..., Any]] = {
    # strings
    "trimAll": _trim_all,
    "trimPrefix": _trim_prefix,
    "trimSuffix": _trim_suffix,
    "contains": _contains,
    "hasPrefix": _has_prefix,
    "hasSuffix": _has_suffix,
    "repeat": _repeat,
    "substr": _substr,
    "trunc": _trunc,
    "quote": _quote,
    "squote": _squote,
    "cat": _cat,
    "indent": _indent,
    "nindent": _nindent,
    "snakecase": _snakecase,
    "kebabcase": _kebabcase,
    "camelcase": _camelcase,
    "splitList": _split_list,
    "join": _join,
    "regexMatch": _regex_match,
    "regexReplaceAll": _regex_replace_all,
    # math
    "add": _add,
    "add1": lambda value: value + 1,
    "sub": _sub,
    "mul": _mul,
    "div": _div,
    "mod": _mod,
    "max": max,
    "min": min,
    "floor": math.floor,
    "ceil": math.ceil,
    "until": _until,
    # dates
    "now": _now,
    "date": _date,
    "unixEpoch": _unix_epoch,
    # encoding and hashing
    "b64enc": _b64enc,
    "b64dec": _b64dec,
    "sha1sum": _sha1sum,
    "sha256sum": _sha256sum,
    "adler32sum": _adler32sum,
    "toPrettyJson": _to_pretty_json,
    # random
    "randAlphaNum": _rand_alpha_num,
    "randAlpha": _rand_alpha,
    "randNumeric": _rand_numeric,
    "uuidv4": _uuidv4,
    "htpasswd": _htpasswd,
    # defaults and flow control
    "empty": _empty,
    "coalesce": _coalesce,
    "ternary": _ternary,
    # collections
    "list": _list,
    "dict": _dict,
    "keys": _keys,
    "hasKey": _has_key,
    "pick": _pick,
    "omit": _omit,
    "merge": _merge,
    "uniq": _uniq,
    "compact": _compact,
}
""" The general purpose helper set. """

MANIFEST_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "toYaml": _to_yaml,
    "fromYaml": _from_yaml,
    "toJson": _to_json,
    "fromJson": _from_json,
    "encodeBase64": _b64enc,
    "required": _required,
    "fail": _fail,
}
""" Helpers specific to writing Kubernetes manifests. """
