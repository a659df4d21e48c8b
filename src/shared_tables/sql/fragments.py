"""
SQL fragment helpers for the Postgres dialect spoken by the query service.

Pure functions: identifier quoting, literal escaping, array literals,
placeholder numbering and JSON path conversion. None of them touch shared
state, so they can be used and tested in isolation.
"""

from __future__ import annotations

import datetime as dt
import json
import math
import re
from typing import Any

from shared_tables.errors import PayloadEncodeError

_ARRAY_ACCESSOR = re.compile(r"(.+?)((?:\[[0-9]+\])+)")
_ALIAS = re.compile(r"\s+as\s+", re.IGNORECASE)
_PLACEHOLDER = re.compile(r"(\\*)(\?)")
_PG_PATH = re.compile(r"^\{.*\}$")
_PATH_INDEX = re.compile(r"\[([0-9]+)\]")
_NO_VALUE = object()


def quote_identifier(value: str) -> str:
    """Quote a column or table identifier.

    ``*`` passes through, embedded double quotes are doubled, and a trailing
    array accessor stays outside the quotes. Dotted names and ``x as y``
    aliases are quoted part by part.

    Example:
        >>> quote_identifier('ethereum.blocks')
        '"ethereum"."blocks"'
        >>> quote_identifier('topics[1]')
        '"topics"[1]'
    """
    alias_parts = _ALIAS.split(value.strip(), maxsplit=1)
    if len(alias_parts) == 2:
        return f"{quote_identifier(alias_parts[0])} as {_quote_part(alias_parts[1])}"
    return ".".join(_quote_part(part) for part in value.split("."))


def _quote_part(value: str) -> str:
    if value == "*":
        return value

    accessor = ""
    match = _ARRAY_ACCESSOR.fullmatch(value)
    if match:
        value, accessor = match.group(1), match.group(2)

    escaped = value.replace('"', '""')
    return f'"{escaped}"{accessor}'


def escape_string(value: str) -> str:
    """Render a string literal.

    Single quotes and backslashes are doubled; a string containing a
    backslash gets the ``E''`` escape-string prefix.
    """
    escaped = value.replace("'", "''")
    if "\\" in value:
        return "E'" + escaped.replace("\\", "\\\\") + "'"
    return f"'{escaped}'"


def array_literal(values: list[Any] | tuple[Any, ...]) -> str:
    """Render a Postgres array literal such as ``{1,NULL,"a b"}``.

    Nested sequences become nested arrays, numbers are written bare and
    everything else is written as a double-quoted element.
    """
    parts: list[str] = []
    for value in values:
        if value is None:
            parts.append("NULL")
        elif isinstance(value, (list, tuple)):
            parts.append(array_literal(value))
        elif isinstance(value, bool):
            parts.append("true" if value else "false")
        elif isinstance(value, (int, float)):
            parts.append(_number(value))
        else:
            text = value if isinstance(value, str) else _text(value)
            parts.append('"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"')
    return "{" + ",".join(parts) + "}"


def escape_value(value: Any, _seen: list[Any] | None = None) -> str:
    """Render any binding value as an inline SQL literal.

    Objects exposing ``to_postgres()`` are converted through it first.

    Raises:
        PayloadEncodeError: On circular ``to_postgres`` chains or values with
            no SQL rendering
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _number(value)
    if isinstance(value, str):
        return escape_string(value)
    if isinstance(value, (list, tuple)):
        return escape_string(array_literal(value))
    if hasattr(value, "to_postgres"):
        seen = _seen if _seen is not None else []
        if any(value is s for s in seen):
            raise PayloadEncodeError(
                f"circular reference detected while preparing {value!r} for query"
            )
        seen.append(value)
        return escape_value(value.to_postgres(), seen)
    return escape_string(_text(value))


def to_binding(value: Any, _seen: list[Any] | None = None) -> Any:
    """Normalize a value into something JSON can carry as a binding.

    Raises:
        PayloadEncodeError: On circular ``to_postgres`` chains or
            unsupported values
    """
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        _number(value)
        return value
    if isinstance(value, (list, tuple)):
        return [to_binding(v) for v in value]
    if isinstance(value, dict):
        return {str(k): to_binding(v) for k, v in value.items()}
    if isinstance(value, (dt.date, dt.datetime, dt.time)):
        return value.isoformat()
    if hasattr(value, "to_postgres"):
        seen = _seen if _seen is not None else []
        if any(value is s for s in seen):
            raise PayloadEncodeError(
                f"circular reference detected while preparing {value!r} for query"
            )
        seen.append(value)
        return to_binding(value.to_postgres(), seen)
    raise PayloadEncodeError(f"Unsupported binding type: {type(value).__name__}")


def number_placeholders(sql: str) -> str:
    """Rewrite ``?`` placeholders as ``$1``, ``$2``, ...

    A backslash-escaped ``\\?`` is emitted as a literal ``?``.

    Example:
        >>> number_placeholders('select * from t where a = ? and b = ?')
        'select * from t where a = $1 and b = $2'
    """
    count = 0

    def _replace(match: re.Match[str]) -> str:
        nonlocal count
        if len(match.group(1)) % 2:
            return "?"
        count += 1
        return f"${count}"

    return _PLACEHOLDER.sub(_replace, sql)


def inline_bindings(sql: str, bindings: list[Any]) -> str:
    """Replace ``?`` placeholders with inline literals, in order.

    Escaped ``\\?`` is emitted as a literal ``?`` and consumes no binding;
    placeholders left without a binding stay as ``?``.
    """
    values = iter(bindings)

    def _replace(match: re.Match[str]) -> str:
        if len(match.group(1)) % 2:
            return "?"
        value = next(values, _NO_VALUE)
        return "?" if value is _NO_VALUE else escape_value(value)

    return _PLACEHOLDER.sub(_replace, sql)


def json_path(path: str) -> str:
    """Convert a ``$.a.b[0]`` JSON path to Postgres ``{a,b,0}`` form.

    Paths already in ``{...}`` form pass through.
    """
    if _PG_PATH.match(path):
        return path
    body = path[2:] if path.startswith("$.") else path
    body = _PATH_INDEX.sub(r",\1", body).replace(".", ",")
    return "{" + body + "}"


def _number(value: int | float) -> str:
    if isinstance(value, float) and not math.isfinite(value):
        raise PayloadEncodeError(f"Non-finite number cannot be sent to SQL: {value}")
    return str(value)


def _text(value: Any) -> str:
    if isinstance(value, (dt.date, dt.datetime, dt.time)):
        return value.isoformat()
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"))
    return str(value)
