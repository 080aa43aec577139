"""SQL parameter handling.

Converts `:name` parameter syntax to driver-specific format and normalizes
parameter containers. Handles string literal exclusion and PostgreSQL
`::typecast` syntax.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Any

from laju_db.core.exceptions import ParameterBindingError

# Matches :name but not ::typecast and not inside words
# Negative lookbehind for : (handles ::), \w (handles mid-word colons)
_PARAM_PATTERN = re.compile(r"(?<![:\w]):([a-zA-Z_]\w*)")

# Matches single-quoted string literals (with escaped quotes handled)
_STRING_LITERAL_PATTERN = re.compile(r"'(?:[^'\\]|\\.)*'")


def normalize_params(sql: str, paramstyle: str) -> str:
    """Convert :name parameters to the target param style.

    Args:
        sql: SQL string with :name parameters.
        paramstyle: Target style - 'named' (no conversion) or 'pyformat' (%(name)s).

    Returns:
        SQL with parameters converted to the target style.
    """
    if paramstyle == "named":
        return sql
    return _convert_to_pyformat(sql)


def _split_literals(sql: str) -> list[tuple[bool, str]]:
    """Split SQL into ``(is_literal, text)`` segments."""
    segments: list[tuple[bool, str]] = []
    last_end = 0
    for match in _STRING_LITERAL_PATTERN.finditer(sql):
        start, end = match.span()
        if start > last_end:
            segments.append((False, sql[last_end:start]))
        segments.append((True, match.group()))
        last_end = end
    if last_end < len(sql):
        segments.append((False, sql[last_end:]))
    return segments


@lru_cache(maxsize=256)
def _convert_to_pyformat(sql: str) -> str:
    """Convert :name params to %(name)s, preserving string literals."""
    return "".join(
        text if is_literal else _PARAM_PATTERN.sub(r"%(\1)s", text)
        for is_literal, text in _split_literals(sql)
    )


@lru_cache(maxsize=256)
def has_positional_placeholders(sql: str) -> bool:
    """Return True if ``?`` appears outside string literals."""
    return any("?" in text for is_literal, text in _split_literals(sql) if not is_literal)


def coerce_params(
    params: dict[str, Any] | tuple[Any, ...] | list[Any] | Any,
) -> dict[str, Any] | tuple[Any, ...] | None:
    """Normalize *params* to a dict, tuple, or None.

    * ``None`` / ``dict`` → returned as-is (named parameter binding).
    * ``tuple`` / ``list`` → converted to ``tuple`` (positional binding).
    * Any other scalar → wrapped in a single-element tuple.
    """
    if params is None or isinstance(params, dict):
        return params
    if isinstance(params, (tuple, list)):
        return tuple(params)
    return (params,)


def bind_params(sql: str, params: Any) -> dict[str, Any] | tuple[Any, ...]:
    """Prepare parameters for the native SQLite service.

    Sequences bind positionally to ``?``. Mappings bind by name to ``:name``
    and are never flattened into a value sequence, so key order cannot shift
    values between placeholders.

    Raises:
        ParameterBindingError: If a mapping is given for ``?`` placeholders.
    """
    if params is None:
        return ()
    if isinstance(params, Mapping):
        if has_positional_placeholders(sql):
            raise ParameterBindingError(
                sql, "mapping parameters require :name placeholders, not '?'"
            )
        return dict(params)
    if isinstance(params, Sequence) and not isinstance(params, (str, bytes)):
        return tuple(params)
    return (params,)
