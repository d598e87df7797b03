"""
Query fragment helpers.

A record is located by a SQL fragment (usually a `WHERE` clause) that is
appended to `FROM <table>`. Fragments are normalized so that every command
built from them touches at most one row.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional, Union

ConnectionSelector = Union[int, str]

DEFAULT_CONNECTION: ConnectionSelector = 1
SINGLE_ROW_LIMIT = "LIMIT 1"

_DEFAULT_ALIASES = {DEFAULT_CONNECTION, "default"}
_TRAILING_LIMIT = re.compile(r"\s+LIMIT\s+\d+\s*$", re.IGNORECASE)
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def normalize_fragment(fragment: Optional[str]) -> str:
    """
    Normalize a locating fragment so it ends with a single-row limiter.

    Trailing whitespace and statement terminators are dropped, a leading space
    is guaranteed, and an existing trailing `LIMIT n` is replaced rather than
    doubled.
    """
    text = (fragment or "").rstrip().rstrip(";").rstrip()
    if not text:
        return f" {SINGLE_ROW_LIMIT}"
    if not text[0].isspace():
        text = " " + text
    text = _TRAILING_LIMIT.sub("", text)
    return f"{text} {SINGLE_ROW_LIMIT}"


def is_default_connection(connection: ConnectionSelector) -> bool:
    return connection in _DEFAULT_ALIASES


def connection_qualifier(connection: ConnectionSelector) -> str:
    """Render the command prefix for a connection: empty for the default one."""
    if is_default_connection(connection):
        return ""
    return f"[{connection}]"


def validate_identifier(name: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def key_fragment(key: str) -> str:
    """Default locating fragment for a primary key column."""
    validate_identifier(key)
    return f" WHERE {key} = %({key})s"


def bind_key(params: Mapping[str, Any], key: str, value: Any) -> Dict[str, Any]:
    """
    Return query params with `key` bound to `value`.

    The key binding is placed first; every other binding keeps its relative
    order and any previous binding for `key` is replaced.
    """
    bound: Dict[str, Any] = {key: value}
    bound.update((name, v) for name, v in params.items() if name != key)
    return bound


__all__ = [
    "ConnectionSelector",
    "DEFAULT_CONNECTION",
    "SINGLE_ROW_LIMIT",
    "bind_key",
    "connection_qualifier",
    "is_default_connection",
    "key_fragment",
    "normalize_fragment",
    "validate_identifier",
]
