"""Helpers shared by the category parsers.

A category parser is a function taking a ``Fetch`` callable (authenticated
GET returning the envelope ``result``) and returning a frozen payload
dataclass. The ``parse_*`` functions are pure and work on decoded JSON so
they can be exercised with captured responses.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from ..core.exceptions import ParseError

Fetch = Callable[[str], Any]

_MISSING = object()


def _type_name(kind: type | tuple[type, ...]) -> str:
    if isinstance(kind, tuple):
        return "/".join(k.__name__ for k in kind)
    return kind.__name__


def _check(value: Any, kind: type | tuple[type, ...], field: str) -> Any:
    kinds = kind if isinstance(kind, tuple) else (kind,)
    # bool is a subclass of int but never a valid counter
    if isinstance(value, bool) and bool not in kinds:
        raise ParseError(f"Expected {_type_name(kind)}", field=field, raw_value=repr(value))
    if float in kinds and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, kinds):
        raise ParseError(f"Expected {_type_name(kind)}", field=field, raw_value=repr(value))
    return value


def as_mapping(raw: Any, context: str) -> Mapping[str, Any]:
    """Require ``raw`` to be a JSON object."""
    if not isinstance(raw, Mapping):
        raise ParseError("Expected an object", field=context, raw_value=repr(raw))
    return raw


def as_list(raw: Any, context: str) -> list[Any]:
    """Require ``raw`` to be a JSON array. An absent result counts as empty."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ParseError("Expected an array", field=context, raw_value=repr(raw))
    return raw


def require(data: Mapping[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    """Return a mandatory field, checking its type.

    Raises:
        ParseError: If the field is missing, null or of the wrong type.
    """
    value = data.get(key, _MISSING)
    if value is _MISSING or value is None:
        raise ParseError("Missing mandatory field", field=key, raw_value=repr(dict(data))[:200])
    return _check(value, kind, key)


def optional(data: Mapping[str, Any], key: str, kind: type | tuple[type, ...], default: Any = None) -> Any:
    """Return an optional field, or ``default`` if missing or null."""
    value = data.get(key)
    if value is None:
        return default
    return _check(value, kind, key)


def numeric_fields(data: Mapping[str, Any], exclude: frozenset[str] = frozenset()) -> dict[str, float]:
    """All int/float fields of ``data`` (booleans excluded)."""
    return {
        key: float(value)
        for key, value in data.items()
        if key not in exclude and isinstance(value, (int, float)) and not isinstance(value, bool)
    }
