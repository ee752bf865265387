"""Helpers for safe debug logging of adapter configurations.

A configuration instance carries credentials. Two things mark a value as
secret: a key that names a credential (``password``, ``api_key``, ...),
or a field of the adapter's config type annotated ``secret: true``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pyblueprint._constants import SECRET_ANNOTATION
from pyblueprint.models.elements import ObjectType

REDACTED = "<redacted>"

_CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "clientsecret",
        "token",
        "accesstoken",
        "refreshtoken",
        "apikey",
        "authorization",
        "privatekey",
        "cookie",
    }
)

_MAX_DEPTH = 20


def _normalize_key(key: str) -> str:
    return key.lower().replace("_", "").replace("-", "")


def secret_fields(config_type: ObjectType) -> frozenset[str]:
    """Names of the fields of *config_type* annotated as secret."""
    return frozenset(
        name for name, definition in config_type.fields.items() if definition.annotations.get(SECRET_ANNOTATION) is True
    )


def redact_for_log(value: Any, *, secret_keys: Iterable[str] = (), max_string: int = 512) -> Any:
    """Return a copy of *value* safe to put in a debug log.

    Mapping entries whose key names a credential, or is listed in
    *secret_keys*, are replaced by ``<redacted>`` at any depth. Long
    strings are truncated; other objects are shown by their ``repr``.
    """
    hidden = _CREDENTIAL_KEYS | {_normalize_key(key) for key in secret_keys}

    def _walk(item: Any, depth: int) -> Any:
        if depth > _MAX_DEPTH:
            return "<max-depth>"
        match item:
            case None | bool() | int() | float():
                return item
            case str() if len(item) > max_string:
                return f"{item[:max_string]}…<truncated>"
            case str():
                return item
            case bytes() | bytearray():
                return f"<bytes:{len(item)}b>"
            case Mapping():
                return {
                    str(key): REDACTED if _normalize_key(str(key)) in hidden else _walk(child, depth + 1)
                    for key, child in item.items()
                }
            case list() | tuple():
                return [_walk(child, depth + 1) for child in item]
            case _:
                return repr(item)

    return _walk(value, 0)


def redact_config(config_type: ObjectType, value: Mapping[str, Any]) -> Any:
    """Redact a configuration value using its config type's secret fields."""
    return redact_for_log(value, secret_keys=secret_fields(config_type))
