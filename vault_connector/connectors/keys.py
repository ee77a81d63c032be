"""Storage key resolution.

The host prefixes every mapping attribute of an encrypted attribute with the
connection name so that connections sharing a vault do not collide::

    MyADConnector~#~abcd215

A mapping attribute listed in ``ignoreMapping`` is used exactly as given.
"""

from __future__ import annotations

from typing import Any

from .models import CONNECTION_NAME_SEPARATOR, KeyMappingEntry

KEY_NAME_FIELD = "keyName"


def apply_prefix(
    field_name: str,
    value: str,
    ignore_mapping: list[str],
    connection_name: str | None,
) -> str:
    """Prefix a single mapping value with the connection name.

    Args:
        field_name: Mapping attribute the value belongs to (e.g. ``keyName``)
        value: Raw mapping value
        ignore_mapping: Mapping attributes exempt from prefixing
        connection_name: Host connection name, or None when the host has
            already resolved the mapping

    Returns:
        The value to use against the vault
    """
    if connection_name is None or field_name in ignore_mapping:
        return value
    return f"{connection_name}{CONNECTION_NAME_SEPARATOR}{value}"


def resolve_storage_key(entry: KeyMappingEntry, connection_name: str | None) -> str:
    """Resolve the vault key an encrypted attribute is stored under."""
    return apply_prefix(
        KEY_NAME_FIELD, entry.key_name, entry.ignore_mapping, connection_name
    )


def resolve_mapping(
    entry: KeyMappingEntry, connection_name: str | None
) -> dict[str, Any]:
    """Resolve every mapping attribute of an entry.

    The built-in providers address a vault by ``keyName`` alone and only
    need ``resolve_storage_key``. This helper is for third-party providers
    whose vaults also take extra mapping attributes (a ``path`` or
    ``folder``) that the host prefixes the same way.

    Returns a dict with the resolved ``keyName`` plus each extra mapping
    attribute. Non-string extras are passed through untouched.
    """
    resolved: dict[str, Any] = {
        KEY_NAME_FIELD: resolve_storage_key(entry, connection_name)
    }
    for field_name, value in entry.extra_fields.items():
        if isinstance(value, str):
            value = apply_prefix(
                field_name, value, entry.ignore_mapping, connection_name
            )
        resolved[field_name] = value
    return resolved
