"""Read-only list view of the catalog for UI data binding.

A list widget addresses data by row and integer role; ``CatalogView``
answers those queries against whatever catalog is currently published,
and serialises the listing to JSON or YAML for other front ends.

Usage
-----
::

    view = CatalogView(catalog)
    view.role_names()           # {257: "name", 258: "version", ...}
    view.data(0, Role.VERSION)  # "1.0"
    print(view.to_yaml())
"""
from __future__ import annotations

import json
from enum import IntEnum

import yaml

from valuefmt.catalog.catalog import PluginCatalog

# first role id available to applications in list-model toolkits
_USER_ROLE = 256


class Role(IntEnum):
    """Stable role keys, one per displayed field."""

    NAME = _USER_ROLE + 1
    VERSION = _USER_ROLE + 2
    DESCRIPTION = _USER_ROLE + 3
    CMD = _USER_ROLE + 4

    @property
    def key(self) -> str:
        return self.name.lower()


class CatalogView:
    """Row/role access to a ``PluginCatalog``.

    The view holds no data of its own; a reload of the catalog is
    visible through the view on the next call.
    """

    def __init__(self, catalog: PluginCatalog) -> None:
        self._catalog = catalog

    def role_names(self) -> dict[int, str]:
        return {int(role): role.key for role in Role}

    def row_count(self) -> int:
        return len(self._catalog.snapshot.entries)

    def data(self, row: int, role: int) -> str | None:
        """Return the field for ``role`` at ``row``, or None if either is out of range."""
        entries = self._catalog.snapshot.entries
        if not 0 <= row < len(entries):
            return None
        try:
            key = Role(role).key
        except ValueError:
            return None
        value = entries[row].to_dict()[key]
        return str(value)

    def rows(self) -> list[dict[str, str]]:
        """Every row as ``{name, version, description, cmd}``."""
        return [
            {role.key: str(entry.to_dict()[role.key]) for role in Role}
            for entry in self._catalog.snapshot.entries
        ]

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.rows(), indent=indent, ensure_ascii=False)

    def to_yaml(self) -> str:
        return yaml.dump(self.rows(), default_flow_style=False, allow_unicode=True, sort_keys=False)
