"""Plugin discovery and the in-memory formatter catalog.

Plugins are folders under the formatters directory, each with a
``usage.json`` manifest:

.. code-block:: text

    formatters/
      jsonpp/
        usage.json        ["/usr/bin/python3", "jsonpp.py"]
        jsonpp.py
"""
from __future__ import annotations

from valuefmt.catalog.catalog import CatalogSnapshot, PluginCatalog
from valuefmt.catalog.manifest import MANIFEST_FILE, PluginManifest, PluginMetadata, read_manifest
from valuefmt.catalog.view import CatalogView, Role

__all__ = [
    "MANIFEST_FILE",
    "CatalogSnapshot",
    "CatalogView",
    "PluginCatalog",
    "PluginManifest",
    "PluginMetadata",
    "Role",
    "read_manifest",
]
