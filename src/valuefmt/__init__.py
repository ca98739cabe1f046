"""valuefmt — host for external value-formatter plugins.

Formatter plugins are independently installed executables, one folder
each under a formatters directory. valuefmt discovers them, asks each
for its metadata, and runs them on demand to decode, encode and
validate opaque binary values over a JSON stdin/stdout protocol.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
::

    import valuefmt

    service = valuefmt.load("/path/to/formatters")
    service.get_plain_list()
    ['jsonpp', 'msgpack']

    service.decode("jsonpp", b'{"a":1}', print)
    ('', '{\\n  "a": 1\\n}', False, 'json')

    valuefmt.__version__
    '0.1.0'
"""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

__version__: str = "0.1.0"

if TYPE_CHECKING:
    from valuefmt.core.config import FormatterConfig
    from valuefmt.service.formatters import FormatterService


def load(
    path: str | Path | None = None, config: "FormatterConfig | None" = None
) -> "FormatterService":
    """Create a ``FormatterService`` and load its catalog.

    Parameters
    ----------
    path:
        Formatters directory. Defaults to the configured one
        (``~/.valuefmt/formatters`` unless overridden).
    config:
        Process limits and directory settings. Defaults to
        ``FormatterConfig.from_env()``.

    Returns
    -------
    FormatterService
        A service whose catalog reflects ``path``.
    """
    from valuefmt.core.config import FormatterConfig
    from valuefmt.service.formatters import FormatterService

    service = FormatterService(config if config is not None else FormatterConfig.from_env())
    if path is not None:
        service.set_path(path)
    service.load()
    return service


_LAZY_EXPORTS: dict[str, str] = {
    "FormatterService": "valuefmt.service.formatters",
    "FormatterConfig": "valuefmt.core.config",
    "ErrorChannel": "valuefmt.core.notifications",
    "Notification": "valuefmt.core.notifications",
    "PluginCatalog": "valuefmt.catalog.catalog",
    "PluginMetadata": "valuefmt.catalog.manifest",
    "CatalogView": "valuefmt.catalog.view",
    "ProcessRunner": "valuefmt.process.runner",
    "CollectingSink": "valuefmt.service.sinks",
    "FutureSink": "valuefmt.service.sinks",
}


def __getattr__(name: str) -> Any:
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module 'valuefmt' has no attribute {name!r}")
    import importlib

    return getattr(importlib.import_module(module_name), name)


__all__ = [
    "__version__",
    "load",
    *_LAZY_EXPORTS,
]
