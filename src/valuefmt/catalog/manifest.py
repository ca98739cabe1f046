"""Plugin manifest and metadata models.

Each plugin directory may hold a ``usage.json`` manifest: a JSON array
of strings giving the command prefix used for every verb, e.g.
``["/usr/bin/python3", "myformatter.py"]``. The prefix runs with the
plugin directory as its working directory.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from valuefmt.core.errors import ManifestInvalidError

MANIFEST_FILE = "usage.json"


@dataclass(frozen=True)
class PluginManifest:
    """The parsed ``usage.json`` of one plugin directory."""

    invocation_prefix: tuple[str, ...]
    working_directory: str

    @property
    def name(self) -> str:
        """The plugin directory name, used as the catalog key."""
        return Path(self.working_directory).name


@dataclass(frozen=True)
class PluginMetadata:
    """A catalog entry: a plugin whose ``info`` call succeeded.

    Parameters
    ----------
    name:
        Plugin directory name; the stable catalog key.
    version:
        Plugin-supplied version string, possibly empty.
    description:
        Plugin-supplied description, possibly empty.
    invocation_prefix:
        Copied from the manifest.
    working_directory:
        The plugin directory.
    """

    name: str
    version: str
    description: str
    invocation_prefix: tuple[str, ...]
    working_directory: str

    @property
    def cmd(self) -> str:
        """The invocation prefix as a single display string."""
        return " ".join(self.invocation_prefix)

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "cmd": self.cmd,
            "cmd_list": list(self.invocation_prefix),
            "cwd": self.working_directory,
        }


def read_manifest(plugin_dir: Path) -> PluginManifest | None:
    """Read ``plugin_dir/usage.json``.

    Returns
    -------
    PluginManifest | None
        The manifest, or ``None`` when the directory has no
        ``usage.json`` (not every subdirectory is a plugin).

    Raises
    ------
    ManifestInvalidError
        If the file cannot be read or is not a non-empty JSON array of
        strings.
    """
    manifest_file = plugin_dir / MANIFEST_FILE
    if not manifest_file.is_file():
        return None

    try:
        document = json.loads(manifest_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestInvalidError(str(plugin_dir), f"cannot read file: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ManifestInvalidError(str(plugin_dir), exc.msg) from exc

    if not isinstance(document, list):
        raise ManifestInvalidError(str(plugin_dir), "expected a JSON array")
    if not document:
        raise ManifestInvalidError(str(plugin_dir), "command array is empty")
    if not all(isinstance(part, str) for part in document):
        raise ManifestInvalidError(str(plugin_dir), "every command entry must be a string")

    return PluginManifest(invocation_prefix=tuple(document), working_directory=str(plugin_dir))
