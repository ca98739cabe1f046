"""Registry of installed formatter plugins.

``PluginCatalog.load`` scans one directory level for plugin folders,
reads each ``usage.json``, asks the plugin for its metadata with the
``info`` verb and records every plugin that answered. A plugin with a
broken manifest or a failing ``info`` call is reported on the error
channel and left out; the scan carries on with the next folder.

The registry is rebuilt from scratch on every load. The new entries
are assembled in a ``CatalogSnapshot`` off to the side and published
with a single attribute assignment, so readers see either the old
catalog or the new one, never a partial one. Loads must not overlap.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from valuefmt.core.errors import (
    ManifestInvalidError,
    PluginInfoEmptyError,
    UnknownFormatterError,
    ValueFormatError,
)
from valuefmt.core.notifications import ErrorChannel
from valuefmt.catalog.manifest import PluginManifest, PluginMetadata, read_manifest
from valuefmt.protocol.codec import PluginProtocolCodec, Verb
from valuefmt.protocol.responses import InfoResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSnapshot:
    """An immutable catalog: entries in scan order plus a name index.

    Names need not be unique in ``entries``; the index keeps the
    position of the last entry seen for each name.
    """

    entries: tuple[PluginMetadata, ...] = ()
    index: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(cls, entries: Sequence[PluginMetadata]) -> "CatalogSnapshot":
        index: dict[str, int] = {}
        for position, entry in enumerate(entries):
            if entry.name in index:
                logger.warning(
                    "Formatter name %r appears more than once; using %s",
                    entry.name,
                    entry.working_directory,
                )
            index[entry.name] = position
        return cls(entries=tuple(entries), index=MappingProxyType(index))

    def get(self, name: str) -> PluginMetadata | None:
        position = self.index.get(name)
        return None if position is None else self.entries[position]

    def __len__(self) -> int:
        return len(self.entries)


class PluginCatalog:
    """Discovers and holds formatter plugins.

    Parameters
    ----------
    codec:
        Used to send the ``info`` command to each candidate plugin.
    channel:
        Receives one ERROR notification per skipped plugin.

    Example
    -------
    ::

        catalog = PluginCatalog(PluginProtocolCodec(ProcessRunner()), channel)
        catalog.load(Path("~/.valuefmt/formatters").expanduser())
        catalog.lookup("jsonpp").version
    """

    def __init__(self, codec: PluginProtocolCodec, channel: ErrorChannel | None = None) -> None:
        self._codec = codec
        self._channel = channel if channel is not None else ErrorChannel()
        self._snapshot = CatalogSnapshot()

    @property
    def snapshot(self) -> CatalogSnapshot:
        """The currently published catalog."""
        return self._snapshot

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, directory: str | Path) -> CatalogSnapshot:
        """Rebuild the catalog from ``directory`` and publish it.

        A missing directory is created and yields an empty catalog.

        Returns
        -------
        CatalogSnapshot
            The newly published catalog.
        """
        directory = Path(directory)
        entries = [
            metadata
            for plugin_dir in self._candidate_directories(directory)
            if (metadata := self._register(plugin_dir)) is not None
        ]
        snapshot = CatalogSnapshot.build(entries)
        self._snapshot = snapshot
        logger.info("Loaded %d formatter(s) from %s", len(snapshot), directory)
        return snapshot

    def _candidate_directories(self, directory: Path) -> list[Path]:
        if not directory.exists():
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                logger.warning("Cannot create formatters directory %s: %s", directory, exc)
                return []
            logger.debug("Formatters dir created: %s", directory)
            return []
        try:
            return sorted(item for item in directory.iterdir() if item.is_dir())
        except OSError as exc:
            self._channel.error(
                f"Cannot read formatters directory {directory}: {exc}", operation="load"
            )
            return []

    def _register(self, plugin_dir: Path) -> PluginMetadata | None:
        try:
            manifest = read_manifest(plugin_dir)
        except ManifestInvalidError as exc:
            self._channel.error(str(exc), plugin=plugin_dir.name, operation="load")
            return None
        if manifest is None:
            return None

        try:
            info = self._query_info(manifest)
        except PluginInfoEmptyError as exc:
            self._channel.error(str(exc), plugin=manifest.name, operation="info")
            return None

        metadata = PluginMetadata(
            name=manifest.name,
            version=info.version,
            description=info.description,
            invocation_prefix=manifest.invocation_prefix,
            working_directory=manifest.working_directory,
        )
        logger.debug("Registered formatter %r (%s)", metadata.name, metadata.version or "no version")
        return metadata

    def _query_info(self, manifest: PluginManifest) -> InfoResponse:
        try:
            reply = self._codec.call(
                manifest.invocation_prefix,
                Verb.INFO,
                manifest.working_directory,
                plugin=manifest.name,
            )
        except ValueFormatError as exc:
            # protocol errors, start failures and timeouts alike
            raise PluginInfoEmptyError(manifest.working_directory, exc) from exc
        assert isinstance(reply, InfoResponse)
        return reply

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, name: str) -> PluginMetadata:
        """Return the entry registered under ``name``.

        Raises
        ------
        UnknownFormatterError
            If no plugin is registered under exactly ``name``.
        """
        metadata = self._snapshot.get(name)
        if metadata is None:
            raise UnknownFormatterError(name)
        return metadata

    def names(self) -> list[str]:
        """Entry names in catalog order, duplicates included."""
        return [entry.name for entry in self._snapshot.entries]

    def entries(self) -> list[PluginMetadata]:
        return list(self._snapshot.entries)

    def __contains__(self, name: object) -> bool:
        return name in self._snapshot.index

    def __len__(self) -> int:
        return len(self._snapshot)

    def __iter__(self) -> Iterator[PluginMetadata]:
        return iter(self._snapshot.entries)

    def __repr__(self) -> str:
        return f"PluginCatalog(formatters={self.names()})"
