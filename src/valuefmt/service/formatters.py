"""Public façade over the formatter catalog and plugin calls.

``FormatterService`` owns the catalog, the protocol codec and the error
channel. Every value operation follows the same path:

1. resolve the formatter name in the catalog,
2. build the command and run the plugin,
3. parse the reply into the verb's typed response,
4. deliver the result to the completion sink.

A failure at any step ends the operation with exactly one ERROR
notification on ``channel``; nothing is raised to the caller. An
exception raised by a completion sink is logged and reported on the
channel as well. All
operations block until the plugin exits or is killed, so callers that
need a responsive thread should run the whole operation on a worker.

Usage
-----
::

    from valuefmt import FormatterService

    service = FormatterService()
    service.channel.subscribe(print)
    service.load()
    service.decode("jsonpp", b'{"a":1}', lambda err, out, ro, fmt: print(out))
"""
from __future__ import annotations

import logging
from pathlib import Path

from valuefmt.catalog.catalog import PluginCatalog
from valuefmt.catalog.manifest import PluginMetadata
from valuefmt.catalog.view import CatalogView
from valuefmt.core.config import FormatterConfig
from valuefmt.core.errors import InvalidCompletionSinkError, UnknownFormatterError, ValueFormatError
from valuefmt.core.notifications import ErrorChannel
from valuefmt.process.runner import ProcessLauncher, ProcessRunner
from valuefmt.protocol.codec import PluginProtocolCodec, Verb
from valuefmt.protocol.responses import (
    DecodeResponse,
    EncodeResponse,
    PluginResponse,
    ValidateResponse,
)
from valuefmt.service.sinks import CompletionSink, as_sink

logger = logging.getLogger(__name__)

ValueBytes = bytes | bytearray | memoryview | str


def _as_bytes(data: ValueBytes) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class FormatterService:
    """Catalog listing plus decode, encode and validate via plugins.

    Parameters
    ----------
    config:
        Directory and process limits. Defaults to ``FormatterConfig()``.
    channel:
        Error channel to report on; a fresh one is created if omitted.
    runner:
        Process runner to use instead of one built from ``config``.
    launcher:
        Spawning strategy for the runner built from ``config``.
    """

    def __init__(
        self,
        config: FormatterConfig | None = None,
        *,
        channel: ErrorChannel | None = None,
        runner: ProcessRunner | None = None,
        launcher: ProcessLauncher | None = None,
    ) -> None:
        self._config = config if config is not None else FormatterConfig()
        self.channel = channel if channel is not None else ErrorChannel()
        if runner is None:
            runner = ProcessRunner(
                start_timeout=self._config.start_timeout,
                run_timeout=self._config.run_timeout,
                launcher=launcher,
                extra_path=self._config.extra_path,
            )
        self._codec = PluginProtocolCodec(runner, self.channel)
        self._catalog = PluginCatalog(self._codec, self.channel)
        self._path: Path | None = None

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    @property
    def catalog(self) -> PluginCatalog:
        return self._catalog

    @property
    def view(self) -> CatalogView:
        """A list-model view of the catalog for UI binding."""
        return CatalogView(self._catalog)

    @property
    def formatters_path(self) -> Path:
        """The directory ``load`` scans."""
        if self._path is not None:
            return self._path
        return self._config.resolved_formatters_path

    def set_path(self, path: str | Path) -> None:
        """Scan ``path`` instead of the configured directory from now on."""
        self._path = Path(path)

    def load(self) -> None:
        """Rebuild the catalog from ``formatters_path``."""
        self._catalog.load(self.formatters_path)

    def is_installed(self, name: str) -> bool:
        return name in self._catalog

    def get_plain_list(self) -> list[str]:
        """Unique formatter names in load order."""
        return list(self._catalog.snapshot.index)

    def lookup(self, name: str) -> PluginMetadata | None:
        """Return the catalog entry for ``name``, or None."""
        return self._catalog.snapshot.get(name)

    # ------------------------------------------------------------------
    # Value operations
    # ------------------------------------------------------------------

    def decode(self, name: str, data: ValueBytes, sink: object) -> DecodeResponse | None:
        """Render ``data`` with formatter ``name``.

        On success ``sink`` receives ``(error, output, read_only, format)``.
        If the plugin call fails, ``sink`` receives one failure message
        instead. ``sink`` is required: an unusable sink aborts the
        operation before any process is started.

        Returns
        -------
        DecodeResponse | None
            The delivered response, or None if the operation failed.
        """
        formatter = self._resolve(name, Verb.DECODE)
        if formatter is None:
            return None

        completion = as_sink(sink)
        if completion is None:
            self._report(InvalidCompletionSinkError(sink), name, Verb.DECODE)
            return None

        try:
            reply = self._invoke(formatter, Verb.DECODE, data)
        except ValueFormatError as exc:
            message = self._report_failure(exc, name, Verb.DECODE)
            self._deliver(completion, name, Verb.DECODE, message)
            return None

        assert isinstance(reply, DecodeResponse)
        self._deliver(completion, name, Verb.DECODE, *reply.as_tuple())
        return reply

    def encode(self, name: str, data: ValueBytes, sink: object = None) -> EncodeResponse | None:
        """Convert an edited rendering back into a stored value.

        On success ``sink`` (if usable) receives ``(output,)``.
        """
        formatter = self._resolve(name, Verb.ENCODE)
        if formatter is None:
            return None

        try:
            reply = self._invoke(formatter, Verb.ENCODE, data)
        except ValueFormatError as exc:
            self._report_failure(exc, name, Verb.ENCODE)
            return None

        assert isinstance(reply, EncodeResponse)
        self._deliver(sink, name, Verb.ENCODE, reply.output)
        return reply

    def is_valid(self, name: str, data: ValueBytes, sink: object = None) -> ValidateResponse | None:
        """Ask formatter ``name`` whether ``data`` is valid for it.

        On success ``sink`` (if usable) receives ``(valid,)``.
        """
        formatter = self._resolve(name, Verb.VALIDATE)
        if formatter is None:
            return None

        try:
            reply = self._invoke(formatter, Verb.VALIDATE, data)
        except ValueFormatError as exc:
            self._report_failure(exc, name, Verb.VALIDATE)
            return None

        assert isinstance(reply, ValidateResponse)
        self._deliver(sink, name, Verb.VALIDATE, reply.valid)
        return reply

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, name: str, verb: Verb) -> PluginMetadata | None:
        try:
            return self._catalog.lookup(name)
        except UnknownFormatterError as exc:
            self._report(exc, name, verb)
            return None

    def _invoke(self, formatter: PluginMetadata, verb: Verb, data: ValueBytes) -> PluginResponse:
        return self._codec.call(
            formatter.invocation_prefix,
            verb,
            formatter.working_directory,
            _as_bytes(data),
            plugin=formatter.name,
        )

    def _deliver(self, sink: object, name: str, verb: Verb, *values: object) -> None:
        """Hand ``values`` to ``sink``; a failing sink is reported, not raised."""
        completion: CompletionSink | None = as_sink(sink)
        if completion is None:
            return
        try:
            completion.deliver(*values)
        except Exception as exc:
            logger.exception("Completion callback for %s %s failed", name, verb.value)
            self.channel.error(
                f"Completion callback for {name} {verb.value} failed: {exc}",
                plugin=name,
                operation=verb.value,
            )

    def _report(self, exc: ValueFormatError, name: str, verb: Verb) -> str:
        message = str(exc)
        self.channel.error(message, plugin=name, operation=verb.value)
        return message

    def _report_failure(self, exc: ValueFormatError, name: str, verb: Verb) -> str:
        message = f"Cannot {verb.value} value using {name} formatter. {exc}"
        self.channel.error(message, plugin=name, operation=verb.value)
        return message
