"""JSON-over-stdio protocol spoken with formatter plugins.

A call is ``<invocation prefix...> <verb>``. For ``decode``, ``encode``
and ``validate`` the raw value is base64-encoded on stdin; ``info``
gets no input. The plugin answers with a single JSON object on stdout.
Anything on stderr is passed on as a diagnostic and never fails the
call by itself; the exit code is ignored.

Usage
-----
::

    from valuefmt.protocol import PluginProtocolCodec, Verb

    codec = PluginProtocolCodec(ProcessRunner(), channel)
    reply = codec.call(["python3", "fmt.py"], Verb.DECODE, "/plugins/fmt", b"\\x00\\x01")
    reply.output
"""
from __future__ import annotations

import base64
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath
from typing import Any

from valuefmt.core.errors import NoDataError, ProtocolParseError
from valuefmt.core.notifications import ErrorChannel
from valuefmt.process.runner import ProcessRunner
from valuefmt.protocol.responses import (
    DecodeResponse,
    EncodeResponse,
    InfoResponse,
    PluginResponse,
    ValidateResponse,
)

logger = logging.getLogger(__name__)


class Verb(str, Enum):
    """Commands a formatter plugin understands."""

    INFO = "info"
    DECODE = "decode"
    ENCODE = "encode"
    VALIDATE = "validate"

    @property
    def takes_value(self) -> bool:
        return self is not Verb.INFO


_RESPONSE_TYPES: dict[Verb, type[PluginResponse]] = {
    Verb.INFO: InfoResponse,
    Verb.DECODE: DecodeResponse,
    Verb.ENCODE: EncodeResponse,
    Verb.VALIDATE: ValidateResponse,
}


@dataclass(frozen=True)
class CommandRequest:
    """One plugin invocation, built per call and discarded afterwards.

    Parameters
    ----------
    argv:
        Invocation prefix followed by the verb.
    payload:
        Base64 of the value for value verbs, empty for ``info``.
    working_directory:
        The plugin's own directory.
    verb:
        The verb appended to ``argv``.
    """

    argv: tuple[str, ...]
    payload: bytes
    working_directory: str
    verb: Verb
    plugin: str = field(default="")


def build_request(
    invocation_prefix: Sequence[str],
    verb: Verb | str,
    working_directory: str,
    data: bytes = b"",
    plugin: str = "",
) -> CommandRequest:
    """Build the command for ``verb`` against a plugin.

    Raises
    ------
    ValueError
        If ``verb`` is not a protocol verb, or the prefix is empty.
    """
    verb = Verb(verb)
    if not invocation_prefix:
        raise ValueError("invocation prefix must not be empty")
    payload = base64.b64encode(data) if verb.takes_value else b""
    return CommandRequest(
        argv=(*invocation_prefix, verb.value),
        payload=payload,
        working_directory=working_directory,
        verb=verb,
        plugin=plugin or PurePath(working_directory).name,
    )


def _as_text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def parse_output(stdout: bytes, verb: Verb | str = Verb.INFO) -> dict[str, Any]:
    """Parse plugin stdout into a JSON object.

    Raises
    ------
    NoDataError
        If stdout is empty or holds an empty object.
    ProtocolParseError
        If stdout is not valid JSON or its top-level value is not an
        object. The raw text is kept on the exception.
    """
    verb = Verb(verb)
    if not stdout:
        raise NoDataError(verb.value)
    try:
        document = json.loads(stdout.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ProtocolParseError(_as_text(stdout), f"not UTF-8: {exc.reason}") from None
    except json.JSONDecodeError as exc:
        raise ProtocolParseError(_as_text(stdout), exc.msg) from None
    if not isinstance(document, dict):
        raise ProtocolParseError(_as_text(stdout), "top-level value is not an object")
    if not document:
        raise NoDataError(verb.value)
    return document


def decode_response(verb: Verb | str, obj: dict[str, Any]) -> PluginResponse:
    """Convert a parsed object into the typed response for ``verb``."""
    return _RESPONSE_TYPES[Verb(verb)].from_object(obj)


class PluginProtocolCodec:
    """Runs protocol requests and turns stdout into typed responses.

    Parameters
    ----------
    runner:
        Executes the plugin process.
    channel:
        Receives stderr output as WARNING notifications. When ``None``
        stderr is only logged.
    """

    def __init__(self, runner: ProcessRunner, channel: ErrorChannel | None = None) -> None:
        self._runner = runner
        self._channel = channel

    @property
    def runner(self) -> ProcessRunner:
        return self._runner

    def execute(self, request: CommandRequest) -> PluginResponse:
        """Run ``request`` and return the typed reply.

        Raises whatever ``ProcessRunner.run`` or ``parse_output`` raise.
        """
        logger.debug("%s: %s", request.plugin, " ".join(request.argv))
        result = self._runner.run(request.argv, request.payload, request.working_directory)

        if result.stderr:
            message = f"{request.working_directory}: {_as_text(result.stderr)}"
            if self._channel is not None:
                self._channel.warning(message, plugin=request.plugin, operation=request.verb.value)
            else:
                logger.warning("%s", message)

        return decode_response(request.verb, parse_output(result.stdout, request.verb))

    def call(
        self,
        invocation_prefix: Sequence[str],
        verb: Verb | str,
        working_directory: str,
        data: bytes = b"",
        plugin: str = "",
    ) -> PluginResponse:
        """Build and execute a request in one step."""
        request = build_request(invocation_prefix, verb, working_directory, data, plugin)
        return self.execute(request)
