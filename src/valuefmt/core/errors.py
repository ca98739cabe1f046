"""Error types for valuefmt.

Every failure a formatter plugin can cause maps to one class below.
The lower layers (process runner, protocol codec, manifest reader,
catalog lookup) raise these; ``FormatterService`` and the catalog scan
catch them at the operation boundary and turn each one into a single
error notification.
"""
from __future__ import annotations

from collections.abc import Sequence


def _join_command(argv: Sequence[str]) -> str:
    return " ".join(argv)


class ValueFormatError(Exception):
    """Base class for all valuefmt errors."""


class ManifestInvalidError(ValueFormatError):
    """Raised when a plugin's ``usage.json`` is not a JSON array of strings."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Formatter {path} has invalid usage.json file: {reason}")


class PluginInfoEmptyError(ValueFormatError):
    """Raised when the ``info`` command produced no usable metadata."""

    def __init__(self, path: str, cause: BaseException | None = None) -> None:
        self.path = path
        self.cause = cause
        message = f"Formatter {path} returned empty output for info command"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ProcessStartError(ValueFormatError):
    """Raised when the plugin executable cannot be launched."""

    def __init__(self, argv: Sequence[str], reason: str) -> None:
        self.argv = tuple(argv)
        self.reason = reason
        super().__init__(f"Cannot start process {_join_command(argv)}: {reason}")


class ProcessTimeoutError(ValueFormatError):
    """Raised when a plugin process exceeds one of its time limits.

    Parameters
    ----------
    argv:
        The full command line that was run.
    timeout:
        The limit that was exceeded, in seconds.

    The ``phase`` class attribute is ``"start"`` or ``"run"``.
    """

    phase = "run"

    def __init__(self, argv: Sequence[str], timeout: float) -> None:
        self.argv = tuple(argv)
        self.timeout = timeout
        super().__init__(self._describe())

    def _describe(self) -> str:
        return (
            f"Process {_join_command(self.argv)} was killed by timeout "
            f"({self.phase} limit {self.timeout:g}s)"
        )


class StartTimeoutError(ProcessTimeoutError):
    """The process did not reach a running state in time."""

    phase = "start"

    def _describe(self) -> str:
        return (
            f"Cannot start process {_join_command(self.argv)}: "
            f"not running after {self.timeout:g}s"
        )


class RunTimeoutError(ProcessTimeoutError):
    """The process did not terminate in time and was killed."""

    phase = "run"


class ProtocolError(ValueFormatError):
    """Base class for malformed plugin output."""


class NoDataError(ProtocolError):
    """Raised when a plugin wrote nothing (or an empty object) to stdout."""

    def __init__(self, verb: str) -> None:
        self.verb = verb
        super().__init__(f"Formatter returned no data for {verb} command")


class ProtocolParseError(ProtocolError):
    """Raised when stdout is not a single JSON object.

    The offending text is kept in ``raw_output`` and quoted in the
    message so a misbehaving plugin can be diagnosed from the log.
    """

    def __init__(self, raw_output: str, reason: str = "") -> None:
        self.raw_output = raw_output
        self.reason = reason
        message = f"Formatter returned invalid json: {raw_output}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class UnknownFormatterError(ValueFormatError, KeyError):
    """Raised when a formatter name is not in the catalog."""

    def __init__(self, name: str) -> None:
        self.formatter_name = name
        super().__init__(f"Can't find formatter with name: {name}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class InvalidCompletionSinkError(ValueFormatError):
    """Raised when an operation needs a completion sink and got none."""

    def __init__(self, sink: object) -> None:
        self.sink = sink
        super().__init__(f"Invalid callback: {sink!r} is not callable")
