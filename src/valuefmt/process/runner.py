"""Bounded-time execution of one plugin process.

``ProcessRunner`` launches a command, optionally feeds it a payload on
stdin, and waits for it under two independent limits: one for reaching
a running state and one for exiting. A process that overruns is killed
and its output discarded.

The actual spawning goes through a ``ProcessLauncher`` so the lifecycle
can be exercised with fakes. ``SubprocessLauncher`` is the real one.

Lifecycle
---------
::

    NOT_STARTED -> STARTING -> RUNNING -> FINISHED
                      |           |
                      v           v
                    FAILED      KILLED
"""
from __future__ import annotations

import logging
import os
import signal
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol, runtime_checkable

from valuefmt.core.config import DEFAULT_RUN_TIMEOUT, DEFAULT_START_TIMEOUT
from valuefmt.core.errors import ProcessStartError, RunTimeoutError, StartTimeoutError

logger = logging.getLogger(__name__)


class ProcessState(Enum):
    """Where a single process call is in its lifecycle."""

    NOT_STARTED = auto()
    STARTING = auto()
    RUNNING = auto()
    FINISHED = auto()
    KILLED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class ProcessResult:
    """Captured output of a process that exited on its own.

    ``returncode`` is informational; callers decide success from the
    stream contents only.
    """

    stdout: bytes
    stderr: bytes
    returncode: int | None = None


@runtime_checkable
class ProcessHandle(Protocol):
    """A launched process, owned by one ``ProcessRunner.run`` call."""

    @property
    def returncode(self) -> int | None: ...  # pragma: no cover

    def wait_started(self, timeout: float) -> bool:
        """Return True once the process is running, False after ``timeout`` seconds."""
        ...  # pragma: no cover

    def communicate(self, payload: bytes | None, timeout: float) -> tuple[bytes, bytes]:
        """Write ``payload``, close stdin, and collect stdout/stderr until exit.

        Raises ``subprocess.TimeoutExpired`` if the process is still
        running after ``timeout`` seconds.
        """
        ...  # pragma: no cover

    def kill(self) -> None:
        """Forcibly terminate the process and release its pipes.

        Must return promptly even if descendants of the process are
        still holding its output pipes open.
        """
        ...  # pragma: no cover


@runtime_checkable
class ProcessLauncher(Protocol):
    """Creates ``ProcessHandle`` objects.

    ``launch`` raises ``OSError`` (or ``ValueError`` for malformed
    arguments) when the executable cannot be started.
    """

    def launch(
        self,
        argv: Sequence[str],
        cwd: str | None,
        env: Mapping[str, str] | None,
        has_input: bool,
    ) -> ProcessHandle: ...  # pragma: no cover


class SubprocessHandle:
    """``ProcessHandle`` backed by ``subprocess.Popen``."""

    def __init__(self, process: subprocess.Popen[bytes], new_session: bool) -> None:
        self._process = process
        self._new_session = new_session

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    def wait_started(self, timeout: float) -> bool:
        # Popen only returns once the child has been exec'd.
        return self._process.pid is not None

    def communicate(self, payload: bytes | None, timeout: float) -> tuple[bytes, bytes]:
        stdout, stderr = self._process.communicate(input=payload, timeout=timeout)
        return stdout or b"", stderr or b""

    def kill(self) -> None:
        if self._new_session:
            try:
                os.killpg(self._process.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
        else:
            self._process.kill()
        # The output is discarded. Helpers that escaped the kill may still
        # hold the write ends, so close our side instead of draining it.
        for stream in (self._process.stdin, self._process.stdout, self._process.stderr):
            if stream is not None and not stream.closed:
                try:
                    stream.close()
                except OSError:
                    pass
        self._process.wait()


class SubprocessLauncher:
    """Launches plugins with ``subprocess.Popen``.

    Parameters
    ----------
    new_session:
        Run each plugin in its own session so a timeout can kill the
        whole process group. Defaults to True on POSIX.
    """

    def __init__(self, new_session: bool | None = None) -> None:
        if new_session is None:
            new_session = os.name == "posix"
        self._new_session = new_session

    def launch(
        self,
        argv: Sequence[str],
        cwd: str | None,
        env: Mapping[str, str] | None,
        has_input: bool,
    ) -> SubprocessHandle:
        process = subprocess.Popen(
            list(argv),
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdin=subprocess.PIPE if has_input else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=self._new_session,
        )
        logger.debug("Spawned %s (PID %d)", argv[0], process.pid)
        return SubprocessHandle(process, self._new_session)


def build_environment(extra_path: Sequence[str]) -> dict[str, str] | None:
    """Return the plugin environment, or None to inherit the host's unchanged.

    ``extra_path`` entries are prepended to ``PATH`` in order.
    """
    if not extra_path:
        return None
    env = dict(os.environ)
    current = env.get("PATH", "")
    env["PATH"] = os.pathsep.join([*extra_path, current] if current else list(extra_path))
    return env


class ProcessRunner:
    """Runs one plugin command at a time under start and finish limits.

    Parameters
    ----------
    start_timeout:
        Seconds the process may take to reach a running state.
    run_timeout:
        Seconds the running process may take to exit.
    launcher:
        Spawning strategy; defaults to ``SubprocessLauncher()``.
    extra_path:
        Directories prepended to ``PATH`` for the child.

    Example
    -------
    ::

        runner = ProcessRunner()
        result = runner.run(["python3", "fmt.py", "decode"], b"aGVsbG8=", "/plugins/fmt")
        result.stdout
    """

    def __init__(
        self,
        start_timeout: float = DEFAULT_START_TIMEOUT,
        run_timeout: float = DEFAULT_RUN_TIMEOUT,
        launcher: ProcessLauncher | None = None,
        extra_path: Sequence[str] = (),
    ) -> None:
        self._start_timeout = start_timeout
        self._run_timeout = run_timeout
        self._launcher: ProcessLauncher = launcher if launcher is not None else SubprocessLauncher()
        self._env = build_environment(extra_path)
        self.last_state = ProcessState.NOT_STARTED

    @property
    def start_timeout(self) -> float:
        return self._start_timeout

    @property
    def run_timeout(self) -> float:
        return self._run_timeout

    def _transition(self, state: ProcessState) -> None:
        self.last_state = state

    def run(
        self,
        argv: Sequence[str],
        payload: bytes = b"",
        working_directory: str | None = None,
    ) -> ProcessResult:
        """Run ``argv`` and return its captured output.

        Parameters
        ----------
        argv:
            Executable followed by its arguments. Must not be empty.
        payload:
            Bytes written to stdin before stdin is closed. When empty,
            stdin is attached to the null device.
        working_directory:
            Directory the process runs in. It need not exist; an invalid
            directory surfaces as ``ProcessStartError``.

        Returns
        -------
        ProcessResult
            Output captured at normal exit, whatever the exit code.

        Raises
        ------
        ProcessStartError
            If the executable could not be launched.
        StartTimeoutError
            If the process did not reach a running state in time.
        RunTimeoutError
            If the process did not exit in time; it has been killed.
        """
        if not argv:
            raise ValueError("argv must contain at least the executable")

        self._transition(ProcessState.STARTING)
        logger.debug("Running %s in %s", list(argv), working_directory)
        try:
            handle = self._launcher.launch(argv, working_directory, self._env, bool(payload))
        except (OSError, ValueError) as exc:
            self._transition(ProcessState.FAILED)
            reason = exc.strerror if isinstance(exc, OSError) and exc.strerror else str(exc)
            raise ProcessStartError(argv, reason) from exc

        if not handle.wait_started(self._start_timeout):
            handle.kill()
            self._transition(ProcessState.FAILED)
            raise StartTimeoutError(argv, self._start_timeout)

        self._transition(ProcessState.RUNNING)
        try:
            stdout, stderr = handle.communicate(payload or None, self._run_timeout)
        except subprocess.TimeoutExpired:
            handle.kill()
            self._transition(ProcessState.KILLED)
            raise RunTimeoutError(argv, self._run_timeout) from None

        self._transition(ProcessState.FINISHED)
        logger.debug(
            "%s exited with %s (%d bytes stdout, %d bytes stderr)",
            argv[0],
            handle.returncode,
            len(stdout),
            len(stderr),
        )
        return ProcessResult(stdout=stdout, stderr=stderr, returncode=handle.returncode)

