"""Process execution for formatter plugins.

Exports ``ProcessRunner`` plus the launcher/handle protocols used to
swap in a different spawning strategy.
"""
from __future__ import annotations

from valuefmt.process.runner import (
    ProcessHandle,
    ProcessLauncher,
    ProcessResult,
    ProcessRunner,
    ProcessState,
    SubprocessLauncher,
)

__all__ = [
    "ProcessHandle",
    "ProcessLauncher",
    "ProcessResult",
    "ProcessRunner",
    "ProcessState",
    "SubprocessLauncher",
]
