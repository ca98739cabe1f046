"""Formatter service façade and completion sinks."""
from __future__ import annotations

from valuefmt.service.formatters import FormatterService
from valuefmt.service.sinks import (
    CallableSink,
    CollectingSink,
    CompletionSink,
    FutureSink,
    as_sink,
)

__all__ = [
    "CallableSink",
    "CollectingSink",
    "CompletionSink",
    "FormatterService",
    "FutureSink",
    "as_sink",
]
