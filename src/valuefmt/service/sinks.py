"""Completion sinks: where operation results are delivered.

An operation that succeeds delivers one ordered tuple of values to its
sink, once. A failed operation delivers nothing (``decode`` is the
exception: it delivers a single failure message). Any object with a
``deliver(*values)`` method is a sink; plain callables are wrapped.
"""
from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CompletionSink(Protocol):
    """Receives the result values of one finished operation."""

    def deliver(self, *values: Any) -> None: ...  # pragma: no cover


class CallableSink:
    """Adapts a plain callback: ``deliver(a, b)`` calls ``callback(a, b)``."""

    def __init__(self, callback: Callable[..., Any]) -> None:
        self._callback = callback

    def deliver(self, *values: Any) -> None:
        self._callback(*values)

    def __repr__(self) -> str:
        return f"CallableSink({self._callback!r})"


class FutureSink:
    """Resolves a ``concurrent.futures.Future`` with the delivered tuple.

    Useful when the whole operation is offloaded to a worker thread and
    the caller waits on the future.
    """

    def __init__(self, future: Future[tuple[Any, ...]] | None = None) -> None:
        self.future: Future[tuple[Any, ...]] = future if future is not None else Future()

    def deliver(self, *values: Any) -> None:
        self.future.set_result(values)


class CollectingSink:
    """Records every delivery; used by the CLI and in tests."""

    def __init__(self) -> None:
        self.deliveries: list[tuple[Any, ...]] = []

    def deliver(self, *values: Any) -> None:
        self.deliveries.append(values)

    @property
    def last(self) -> tuple[Any, ...] | None:
        return self.deliveries[-1] if self.deliveries else None


def as_sink(target: object) -> CompletionSink | None:
    """Return a sink for ``target``, or None if it cannot receive results.

    Sink objects are returned unchanged and callables are wrapped in
    ``CallableSink``. Anything else, including ``None``, gives None.
    """
    if target is None:
        return None
    if isinstance(target, CompletionSink):
        return target
    if callable(target):
        return CallableSink(target)
    return None
