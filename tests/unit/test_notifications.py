"""Unit tests for valuefmt.core.notifications — ErrorChannel fan-out and history."""
from __future__ import annotations

import logging

import pytest

from valuefmt.core.notifications import ErrorChannel, Notification, NotificationSeverity


class TestNotification:
    def test_str_is_message(self) -> None:
        note = Notification(NotificationSeverity.ERROR, "boom", "jsonpp", "decode")
        assert str(note) == "boom"

    def test_is_error(self) -> None:
        assert Notification(NotificationSeverity.ERROR, "x").is_error
        assert not Notification(NotificationSeverity.WARNING, "x").is_error

    def test_frozen(self) -> None:
        note = Notification(NotificationSeverity.ERROR, "x")
        with pytest.raises((AttributeError, TypeError)):
            note.message = "y"  # type: ignore[misc]


class TestErrorChannel:
    def test_subscribers_receive_notifications(self) -> None:
        channel = ErrorChannel()
        received: list[Notification] = []
        channel.subscribe(received.append)
        channel.error("bad plugin", plugin="jsonpp", operation="decode")
        assert received == [
            Notification(NotificationSeverity.ERROR, "bad plugin", "jsonpp", "decode")
        ]

    def test_subscribe_twice_delivers_once(self) -> None:
        channel = ErrorChannel()
        received: list[Notification] = []
        channel.subscribe(received.append)
        channel.subscribe(received.append)
        channel.warning("w")
        assert len(received) == 1

    def test_unsubscribe(self) -> None:
        channel = ErrorChannel()
        received: list[Notification] = []
        channel.subscribe(received.append)
        channel.unsubscribe(received.append)
        channel.unsubscribe(print)
        channel.error("x")
        assert received == []

    def test_history_is_bounded(self) -> None:
        channel = ErrorChannel(history_size=2)
        for i in range(3):
            channel.error(f"e{i}")
        assert [n.message for n in channel.history] == ["e1", "e2"]

    def test_clear(self) -> None:
        channel = ErrorChannel()
        channel.error("x")
        channel.clear()
        assert channel.history == []

    def test_failing_subscriber_does_not_block_others(self, caplog: pytest.LogCaptureFixture) -> None:
        channel = ErrorChannel()
        received: list[Notification] = []

        def broken(_: Notification) -> None:
            raise RuntimeError("subscriber bug")

        channel.subscribe(broken)
        channel.subscribe(received.append)
        with caplog.at_level(logging.ERROR, logger="valuefmt.core.notifications"):
            channel.error("x")
        assert len(received) == 1
        assert "subscriber bug" in caplog.text

    def test_emit_logs_with_matching_level(self, caplog: pytest.LogCaptureFixture) -> None:
        channel = ErrorChannel()
        with caplog.at_level(logging.WARNING, logger="valuefmt.core.notifications"):
            channel.warning("stderr noise")
            channel.error("real failure")
        levels = {r.getMessage(): r.levelno for r in caplog.records}
        assert levels["stderr noise"] == logging.WARNING
        assert levels["real failure"] == logging.ERROR
