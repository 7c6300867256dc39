"""Unit tests for the notification channel.

Tests cover:
- Subscription and dispatch order
- Idempotent unsubscribe through the returned handle
- Duplicate subscriptions
- Error isolation between subscribers
"""

import logging

import pytest

from formaflex.events import Notifier, Subscription


class TestSubscribe:
    """Test subscribing and dispatching."""

    def test_subscribe_returns_handle(self):
        notifier = Notifier()
        handle = notifier.subscribe(lambda: None)
        assert isinstance(handle, Subscription)
        assert handle.active is True
        assert len(notifier) == 1

    def test_callbacks_called_without_arguments(self):
        """Should call each callback once, with no arguments."""
        notifier = Notifier()
        calls = []
        notifier.subscribe(lambda: calls.append("a"))
        notifier.subscribe(lambda: calls.append("b"))

        notifier.notify()

        assert calls == ["a", "b"]

    def test_non_callable_rejected(self):
        with pytest.raises(TypeError):
            Notifier().subscribe("not callable")

    def test_duplicate_subscription_notified_once(self):
        """Should return the existing handle for an already subscribed callback."""
        notifier = Notifier()
        calls = []

        def on_change():
            calls.append(1)

        first = notifier.subscribe(on_change)
        second = notifier.subscribe(on_change)
        notifier.notify()

        assert first is second
        assert calls == [1]


class TestUnsubscribe:
    """Test removing callbacks."""

    def test_unsubscribe_stops_notifications(self):
        notifier = Notifier()
        calls = []
        unsubscribe = notifier.subscribe(lambda: calls.append(1))

        unsubscribe()
        notifier.notify()

        assert calls == []
        assert len(notifier) == 0

    def test_unsubscribe_is_idempotent(self):
        """Should be safe to call the handle more than once."""
        notifier = Notifier()
        handle = notifier.subscribe(lambda: None)
        other = notifier.subscribe(lambda: None)

        assert handle() is True
        assert handle() is False
        assert handle.unsubscribe() is False
        assert handle.active is False
        assert other.active is True
        assert len(notifier) == 1

    def test_unsubscribe_during_notification(self):
        """Should skip callbacks removed by an earlier callback."""
        notifier = Notifier()
        calls = []
        handles = {}

        def first():
            calls.append("first")
            handles["second"]()

        notifier.subscribe(first)
        handles["second"] = notifier.subscribe(lambda: calls.append("second"))
        notifier.notify()

        assert calls == ["first"]

    def test_resubscribe_after_unsubscribe(self):
        """Should create a new handle after the old one was closed."""
        notifier = Notifier()

        def on_change():
            pass

        old = notifier.subscribe(on_change)
        old()
        new = notifier.subscribe(on_change)

        assert new is not old
        assert new.active is True

    def test_clear(self):
        notifier = Notifier()
        handle = notifier.subscribe(lambda: None)
        notifier.clear()
        assert len(notifier) == 0
        assert handle.active is False


class TestErrorIsolation:
    """Test that a failing subscriber does not affect others."""

    def test_failing_callback_is_logged(self, caplog):
        notifier = Notifier()
        calls = []

        def broken():
            raise ValueError("listener bug")

        notifier.subscribe(broken)
        notifier.subscribe(lambda: calls.append(1))

        with caplog.at_level(logging.ERROR, logger="formaflex.events"):
            notifier.notify()

        assert calls == [1]
        assert "failed during notification" in caplog.text
