"""Change notification channel for FormaFlex.

Observers subscribe a callback that takes no arguments. All forms of a
registry share one channel, so a callback is only told that *something*
changed and must re-read the state it cares about.

Subscriptions are explicit handles kept in subscription order. Unsubscribing
is idempotent, and subscribing a callback that is already subscribed returns
the existing handle, so one callback is never notified twice for one change.
"""

import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
"""Type alias for change callbacks.

Callbacks are called synchronously, in subscription order, with no arguments.
"""


class Subscription:
    """Handle returned by Notifier.subscribe.

    Calling the handle (or its unsubscribe method) removes the callback.
    Doing so more than once is harmless.

    Examples:
        >>> notifier = Notifier()
        >>> subscription = notifier.subscribe(lambda: None)
        >>> subscription.active
        True
        >>> subscription()
        True
        >>> subscription()
        False
    """

    def __init__(self, notifier: "Notifier", callback: Listener):
        self._notifier: Optional["Notifier"] = notifier
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._notifier is not None

    def unsubscribe(self) -> bool:
        """Remove the callback.

        Returns:
            True if this call removed it, False if it was already removed
        """
        notifier, self._notifier = self._notifier, None
        if notifier is None:
            return False
        notifier._discard(self)
        return True

    __call__ = unsubscribe

    def __repr__(self) -> str:
        state = "active" if self.active else "closed"
        return f"<Subscription {self.callback!r} {state}>"


class Notifier:
    """Ordered set of change subscriptions with fan-out.

    Features:
    - Subscription-ordered, synchronous dispatch
    - Idempotent unsubscribe through the returned handle
    - Error isolation (a failing callback is logged, the rest still run)

    Examples:
        >>> notifier = Notifier()
        >>> calls = []
        >>> handle = notifier.subscribe(lambda: calls.append("changed"))
        >>> notifier.notify()
        >>> calls
        ['changed']
    """

    def __init__(self):
        self._subscriptions: List[Subscription] = []

    def subscribe(self, callback: Listener) -> Subscription:
        """Register a callback and return its handle.

        Raises:
            TypeError: If callback is not callable
        """
        if not callable(callback):
            raise TypeError(f"subscriber must be callable, got {type(callback).__name__}")
        for subscription in self._subscriptions:
            if subscription.callback == callback:
                return subscription
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def _discard(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    def notify(self) -> None:
        """Call every subscribed callback once.

        Callbacks unsubscribed by an earlier callback during the same
        notification are skipped; callbacks subscribed during it are not
        called until the next one.
        """
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription.callback()
            except Exception:
                logger.exception("Subscriber %r failed during notification", subscription.callback)

    def clear(self) -> None:
        """Close every subscription."""
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()

    def __len__(self) -> int:
        return len(self._subscriptions)


__all__ = [
    "Listener",
    "Subscription",
    "Notifier",
]
