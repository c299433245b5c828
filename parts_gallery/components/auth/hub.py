"""
Auth state subscriptions.

One hub per process, created and closed by the application lifespan.
Listeners receive (event, session) for sign-in and sign-out.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from threading import Lock

from parts_gallery.domain.entities import AuthEvent, SessionContext

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthEvent, SessionContext], None]


class Subscription:
    def __init__(self, hub: AuthStateHub, listener: AuthListener) -> None:
        self._hub = hub
        self.listener = listener

    def unsubscribe(self) -> None:
        self._hub._remove(self)


class AuthStateHub:
    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._lock = Lock()
        self._closed = False

    def subscribe(self, listener: AuthListener) -> Subscription:
        with self._lock:
            if self._closed:
                raise RuntimeError("AuthStateHub is closed")
            sub = Subscription(self, listener)
            self._subscriptions.append(sub)
            return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, event: AuthEvent, session: SessionContext) -> None:
        with self._lock:
            listeners = [s.listener for s in self._subscriptions]

        for listener in listeners:
            try:
                listener(event, session)
            except Exception:
                # listener failures never reach the publisher
                logger.exception("Auth listener failed for %s", event)

    def close(self) -> None:
        """Drop every subscription; later subscribe() calls fail."""
        with self._lock:
            self._subscriptions.clear()
            self._closed = True
