"""
State broadcasting for session observers.

The session manager publishes an immutable SessionState snapshot after each
mutation. Observers are plain callables; there is no backpressure because a
snapshot replaces the previous one rather than queueing behind it.
"""

import logging
from typing import Callable

from .models import SessionState

logger = logging.getLogger(__name__)

StateListener = Callable[[SessionState], None]
LoginListener = Callable[[], None]


class SessionStateBroadcaster:
    """Holds the current snapshot and the list of subscribers."""

    def __init__(self, initial: SessionState | None = None) -> None:
        self._state = initial or SessionState()
        self._listeners: list[StateListener] = []
        self._login_listeners: list[LoginListener] = []

    @property
    def state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: StateListener, replay: bool = True) -> Callable[[], None]:
        """
        Register a listener and return a callable that removes it.

        With replay=True the listener immediately receives the current
        snapshot, so late subscribers do not render stale defaults.
        """
        self._listeners.append(listener)
        if replay:
            self._deliver(listener, self._state)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add_login_listener(self, listener: LoginListener) -> Callable[[], None]:
        """Register a callback fired each time the session becomes authenticated."""
        self._login_listeners.append(listener)

        def remove() -> None:
            if listener in self._login_listeners:
                self._login_listeners.remove(listener)

        return remove

    def publish(self, state: SessionState) -> None:
        """Replace the snapshot and notify listeners if anything changed."""
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            self._deliver(listener, state)

    def notify_logged_in(self) -> None:
        for listener in list(self._login_listeners):
            try:
                listener()
            except Exception:
                logger.exception("Login listener failed")

    @staticmethod
    def _deliver(listener: StateListener, state: SessionState) -> None:
        # One broken observer must not starve the others.
        try:
            listener(state)
        except Exception:
            logger.exception("Session state listener failed")
