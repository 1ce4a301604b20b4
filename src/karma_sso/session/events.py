from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .errors import SessionError
from .models import Session

logger = logging.getLogger(__name__)


class SessionEventType(str, Enum):
    LOGIN = "login"
    RESTORED = "restored"
    LOGOUT = "logout"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class SessionEvent:
    type: SessionEventType
    session: Optional[Session] = None
    error: Optional[Exception] = None

    @property
    def error_code(self) -> Optional[str]:
        if isinstance(self.error, SessionError):
            return self.error.code
        return None


Listener = Callable[[SessionEvent], None]


class SessionEvents:
    """Fan-out of session state changes to any number of listeners."""

    def __init__(self) -> None:
        self._listeners: dict[SessionEventType, list[Listener]] = {kind: [] for kind in SessionEventType}

    def subscribe(self, event_type: SessionEventType, listener: Listener) -> Callable[[], None]:
        self._listeners[event_type].append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners[event_type].remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def subscribe_all(self, listener: Listener) -> Callable[[], None]:
        unsubscribers = [self.subscribe(kind, listener) for kind in SessionEventType]

        def _unsubscribe() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return _unsubscribe

    def listener_count(self, event_type: SessionEventType) -> int:
        return len(self._listeners[event_type])

    def emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners[event.type]):
            try:
                listener(event)
            except Exception as exc:  # noqa: BLE001 - a faulty listener must not break the store
                logger.warning("Session %s listener %r failed: %s", event.type.value, listener, exc)
