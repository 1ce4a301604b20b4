"""Client-side session persistence with SQLite and in-memory storage backends."""

from .errors import (
    InvalidTokenFormat,
    NotAuthenticated,
    RemoteCallFailed,
    SessionError,
    StorageUnavailable,
    TokenExpired,
    TokenUserMismatch,
)
from .events import SessionEvent, SessionEvents, SessionEventType
from .models import AuthMethod, PersistedAuthState, Session, User
from .storage import DisabledStorage, KeyValueStorage, MemoryStorage, SQLiteStorage
from .store import SessionStore

__all__ = [
    "AuthMethod",
    "DisabledStorage",
    "InvalidTokenFormat",
    "KeyValueStorage",
    "MemoryStorage",
    "NotAuthenticated",
    "PersistedAuthState",
    "RemoteCallFailed",
    "SQLiteStorage",
    "Session",
    "SessionError",
    "SessionEvent",
    "SessionEventType",
    "SessionEvents",
    "SessionStore",
    "StorageUnavailable",
    "TokenExpired",
    "TokenUserMismatch",
    "User",
]
