from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Callable, Optional, TypeVar

from karma_sso.config import SDKConfig

from .errors import (
    InvalidTokenFormat,
    RemoteCallFailed,
    SessionError,
    StorageUnavailable,
    TokenExpired,
    TokenUserMismatch,
)
from .events import SessionEvent, SessionEventType, SessionEvents
from .models import AuthMethod, PersistedAuthState, Session, User
from .storage import KeyValueStorage, MemoryStorage
from .tokens import TokenVerifier, is_signed_token, is_structured_token, parse_structured_token

logger = logging.getLogger(__name__)

Clock = Callable[[], int]
T = TypeVar("T")


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionStore:
    """Single authoritative session for one client context, mirrored to durable storage.

    Construction attempts a restoration from storage and never raises for
    missing, stale, or corrupt state. Only caller-facing operations
    (``process_token``) raise, and they also publish an ``error`` event.
    """

    def __init__(
        self,
        config: Optional[SDKConfig] = None,
        *,
        storage: Optional[KeyValueStorage] = None,
        verifier: Optional[TokenVerifier] = None,
        events: Optional[SessionEvents] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config = config or SDKConfig()
        self._storage = storage if storage is not None else MemoryStorage()
        self._verifier = verifier
        self._events = events or SessionEvents()
        self._clock = clock or _now_ms
        self._session: Optional[Session] = None
        self._lock = asyncio.Lock()

        prefix = self._config.storage_prefix
        self._token_key = f"{prefix}_token"
        self._user_key = f"{prefix}_user"
        self._state_key = f"{prefix}_auth_state"

        self.restore_session()

    @property
    def config(self) -> SDKConfig:
        return self._config

    @property
    def events(self) -> SessionEvents:
        return self._events

    async def offload(self, func: Callable[..., T], *args: Any) -> T:
        """Run a storage-touching operation in a worker thread, one at a time."""
        async with self._lock:
            return await asyncio.to_thread(func, *args)

    def current_session(self) -> Optional[Session]:
        """In-memory session without touching storage."""
        return self._session

    def ensure_restored(self) -> Optional[Session]:
        """Return the in-memory session, restoring it from storage when absent."""
        if self._session is not None:
            return self._session
        return self.restore_session()

    def is_authenticated(self) -> bool:
        return self.current_session() is not None or self.ensure_restored() is not None

    def restore_session(self) -> Optional[Session]:
        raw_state = self._storage_get(self._state_key)
        if raw_state is None:
            return None

        try:
            state = PersistedAuthState.from_json(raw_state)
        except ValueError as exc:
            logger.info("Discarding unreadable auth state: %s", exc)
            self.clear_session()
            return None

        age = self._clock() - state.authenticated_at
        if age > self._config.session_timeout:
            logger.info(
                "Persisted session for user %s expired (age %sms > %sms)",
                state.user_id,
                age,
                self._config.session_timeout,
            )
            self.clear_session()
            return None

        user = self._load_user_snapshot(state)
        if user is None:
            self.clear_session()
            return None

        stored_token = self._storage_get(self._token_key)
        if stored_token is not None and stored_token != state.token:
            logger.info("Persisted token disagrees with auth state for user %s; discarding", state.user_id)
            self.clear_session()
            return None

        was_authenticated = self._session is not None
        session = Session(
            token=state.token,
            user=user,
            authenticated_at=state.authenticated_at,
            auth_method=AuthMethod.RESTORED,
        )
        self._session = session
        logger.debug("Restored session for user %s", user.id)
        if not was_authenticated:
            self._events.emit(SessionEvent(SessionEventType.RESTORED, session=session))
        return self._session

    def set_session(self, token: str, user: User) -> Session:
        if not token:
            raise InvalidTokenFormat("Token must not be empty")
        if not user.id:
            raise InvalidTokenFormat("User id must not be empty")
        session = Session(
            token=token,
            user=user,
            authenticated_at=self._clock(),
            auth_method=AuthMethod.SDK_LOGIN,
        )
        self._establish(session)
        return session

    async def process_token(self, token: str) -> Session:
        try:
            if is_structured_token(token):
                return await self.offload(self._process_structured, token)
            if is_signed_token(token):
                return await self._process_signed(token)
            raise InvalidTokenFormat("Token is neither a structured nor a signed token")
        except SessionError as exc:
            self._events.emit(SessionEvent(SessionEventType.ERROR, session=self._session, error=exc))
            raise

    def clear_session(self) -> None:
        previous = self._session
        self._session = None
        self._erase_persisted()
        if previous is not None:
            logger.info("Cleared session for user %s", previous.user.id)
            self._events.emit(SessionEvent(SessionEventType.LOGOUT, session=previous))

    def _process_structured(self, token: str) -> Session:
        parsed = parse_structured_token(token)
        self._check_same_user(parsed.user_id)

        age = self._clock() - parsed.timestamp
        if age > self._config.session_timeout:
            self.clear_session()
            raise TokenExpired(
                f"Token for user {parsed.user_id} is older than the session timeout",
                details={"user_id": parsed.user_id, "age_ms": age},
            )

        current = self._session
        user = current.user if current is not None else User(id=parsed.user_id)
        session = Session(
            token=token,
            user=user,
            authenticated_at=parsed.timestamp,
            auth_method=AuthMethod.SDK_LOGIN,
        )
        self._establish(session)
        return session

    async def _process_signed(self, token: str) -> Session:
        if self._verifier is None:
            raise InvalidTokenFormat("Signed tokens require an identity provider verifier")
        try:
            claims = await self._verifier.verify(token)
        except SessionError:
            raise
        except Exception as exc:  # noqa: BLE001 - verifier failures are surfaced as remote errors
            raise RemoteCallFailed(f"Token verification failed: {exc}") from exc
        if not claims.user.id:
            raise InvalidTokenFormat("Verified token carries no user id")
        return await self.offload(self._adopt_claims, token, claims.user)

    def _adopt_claims(self, token: str, user: User) -> Session:
        self._check_same_user(user.id)
        session = Session(
            token=token,
            user=user,
            authenticated_at=self._clock(),
            auth_method=AuthMethod.EXTERNAL,
        )
        self._establish(session)
        return session

    def _check_same_user(self, user_id: str) -> None:
        current = self._session
        if current is not None and current.user.id != user_id:
            raise TokenUserMismatch(current.user.id, user_id)

    def _establish(self, session: Session) -> None:
        previous = self._session
        self._session = session
        self._persist(session)
        if previous is None or previous.user.id != session.user.id:
            logger.info("Session established for user %s via %s", session.user.id, session.auth_method.value)
            self._events.emit(SessionEvent(SessionEventType.LOGIN, session=session))

    def _persist(self, session: Session) -> None:
        state = PersistedAuthState.from_session(session)
        self._storage_set(self._token_key, session.token)
        self._storage_set(self._user_key, session.user.to_json())
        self._storage_set(self._state_key, state.to_json())

    def _load_user_snapshot(self, state: PersistedAuthState) -> Optional[User]:
        raw_user = self._storage_get(self._user_key)
        if raw_user is None:
            return User(id=state.user_id, email=state.email)
        try:
            data = json.loads(raw_user)
        except json.JSONDecodeError:
            logger.info("Discarding unreadable user snapshot for user %s", state.user_id)
            return None
        if not isinstance(data, dict):
            return None
        user = User.from_mapping(data)
        if user.id != state.user_id:
            logger.info("User snapshot %s disagrees with auth state %s; discarding", user.id, state.user_id)
            return None
        return user

    def _erase_persisted(self) -> None:
        for key in (self._state_key, self._user_key, self._token_key):
            self._storage_remove(key)

    def _storage_get(self, key: str) -> Optional[str]:
        try:
            return self._storage.get(key)
        except StorageUnavailable as exc:
            self._storage_degraded("read", key, exc)
            return None

    def _storage_set(self, key: str, value: str) -> None:
        try:
            self._storage.set(key, value)
        except StorageUnavailable as exc:
            self._storage_degraded("write", key, exc)

    def _storage_remove(self, key: str) -> None:
        try:
            self._storage.remove(key)
        except StorageUnavailable as exc:
            self._storage_degraded("remove", key, exc)

    def _storage_degraded(self, operation: str, key: str, exc: StorageUnavailable) -> None:
        if self._config.debug:
            logger.warning("Storage %s of %s skipped: %s", operation, key, exc.message)
