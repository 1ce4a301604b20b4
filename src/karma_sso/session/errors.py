from __future__ import annotations

from typing import Any, Optional


class SessionError(Exception):
    """Base error for session and collaborator failures."""

    code = "SESSION_ERROR"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidTokenFormat(SessionError):
    code = "INVALID_TOKEN_FORMAT"


class TokenUserMismatch(SessionError):
    code = "TOKEN_USER_MISMATCH"

    def __init__(self, expected_user_id: str, token_user_id: str) -> None:
        super().__init__(
            f"Token belongs to user {token_user_id!r} but session is established for {expected_user_id!r}",
            details={"expected_user_id": expected_user_id, "token_user_id": token_user_id},
        )
        self.expected_user_id = expected_user_id
        self.token_user_id = token_user_id


class TokenExpired(SessionError):
    code = "TOKEN_EXPIRED"


class StorageUnavailable(SessionError):
    code = "STORAGE_UNAVAILABLE"


class RemoteCallFailed(SessionError):
    code = "REMOTE_CALL_FAILED"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code


class NotAuthenticated(SessionError):
    code = "NOT_AUTHENTICATED"
