from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class AuthMethod(str, Enum):
    SDK_LOGIN = "sdk-login"
    RESTORED = "restored"
    EXTERNAL = "external"


@dataclass(frozen=True, slots=True)
class User:
    id: str
    email: Optional[str] = None
    name: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps({"id": self.id, "email": self.email, "name": self.name})

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "User":
        return cls(
            id=str(data["id"]) if data.get("id") is not None else "",
            email=data.get("email"),
            name=data.get("name"),
        )


@dataclass(frozen=True, slots=True)
class Session:
    token: str
    user: User
    authenticated_at: int  # epoch milliseconds
    auth_method: AuthMethod


@dataclass(frozen=True, slots=True)
class PersistedAuthState:
    token: str
    user_id: str
    email: Optional[str]
    authenticated_at: int
    auth_method: AuthMethod

    @classmethod
    def from_session(cls, session: Session) -> "PersistedAuthState":
        return cls(
            token=session.token,
            user_id=session.user.id,
            email=session.user.email,
            authenticated_at=session.authenticated_at,
            auth_method=session.auth_method,
        )

    def to_json(self) -> str:
        return json.dumps(
            {
                "token": self.token,
                "userId": self.user_id,
                "email": self.email,
                "authenticatedAt": self.authenticated_at,
                "authMethod": self.auth_method.value,
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> "PersistedAuthState":
        """Parse a stored record; raises ``ValueError`` on any malformed field."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"auth state is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("auth state must be a JSON object")

        user_id = data.get("userId")
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValueError("auth state has no user id")
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise ValueError("auth state has no token")
        authenticated_at = data.get("authenticatedAt")
        if isinstance(authenticated_at, bool) or not isinstance(authenticated_at, (int, float)):
            raise ValueError("auth state has no authentication timestamp")
        if not math.isfinite(authenticated_at):
            raise ValueError("auth state timestamp is not finite")

        return cls(
            token=token,
            user_id=user_id,
            email=data.get("email"),
            authenticated_at=int(authenticated_at),
            auth_method=AuthMethod(data.get("authMethod", AuthMethod.SDK_LOGIN.value)),
        )
