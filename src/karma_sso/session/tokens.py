from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from .errors import InvalidTokenFormat
from .models import User

STRUCTURED_PREFIX = "auth"
DELIMITER = "_"


@dataclass(frozen=True, slots=True)
class StructuredToken:
    user_id: str
    timestamp: int  # epoch milliseconds

    def encode(self) -> str:
        return format_structured_token(self.user_id, self.timestamp)


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Verified claims returned by the identity provider for a signed token."""

    user: User
    issued_at: Optional[int] = None
    raw: dict[str, Any] = field(default_factory=dict)


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> TokenClaims: ...


def format_structured_token(user_id: str, timestamp: int) -> str:
    return f"{STRUCTURED_PREFIX}{DELIMITER}{user_id}{DELIMITER}{timestamp}"


def is_signed_token(token: str) -> bool:
    parts = token.split(".")
    return len(parts) == 3 and all(parts)


def is_structured_token(token: str) -> bool:
    return token.startswith(STRUCTURED_PREFIX + DELIMITER)


def parse_structured_token(token: str) -> StructuredToken:
    """Split ``auth_{userId}_{timestamp}`` into its parts.

    The user id is everything between the prefix and the last delimiter, so ids
    that themselves contain underscores survive the round trip.
    """
    if not isinstance(token, str) or not is_structured_token(token):
        raise InvalidTokenFormat("Token does not start with 'auth_'", details={"token": _redact(token)})

    body = token[len(STRUCTURED_PREFIX) + len(DELIMITER) :]
    user_id, sep, raw_timestamp = body.rpartition(DELIMITER)
    if not sep or not user_id:
        raise InvalidTokenFormat("Token is missing a user id", details={"token": _redact(token)})
    if not (raw_timestamp.isascii() and raw_timestamp.isdigit()):
        raise InvalidTokenFormat("Token timestamp is not numeric", details={"token": _redact(token)})

    return StructuredToken(user_id=user_id, timestamp=int(raw_timestamp))


def _redact(token: Any) -> str:
    text = str(token)
    if len(text) <= 12:
        return text
    return f"{text[:8]}…{text[-4:]}"
