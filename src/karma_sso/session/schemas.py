from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .models import AuthMethod


class UserPayload(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("User id must not be empty")
        return value


class SessionSetRequest(BaseModel):
    token: str = Field(min_length=1, description="Token issued by a successful login.")
    user: UserPayload


class TokenRequest(BaseModel):
    token: str = Field(min_length=1, description="Structured or signed token to process.")


class SessionResponse(BaseModel):
    token: str
    user: UserPayload
    authenticated_at: int
    auth_method: AuthMethod


class AuthStatusResponse(BaseModel):
    authenticated: bool
    auth_method: Optional[AuthMethod] = None
    user_id: Optional[str] = None


class KarmaAwardRequest(BaseModel):
    points: int
    action_code: str = Field(min_length=1)
    description: str = ""

    @field_validator("action_code")
    @classmethod
    def validate_action_code(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("action_code must not be blank")
        return value


class KarmaAwardResponse(BaseModel):
    total: int


class DeleteResponse(BaseModel):
    success: bool
