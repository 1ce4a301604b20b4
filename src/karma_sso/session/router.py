from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from karma_sso.identity import KarmaClient

from .dependencies import get_karma_client, get_session_store
from .errors import (
    InvalidTokenFormat,
    NotAuthenticated,
    RemoteCallFailed,
    SessionError,
    TokenExpired,
    TokenUserMismatch,
)
from .models import Session, User
from .schemas import (
    AuthStatusResponse,
    DeleteResponse,
    KarmaAwardRequest,
    KarmaAwardResponse,
    SessionResponse,
    SessionSetRequest,
    TokenRequest,
    UserPayload,
)
from .store import SessionStore

router = APIRouter(prefix="/api/session", tags=["session"])
karma_router = APIRouter(prefix="/api/karma", tags=["karma"])

_ERROR_STATUS = {
    InvalidTokenFormat: status.HTTP_400_BAD_REQUEST,
    TokenExpired: status.HTTP_401_UNAUTHORIZED,
    NotAuthenticated: status.HTTP_401_UNAUTHORIZED,
    TokenUserMismatch: status.HTTP_409_CONFLICT,
    RemoteCallFailed: status.HTTP_502_BAD_GATEWAY,
}


@router.get("", response_model=SessionResponse)
async def get_session(store: SessionStore = Depends(get_session_store)) -> SessionResponse:
    session = store.current_session()
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active session")
    return _to_response(session)


@router.get("/status", response_model=AuthStatusResponse)
async def get_status(store: SessionStore = Depends(get_session_store)) -> AuthStatusResponse:
    authenticated = await store.offload(store.is_authenticated)
    session = store.current_session()
    return AuthStatusResponse(
        authenticated=authenticated,
        auth_method=session.auth_method if session else None,
        user_id=session.user.id if session else None,
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SessionResponse)
async def set_session(
    payload: SessionSetRequest,
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    user = User(id=payload.user.id, email=payload.user.email, name=payload.user.name)
    try:
        session = await store.offload(store.set_session, payload.token, user)
    except SessionError as exc:
        raise _to_http_error(exc) from exc
    return _to_response(session)


@router.post("/token", response_model=SessionResponse)
async def process_token(
    payload: TokenRequest,
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    try:
        session = await store.process_token(payload.token)
    except SessionError as exc:
        raise _to_http_error(exc) from exc
    return _to_response(session)


@router.post("/restore", response_model=SessionResponse)
async def restore_session(store: SessionStore = Depends(get_session_store)) -> SessionResponse:
    session = await store.offload(store.ensure_restored)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No restorable session")
    return _to_response(session)


@router.delete("", response_model=DeleteResponse)
async def clear_session(store: SessionStore = Depends(get_session_store)) -> DeleteResponse:
    await store.offload(store.clear_session)
    return DeleteResponse(success=True)


@karma_router.post("", response_model=KarmaAwardResponse)
async def award_karma(
    payload: KarmaAwardRequest,
    client: KarmaClient = Depends(get_karma_client),
) -> KarmaAwardResponse:
    try:
        total = await client.award(payload.points, payload.action_code, payload.description)
    except SessionError as exc:
        raise _to_http_error(exc) from exc
    return KarmaAwardResponse(total=total)


def _to_http_error(exc: SessionError) -> HTTPException:
    status_code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.message})


def _to_response(session: Session) -> SessionResponse:
    return SessionResponse(
        token=session.token,
        user=UserPayload(id=session.user.id, email=session.user.email, name=session.user.name),
        authenticated_at=session.authenticated_at,
        auth_method=session.auth_method,
    )
