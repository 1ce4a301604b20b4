from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from fastapi import FastAPI, HTTPException, Request, status

from karma_sso.config import SDKConfig

from .storage import SQLiteStorage
from .store import SessionStore

if TYPE_CHECKING:  # pragma: no cover
    from karma_sso.identity import IdentityProviderClient, KarmaClient

logger = logging.getLogger(__name__)


def build_session_store(
    config: SDKConfig,
    *,
    verifier: Optional["IdentityProviderClient"] = None,
) -> SessionStore:
    """Create a SQLite-backed session store from configuration."""
    storage = SQLiteStorage(config.storage_path, origin=config.storage_origin)
    store = SessionStore(config, storage=storage, verifier=verifier)
    logger.info("Initialised session store with DB path %s", storage.db_path)
    return store


def set_session_store(app: FastAPI, store: SessionStore) -> None:
    app.state.session_store = store


def get_session_store(request: Request) -> SessionStore:
    store = getattr(request.app.state, "session_store", None)
    if store is None:
        raise RuntimeError("Session store has not been initialised")
    return store


def get_karma_client(request: Request) -> "KarmaClient":
    client = getattr(request.app.state, "karma_client", None)
    if client is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Karma service is not configured")
    return client
