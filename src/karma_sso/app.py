# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from karma_sso.config import SDKConfig
from karma_sso.config.loader import get_str_env
from karma_sso.identity import IdentityProviderClient, KarmaClient
from karma_sso.session.dependencies import build_session_store, set_session_store
from karma_sso.session.events import SessionEvent, SessionEventType
from karma_sso.session.router import karma_router
from karma_sso.session.router import router as session_router
from karma_sso.session.store import SessionStore

logger = logging.getLogger(__name__)


def _log_session_event(event: SessionEvent) -> None:
    user_id = event.session.user.id if event.session else None
    if event.type is SessionEventType.ERROR:
        logger.warning("Session error %s for user %s: %s", event.error_code, user_id, event.error)
    else:
        logger.info("Session %s for user %s", event.type.value, user_id)


def create_app(
    session_store: Optional[SessionStore] = None,
    karma_client: Optional[KarmaClient] = None,
) -> FastAPI:
    """Build the API for one client context.

    Without an explicit store, the lifespan handler builds a SQLite-backed one
    from ``KARMA_SSO_*`` environment variables and wires the identity provider
    and karma clients when an auth domain is configured.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned: list = []
        store = getattr(app.state, "session_store", None)
        if store is None:
            config = SDKConfig.from_env()
            verifier = IdentityProviderClient(config) if config.auth_base_url else None
            if verifier is not None:
                owned.append(verifier)
            store = build_session_store(config, verifier=verifier)
            set_session_store(app, store)
        if store.config.debug:
            logging.getLogger("karma_sso").setLevel(logging.DEBUG)
        unsubscribe = store.events.subscribe_all(_log_session_event)

        if getattr(app.state, "karma_client", None) is None and store.config.auth_base_url:
            app.state.karma_client = KarmaClient(store)
            owned.append(app.state.karma_client)
        try:
            yield
        finally:
            unsubscribe()
            for client in owned:
                await client.aclose()

    app = FastAPI(
        title="Karma SSO Session API",
        description="Client-side SSO session persistence",
        version="0.1.0",
        lifespan=lifespan,
    )
    if session_store is not None:
        set_session_store(app, session_store)
    app.state.karma_client = karma_client

    allowed_origins_str = get_str_env("ALLOWED_ORIGINS", "http://localhost:3000")
    allowed_origins = [origin.strip() for origin in allowed_origins_str.split(",")]
    logger.info("Allowed origins: %s", allowed_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(session_router)
    app.include_router(karma_router)
    return app


app = create_app()
