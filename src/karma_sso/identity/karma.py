from __future__ import annotations

import logging
from typing import Optional

import httpx

from karma_sso.session.errors import NotAuthenticated, RemoteCallFailed
from karma_sso.session.events import SessionEvent, SessionEventType
from karma_sso.session.store import SessionStore

from .provider import _post_json

logger = logging.getLogger(__name__)

AWARD_PATH = "/api/karma/award"


class KarmaClient:
    """Awards karma points for the user of an authenticated session."""

    def __init__(self, store: SessionStore, *, http_client: Optional[httpx.AsyncClient] = None) -> None:
        config = store.config
        if not config.auth_base_url:
            raise ValueError("auth_domain is required to talk to the karma service")
        self._store = store
        self._client = http_client or httpx.AsyncClient(
            base_url=config.auth_base_url,
            timeout=config.request_timeout,
        )
        self._owns_client = http_client is None

    async def award(self, points: int, action_code: str, description: str = "") -> int:
        """Return the user's new running total."""
        try:
            session = await self._store.offload(self._store.ensure_restored)
            if session is None:
                raise NotAuthenticated("Karma can only be awarded to an authenticated user")

            data = await _post_json(
                self._client,
                AWARD_PATH,
                {
                    "userId": session.user.id,
                    "points": points,
                    "actionCode": action_code,
                    "description": description,
                    "clientId": self._store.config.client_id,
                },
                headers={"Authorization": f"Bearer {session.token}"},
            )
            total = data.get("total")
            if isinstance(total, bool) or not isinstance(total, (int, float)):
                raise RemoteCallFailed("Karma service response carries no total", details={"response": data})
        except (NotAuthenticated, RemoteCallFailed) as exc:
            self._store.events.emit(
                SessionEvent(SessionEventType.ERROR, session=self._store.current_session(), error=exc)
            )
            raise

        logger.info("Awarded %s karma to user %s for %s", points, session.user.id, action_code)
        return int(total)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
