from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from karma_sso.config import SDKConfig
from karma_sso.session.errors import RemoteCallFailed
from karma_sso.session.models import User
from karma_sso.session.tokens import TokenClaims

logger = logging.getLogger(__name__)

VERIFY_PATH = "/api/sdk/verify"


class IdentityProviderClient:
    """Resolves signed tokens to claims through the remote identity provider.

    Signature, issuer and audience checks happen on the provider side; this
    client only forwards the token and shapes the answer.
    """

    def __init__(self, config: SDKConfig, *, http_client: Optional[httpx.AsyncClient] = None) -> None:
        if not config.auth_base_url:
            raise ValueError("auth_domain is required to talk to the identity provider")
        self._config = config
        self._client = http_client or httpx.AsyncClient(
            base_url=config.auth_base_url,
            timeout=config.request_timeout,
        )
        self._owns_client = http_client is None

    async def verify(self, token: str) -> TokenClaims:
        payload = {"token": token, "clientId": self._config.client_id}
        if self._config.project_id:
            payload["projectId"] = self._config.project_id

        data = await _post_json(self._client, VERIFY_PATH, payload)
        user_data = data.get("user")
        if not isinstance(user_data, dict) or not user_data.get("id"):
            raise RemoteCallFailed("Identity provider response carries no user", details={"response": data})

        user = User.from_mapping(user_data)
        issued_at = data.get("issuedAt")
        logger.debug("Identity provider verified token for user %s", user.id)
        return TokenClaims(
            user=user,
            issued_at=int(issued_at) if isinstance(issued_at, (int, float)) else None,
            raw=data,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


async def _post_json(
    client: httpx.AsyncClient,
    path: str,
    payload: dict[str, Any],
    *,
    headers: Optional[dict[str, str]] = None,
) -> dict[str, Any]:
    try:
        response = await client.post(path, json=payload, headers=headers)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.warning("Remote call to %s failed with status %s", path, exc.response.status_code)
        raise RemoteCallFailed(
            f"Remote call to {path} failed with status {exc.response.status_code}",
            status_code=exc.response.status_code,
        ) from exc
    except httpx.HTTPError as exc:
        logger.warning("Remote call to %s failed: %s", path, exc)
        raise RemoteCallFailed(f"Remote call to {path} failed: {exc}") from exc

    try:
        data = response.json()
    except ValueError as exc:
        raise RemoteCallFailed(f"Remote call to {path} returned invalid JSON") from exc
    if not isinstance(data, dict):
        raise RemoteCallFailed(f"Remote call to {path} returned an unexpected payload")
    return data
