import json

import httpx
import pytest

from karma_sso.config import SDKConfig
from karma_sso.identity import IdentityProviderClient, KarmaClient
from karma_sso.session.errors import NotAuthenticated, RemoteCallFailed
from karma_sso.session.events import SessionEventType
from karma_sso.session.models import AuthMethod, User
from karma_sso.session.storage import MemoryStorage
from karma_sso.session.store import SessionStore

CONFIG = SDKConfig(client_id="client-1", auth_domain="auth.example.com", project_id="proj")


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url="https://auth.example.com", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_verify_resolves_claims():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"user": {"id": "u-1", "email": "u@example.com", "name": "U"}, "issuedAt": 5})

    provider = IdentityProviderClient(CONFIG, http_client=mock_client(handler))
    claims = await provider.verify("a.b.c")

    assert claims.user == User(id="u-1", email="u@example.com", name="U")
    assert claims.issued_at == 5
    assert requests[0].url.path == "/api/sdk/verify"
    assert json.loads(requests[0].content) == {"token": "a.b.c", "clientId": "client-1", "projectId": "proj"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(401, json={"error": "bad signature"}),
        httpx.Response(200, json={"user": {}}),
        httpx.Response(200, text="not json"),
    ],
)
async def test_verify_failures_are_remote_errors(response):
    provider = IdentityProviderClient(CONFIG, http_client=mock_client(lambda request: response))
    with pytest.raises(RemoteCallFailed):
        await provider.verify("a.b.c")


@pytest.mark.asyncio
async def test_store_processes_signed_token_through_provider():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"user": {"id": "u-1"}})

    provider = IdentityProviderClient(CONFIG, http_client=mock_client(handler))
    store = SessionStore(CONFIG, storage=MemoryStorage(), verifier=provider)

    session = await store.process_token("a.b.c")

    assert session.auth_method is AuthMethod.EXTERNAL
    assert store.is_authenticated() is True


@pytest.mark.asyncio
async def test_transport_error_surfaces_through_store():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    provider = IdentityProviderClient(CONFIG, http_client=mock_client(handler))
    store = SessionStore(CONFIG, storage=MemoryStorage(), verifier=provider)
    errors = []
    store.events.subscribe(SessionEventType.ERROR, errors.append)

    with pytest.raises(RemoteCallFailed):
        await store.process_token("a.b.c")

    assert store.is_authenticated() is False
    assert errors[0].error_code == "REMOTE_CALL_FAILED"


@pytest.mark.asyncio
async def test_award_requires_authentication():
    calls = []
    store = SessionStore(CONFIG, storage=MemoryStorage())
    karma = KarmaClient(store, http_client=mock_client(lambda request: calls.append(request)))
    errors = []
    store.events.subscribe(SessionEventType.ERROR, errors.append)

    with pytest.raises(NotAuthenticated):
        await karma.award(10, "POST_CREATED", "first post")

    assert calls == []
    assert errors[0].error_code == "NOT_AUTHENTICATED"


@pytest.mark.asyncio
async def test_award_returns_running_total():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"total": 110})

    store = SessionStore(CONFIG, storage=MemoryStorage())
    store.set_session("auth_42_1700000000000", User(id="42"))
    karma = KarmaClient(store, http_client=mock_client(handler))

    total = await karma.award(10, "POST_CREATED", "first post")

    assert total == 110
    assert requests[0].headers["Authorization"] == "Bearer auth_42_1700000000000"
    assert json.loads(requests[0].content) == {
        "userId": "42",
        "points": 10,
        "actionCode": "POST_CREATED",
        "description": "first post",
        "clientId": "client-1",
    }


@pytest.mark.asyncio
async def test_award_remote_failure_is_reported():
    store = SessionStore(CONFIG, storage=MemoryStorage())
    store.set_session("tok", User(id="42"))
    karma = KarmaClient(store, http_client=mock_client(lambda request: httpx.Response(500)))
    errors = []
    store.events.subscribe(SessionEventType.ERROR, errors.append)

    with pytest.raises(RemoteCallFailed) as excinfo:
        await karma.award(1, "LIKE")

    assert excinfo.value.status_code == 500
    assert len(errors) == 1
    assert store.is_authenticated() is True


@pytest.mark.asyncio
async def test_award_rejects_session_dropped_during_restore():
    calls = []
    storage = MemoryStorage()
    store = SessionStore(CONFIG, storage=storage)
    SessionStore(CONFIG, storage=storage).set_session("tok", User(id="42"))
    store.events.subscribe(SessionEventType.RESTORED, lambda event: store.clear_session())
    karma = KarmaClient(store, http_client=mock_client(lambda request: calls.append(request)))

    with pytest.raises(NotAuthenticated):
        await karma.award(5, "LIKE")

    assert calls == []
    assert store.current_session() is None


def test_clients_require_auth_domain():
    with pytest.raises(ValueError):
        IdentityProviderClient(SDKConfig())
    with pytest.raises(ValueError):
        KarmaClient(SessionStore(SDKConfig(), storage=MemoryStorage()))
