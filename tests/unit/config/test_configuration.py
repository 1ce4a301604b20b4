import pytest

from karma_sso.config import DEFAULT_SESSION_TIMEOUT_MS, SDKConfig


def test_defaults():
    config = SDKConfig()
    assert config.session_timeout == DEFAULT_SESSION_TIMEOUT_MS == 3_600_000
    assert config.storage_origin == "default"
    assert config.auth_base_url is None


def test_origin_derived_from_subdomain_and_domain():
    config = SDKConfig(subdomain="shop", auth_domain="example.com")
    assert config.storage_origin == "https://shop.example.com"
    assert config.auth_base_url == "https://example.com"
    assert SDKConfig(auth_domain="http://localhost:9000/").auth_base_url == "http://localhost:9000"


@pytest.mark.parametrize("kwargs", [{"session_timeout": 0}, {"storage_prefix": ""}, {"request_timeout": -1}])
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValueError):
        SDKConfig(**kwargs)


def test_from_env(monkeypatch):
    monkeypatch.setenv("KARMA_SSO_CLIENT_ID", "client-1")
    monkeypatch.setenv("KARMA_SSO_AUTH_DOMAIN", "auth.example.com")
    monkeypatch.setenv("KARMA_SSO_SESSION_TIMEOUT", "120000")
    monkeypatch.setenv("KARMA_SSO_DEBUG", "true")
    monkeypatch.setenv("KARMA_SSO_REQUEST_TIMEOUT", "not-a-number")

    config = SDKConfig.from_env(project_id="proj-9")

    assert config.client_id == "client-1"
    assert config.session_timeout == 120_000
    assert config.debug is True
    assert config.project_id == "proj-9"
    assert config.request_timeout == 10.0
