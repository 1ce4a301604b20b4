import logging
import os
import sys

import pytest
from fastapi.testclient import TestClient

from karma_sso import server
from karma_sso.app import create_app
from karma_sso.config import SDKConfig
from karma_sso.session.storage import MemoryStorage
from karma_sso.session.store import SessionStore


@pytest.fixture
def package_logger():
    package_logger = logging.getLogger("karma_sso")
    level = package_logger.level
    yield package_logger
    package_logger.setLevel(level)


@pytest.fixture
def uvicorn_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(server.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    return calls


def test_debug_flag_reaches_reload_workers(monkeypatch, package_logger, uvicorn_calls):
    monkeypatch.setenv("KARMA_SSO_DEBUG", "false")
    monkeypatch.setattr(sys, "argv", ["karma-sso-server", "--debug", "--reload"])

    server.main()

    assert os.environ["KARMA_SSO_DEBUG"] == "true"
    assert package_logger.level == logging.DEBUG
    app, kwargs = uvicorn_calls[0]
    assert app == "karma_sso.app:app"
    assert kwargs["reload"] is True


def test_default_run_leaves_debug_off(monkeypatch, package_logger, uvicorn_calls):
    monkeypatch.setenv("KARMA_SSO_DEBUG", "false")
    monkeypatch.setattr(sys, "argv", ["karma-sso-server", "--port", "9001"])
    package_logger.setLevel(logging.NOTSET)

    server.main()

    assert os.environ["KARMA_SSO_DEBUG"] == "false"
    assert package_logger.level == logging.NOTSET
    assert uvicorn_calls[0][1]["port"] == 9001


def test_debug_config_raises_package_log_level(package_logger):
    package_logger.setLevel(logging.NOTSET)
    store = SessionStore(SDKConfig(debug=True), storage=MemoryStorage())

    with TestClient(create_app(session_store=store)):
        assert package_logger.level == logging.DEBUG
