import pytest

from karma_sso.config import SDKConfig
from karma_sso.session.errors import StorageUnavailable
from karma_sso.session.models import AuthMethod, User
from karma_sso.session.storage import DisabledStorage, SQLiteStorage
from karma_sso.session.store import SessionStore


def test_sqlite_storage_roundtrip(tmp_path):
    storage = SQLiteStorage(str(tmp_path / "storage.db"), origin="https://app.example.com")

    assert storage.get("missing") is None
    storage.set("karma_sso_token", "first")
    storage.set("karma_sso_token", "second")
    assert storage.get("karma_sso_token") == "second"
    assert storage.keys() == ["karma_sso_token"]

    storage.remove("karma_sso_token")
    storage.remove("karma_sso_token")
    assert storage.get("karma_sso_token") is None


def test_sqlite_storage_is_scoped_per_origin(tmp_path):
    db_path = str(tmp_path / "shared.db")
    first = SQLiteStorage(db_path, origin="https://a.example.com")
    second = SQLiteStorage(db_path, origin="https://b.example.com")

    first.set("key", "a")

    assert second.get("key") is None
    assert SQLiteStorage(db_path, origin="https://a.example.com").get("key") == "a"


def test_sqlite_storage_appends_db_suffix(tmp_path):
    storage = SQLiteStorage(str(tmp_path / "sessions"))
    assert storage.db_path.endswith("sessions.db")


def test_unusable_path_raises_storage_unavailable(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    storage = SQLiteStorage(str(blocker / "nested" / "storage.db"))

    with pytest.raises(StorageUnavailable):
        storage.set("key", "value")


def test_disabled_storage_raises():
    with pytest.raises(StorageUnavailable):
        DisabledStorage().get("key")


def test_session_survives_restart_on_sqlite(tmp_path):
    db_path = str(tmp_path / "session_store.db")
    config = SDKConfig(session_timeout=60_000)
    now = 1_700_000_000_000

    store = SessionStore(config, storage=SQLiteStorage(db_path), clock=lambda: now)
    store.set_session("tok", User(id="42", email="a@example.com"))

    restarted = SessionStore(config, storage=SQLiteStorage(db_path), clock=lambda: now + 1_000)
    session = restarted.current_session()

    assert session is not None
    assert session.user.email == "a@example.com"
    assert session.auth_method is AuthMethod.RESTORED

    restarted.clear_session()
    assert SessionStore(config, storage=SQLiteStorage(db_path), clock=lambda: now).current_session() is None
