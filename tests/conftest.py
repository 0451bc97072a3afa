import pytest
import json
import datetime
from fastapi.testclient import TestClient

from app.config import Settings, get_settings
from app.db.database import build_engine, build_session_factory, get_engine, get_session_factory, init_db
from app.main import app
from app.routes import catalog as catalog_routes
from app.services.registration_service import RegistrationService
from app.storage.registration_log import RegistrationLog, get_registration_log


def clear_cached_dependencies():
    get_settings.cache_clear()
    get_engine.cache_clear()
    get_session_factory.cache_clear()
    get_registration_log.cache_clear()
    catalog_routes._cache.clear()


class FakeClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start=None):
        self.current = start or datetime.datetime(2026, 1, 1, 9, 0, tzinfo=datetime.timezone.utc)

    def __call__(self):
        self.current = self.current + datetime.timedelta(seconds=1)
        return self.current


# ────────────────────────────────────────────────
# Settings and stores
# ────────────────────────────────────────────────

@pytest.fixture
def test_settings(tmp_path, monkeypatch):
    """Point the database, registration log and catalog at a temporary directory."""
    catalog_dir = tmp_path / "catalog"
    catalog_dir.mkdir()
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'registrations.db'}")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("CATALOG_DIR", str(catalog_dir))
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("RECONCILE_INTERVAL_SECONDS", "0")
    monkeypatch.delenv("DATABASE_PASSWORD", raising=False)
    clear_cached_dependencies()
    yield get_settings()
    get_engine().dispose()
    clear_cached_dependencies()


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine_for(f"sqlite:///{tmp_path / 'service.db'}")
    init_db(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def broken_session_factory(tmp_path):
    """Session factory whose database file sits in a directory that does not exist."""
    engine = build_engine_for(f"sqlite:///{tmp_path / 'missing' / 'service.db'}")
    yield build_session_factory(engine)
    engine.dispose()


def build_engine_for(url):
    return build_engine(Settings(DATABASE_URL=url, DATABASE_PASSWORD=None, ENVIRONMENT="test"))


@pytest.fixture
def registration_log(tmp_path):
    return RegistrationLog(str(tmp_path / "log" / "registrations.json"))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(session_factory, registration_log, clock):
    return RegistrationService(session_factory, registration_log, clock=clock)


@pytest.fixture
def degraded_service(broken_session_factory, registration_log, clock):
    return RegistrationService(broken_session_factory, registration_log, clock=clock)


# ────────────────────────────────────────────────
# API clients
# ────────────────────────────────────────────────

@pytest.fixture
def test_client(test_settings):
    """Return a TestClient backed by a temporary SQLite database and log."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def degraded_client(test_settings, broken_session_factory):
    """TestClient whose registration service cannot reach the database."""
    from app.routes.registrations import get_registration_service

    app.dependency_overrides[get_registration_service] = lambda: RegistrationService(
        broken_session_factory, get_registration_log()
    )
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_payload():
    return {
        "name": "A",
        "email": "a@x.com",
        "phone": "1",
        "tourTitle": "Samarkand Tour",
        "people": 2,
        "unitPrice": 50,
        "totalPrice": 100
    }


@pytest.fixture
def catalog_documents(test_settings):
    """Write sample catalog documents into the temporary catalog directory."""
    documents = {
        "tours": [{"id": 1, "title": "Samarkand Tour", "price": 50}],
        "destinations": [{"id": 1, "name": "Bukhara"}],
        "visa": [{"country": "Germany", "visaRequired": False}],
    }
    for topic, document in documents.items():
        with open(f"{test_settings.CATALOG_DIR}/{topic}.json", "w", encoding="utf-8") as f:
            json.dump(document, f)
    return documents
