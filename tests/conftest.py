import os
import sys
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# Ensure `import backend.app...` works regardless of where pytest is run from.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Must be set before `backend.app.config` is first imported.
os.environ["DISABLE_DOTENV"] = "1"
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["GEOCODER_API_KEY"] = ""
os.environ["SMTP_HOST"] = ""


# Known addresses for the stubbed geocoder: (latitude, longitude, zipcode, city).
GEO_FIXTURES = {
    "651 Rr 2, Oquawka, IL, 61469": (40.9316, -90.9472, "61469", "Oquawka"),
    "61469": (40.9316, -90.9472, "61469", "Oquawka"),
    "Burlington, IA 52601": (40.8076, -91.1129, "52601", "Burlington"),
    "Boston, MA 02108": (42.3588, -71.0707, "02108", "Boston"),
}


def fake_geocode(address):
    from backend.app.services.geocoder import GeoLocation

    hit = GEO_FIXTURES.get((address or "").strip())
    if hit is None:
        return None
    lat, lng, zipcode, city = hit
    return GeoLocation(
        longitude=lng,
        latitude=lat,
        formatted_address=address,
        city=city,
        state=None,
        zipcode=zipcode,
        country="US",
    )


@pytest.fixture()
def app(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FastAPI:
    """
    FastAPI app wired to a fresh SQLite DB and upload directory per test.

    Startup hooks are not run (TestClient is not used as a context manager),
    so tables are created here.
    """
    from backend.app import config
    from backend.app import database as db
    from backend.app.main import create_app
    from backend.app.services import jobs as job_service

    engine = db.make_engine(f"sqlite+pysqlite:///{tmp_path / 'test.sqlite3'}")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Patch the shared database module so router dependencies use the test DB.
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setattr(db, "SessionLocal", TestingSessionLocal)

    from backend.app import models  # noqa: F401

    db.Base.metadata.create_all(bind=engine)

    monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(config, "IS_PRODUCTION", False)
    monkeypatch.setattr(job_service, "geocode", fake_geocode)

    yield create_app(rate_limit=False)

    engine.dispose()


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def db_session(app: FastAPI):
    """
    Direct SQLAlchemy session bound to the same temporary SQLite DB used by the test app.
    """
    from backend.app import database

    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def upload_dir(app: FastAPI) -> Path:
    from backend.app import config

    path = Path(config.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def register(client: TestClient):
    """Register through the API; returns (token, user_id)."""

    def _register(*, name: str, email: str, role: str = "user", password: str = "secret123"):
        r = client.post(
            "/api/v1/register",
            json={"name": name, "email": email, "password": password, "role": role},
        )
        assert r.status_code == 200, r.text
        token = r.json()["token"]
        me = client.get("/api/v1/me", headers=auth_headers(token))
        assert me.status_code == 200, me.text
        return token, me.json()["data"]["id"]

    return _register


@pytest.fixture()
def admin(db_session):
    """Admins are never self-registered; create one directly. Returns (token, user_id)."""
    from backend.app.models.user import ROLE_ADMIN, User
    from backend.app.utils.jwt import create_access_token
    from backend.app.utils.security import hash_password

    user = User(name="Root Admin", email="admin@jobee.io", password=hash_password("secret123"), role=ROLE_ADMIN)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return create_access_token({"sub": str(user.id), "role": user.role}), user.id


def make_job_payload(**overrides) -> dict:
    payload = {
        "title": "Node Developer",
        "description": "Must be a full-stack developer, able to implement everything in a MEAN or MERN stack paradigm.",
        "email": "hr@acme.io",
        "address": "651 Rr 2, Oquawka, IL, 61469",
        "company": "Acme Inc",
        "industry": ["Information Technology"],
        "jobType": "Full-Time",
        "minEducation": "Bachelors",
        "positions": 2,
        "experience": "2 Years",
        "salary": 60000,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def job_payload():
    return make_job_payload


@pytest.fixture()
def create_job(client: TestClient):
    def _create_job(token: str, **overrides) -> dict:
        r = client.post("/api/v1/job/new", json=make_job_payload(**overrides), headers=auth_headers(token))
        assert r.status_code == 200, r.text
        return r.json()["data"]

    return _create_job
