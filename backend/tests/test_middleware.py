from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.app import config
from backend.app.logging_config import sanitize_log_data
from backend.app.middleware import RateLimiter, RateLimitMiddleware, SecurityHeadersMiddleware


def _app(max_requests: int = 2) -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    def ping():
        return {"ok": True}

    app.add_middleware(RateLimitMiddleware, max_requests=max_requests, window_seconds=60)
    app.add_middleware(SecurityHeadersMiddleware)
    return app


def test_security_headers_present():
    r = TestClient(_app()).get("/ping")
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert "Strict-Transport-Security" not in r.headers


def test_rate_limit_returns_envelope():
    client = TestClient(_app(max_requests=2))
    assert client.get("/ping").status_code == 200
    assert client.get("/ping").status_code == 200

    r = client.get("/ping")
    assert r.status_code == 429
    assert r.json()["success"] is False
    assert r.headers["X-Content-Type-Options"] == "nosniff"


def test_rate_limiter_window_slides():
    limiter = RateLimiter(max_requests=2, window_seconds=10)
    assert limiter.hit("1.2.3.4", now=0)
    assert limiter.hit("1.2.3.4", now=1)
    assert not limiter.hit("1.2.3.4", now=5)
    assert limiter.hit("5.6.7.8", now=5)
    assert limiter.hit("1.2.3.4", now=10.5)


def test_rate_limiter_evicts_idle_clients():
    limiter = RateLimiter(max_requests=5, window_seconds=10)
    for n in range(50):
        limiter.hit(f"10.0.0.{n}", now=1)
    assert len(limiter) == 50

    assert limiter.hit("10.0.1.1", now=12)
    assert len(limiter) == 1


def test_forwarded_for_ignored_unless_proxy_trusted(monkeypatch):
    monkeypatch.setattr(config, "TRUST_PROXY_HEADERS", False)
    client = TestClient(_app(max_requests=2))
    for n in range(2):
        assert client.get("/ping", headers={"X-Forwarded-For": f"203.0.113.{n}"}).status_code == 200
    assert client.get("/ping", headers={"X-Forwarded-For": "203.0.113.9"}).status_code == 429


def test_forwarded_for_used_behind_trusted_proxy(monkeypatch):
    monkeypatch.setattr(config, "TRUST_PROXY_HEADERS", True)
    client = TestClient(_app(max_requests=1))
    assert client.get("/ping", headers={"X-Forwarded-For": "203.0.113.1, 10.0.0.1"}).status_code == 200
    assert client.get("/ping", headers={"X-Forwarded-For": "203.0.113.2"}).status_code == 200
    assert client.get("/ping", headers={"X-Forwarded-For": "203.0.113.1"}).status_code == 429


def test_sanitize_log_data_redacts_secrets():
    data = sanitize_log_data({"email": "a@x.com", "password": "hunter2", "GEOCODER_API_KEY": "k"})
    assert data == {"email": "a@x.com", "password": "***REDACTED***", "GEOCODER_API_KEY": "***REDACTED***"}
