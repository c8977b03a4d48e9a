"""
Error envelope: every failure becomes {"success": false, "message": ...};
development responses add error details and a stack, production ones never do.
"""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from backend.app import config
from backend.app.utils.error_handlers import (
    DuplicateKeyError,
    InvalidTokenError,
    NotFoundError,
    register_exception_handlers,
    translate_exception,
)


class Body(BaseModel):
    count: int


@pytest.fixture()
def client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing")
    def missing():
        raise NotFoundError("Job not found")

    @app.get("/crash")
    def crash():
        raise RuntimeError("secret internals")

    @app.get("/duplicate")
    def duplicate():
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.email"))

    @app.post("/echo")
    def echo(body: Body):
        return body.model_dump()

    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def production(monkeypatch):
    monkeypatch.setattr(config, "IS_PRODUCTION", True)


@pytest.fixture()
def development(monkeypatch):
    monkeypatch.setattr(config, "IS_PRODUCTION", False)


def test_app_error_in_development_includes_details(client, development):
    r = client.get("/missing")
    assert r.status_code == 404
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Job not found"
    assert body["error"]["type"] == "NotFoundError"
    assert "stack" in body


def test_app_error_in_production_is_minimal(client, production):
    r = client.get("/missing")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Job not found"}


def test_unexpected_error_hides_internals_in_production(client, production):
    r = client.get("/crash")
    assert r.status_code == 500
    assert r.json() == {"success": False, "message": "Internal Server Error"}
    assert "secret internals" not in r.text


def test_unexpected_error_has_stack_in_development(client, development):
    r = client.get("/crash")
    assert r.status_code == 500
    assert "secret internals" in r.json()["stack"]


def test_unique_violation_maps_to_duplicate_key(client, production):
    r = client.get("/duplicate")
    assert r.status_code == 400
    assert r.json()["message"] == "Duplicate email entered"


def test_request_validation_is_400(client, production):
    r = client.post("/echo", json={"count": "many"})
    assert r.status_code == 400
    assert r.json()["message"].startswith("count:")


def test_unknown_route(client, production):
    r = client.get("/nowhere")
    assert r.status_code == 404
    assert r.json()["message"] == "/nowhere route not found"


def test_translate_exception_passthrough_and_jwt():
    from jose import JWTError

    err = DuplicateKeyError()
    assert translate_exception(err) is err
    assert isinstance(translate_exception(JWTError("bad")), InvalidTokenError)
    assert translate_exception(ValueError("x")).status_code == 500
