"""
tests/test_api_routes.py -- Integration tests for the register / login / users routes.

These tests exercise the full stack: FastAPI routing -> AuthService ->
UserStore / LoginAuditLog -> response model serialization and the error
envelope rendered by the exception handlers in api/main.py.

Fixtures used (from conftest.py):
  - api_client: (client, audit_log) -- module-scoped, so every test registers
    its own distinct username and email.
"""

from __future__ import annotations

import logging
import os

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from api.main import app
from auth.audit import LoginAuditLog
from auth.tokens import decode_session_token

SECRET = os.environ["SECRET_KEY"]


def _register(client: TestClient, username: str, password: str = "pw-123456") -> None:
    resp = client.post(
        "/api/v1/register",
        json={"username": username, "email": f"{username}@example.com", "password": password},
    )
    assert resp.status_code == 201, resp.text


class TestRegisterRoute:
    def test_register_returns_201_without_secrets(self, api_client: tuple[TestClient, LoginAuditLog]) -> None:
        client, _ = api_client
        resp = client.post(
            "/api/v1/register",
            json={"username": "reg1", "email": "reg1@example.com", "password": "pw-123456"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["username"] == "reg1"
        assert "message" in body
        assert "password" not in resp.text

    def test_duplicate_returns_409(self, api_client: tuple[TestClient, LoginAuditLog]) -> None:
        client, _ = api_client
        _register(client, "dup1")
        resp = client.post(
            "/api/v1/register",
            json={"username": "dup1", "email": "elsewhere@example.com", "password": "pw"},
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "duplicate_user"

    def test_empty_field_returns_400_and_creates_nothing(self, api_client: tuple[TestClient, LoginAuditLog]) -> None:
        client, _ = api_client
        resp = client.post("/api/v1/register", json={"username": "empty1", "email": "", "password": "pw"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"
        usernames = [u["username"] for u in client.get("/api/v1/users").json()]
        assert "empty1" not in usernames

    def test_missing_field_returns_400(self, api_client: tuple[TestClient, LoginAuditLog]) -> None:
        client, _ = api_client
        resp = client.post("/api/v1/register", json={"username": "missing1", "password": "pw"})
        assert resp.status_code == 400

    def test_malformed_body_returns_400(self, api_client: tuple[TestClient, LoginAuditLog]) -> None:
        client, _ = api_client
        resp = client.post(
            "/api/v1/register",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"


class TestLoginRoute:
    def test_login_returns_token(self, api_client: tuple[TestClient, LoginAuditLog]) -> None:
        client, _ = api_client
        _register(client, "login1", "correct-horse")
        resp = client.post("/api/v1/login", json={"username": "login1", "password": "correct-horse"})
        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "no-store"
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 3600
        payload = decode_session_token(body["token"], SECRET)
        assert payload["username"] == "login1"
        assert payload["email"] == "login1@example.com"
        assert payload["exp"] - payload["iat"] == 3600

    def test_wrong_password_and_unknown_user_identical(self, api_client: tuple[TestClient, LoginAuditLog]) -> None:
        client, _ = api_client
        _register(client, "login2", "correct-horse")
        wrong = client.post("/api/v1/login", json={"username": "login2", "password": "nope"})
        unknown = client.post("/api/v1/login", json={"username": "ghost", "password": "nope"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert wrong.json()["error"]["code"] == "invalid_credentials"

    def test_login_records_one_event(self, api_client: tuple[TestClient, LoginAuditLog]) -> None:
        client, audit_log = api_client
        _register(client, "login3", "correct-horse")
        client.post("/api/v1/login", json={"username": "login3", "password": "wrong"})
        assert audit_log.events_for("login3") == []
        client.post("/api/v1/login", json={"username": "login3", "password": "correct-horse"})
        assert len(audit_log.events_for("login3")) == 1

    def test_empty_password_returns_400(self, api_client: tuple[TestClient, LoginAuditLog]) -> None:
        client, _ = api_client
        resp = client.post("/api/v1/login", json={"username": "login1", "password": ""})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"


class TestUsersRoute:
    def test_list_never_includes_credentials(self, api_client: tuple[TestClient, LoginAuditLog]) -> None:
        client, _ = api_client
        _register(client, "list1", "super-secret-pw")
        resp = client.get("/api/v1/users")
        assert resp.status_code == 200
        rows = resp.json()
        row = next(r for r in rows if r["username"] == "list1")
        assert set(row) == {"username", "email", "created_at"}
        assert "super-secret-pw" not in resp.text
        assert "$2b$" not in resp.text


class TestValidationDetail:
    def test_oversized_password_not_echoed(self, api_client: tuple[TestClient, LoginAuditLog]) -> None:
        client, _ = api_client
        password = "TopSecretPassword-" + "z" * 250
        resp = client.post(
            "/api/v1/register",
            json={"username": "echo1", "email": "echo1@example.com", "password": password},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"
        assert "password" in resp.json()["error"]["detail"]
        assert "TopSecretPassword" not in resp.text


class TestInternalErrorEnvelope:
    def test_storage_failure_on_login_returns_generic_500(
        self, api_client: tuple[TestClient, LoginAuditLog], monkeypatch
    ) -> None:
        client, audit_log = api_client
        _register(client, "broken1", "correct-horse")

        def _fail(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(audit_log, "append", _fail)
        resp = client.post("/api/v1/login", json={"username": "broken1", "password": "correct-horse"})
        assert resp.status_code == 500
        error = resp.json()["error"]
        assert error["code"] == "internal_error"
        assert error["message"] == "An unexpected error occurred."
        assert "disk" not in resp.text
        assert "token" not in resp.json()

    def test_unhandled_error_still_gets_access_log_line(
        self, api_client: tuple[TestClient, LoginAuditLog], monkeypatch, caplog
    ) -> None:
        def _crash():
            raise RuntimeError("unexpected")

        monkeypatch.setattr(app.state.auth_service, "list_users", _crash)
        caplog.set_level(logging.INFO, logger="authgate.api")
        resp = TestClient(app, raise_server_exceptions=False).get("/api/v1/users")
        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "internal_error"
        assert any("GET /api/v1/users 500" in r.getMessage() for r in caplog.records)
