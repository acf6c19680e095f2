"""End-to-end tests for the /auth endpoints over the SQL refresh token store."""

from __future__ import annotations

import pytest

from session_auth.core.extensions import limiter
from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.helpers.http import API, bearer, register

REFRESH_ERROR = "invalid or expired refresh token"


class TestRegister:
    def test_register_returns_session(self, client):
        resp = register(client)

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["user"]["email"] == "a@x.com"
        assert body["user"]["username"] == "alice"
        assert isinstance(body["user"]["id"], int)
        assert body["access_token"]
        assert body["refresh_token"]
        assert body["token_type"] == "bearer"

    def test_duplicate_email_is_bad_request(self, client):
        assert register(client).status_code == 201

        resp = register(client, email="A@X.com")

        assert resp.status_code == 400
        assert resp.mimetype == "application/problem+json"

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "not-an-email", "password": "pw123456"},
            {"email": "a@x.com", "password": "short"},
            {"email": "a@x.com"},
            {"email": "a@x.com", "password": "pw123456", "username": "ab"},
        ],
    )
    def test_validation_errors_are_bad_request(self, client, payload):
        resp = client.post(f"{API}/auth/register", json=payload)

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "validation_error"

    def test_non_json_body_is_bad_request(self, client):
        resp = client.post(f"{API}/auth/register", data="x", content_type="text/plain")

        assert resp.status_code == 400


class TestLogin:
    def test_login(self, client):
        user = UserFactory(email="bob@x.com")

        resp = client.post(
            f"{API}/auth/login", json={"email": "BOB@x.com", "password": DEFAULT_PASSWORD}
        )

        assert resp.status_code == 200
        assert resp.get_json()["user"]["id"] == user.id

    @pytest.mark.parametrize(
        "email,password", [("bob@x.com", "wrong-pass"), ("ghost@x.com", DEFAULT_PASSWORD)]
    )
    def test_bad_credentials(self, client, email, password):
        UserFactory(email="bob@x.com")

        resp = client.post(f"{API}/auth/login", json={"email": email, "password": password})

        assert resp.status_code == 401
        assert resp.get_json()["detail"] == "invalid email or password"

    def test_login_is_rate_limited(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config, "AUTH_LOGIN_RATE_LIMIT", "2 per minute")
        payload = {"email": "ghost@x.com", "password": "whatever"}
        try:
            codes = [client.post(f"{API}/auth/login", json=payload).status_code for _ in range(3)]
        finally:
            limiter.reset()

        assert codes == [401, 401, 429]


class TestRefresh:
    def test_register_refresh_then_replay(self, client):
        original = register(client).get_json()["refresh_token"]

        first = client.post(f"{API}/auth/refresh", json={"refresh_token": original})
        assert first.status_code == 200
        rotated = first.get_json()["refresh_token"]
        assert rotated and rotated != original
        assert first.get_json()["user"]["email"] == "a@x.com"

        replay = client.post(f"{API}/auth/refresh", json={"refresh_token": original})
        assert replay.status_code == 401
        assert replay.get_json()["detail"] == REFRESH_ERROR

        again = client.post(f"{API}/auth/refresh", json={"refresh_token": rotated})
        assert again.status_code == 200

    def test_unknown_token_gets_same_error(self, client):
        resp = client.post(f"{API}/auth/refresh", json={"refresh_token": "forged"})

        assert resp.status_code == 401
        assert resp.get_json()["detail"] == REFRESH_ERROR

    def test_missing_token_is_bad_request(self, client):
        assert client.post(f"{API}/auth/refresh", json={}).status_code == 400


class TestLogout:
    def test_logout_is_idempotent(self, client):
        token = register(client).get_json()["refresh_token"]

        first = client.post(f"{API}/auth/logout", json={"refresh_token": token})
        second = client.post(f"{API}/auth/logout", json={"refresh_token": token})

        assert (first.status_code, second.status_code) == (204, 204)
        assert first.data == b""
        refresh = client.post(f"{API}/auth/refresh", json={"refresh_token": token})
        assert refresh.status_code == 401

    def test_logout_of_unknown_token_succeeds(self, client):
        resp = client.post(f"{API}/auth/logout", json={"refresh_token": "never-issued"})

        assert resp.status_code == 204

    def test_logout_all_revokes_every_session(self, client):
        first = register(client).get_json()
        second = client.post(
            f"{API}/auth/login", json={"email": "a@x.com", "password": "pw123456"}
        ).get_json()

        resp = client.post(f"{API}/auth/logout-all", headers=bearer(first["access_token"]))

        assert resp.status_code == 204
        for session_body in (first, second):
            replay = client.post(
                f"{API}/auth/refresh", json={"refresh_token": session_body["refresh_token"]}
            )
            assert replay.status_code == 401

    def test_logout_all_requires_bearer(self, client):
        assert client.post(f"{API}/auth/logout-all").status_code == 401


class TestMe:
    def test_me_with_valid_token(self, client):
        body = register(client).get_json()

        resp = client.get(f"{API}/auth/me", headers=bearer(body["access_token"]))

        assert resp.status_code == 200
        assert resp.get_json() == body["user"]

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": "Basic abc"},
            {"Authorization": "bearer abc"},
            {"Authorization": "Bearer"},
            {"Authorization": "Bearer not.a.jwt"},
        ],
    )
    def test_rejections_are_uniform(self, client, headers):
        resp = client.get(f"{API}/auth/me", headers=headers)

        assert resp.status_code == 401
        body = resp.get_json()
        assert body["detail"] == "unauthorized"
        assert body["code"] == "unauthorized"

    def test_refresh_token_is_not_an_access_token(self, client):
        body = register(client).get_json()

        resp = client.get(f"{API}/auth/me", headers=bearer(body["refresh_token"]))

        assert resp.status_code == 401

    def test_request_id_is_echoed(self, client):
        resp = client.get(f"{API}/auth/me", headers={"X-Request-ID": "req-123"})

        assert resp.headers["X-Request-ID"] == "req-123"
        assert resp.get_json()["request_id"] == "req-123"
