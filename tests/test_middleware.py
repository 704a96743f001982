"""Bearer authentication on protected routes."""

import time

import jwt
import pytest

from cashtrackr.db import connect

from conftest import bearer


class TestBearerHeader:
    def test_missing_header(self, client):
        r = client.get("/api/budgets")
        assert r.status_code == 401
        assert r.json() == {"error": "No autorizado"}
        assert r.headers["WWW-Authenticate"] == "Bearer"

    def test_header_without_token(self, client):
        r = client.get("/api/budgets", headers={"Authorization": "Bearer"})
        assert r.status_code == 401
        assert r.json() == {"error": "Token No Válido"}


class TestUserLookup:
    @pytest.mark.parametrize("header", ["Bearer not.a.jwt", "Basic abc"])
    def test_garbage_token(self, client, header):
        r = client.get("/api/auth/user", headers={"Authorization": header})
        assert r.status_code == 500
        assert r.json() == {"error": "Error al obtener el usuario"}

    def test_wrong_secret(self, client, jane_token):
        token = jwt.encode({"sub": "1", "exp": int(time.time()) + 60}, "not-the-secret", algorithm="HS256")
        r = client.get("/api/auth/user", headers=bearer(token))
        assert r.status_code == 500

    def test_expired_token(self, client, cfg, jane_token):
        token = jwt.encode({"sub": "1", "exp": int(time.time()) - 60}, cfg.AUTH_JWT_SECRET, algorithm="HS256")
        r = client.get("/api/auth/user", headers=bearer(token))
        assert r.status_code == 500
        assert r.json() == {"error": "Error al obtener el usuario"}

    def test_deleted_account(self, client, cfg, jane_token):
        with connect(cfg.DB_DSN) as conn:
            conn.execute("DELETE FROM users WHERE email=?", ("jane@x.com",))
        r = client.get("/api/auth/user", headers=bearer(jane_token))
        assert r.status_code == 500
        assert r.json() == {"error": "Error al obtener el usuario"}

    def test_scheme_word_is_not_checked(self, client, jane_token):
        r = client.get("/api/auth/user", headers={"Authorization": f"Token {jane_token}"})
        assert r.status_code == 200

    def test_password_hash_never_returned(self, client, jane_token):
        r = client.get("/api/auth/user", headers=bearer(jane_token))
        assert r.status_code == 200
        assert "password" not in r.text
        assert "token" not in r.json()


def test_health_is_public(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
