"""Shared fixtures.

Every test gets a fresh SQLite file and an app wired to a `RecordingMailer`, which
keeps the emails (and therefore the 6-digit codes) the API would have sent.
"""

from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from cashtrackr.api.server import create_app
from cashtrackr.config import Config
from cashtrackr.emails.mailer import Mailer
from cashtrackr.emails.templates import OutgoingEmail


class RecordingMailer(Mailer):
    def __init__(self) -> None:
        self.sent: List[OutgoingEmail] = []

    def send(self, email: OutgoingEmail) -> None:
        self.sent.append(email)

    @property
    def last_token(self) -> Optional[str]:
        if not self.sent:
            return None
        return self.sent[-1].context["token"]

    def last_token_for(self, recipient: str) -> Optional[str]:
        for email in reversed(self.sent):
            if email.recipient == recipient:
                return email.context["token"]
        return None


class FailingMailer(Mailer):
    def __init__(self) -> None:
        self.calls = 0

    def send(self, email: OutgoingEmail) -> None:
        self.calls += 1
        raise ConnectionRefusedError("smtp down")


def make_config(tmp_path, **overrides) -> Config:
    values = dict(
        APP_ENV="test",
        DB_DSN=str(tmp_path / "cashtrackr.sqlite"),
        AUTH_JWT_SECRET="test-secret",
        AUTH_RATE_LIMIT_MAX=1000,
        OUTBOX_RETRY_SECONDS=0,
        CORS_ALLOW_ORIGINS="",
    )
    values.update(overrides)
    return Config(**values)


@pytest.fixture
def cfg(tmp_path) -> Config:
    return make_config(tmp_path)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def client(cfg, mailer):
    app = create_app(cfg, mailer=mailer)
    with TestClient(app) as c:
        yield c


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register_confirmed(client, mailer, *, name: str, email: str, password: str) -> str:
    """Create, confirm and log in an account; returns its session token."""
    r = client.post("/api/auth/create-account", json={"name": name, "email": email, "password": password})
    assert r.status_code == 201, r.text
    r = client.post("/api/auth/confirm-account", json={"token": mailer.last_token_for(email)})
    assert r.status_code == 200, r.text
    r = client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()


@pytest.fixture
def jane_token(client, mailer) -> str:
    return register_confirmed(client, mailer, name="Jane", email="jane@x.com", password="password1")


@pytest.fixture
def bob_token(client, mailer) -> str:
    return register_confirmed(client, mailer, name="Bob", email="bob@x.com", password="password2")
