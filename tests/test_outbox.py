"""Email outbox: queued with the account change, delivered after the response, retried by the worker."""

import pytest
from fastapi.testclient import TestClient

from cashtrackr.api.server import create_app
from cashtrackr.db import connect, init_db
from cashtrackr.emails.outbox import (
    claim_email,
    enqueue_email,
    mark_email_error,
    release_stale_claims,
)
from cashtrackr.emails.templates import CONFIRM_ACCOUNT, RESET_PASSWORD, render_email
from cashtrackr.emails.worker import deliver_email, flush_outbox

from conftest import FailingMailer, RecordingMailer, make_config


def _outbox(cfg):
    with connect(cfg.DB_DSN) as conn:
        return [dict(r) for r in conn.execute("SELECT * FROM email_outbox ORDER BY email_id").fetchall()]


def _enqueue(cfg, recipient="jane@x.com", max_attempts=5):
    with connect(cfg.DB_DSN) as conn:
        return enqueue_email(
            conn,
            template=CONFIRM_ACCOUNT,
            recipient=recipient,
            context={"name": "Jane", "token": "123456"},
            max_attempts=max_attempts,
        )


class TestRegistrationWithMailFailures:
    def test_account_is_created_when_smtp_is_down(self, cfg):
        failing = FailingMailer()
        with TestClient(create_app(cfg, mailer=failing)) as client:
            r = client.post(
                "/api/auth/create-account",
                json={"name": "Jane", "email": "jane@x.com", "password": "password1"},
            )
        assert r.status_code == 201
        assert failing.calls == 1

        rows = _outbox(cfg)
        assert len(rows) == 1
        assert rows[0]["status"] == "pending"
        assert rows[0]["attempts"] == 1
        assert rows[0]["last_error"] == "smtp down"

        # The worker picks it up once SMTP is back.
        mailer = RecordingMailer()
        assert flush_outbox(cfg, mailer) == 1
        assert mailer.sent[0].recipient == "jane@x.com"
        assert _outbox(cfg)[0]["status"] == "sent"

    def test_gives_up_after_max_attempts(self, tmp_path):
        cfg = make_config(tmp_path, OUTBOX_MAX_ATTEMPTS=3)
        failing = FailingMailer()
        with TestClient(create_app(cfg, mailer=failing)) as client:
            client.post(
                "/api/auth/create-account",
                json={"name": "Jane", "email": "jane@x.com", "password": "password1"},
            )

        assert flush_outbox(cfg, failing) == 0
        row = _outbox(cfg)[0]
        assert row["status"] == "error"
        assert row["attempts"] == 3
        assert failing.calls == 3

        # Nothing left to retry.
        assert flush_outbox(cfg, failing) == 0
        assert failing.calls == 3


class TestOutboxQueue:
    def test_rolled_back_change_queues_nothing(self, cfg):
        init_db(cfg.DB_DSN)
        with pytest.raises(RuntimeError):
            with connect(cfg.DB_DSN) as conn:
                enqueue_email(conn, template=RESET_PASSWORD, recipient="jane@x.com", context={"token": "1"})
                raise RuntimeError("boom")
        assert _outbox(cfg) == []

    def test_unknown_template(self, cfg):
        init_db(cfg.DB_DSN)
        with connect(cfg.DB_DSN) as conn:
            with pytest.raises(ValueError, match="unknown_email_template"):
                enqueue_email(conn, template="welcome", recipient="jane@x.com", context={})

    def test_claim_is_exclusive(self, cfg):
        init_db(cfg.DB_DSN)
        email_id = _enqueue(cfg)
        with connect(cfg.DB_DSN) as conn:
            first = claim_email(conn, email_id)
        with connect(cfg.DB_DSN) as conn:
            second = claim_email(conn, email_id)
        assert first is not None and first.context["token"] == "123456"
        assert second is None

        mailer = RecordingMailer()
        assert deliver_email(cfg, mailer, email_id) is False
        assert mailer.sent == []

    def test_release_stale_claims(self, cfg):
        init_db(cfg.DB_DSN)
        email_id = _enqueue(cfg)
        with connect(cfg.DB_DSN) as conn:
            claim_email(conn, email_id)
        with connect(cfg.DB_DSN) as conn:
            assert release_stale_claims(conn) == 1

        mailer = RecordingMailer()
        assert flush_outbox(cfg, mailer) == 1
        assert len(mailer.sent) == 1

    def test_retry_waits_for_backoff(self, cfg):
        init_db(cfg.DB_DSN)
        email_id = _enqueue(cfg)
        with connect(cfg.DB_DSN) as conn:
            claim_email(conn, email_id)
            mark_email_error(conn, email_id, "timeout", retry_after_seconds=3600)

        row = _outbox(cfg)[0]
        assert row["status"] == "pending"
        assert row["attempts"] == 1
        assert flush_outbox(cfg, RecordingMailer()) == 0


class TestTemplates:
    def test_confirm_account_email(self):
        email = render_email(
            CONFIRM_ACCOUNT,
            "jane@x.com",
            {"name": "<Jane>", "token": "654321"},
            frontend_url="http://localhost:3000/",
        )
        assert email.subject == "CashTrackr - Confirma tu cuenta"
        assert "654321" in email.text
        assert "http://localhost:3000/auth/confirm-account" in email.text
        assert "&lt;Jane&gt;" in email.html

    def test_reset_password_email(self):
        email = render_email(RESET_PASSWORD, "jane@x.com", {"name": "Jane", "token": "111222"}, frontend_url="")
        assert "/auth/new-password" in email.text
        assert "111222" in email.html
