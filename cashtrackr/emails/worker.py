from __future__ import annotations

import time

from cashtrackr.config import Config
from cashtrackr.db import connect

from .mailer import Mailer
from .outbox import OutboxEmail, claim_email, claim_next_email, mark_email_error, mark_email_sent, release_stale_claims
from .templates import render_email


def _debug(msg: str) -> None:
    print(f"[worker] {msg}")


def _send_claimed(cfg: Config, mailer: Mailer, email: OutboxEmail) -> bool:
    """Send an already-claimed email and record the outcome.

    The send happens outside any DB transaction so a slow SMTP server never holds a lock.
    """
    try:
        message = render_email(email.template, email.recipient, email.context, frontend_url=cfg.FRONTEND_URL)
        mailer.send(message)
    except Exception as e:
        _debug(f"Send failed email_id={email.email_id} template={email.template} attempts={email.attempts + 1}/{email.max_attempts}: {e}")
        with connect(cfg.DB_DSN) as conn:
            mark_email_error(conn, email.email_id, str(e), retry_after_seconds=cfg.OUTBOX_RETRY_SECONDS)
        return False

    with connect(cfg.DB_DSN) as conn:
        mark_email_sent(conn, email.email_id)
    return True


def deliver_email(cfg: Config, mailer: Mailer, email_id: int) -> bool:
    """First delivery attempt for a freshly queued email (runs after the response)."""
    with connect(cfg.DB_DSN) as conn:
        email = claim_email(conn, email_id)
    if email is None:
        return False
    return _send_claimed(cfg, mailer, email)


def flush_outbox(cfg: Config, mailer: Mailer, *, limit: int = 100) -> int:
    """Send due emails until none are left (or `limit` is reached). Returns how many were sent."""
    sent = 0
    for _ in range(max(0, int(limit))):
        with connect(cfg.DB_DSN) as conn:
            email = claim_next_email(conn)
        if email is None:
            break
        if _send_claimed(cfg, mailer, email):
            sent += 1
    return sent


def run_outbox_forever(cfg: Config, mailer: Mailer) -> None:
    _debug("Outbox worker starting")

    # Single worker per database: anything still 'sending' was left by a crash.
    with connect(cfg.DB_DSN) as conn:
        release_stale_claims(conn)

    while True:
        n = flush_outbox(cfg, mailer)
        if n:
            _debug(f"Delivered {n} emails")
        time.sleep(cfg.WORKER_POLL_SECONDS)
