from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from cashtrackr.util.time import iso_after_seconds, utcnow_iso

from .templates import TEMPLATES


def _debug(msg: str) -> None:
    print(f"[outbox] {msg}")


def _dialect(conn: Any) -> str:
    return str(getattr(conn, "dialect", "sqlite") or "sqlite").lower()


@dataclass(frozen=True)
class OutboxEmail:
    email_id: int
    template: str
    recipient: str
    context: Dict[str, Any]
    attempts: int
    max_attempts: int


_RETURNING = "RETURNING email_id, template, recipient, context_json, attempts, max_attempts"


def _from_row(row: Any) -> OutboxEmail:
    context_json = row["context_json"]
    return OutboxEmail(
        email_id=int(row["email_id"]),
        template=str(row["template"]),
        recipient=str(row["recipient"]),
        context=json.loads(context_json) if context_json else {},
        attempts=int(row["attempts"] or 0),
        max_attempts=int(row["max_attempts"] or 1),
    )


def enqueue_email(
    conn: Any,
    *,
    template: str,
    recipient: str,
    context: Dict[str, Any],
    max_attempts: int = 5,
) -> int:
    """Queue an email inside the caller's transaction.

    The row only becomes visible to senders once the caller commits, so a rolled back
    account change never produces an email.
    """
    if template not in TEMPLATES:
        raise ValueError(f"unknown_email_template: {template}")

    now = utcnow_iso()
    row = conn.execute(
        """
        INSERT INTO email_outbox (template, recipient, context_json, status, attempts, max_attempts, last_error, created_at, updated_at, run_after)
        VALUES (?, ?, ?, 'pending', 0, ?, NULL, ?, ?, NULL)
        RETURNING email_id
        """,
        (template, recipient, json.dumps(context, ensure_ascii=False), max(1, int(max_attempts)), now, now),
    ).fetchone()
    email_id = int(row["email_id"])
    _debug(f"Enqueued email_id={email_id} template={template}")
    return email_id


def claim_email(conn: Any, email_id: int) -> Optional[OutboxEmail]:
    """Claim one specific pending email (used right after the request that queued it)."""
    rows = conn.execute(
        f"""
        UPDATE email_outbox
        SET status='sending', updated_at=?
        WHERE email_id=? AND status='pending'
        {_RETURNING}
        """,
        (utcnow_iso(), int(email_id)),
    ).fetchall()
    if not rows:
        return None
    return _from_row(rows[0])


def claim_next_email(conn: Any) -> Optional[OutboxEmail]:
    now = utcnow_iso()

    # Atomic "select + update" with RETURNING to avoid two senders claiming one row.
    # Postgres: add SKIP LOCKED so multiple workers don't pile onto the same row.
    lock_clause = " FOR UPDATE SKIP LOCKED" if _dialect(conn).startswith("post") else ""

    sql = f"""
    WITH next AS (
        SELECT email_id
        FROM email_outbox
        WHERE status='pending'
          AND (run_after IS NULL OR run_after <= ?)
        ORDER BY created_at ASC, email_id ASC
        LIMIT 1{lock_clause}
    )
    UPDATE email_outbox
    SET status='sending',
        updated_at=?
    WHERE email_id = (SELECT email_id FROM next)
      AND status='pending'
    {_RETURNING};
    """
    rows = conn.execute(sql, (now, now)).fetchall()
    if not rows:
        return None
    return _from_row(rows[0])


def mark_email_sent(conn: Any, email_id: int) -> None:
    conn.execute(
        "UPDATE email_outbox SET status='sent', attempts=attempts+1, last_error=NULL, updated_at=? WHERE email_id=?",
        (utcnow_iso(), int(email_id)),
    )


def mark_email_error(conn: Any, email_id: int, err: str, *, retry_after_seconds: int = 60) -> None:
    """Record a failed send; back to pending until attempts reach max_attempts."""
    now = utcnow_iso()

    row = conn.execute(
        "SELECT attempts, max_attempts FROM email_outbox WHERE email_id=?",
        (int(email_id),),
    ).fetchone()
    if row is None:
        return

    attempts = int(row["attempts"]) + 1
    max_attempts = int(row["max_attempts"])

    if attempts >= max_attempts:
        conn.execute(
            """
            UPDATE email_outbox
            SET status='error', attempts=?, last_error=?, updated_at=?
            WHERE email_id=?
            """,
            (attempts, str(err)[:2000], now, int(email_id)),
        )
        _debug(f"Giving up on email_id={email_id} after {attempts} attempts")
        return

    # Simple fixed backoff
    conn.execute(
        """
        UPDATE email_outbox
        SET status='pending', attempts=?, last_error=?, updated_at=?, run_after=?
        WHERE email_id=?
        """,
        (attempts, str(err)[:2000], now, iso_after_seconds(retry_after_seconds), int(email_id)),
    )


def release_stale_claims(conn: Any) -> int:
    """Return emails stuck in 'sending' (sender died mid-delivery) to pending."""
    cur = conn.execute(
        "UPDATE email_outbox SET status='pending', updated_at=? WHERE status='sending'",
        (utcnow_iso(),),
    )
    n = int(cur.rowcount or 0)
    if n:
        _debug(f"Released {n} stale claims")
    return n
