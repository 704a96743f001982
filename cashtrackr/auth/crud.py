from __future__ import annotations

from typing import Any, Dict, Optional

from cashtrackr.util.time import utcnow_iso

from .security import hash_password


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    """The only account fields ever sent to clients."""
    d = dict(row)
    return {"id": int(d["id"]), "name": d["name"], "email": d["email"]}


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    if not email:
        return None
    return conn.execute("SELECT * FROM users WHERE email=?", (email,)).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute("SELECT * FROM users WHERE id=?", (int(user_id),)).fetchone()


def get_user_by_token(conn: Any, token: str) -> Optional[Any]:
    if not token:
        return None
    return conn.execute("SELECT * FROM users WHERE token=?", (token,)).fetchone()


def email_exists(conn: Any, email: str) -> bool:
    return conn.execute("SELECT 1 FROM users WHERE email=?", (email,)).fetchone() is not None


def create_user(
    conn: Any,
    *,
    name: str,
    email: str,
    password: str,
    token: str | None,
    confirmed: bool = False,
) -> Optional[int]:
    """Insert an account. Returns None if the email is already taken, including
    by a registration that raced past `email_exists`."""
    now = utcnow_iso()
    row = conn.execute(
        """
        INSERT INTO users (name, email, password_hash, token, confirmed, created_at, updated_at)
        VALUES (?,?,?,?,?,?,?)
        ON CONFLICT(email) DO NOTHING
        RETURNING id
        """,
        (name, email, hash_password(password), token, 1 if confirmed else 0, now, now),
    ).fetchone()
    if row is None:
        return None
    return int(row["id"])


def confirm_user_with_token(conn: Any, token: str) -> Optional[int]:
    """Confirm the pending account holding `token` in a single conditional UPDATE.

    Codes are not unique, so only the oldest pending account holding it is
    confirmed. Returns its id, or None if no unconfirmed account holds the token.
    Two concurrent calls with the same token cannot both succeed.
    """
    rows = conn.execute(
        """
        UPDATE users
        SET confirmed=1, token=NULL, updated_at=?
        WHERE id = (
            SELECT id FROM users
            WHERE token=? AND confirmed=0
            ORDER BY id ASC
            LIMIT 1
        )
          AND token=? AND confirmed=0
        RETURNING id
        """,
        (utcnow_iso(), token, token),
    ).fetchall()
    if not rows:
        return None
    return int(rows[0]["id"])


def set_user_token(conn: Any, user_id: int, token: str | None) -> None:
    conn.execute(
        "UPDATE users SET token=?, updated_at=? WHERE id=?",
        (token, utcnow_iso(), int(user_id)),
    )


def set_user_password(conn: Any, user_id: int, password: str, *, clear_token: bool = False) -> None:
    now = utcnow_iso()
    if clear_token:
        conn.execute(
            "UPDATE users SET password_hash=?, token=NULL, updated_at=? WHERE id=?",
            (hash_password(password), now, int(user_id)),
        )
        return
    conn.execute(
        "UPDATE users SET password_hash=?, updated_at=? WHERE id=?",
        (hash_password(password), now, int(user_id)),
    )


def update_user_profile(conn: Any, user_id: int, *, name: str, email: str) -> None:
    conn.execute(
        "UPDATE users SET name=?, email=?, updated_at=? WHERE id=?",
        (name, email, utcnow_iso(), int(user_id)),
    )
