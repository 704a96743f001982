"""Connection handling and schema creation."""

import sqlite3

import pytest

from cashtrackr.db import _qmark_to_pct, connect, init_db
from cashtrackr.schema import get_schema_sql


def _columns(path, table):
    conn = sqlite3.connect(path)
    try:
        return {r[1] for r in conn.execute(f"PRAGMA table_info({table})").fetchall()}
    finally:
        conn.close()


def test_init_db_is_idempotent(tmp_path):
    path = str(tmp_path / "db.sqlite")
    init_db(path)
    init_db(path)
    assert {"id", "name", "email", "password_hash", "token", "confirmed"} <= _columns(path, "users")
    assert {"id", "name", "amount", "budget_id"} <= _columns(path, "expenses")


def test_connect_rolls_back_on_error(tmp_path):
    path = str(tmp_path / "db.sqlite")
    init_db(path)
    with pytest.raises(sqlite3.IntegrityError):
        with connect(path) as conn:
            conn.execute(
                "INSERT INTO users (name, email, password_hash, created_at, updated_at) VALUES ('A','a@x.com','h','t','t')"
            )
            conn.execute(
                "INSERT INTO users (name, email, password_hash, created_at, updated_at) VALUES ('B','a@x.com','h','t','t')"
            )
    with connect(path) as conn:
        assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 0


def test_expenses_need_an_existing_budget(tmp_path):
    path = str(tmp_path / "db.sqlite")
    init_db(path)
    with pytest.raises(sqlite3.IntegrityError):
        with connect(path) as conn:
            conn.execute(
                "INSERT INTO expenses (name, amount, budget_id, created_at, updated_at) VALUES ('x','1.00',42,'t','t')"
            )


def test_sqlite_url_prefix(tmp_path):
    path = tmp_path / "url.sqlite"
    init_db(f"sqlite:///{path}")
    assert path.exists()


@pytest.mark.parametrize(
    "sql,expected",
    [
        ("SELECT * FROM users WHERE id=?", "SELECT * FROM users WHERE id=%s"),
        ("SELECT '?' FROM t WHERE a=? AND b=?", "SELECT '?' FROM t WHERE a=%s AND b=%s"),
        ("SELECT 'it''s ?' , ?", "SELECT 'it''s ?' , %s"),
        ('SELECT "col?" FROM t WHERE x=?', 'SELECT "col?" FROM t WHERE x=%s'),
    ],
)
def test_qmark_to_pct(sql, expected):
    assert _qmark_to_pct(sql) == expected


def test_postgres_schema_uses_bigserial():
    ddl = get_schema_sql("postgres")
    assert "AUTOINCREMENT" not in ddl
    assert "BIGSERIAL PRIMARY KEY" in ddl
    assert "PRAGMA" not in ddl
