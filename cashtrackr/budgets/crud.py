from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from cashtrackr.util.time import utcnow_iso


_CENTS = Decimal("0.01")


def normalize_amount(value: Any) -> str:
    """Decimal text with two places, as stored ("4000" -> "4000.00")."""
    return str(Decimal(str(value).strip()).quantize(_CENTS, rounding=ROUND_HALF_UP))


# -----------------------------
# Budgets
# -----------------------------


def list_budgets(conn: Any, user_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        "SELECT * FROM budgets WHERE user_id=? ORDER BY created_at DESC, id DESC",
        (int(user_id),),
    ).fetchall()
    return [dict(r) for r in rows]


def get_budget_by_id(conn: Any, budget_id: int) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM budgets WHERE id=?", (int(budget_id),)).fetchone()
    return dict(row) if row is not None else None


def get_budget_with_expenses(conn: Any, budget_id: int) -> Optional[Dict[str, Any]]:
    budget = get_budget_by_id(conn, budget_id)
    if budget is None:
        return None
    budget["expenses"] = list_expenses(conn, budget_id)
    return budget


def create_budget(conn: Any, *, user_id: int, name: str, amount: Any) -> int:
    now = utcnow_iso()
    row = conn.execute(
        """
        INSERT INTO budgets (name, amount, user_id, created_at, updated_at)
        VALUES (?,?,?,?,?)
        RETURNING id
        """,
        (name, normalize_amount(amount), int(user_id), now, now),
    ).fetchone()
    return int(row["id"])


def update_budget(conn: Any, budget_id: int, *, name: str, amount: Any) -> None:
    conn.execute(
        "UPDATE budgets SET name=?, amount=?, updated_at=? WHERE id=?",
        (name, normalize_amount(amount), utcnow_iso(), int(budget_id)),
    )


def delete_budget(conn: Any, budget_id: int) -> None:
    # Expenses go with it (ON DELETE CASCADE)
    conn.execute("DELETE FROM budgets WHERE id=?", (int(budget_id),))


# -----------------------------
# Expenses
# -----------------------------


def list_expenses(conn: Any, budget_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        "SELECT * FROM expenses WHERE budget_id=? ORDER BY created_at ASC, id ASC",
        (int(budget_id),),
    ).fetchall()
    return [dict(r) for r in rows]


def get_expense_by_id(conn: Any, expense_id: int) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM expenses WHERE id=?", (int(expense_id),)).fetchone()
    return dict(row) if row is not None else None


def create_expense(conn: Any, *, budget_id: int, name: str, amount: Any) -> int:
    now = utcnow_iso()
    row = conn.execute(
        """
        INSERT INTO expenses (name, amount, budget_id, created_at, updated_at)
        VALUES (?,?,?,?,?)
        RETURNING id
        """,
        (name, normalize_amount(amount), int(budget_id), now, now),
    ).fetchone()
    return int(row["id"])


def update_expense(conn: Any, expense_id: int, *, name: str, amount: Any) -> None:
    conn.execute(
        "UPDATE expenses SET name=?, amount=?, updated_at=? WHERE id=?",
        (name, normalize_amount(amount), utcnow_iso(), int(expense_id)),
    )


def delete_expense(conn: Any, expense_id: int) -> None:
    conn.execute("DELETE FROM expenses WHERE id=?", (int(expense_id),))
